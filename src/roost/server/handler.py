"""ASGI handler — translates ASGI scope/messages to roost types.

The only component that touches raw ASGI for HTTP. Converts the scope to
a typed Request, hands it to the Dispatcher, and sends the Response back
through ASGI send().
"""

from roost._internal.asgi import Receive, Scope, Send
from roost.http.request import Request
from roost.server.dispatch import Dispatcher
from roost.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    dispatcher: Dispatcher,
) -> None:
    """Process a single HTTP request through the dispatcher."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(dict(scope), receive)
    response = await dispatcher.handle(request)
    await send_response(response, send, head=request.method == "HEAD")
