"""Error responses for failed requests.

Every failure reaching the dispatcher arrives wrapped in one or more
``MeasureError`` layers (one per span it escaped). The chain is logged
with the request id, then mapped to a response from its root cause:
``HTTPError`` keeps its status, anything else becomes a 500.
"""

import html
import logging
import traceback

from roost.errors import HTTPError, MeasureError
from roost.http.request import Request
from roost.http.response import Response

logger = logging.getLogger("roost.server")

_PLAIN = "text/plain; charset=utf-8"


def _trail(exc: BaseException) -> str:
    if isinstance(exc, MeasureError):
        return " > ".join(exc.actions)
    return ""


def render_debug_body(exc: BaseException, request: Request, request_id: str) -> str:
    """A self-contained ``<pre>`` diagnostic: failing steps plus traceback."""
    root = exc.root_cause if isinstance(exc, MeasureError) else exc
    header = (
        f"{request.method} {request.path} [{request_id}]\n"
        f"Failed in: {_trail(exc) or '(unmeasured)'}\n\n"
    )
    detail = "".join(traceback.format_exception(root))
    return f"<pre>{html.escape(header + detail)}</pre>"


def error_response(
    exc: BaseException,
    request: Request,
    *,
    request_id: str,
    debug: bool,
) -> Response:
    """Map a failure to a Response, logging it with its trace trail."""
    root = exc.root_cause if isinstance(exc, MeasureError) else exc

    if isinstance(root, HTTPError):
        logger.debug(
            "[%s] %d %s %s: %s", request_id, root.status, request.method, request.path, root.detail
        )
        body = root.detail or f"Error {root.status}"
        response = Response(body=body, status=root.status, content_type=_PLAIN)
        for name, value in root.headers:
            response = response.with_header(name, value)
        return response

    logger.error(
        "[%s] 500 %s %s (%s)",
        request_id,
        request.method,
        request.path,
        _trail(exc) or "unmeasured",
        exc_info=root,
    )
    if debug:
        return Response(body=render_debug_body(exc, request, request_id), status=500)
    return Response(body="Internal Server Error", status=500, content_type=_PLAIN)
