"""Invoke helper — call sync or async callables uniformly.

Page handlers, API handlers and measured units of work can be ``def`` or
``async def``. Anything that calls user-provided code goes through this
helper so the sync/async check lives in exactly one place.

Usage::

    from roost._internal.invoke import invoke

    result = await invoke(handler, ctx)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *handler* and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync: returns immediately
        def server_data(ctx):
            return {"user": ctx.query.get("user")}

        # async: coroutine is awaited
        async def server_data(ctx):
            return {"user": await load_user(ctx)}
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
