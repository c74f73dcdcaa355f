"""Page declarations and the per-request page context.

A ``Page`` ties an exact route to a source file the compiler builds and an
optional handler that produces the page's server data. The handler receives
a ``PageContext``::

    async def dashboard(ctx: PageContext) -> dict:
        user = await ctx.measure(load_user, "load user")
        return {"user": user, "tab": ctx.query.get("tab", "home")}

Whatever mapping the handler returns is exposed to client code as
``window.serverData``. Returning a ``Response`` bypasses rendering.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from roost.http.headers import Headers
from roost.http.request import Request
from roost.tracing import Measure

# Page handler: receives a PageContext, returns a data payload or a Response
type PageHandler = Callable[[PageContext], Any]

# API handler: receives the Request (correlation header attached)
type ApiHandler = Callable[[Request], Any]

_READ_ONLY_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True, slots=True)
class Page:
    """One declared page. Immutable after registration."""

    route: str
    target: str
    handler: PageHandler | None = None

    @property
    def source(self) -> Path:
        """The target as a path (``./pages/a.html`` → ``pages/a.html``)."""
        return Path(self.target)

    @property
    def extension(self) -> str:
        """Extension the compiled artifact must have (lower-cased)."""
        return self.source.suffix.lower()

    @property
    def name(self) -> str:
        """Base name up to the first dot, lower-cased."""
        return self.source.name.split(".", 1)[0].lower()


@dataclass(frozen=True, slots=True)
class PageContext:
    """Everything a page handler may need for one request.

    Created fresh per request and discarded after the response. ``query``
    is a plain dict (repeated parameters keep the last value); ``body`` is
    the parsed JSON payload for methods other than GET/HEAD (``{}`` when the
    body is empty or not JSON) and ``None`` otherwise. ``measure`` is bound
    to this request's trace tree.
    """

    request: Request
    method: str
    path: str
    query: dict[str, str]
    headers: Headers
    body: Any
    request_id: str
    measure: Measure

    @classmethod
    async def from_request(cls, request: Request, request_id: str, measure: Measure) -> PageContext:
        body: Any = None
        if request.method not in _READ_ONLY_METHODS:
            try:
                body = await request.json()
            except ValueError:
                body = {}
        return cls(
            request=request,
            method=request.method,
            path=request.path,
            query=request.query.to_dict(),
            headers=request.headers,
            body=body,
            request_id=request_id,
            measure=measure,
        )
