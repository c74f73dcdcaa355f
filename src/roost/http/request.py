"""Immutable HTTP request.

Only what the dispatcher and handlers read: method, path, headers, query
and a body that is received once and cached.
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass, field, replace
from typing import Any

from roost._internal.asgi import Receive
from roost.http.headers import Headers
from roost.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """One received HTTP request. Body access is async (``body()``, ``json()``)."""

    method: str
    path: str
    headers: Headers
    query: QueryParams
    _receive: Receive
    # Shared by copies made with ``with_header``; holds the body once read
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def url(self) -> str:
        """Path plus query string, as used in the request's root span label."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw.decode('latin-1')}"
        return self.path

    def with_header(self, name: str, value: str) -> Request:
        """A copy with *name* set to *value* (replacing any existing value)."""
        return replace(self, headers=self.headers.with_header(name, value))

    async def body(self) -> bytes:
        """The full request body. The ASGI receive channel is drained only once."""
        if "body" not in self._cache:
            chunks: list[bytes] = []
            more_body = True
            while more_body:
                message = await self._receive()
                chunks.append(message.get("body", b""))
                more_body = message.get("more_body", False)
            self._cache["body"] = b"".join(chunks)
        return self._cache["body"]

    async def json(self) -> Any:
        """The body parsed as JSON. Raises ``ValueError`` when it is not JSON."""
        return json_module.loads(await self.body())

    @classmethod
    def from_asgi(cls, scope: dict[str, Any], receive: Receive) -> Request:
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(tuple(scope.get("headers", ()))),
            query=QueryParams(scope.get("query_string", b"")),
            _receive=receive,
        )
