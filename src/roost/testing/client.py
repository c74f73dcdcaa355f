"""Async test client for roost applications.

Drives the App through its ASGI interface and hands back the same
``Response`` type the dispatcher produces. No sockets, no server.
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass, field
from typing import Any

from roost.app import App
from roost.http.response import Response


def _scope(method: str, path: str, headers: dict[str, str] | None) -> dict[str, Any]:
    """A minimal ASGI http scope for *path* (which may carry a query string)."""
    path_part, _, query_string = path.partition("?")
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method.upper(),
        "path": path_part,
        "raw_path": path_part.encode("latin-1"),
        "query_string": query_string.encode("latin-1"),
        "root_path": "",
        "headers": [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ],
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 0),
    }


@dataclass(slots=True)
class _Exchange:
    """One request body going in, the ASGI response messages coming out."""

    body: bytes = b""
    consumed: bool = False
    status: int = 200
    headers: list[tuple[bytes, bytes]] = field(default_factory=list)
    chunks: list[bytes] = field(default_factory=list)

    async def receive(self) -> dict[str, Any]:
        if self.consumed:
            return {"type": "http.disconnect"}
        self.consumed = True
        return {"type": "http.request", "body": self.body, "more_body": False}

    async def send(self, message: dict[str, Any]) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            self.headers = list(message.get("headers", []))
        elif message["type"] == "http.response.body":
            self.chunks.append(message.get("body", b""))

    def response(self) -> Response:
        content_type = "text/html; charset=utf-8"
        headers: list[tuple[str, str]] = []
        for raw_name, raw_value in self.headers:
            name = raw_name.decode("latin-1")
            value = raw_value.decode("latin-1")
            if name == "content-type":
                content_type = value
            elif name != "content-length":
                headers.append((name, value))
        return Response(
            body=b"".join(self.chunks),
            status=self.status,
            content_type=content_type,
            headers=tuple(headers),
        )


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Async test client for roost applications.

    Entering the client runs ``App.startup()`` (freeze, optional initial
    build, startup hooks); leaving it runs the shutdown hooks.

    Usage::

        async with TestClient(app) as client:
            response = await client.get("/dashboard")
            assert response.status == 200
    """

    __slots__ = ("app",)

    def __init__(self, app: App) -> None:
        self.app = app

    async def __aenter__(self) -> TestClient:
        await self.app.startup()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.app.shutdown()

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        return await self.request("GET", path, headers=headers)

    async def head(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        return await self.request("HEAD", path, headers=headers)

    async def delete(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        return await self.request("DELETE", path, headers=headers)

    async def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        json: Any = None,
    ) -> Response:
        """Send a POST request. *json* is encoded and labelled as JSON."""
        if json is not None:
            body = json_module.dumps(json).encode("utf-8")
            headers = {"content-type": "application/json", **(headers or {})}
        return await self.request("POST", path, headers=headers, body=body)

    async def put(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Response:
        return await self.request("PUT", path, headers=headers, body=body)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Response:
        """Send an arbitrary request through the ASGI app."""
        exchange = _Exchange(body=body or b"")
        await self.app(_scope(method, path, headers), exchange.receive, exchange.send)
        return exchange.response()
