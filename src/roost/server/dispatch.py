"""Request dispatcher — one root span per request, first match wins.

Branch order:

1. A file under the build output directory at exactly the request path.
2. A file under the assets directory at exactly the request path.
3. A declared page route: obtain the artifact (building it if needed),
   run the page handler for server data, inject the import map and data.
4. A declared API route: call the handler with the request.
5. Otherwise ``404 Route Not Found``.

Each request gets a correlation id (the caller's ``X-Request-ID`` header
when present, otherwise a fresh short id). It prefixes every span, is
attached to the request handed to API handlers, and is echoed on the
response.
"""

import logging
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import anyio

from roost._internal.invoke import invoke
from roost.build.builder import Builder
from roost.config import AppConfig
from roost.errors import MeasureError, NotFound
from roost.http.content_types import content_type_for
from roost.http.request import Request
from roost.http.response import Response
from roost.imports import ImportMap
from roost.pages import ApiHandler, Page, PageContext
from roost.rewrite import inject_page
from roost.server.errors import error_response
from roost.server.negotiation import negotiate
from roost.tracing import Measure, SpanHook

logger = logging.getLogger("roost.server")

_FILE_METHODS = frozenset({"GET", "HEAD"})
_HTML_EXTENSIONS = frozenset({".html", ".htm"})

NOT_FOUND_BODY = "Route Not Found"


def new_request_id() -> str:
    """Short opaque correlation id (first group of a UUID4)."""
    return str(uuid.uuid4()).split("-", 1)[0]


async def find_file(root: Path, request_path: str) -> Path | None:
    """The regular file at *request_path* under *root*, if any.

    Paths resolving outside *root* (``..``, symlinks) or that the OS
    rejects (NUL bytes, over-long names) never match.
    """
    relative = request_path.lstrip("/")
    if not relative:
        return None
    try:
        resolved = await anyio.Path(root / relative).resolve()
        candidate = Path(resolved)
        if not candidate.is_relative_to(root) or not await resolved.is_file():
            return None
    except (OSError, ValueError):
        return None
    return candidate


class Dispatcher:
    """Routes requests to files, pages and API handlers.

    Constructed once per App at freeze time; holds only immutable
    configuration plus the injected ``Builder`` (which owns the cache).
    """

    __slots__ = (
        "_api",
        "_builder",
        "_config",
        "_file_roots",
        "_import_map",
        "_on_span",
        "_pages",
    )

    def __init__(
        self,
        *,
        pages: Mapping[str, Page],
        api: Mapping[str, ApiHandler],
        builder: Builder,
        import_map: ImportMap,
        config: AppConfig,
        on_span: SpanHook | None = None,
    ) -> None:
        self._pages = dict(pages)
        self._api = dict(api)
        self._builder = builder
        self._import_map = import_map
        self._config = config
        self._on_span = on_span
        roots = [Path(config.outdir)]
        if config.assets_dir is not None:
            roots.append(Path(config.assets_dir))
        self._file_roots = tuple(root.resolve() for root in roots)

    @property
    def import_map(self) -> ImportMap:
        return self._import_map

    def request_id_for(self, request: Request) -> str:
        return request.headers.get(self._config.request_id_header) or new_request_id()

    async def handle(self, request: Request) -> Response:
        """Produce the response for *request*. Never raises ``Exception``."""
        request_id = self.request_id_for(request)
        header = self._config.request_id_header
        request = request.with_header(header, request_id)
        measure = Measure.root(request_id, on_span=self._on_span)

        async def dispatch(nested: Measure) -> Response:
            return await self._dispatch(request, request_id, nested)

        try:
            response = await measure(dispatch, f"{request.method} {request.url}")
        except MeasureError as exc:
            response = error_response(exc, request, request_id=request_id, debug=self._config.debug)
        return response.with_header(header, request_id)

    async def _dispatch(self, request: Request, request_id: str, measure: Measure) -> Response:
        path = request.path

        if request.method in _FILE_METHODS:
            for root in self._file_roots:
                file_path = await find_file(root, path)
                if file_path is not None:
                    return await self._serve_file(file_path)

        page = self._pages.get(path)
        if page is not None:

            async def serve_page(nested: Measure) -> Response:
                return await self._serve_page(page, request, request_id, nested)

            return await measure(serve_page, f"page {path}")

        handler = self._api.get(path)
        if handler is not None:

            async def call_endpoint(_nested: Measure) -> Response:
                return negotiate(await invoke(handler, request))

            return await measure(call_endpoint, f"endpoint {path}")

        logger.debug("[%s] No route for %s %s", request_id, request.method, path)
        return Response(body=NOT_FOUND_BODY, status=404, content_type="text/plain; charset=utf-8")

    async def _serve_file(self, file_path: Path) -> Response:
        body = await anyio.Path(file_path).read_bytes()
        return Response(body=body, content_type=content_type_for(file_path))

    async def _serve_page(
        self,
        page: Page,
        request: Request,
        request_id: str,
        measure: Measure,
    ) -> Response:
        artifact = await self._builder.artifact_for(page, measure)
        if artifact is None:
            raise NotFound(f"Page not found: {page.target}")

        payload: Any = {}
        if page.handler is not None:
            handler = page.handler

            async def server_data(nested: Measure) -> Any:
                ctx = await PageContext.from_request(request, request_id, nested)
                return await invoke(handler, ctx)

            payload = await measure(server_data, f"serverData {request.path}")
            if isinstance(payload, Response):
                return payload

        content_type = content_type_for(artifact)
        raw = await anyio.Path(artifact).read_bytes()
        if artifact.suffix.lower() not in _HTML_EXTENSIONS:
            return Response(body=raw, content_type=content_type)

        html = raw.decode("utf-8")

        def transform(_nested: Measure) -> str:
            return inject_page(html, self._import_map, payload, request_id)

        body = await measure(transform, "Transform page")
        return Response(body=body, content_type=content_type)

