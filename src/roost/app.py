"""Roost application class.

Mutable during setup (page, API and import registration).
Frozen at runtime when startup runs or ``__call__()`` is first invoked.
"""

import inspect
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from roost._internal.asgi import Receive, Scope, Send
from roost.build.builder import Builder
from roost.build.cache import ArtifactCache, cache_key
from roost.build.compiler import BuildOptions, Compiler, CopyCompiler
from roost.config import AppConfig
from roost.errors import ConfigurationError
from roost.imports import ImportDescriptor, ImportMap, resolve_imports
from roost.pages import ApiHandler, Page, PageHandler
from roost.server.dispatch import Dispatcher
from roost.server.handler import handle_request
from roost.tracing import Measure, SpanHook, TraceContext, measure

logger = logging.getLogger("roost.server")


class App:
    """The roost application.

    Mutable during setup (pages, API routes, imports, hooks).
    Frozen on first startup or request.

    Usage::

        app = App(AppConfig(debug=False))
        app.imports("react@18.2.0", {"name": "react-dom/client", "version": "18.2.0"})

        @app.page("/dashboard", "./pages/dashboard.html")
        async def dashboard(ctx):
            return {"user": {"name": "Jane"}}

        @app.api("/api/health")
        def health(request):
            return {"status": "ok"}

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the app.
    """

    __slots__ = (
        "_api",
        "_builder",
        "_cache",
        "_compiler",
        "_descriptors",
        "_dispatcher",
        "_freeze_lock",
        "_frozen",
        "_import_map",
        "_on_span",
        "_pages",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        compiler: Compiler | None = None,
        cache: ArtifactCache | None = None,
        on_span: SpanHook | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._compiler: Compiler = compiler or CopyCompiler()
        self._cache: ArtifactCache = cache if cache is not None else ArtifactCache()
        self._on_span = on_span
        self._pages: list[Page] = []
        self._api: dict[str, ApiHandler] = {}
        self._descriptors: list[ImportDescriptor] = []
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._import_map: ImportMap | None = None
        self._builder: Builder | None = None
        self._dispatcher: Dispatcher | None = None

    # -- Registration --

    def page(self, route: str, target: str) -> Callable[[PageHandler], PageHandler]:
        """Register a page and its server-data handler via decorator.

        Args:
            route: Exact request path (no patterns).
            target: Source file handed to the compiler.
        """

        def decorator(func: PageHandler) -> PageHandler:
            self.add_page(route, target, func)
            return func

        return decorator

    def add_page(self, route: str, target: str, handler: PageHandler | None = None) -> Page:
        """Register a page. Pages without a handler are served with empty data."""
        self._check_not_frozen()
        page = Page(route=route, target=target, handler=handler)
        self._pages.append(page)
        return page

    def api(self, path: str) -> Callable[[ApiHandler], ApiHandler]:
        """Register an API handler via decorator.

        The handler receives the ``Request`` (with the correlation header
        attached) and may return a ``Response``, ``str``, ``bytes``,
        ``dict``/``list`` or ``None``.
        """

        def decorator(func: ApiHandler) -> ApiHandler:
            self.add_api(path, func)
            return func

        return decorator

    def add_api(self, path: str, handler: ApiHandler) -> None:
        self._check_not_frozen()
        if path in self._api:
            msg = f"API route {path!r} is already registered"
            raise ConfigurationError(msg)
        self._api[path] = handler

    def imports(self, *declarations: str | Mapping[str, Any] | ImportDescriptor) -> None:
        """Declare frontend packages for the import map.

        Strings may carry a version (``"react@18.2.0"``,
        ``"@scope/pkg@1.0"``); mappings take ``name``/``version``/``deps``.
        Later declarations of the same package override earlier versions.
        """
        self._check_not_frozen()
        for declaration in declarations:
            if isinstance(declaration, str):
                declaration = _parse_specifier(declaration)
            self._descriptors.append(ImportDescriptor.from_config(declaration))

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run after the initial build, before the first request.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Compiled state --

    @property
    def pages(self) -> tuple[Page, ...]:
        return tuple(self._pages)

    @property
    def cache(self) -> ArtifactCache:
        return self._cache

    @property
    def import_map(self) -> ImportMap:
        """The resolved import map (freezes the app)."""
        self._ensure_frozen()
        assert self._import_map is not None
        return self._import_map

    @property
    def dispatcher(self) -> Dispatcher:
        self._ensure_frozen()
        assert self._dispatcher is not None
        return self._dispatcher

    async def build(self) -> int:
        """Run the full build: clear ``outdir`` and the cache, compile every page.

        Returns the number of outputs published to the cache.
        """
        self._ensure_frozen()
        assert self._builder is not None
        return await self._builder.build_all(self._pages, Measure.root(on_span=self._on_span))

    async def startup(self) -> None:
        """Freeze, run the initial build (if enabled) and the startup hooks."""

        def initialize(_measure: Measure) -> None:
            self._ensure_frozen()

        await measure(initialize, "Initialize routes", TraceContext("init"), on_span=self._on_span)
        if self.config.build_on_startup:
            await self.build()
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve the app with pounce (reload in development mode)."""
        from roost.server.runner import run_server

        self._ensure_frozen()
        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            reload=self.config.debug,
            reload_include=self.config.reload_include,
            reload_dirs=self.config.reload_dirs,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        await handle_request(scope, receive, send, dispatcher=self.dispatcher)

    async def _handle_lifespan(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Startup freezes the app and runs the initial build before the
        server begins accepting HTTP requests.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        # 1. Route table: exact paths, unique across pages and API routes
        pages: dict[str, Page] = {}
        artifact_owners: dict[str, Page] = {}
        for page in self._pages:
            if page.route in pages:
                msg = f"Page route {page.route!r} is declared more than once"
                raise ConfigurationError(msg)
            if page.route in self._api:
                msg = f"Route {page.route!r} is declared as both a page and an API route"
                raise ConfigurationError(msg)
            key = cache_key(page.source)
            owner = artifact_owners.setdefault(key, page)
            if owner.source.resolve() != page.source.resolve():
                msg = (
                    f"Pages {owner.route!r} ({owner.target}) and {page.route!r} ({page.target}) "
                    f"would share the build artifact {key!r}; rename one of the targets"
                )
                raise ConfigurationError(msg)
            pages[page.route] = page

        # 2. Import map
        self._import_map = resolve_imports(
            self._descriptors,
            dev=self.config.debug,
            cdn=self.config.cdn_url,
            strict=self.config.strict_imports,
        )
        logger.info("Import map keys: %s", list(self._import_map))

        # 3. Builder and dispatcher
        options = BuildOptions.for_config(self.config, self._import_map)
        self._builder = Builder(self._compiler, self._cache, options, debug=self.config.debug)
        self._dispatcher = Dispatcher(
            pages=pages,
            api=self._api,
            builder=self._builder,
            import_map=self._import_map,
            config=self.config,
            on_span=self._on_span,
        )
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register pages, API routes and imports before startup."
            )
            raise RuntimeError(msg)


def _parse_specifier(specifier: str) -> ImportDescriptor:
    """``"react@18"`` → name + version; a leading ``@`` is a scope, not a version."""
    name, sep, version = specifier.rpartition("@")
    if not sep or not name:
        return ImportDescriptor(specifier)
    return ImportDescriptor(name, version or None)


def create_app(
    *,
    pages: Iterable[Page | Mapping[str, Any]] = (),
    api: Mapping[str, ApiHandler] | None = None,
    imports: Iterable[str | Mapping[str, Any] | ImportDescriptor] = (),
    config: AppConfig | None = None,
    compiler: Compiler | None = None,
    cache: ArtifactCache | None = None,
) -> App:
    """Build an App from declarative configuration.

    Usage::

        app = create_app(
            pages=[{"route": "/", "target": "./pages/index.html", "handler": index}],
            api={"/api/health": health},
            imports=[{"name": "react", "version": "18.2.0"}],
        )
    """
    app = App(config, compiler=compiler, cache=cache)
    for page in pages:
        if isinstance(page, Page):
            app.add_page(page.route, page.target, page.handler)
        else:
            app.add_page(page["route"], page["target"], page.get("handler"))
    for path, handler in (api or {}).items():
        app.add_api(path, handler)
    app.imports(*imports)
    return app
