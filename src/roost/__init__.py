"""Roost — a development and production server for browser-compiled pages.

Serves compiled page artifacts with server-side data and an esm.sh import
map injected, caches build outputs, and traces every request as a tree of
timed spans.

Basic usage::

    from roost import App

    app = App()
    app.imports("react@18.2.0")

    @app.page("/", "./pages/index.html")
    async def index(ctx):
        return {"greeting": "hello"}

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ArtifactCache",
    "ConfigurationError",
    "HTTPError",
    "ImportDescriptor",
    "ImportMap",
    "Measure",
    "MeasureError",
    "NotFound",
    "Page",
    "PageContext",
    "Request",
    "ResolutionError",
    "Response",
    "RoostError",
    "create_app",
    "measure",
    "resolve_imports",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import roost`` fast while providing a clean top-level API.
    """
    if name in ("App", "create_app"):
        from roost import app as _app

        return getattr(_app, name)

    if name == "AppConfig":
        from roost.config import AppConfig

        return AppConfig

    if name == "Request":
        from roost.http.request import Request

        return Request

    if name == "Response":
        from roost.http.response import Response

        return Response

    if name == "ArtifactCache":
        from roost.build.cache import ArtifactCache

        return ArtifactCache

    if name in ("Page", "PageContext"):
        from roost import pages as _pages

        return getattr(_pages, name)

    if name in ("ImportDescriptor", "ImportMap", "resolve_imports"):
        from roost import imports as _imports

        return getattr(_imports, name)

    if name in ("Measure", "measure"):
        from roost import tracing as _tracing

        return getattr(_tracing, name)

    if name in (
        "ConfigurationError",
        "HTTPError",
        "MeasureError",
        "NotFound",
        "ResolutionError",
        "RoostError",
    ):
        from roost import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
