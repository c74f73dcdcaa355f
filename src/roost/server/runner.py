"""Server runner.

Starts a pounce ASGI server with the live roost App object. Always a
single worker: in-flight rebuilds and the artifact cache live in one
process. Reload is enabled in development mode.
"""

from __future__ import annotations


def run_server(
    app: object,
    host: str,
    port: int,
    *,
    reload: bool = True,
    reload_include: tuple[str, ...] = (),
    reload_dirs: tuple[str, ...] = (),
    app_path: str | None = None,
) -> None:
    """Start a pounce server with the given roost App.

    Args:
        app: ASGI callable (roost App instance).
        host: Bind host address.
        port: Bind port number.
        reload: Enable auto-reload on file changes.
        reload_include: Extra file extensions to watch when reload is
            active (e.g. ``(".tsx", ".css")``).
        reload_dirs: Extra directories to watch alongside cwd.
        app_path: Optional ``"module:attribute"`` import string.  When
            provided, pounce reimports the app on each reload cycle.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=reload,
        reload_include=reload_include,
        reload_dirs=reload_dirs,
    )
    server = Server(config, app, app_path=app_path)
    server.run()
