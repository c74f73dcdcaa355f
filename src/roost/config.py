"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=False, port=3000, outdir="build")

    ``debug`` is the single development/production toggle: development
    recompiles a page on every request, production reuses cached artifacts.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = True

    # Reload (development mode only)
    reload_include: tuple[str, ...] = ()  # Extra extensions to watch (e.g. ".tsx", ".css")
    reload_dirs: tuple[str, ...] = ()  # Extra directories to watch alongside cwd

    # Build output and assets
    outdir: str | Path = "dist"
    assets_dir: str | Path | None = "assets"

    # Import map
    cdn_url: str = "https://esm.sh"
    strict_imports: bool = False  # Fail on deps that reference undeclared packages

    # Correlation
    request_id_header: str = "X-Request-ID"

    # Startup: clear outdir and compile every page before serving
    build_on_startup: bool = True

    # Logging
    log_level: str = "info"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: object) -> "AppConfig":
        """Build a config from ``ROOST_*`` environment variables.

        ``ROOST_ENV=production`` selects production mode; any other value
        (or none) selects development. ``ROOST_HOST`` and ``ROOST_PORT``
        override the bind address. Keyword *overrides* win over the
        environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {"debug": env.get("ROOST_ENV", "development") != "production"}
        if "ROOST_HOST" in env:
            values["host"] = env["ROOST_HOST"]
        if "ROOST_PORT" in env:
            values["port"] = int(env["ROOST_PORT"])
        if "ROOST_LOG_LEVEL" in env:
            values["log_level"] = env["ROOST_LOG_LEVEL"]
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]

    @property
    def mode(self) -> str:
        """``"development"`` or ``"production"``."""
        return "development" if self.debug else "production"
