"""``roost run`` — start the server.

Resolves an import string to a roost App and serves it with pounce:
development (reload, rebuild on every page request) unless the app is
configured for production or ``--production`` is passed.
"""

import argparse
import dataclasses

from roost.cli._resolve import configure_logging, load_app


def run_server(args: argparse.Namespace) -> None:
    """Start the roost server for ``args.app``."""
    app = load_app(args)
    if args.production and app.config.debug:
        app.config = dataclasses.replace(app.config, debug=False)

    configure_logging(app.config.log_level)

    from roost.server.runner import run_server as _run

    _run(
        app,
        args.host or app.config.host,
        args.port or app.config.port,
        reload=app.config.debug,
        reload_include=app.config.reload_include,
        reload_dirs=app.config.reload_dirs,
        app_path=args.app if app.config.debug else None,
    )
