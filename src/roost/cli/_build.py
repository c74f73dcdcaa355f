"""``roost build`` — one full build without serving."""

import argparse
import asyncio
import sys

from roost.cli._resolve import configure_logging, load_app


def run_build(args: argparse.Namespace) -> None:
    """Clear outdir and compile every page of ``args.app``.

    Exits 1 when the app declares pages but nothing was produced.
    """
    app = load_app(args)
    configure_logging(app.config.log_level)

    count = asyncio.run(app.build())
    print(f"Built {count} output(s) into {app.config.outdir}")
    if app.pages and count == 0:
        print("Error: build produced no outputs", file=sys.stderr)
        raise SystemExit(1)
