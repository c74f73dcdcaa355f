"""Roost CLI — serve and build commands.

Entry point registered as ``roost`` in ``pyproject.toml``::

    [project.scripts]
    roost = "roost.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``roost`` command."""
    parser = argparse.ArgumentParser(
        prog="roost",
        description="Roost — serve compiled pages with server data and import maps.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- roost run --------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Start the server")
    run_parser.add_argument(
        "app",
        help="Import string (e.g. myapp:app)",
    )
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument(
        "--production",
        action="store_true",
        help="Serve cached artifacts and disable reload",
    )

    # -- roost build ------------------------------------------------------
    build_parser = subparsers.add_parser("build", help="Compile every page into outdir")
    build_parser.add_argument(
        "app",
        help="Import string (e.g. myapp:app)",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from roost.cli._run import run_server

        run_server(args)
    elif args.command == "build":
        from roost.cli._build import run_build

        run_build(args)
