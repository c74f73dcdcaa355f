"""App import resolution — resolves ``"module:attribute"`` strings to App instances.

Shared by ``roost run`` and ``roost build``.
"""

import argparse
import importlib
import logging
import sys

from roost.app import App


def resolve_app(import_string: str) -> App:
    """Resolve an import string to a roost App instance.

    Accepts ``"module:attribute"``; the attribute defaults to ``"app"``.
    Factory functions (callables that are not an App) are called.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a roost ``App`` or callable.
    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "app"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if callable(obj) and not isinstance(obj, App):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(obj, App):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a roost.App instance"
        raise TypeError(msg)

    return obj


def load_app(args: argparse.Namespace) -> App:
    """``resolve_app`` for CLI commands: exit 1 with a message on failure."""
    try:
        return resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


def configure_logging(level: str) -> None:
    """Send roost's loggers to stderr at *level*, one message per line."""
    logging.basicConfig(level=level.upper(), format="%(message)s")
