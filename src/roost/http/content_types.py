"""Content types for served files."""

import mimetypes
from pathlib import PurePath

_CONTENT_TYPES: dict[str, str] = {
    ".html": "text/html",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".css": "text/css",
    ".json": "application/json",
    ".map": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".svg": "image/svg+xml",
}

_TEXT_PREFIXES = ("text/", "application/json")


def content_type_for(path: str | PurePath) -> str:
    """Content-Type header value for a file, keyed off its extension."""
    suffix = PurePath(path).suffix.lower()
    content_type = _CONTENT_TYPES.get(suffix)
    if content_type is None:
        content_type, _ = mimetypes.guess_type(f"file{suffix}")
    if content_type is None:
        return "application/octet-stream"
    if content_type.startswith(_TEXT_PREFIXES):
        return f"{content_type}; charset=utf-8"
    return content_type
