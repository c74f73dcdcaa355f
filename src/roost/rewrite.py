"""Page content rewriting.

Injects two scripts into a compiled HTML page:

- the import map, as the first child of ``<head>`` so it is parsed
  before any module script;
- the handler's server data, as ``window.serverData`` at the end of
  ``<body>``, with the correlation id merged in as ``requestId``.

Works on the serialized HTML string: locate the anchor tag, splice, keep
everything else byte-for-byte.
"""

import json
import re
from collections.abc import Mapping
from typing import Any

from roost.imports import ImportMap

_HEAD_OPEN = re.compile(r"<head(?:\s[^>]*)?>", re.IGNORECASE)
_HTML_OPEN = re.compile(r"<html(?:\s[^>]*)?>", re.IGNORECASE)
_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)


def script_json(data: Any) -> str:
    """JSON safe to embed inside ``<script>``: no raw ``<``, ``>`` or ``&``."""
    text = json.dumps(data, default=str, separators=(",", ":"))
    return text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


def import_map_script(import_map: ImportMap) -> str:
    return f'<script type="importmap">{script_json({"imports": dict(import_map)})}</script>'


def server_data_script(data: Any, request_id: str | None) -> str:
    """``window.serverData`` assignment. Non-mapping payloads go under ``data``."""
    payload: dict[str, Any] = dict(data) if isinstance(data, Mapping) else {"data": data}
    if data is None:
        payload = {}
    payload["requestId"] = request_id
    return f"<script>window.serverData = {script_json(payload)}</script>"


def _prepend_to_head(html: str, snippet: str) -> str:
    head = _HEAD_OPEN.search(html)
    if head is not None:
        return html[: head.end()] + snippet + html[head.end() :]
    root = _HTML_OPEN.search(html)
    if root is not None:
        return html[: root.end()] + f"<head>{snippet}</head>" + html[root.end() :]
    return snippet + html


def _append_to_body(html: str, snippet: str) -> str:
    close = _BODY_CLOSE.search(html)
    if close is None:
        return html + snippet
    return html[: close.start()] + snippet + html[close.start() :]


def inject_page(html: str, import_map: ImportMap, data: Any, request_id: str | None) -> str:
    """Return *html* with the import map and server data scripts injected."""
    html = _prepend_to_head(html, import_map_script(import_map))
    return _append_to_body(html, server_data_script(data, request_id))
