"""Tests for roost.rewrite — import map and server data injection."""

import json
import re

from roost.imports import ImportDescriptor, resolve_imports
from roost.rewrite import inject_page, script_json, server_data_script

IMPORT_MAP = resolve_imports([ImportDescriptor("react", "18.2.0")], dev=False)


def _server_data(html: str) -> dict:
    match = re.search(r"<script>window\.serverData = (.*?)</script>", html)
    assert match is not None
    return json.loads(match.group(1))


class TestScriptJson:
    def test_escapes_markup(self) -> None:
        text = script_json({"html": "</script><b>&"})
        assert "<" not in text
        assert ">" not in text
        assert "&" not in text
        assert json.loads(text) == {"html": "</script><b>&"}


class TestServerDataScript:
    def test_mapping_is_spread_with_request_id(self) -> None:
        html = server_data_script({"user": {"name": "Jane"}}, "abc")
        assert _server_data(html) == {"user": {"name": "Jane"}, "requestId": "abc"}

    def test_non_mapping_goes_under_data(self) -> None:
        assert _server_data(server_data_script([1, 2], "abc")) == {"data": [1, 2], "requestId": "abc"}

    def test_none_is_empty(self) -> None:
        assert _server_data(server_data_script(None, "abc")) == {"requestId": "abc"}


class TestInjectPage:
    def test_import_map_first_in_head(self) -> None:
        html = '<html><head><script type="module" src="/app.js"></script></head><body></body></html>'
        result = inject_page(html, IMPORT_MAP, {}, "r1")
        assert result.startswith('<html><head><script type="importmap">')
        assert result.index("importmap") < result.index('src="/app.js"')

    def test_server_data_before_body_close(self) -> None:
        html = "<html><head></head><body><main></main></body></html>"
        result = inject_page(html, IMPORT_MAP, {"n": 1}, "r1")
        assert result.endswith("</script></body></html>")
        assert _server_data(result) == {"n": 1, "requestId": "r1"}

    def test_import_map_content(self) -> None:
        result = inject_page("<head></head>", IMPORT_MAP, {}, "r1")
        match = re.search(r'<script type="importmap">(.*?)</script>', result)
        assert match is not None
        assert json.loads(match.group(1)) == {"imports": {"react": "https://esm.sh/react@18.2.0"}}

    def test_head_synthesized_after_html(self) -> None:
        result = inject_page('<html lang="en"><body></body></html>', IMPORT_MAP, {}, "r1")
        assert result.startswith('<html lang="en"><head><script type="importmap">')

    def test_fragment_without_anchors(self) -> None:
        result = inject_page("<div>hi</div>", IMPORT_MAP, {}, "r1")
        assert result.startswith('<script type="importmap">')
        assert "<div>hi</div>" in result
        assert result.endswith("</script>")

    def test_case_insensitive_anchors(self) -> None:
        result = inject_page("<HTML><HEAD></HEAD><BODY></BODY></HTML>", IMPORT_MAP, {}, "r1")
        assert result.startswith('<HTML><HEAD><script type="importmap">')
        assert result.endswith("</script></BODY></HTML>")
