"""Tests for roost.server.negotiation — API return values to Responses."""

import json

import pytest

from roost.http.response import Response
from roost.server.negotiation import negotiate


class TestNegotiate:
    def test_response_passthrough(self) -> None:
        response = Response("x", status=201)
        assert negotiate(response) is response

    def test_none_is_no_content(self) -> None:
        assert negotiate(None).status == 204

    def test_str_is_html(self) -> None:
        response = negotiate("hello")
        assert response.text == "hello"
        assert response.content_type.startswith("text/html")

    def test_bytes_is_octet_stream(self) -> None:
        assert negotiate(b"\x00").content_type == "application/octet-stream"

    def test_dict_is_json(self) -> None:
        response = negotiate({"status": "ok"})
        assert response.content_type == "application/json"
        assert json.loads(response.text) == {"status": "ok"}

    def test_list_is_json(self) -> None:
        assert json.loads(negotiate([1, 2]).text) == [1, 2]

    def test_tuple_with_status(self) -> None:
        response = negotiate(({"id": 1}, 201))
        assert response.status == 201
        assert response.content_type == "application/json"

    def test_tuple_with_status_and_headers(self) -> None:
        response = negotiate(("created", 201, {"Location": "/items/1"}))
        assert response.status == 201
        assert response.header("location") == "/items/1"

    def test_unsupported_type(self) -> None:
        with pytest.raises(TypeError, match="Cannot convert"):
            negotiate(object())
