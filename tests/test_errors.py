"""Tests for roost.errors and roost.server.errors."""

import logging

import pytest

from roost.errors import HTTPError, MeasureError, NotFound, RoostError
from roost.http.headers import Headers
from roost.http.query import QueryParams
from roost.http.request import Request
from roost.server.errors import error_response, render_debug_body


async def _receive() -> dict:
    return {"type": "http.request", "body": b"", "more_body": False}


def _request(path: str = "/boom") -> Request:
    return Request(
        method="GET",
        path=path,
        headers=Headers(),
        query=QueryParams(),
        _receive=_receive,
    )


def _chain(root: BaseException, *actions: str) -> MeasureError:
    """Wrap *root* the way nested spans do, innermost action last."""
    exc: BaseException = root
    for action in reversed(actions):
        exc = MeasureError(action, exc)
    assert isinstance(exc, MeasureError)
    return exc


class TestHierarchy:
    def test_all_errors_share_a_base(self) -> None:
        assert issubclass(MeasureError, RoostError)
        assert issubclass(NotFound, HTTPError)

    def test_http_error_str(self) -> None:
        assert str(HTTPError(status=418, detail="teapot")) == "418: teapot"
        assert str(HTTPError(status=500)) == "500"

    def test_not_found_default_detail(self) -> None:
        err = NotFound()
        assert err.status == 404
        assert err.detail == "Route Not Found"


class TestMeasureError:
    def test_message_and_attributes(self) -> None:
        original = ValueError("bad")
        err = MeasureError("Rebuild index", original)
        assert str(err) == "Rebuild index failed: bad"
        assert err.original is original
        assert err.root_cause is original
        assert err.actions == ("Rebuild index",)

    def test_nested_chain(self) -> None:
        err = _chain(KeyError("k"), "GET /", "page /", "serverData /")
        assert err.actions == ("GET /", "page /", "serverData /")
        assert isinstance(err.root_cause, KeyError)


class TestErrorResponse:
    def test_http_error_keeps_status(self) -> None:
        err = _chain(NotFound("Page not found: ./x.html"), "GET /x", "page /x")
        response = error_response(err, _request("/x"), request_id="r1", debug=False)
        assert response.status == 404
        assert response.text == "Page not found: ./x.html"
        assert response.content_type.startswith("text/plain")

    def test_http_error_headers(self) -> None:
        err = _chain(HTTPError(status=401, detail="no", headers=(("WWW-Authenticate", "Bearer"),)), "a")
        response = error_response(err, _request(), request_id="r1", debug=False)
        assert response.header("www-authenticate") == "Bearer"

    def test_production_500_hides_details(self, caplog: pytest.LogCaptureFixture) -> None:
        err = _chain(RuntimeError("secret"), "GET /boom", "endpoint /boom")
        with caplog.at_level(logging.ERROR, logger="roost.server"):
            response = error_response(err, _request(), request_id="r1", debug=False)

        assert response.status == 500
        assert response.text == "Internal Server Error"
        assert "secret" not in response.text
        record = next(r for r in caplog.records if r.name == "roost.server")
        assert "[r1] 500 GET /boom" in record.getMessage()
        assert "GET /boom > endpoint /boom" in record.getMessage()
        assert record.exc_info is not None

    def test_debug_500_shows_trail_and_traceback(self) -> None:
        err = _chain(RuntimeError("kaboom <x>"), "GET /boom", "serverData /boom")
        response = error_response(err, _request(), request_id="r1", debug=True)
        assert response.status == 500
        assert response.text.startswith("<pre>")
        assert "GET /boom &gt; serverData /boom" in response.text
        assert "RuntimeError: kaboom &lt;x&gt;" in response.text

    def test_debug_body_for_unmeasured_error(self) -> None:
        body = render_debug_body(ValueError("v"), _request(), "r1")
        assert "(unmeasured)" in body
        assert "[r1]" in body
