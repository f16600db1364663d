"""Tests for smallapi.http.response — immutable chainable Response."""

import pytest

from smallapi.http.cookies import SetCookie
from smallapi.http.response import Response


class TestResponse:
    def test_defaults(self) -> None:
        response = Response()
        assert response.status == 200
        assert response.content_type == "text/plain; charset=utf-8"
        assert response.body_bytes == b""

    def test_chain_returns_new_objects(self) -> None:
        base = Response("hi")
        changed = base.with_status(201).with_header("X-A", "1")
        assert base.status == 200
        assert base.headers == ()
        assert changed.status == 201
        assert changed.headers == (("X-A", "1"),)

    def test_with_headers_appends(self) -> None:
        response = Response().with_header("X-A", "1").with_headers({"X-B": "2", "X-C": "3"})
        assert response.headers == (("X-A", "1"), ("X-B", "2"), ("X-C", "3"))

    def test_with_content_type_and_body(self) -> None:
        response = Response().with_content_type("text/html").with_body(b"<p>")
        assert response.content_type == "text/html"
        assert response.text == "<p>"

    def test_with_cookie(self) -> None:
        cookie = SetCookie("sid", "x")
        assert Response().with_cookie(cookie).cookies == (cookie,)

    def test_body_conversions(self) -> None:
        assert Response("café").body_bytes == "café".encode()
        assert Response("café".encode()).text == "café"

    def test_json(self) -> None:
        assert Response(b'{"ok": true}').json == {"ok": True}

    def test_header_lookup(self) -> None:
        response = Response(content_type="application/json").with_header("X-Request-Id", "abc")
        assert response.header("x-request-id") == "abc"
        assert response.header("Content-Type") == "application/json"
        assert response.header("x-missing") is None

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            Response().status = 500  # type: ignore[misc]
