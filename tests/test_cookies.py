"""Tests for smallapi.http.cookies — parsing and Set-Cookie serialization."""

import pytest

from smallapi.http.cookies import SetCookie, parse_cookies, parse_set_cookie


class TestParseCookies:
    def test_single(self) -> None:
        assert parse_cookies("session=abc123") == {"session": "abc123"}

    def test_multiple(self) -> None:
        assert parse_cookies("a=1; b=2; c=3") == {"a": "1", "b": "2", "c": "3"}

    @pytest.mark.parametrize("header", ["", ";", "novalue"])
    def test_empty_or_malformed(self, header: str) -> None:
        assert parse_cookies(header) == {}

    def test_first_occurrence_wins(self) -> None:
        assert parse_cookies("a=1; a=2") == {"a": "1"}

    def test_value_with_equals(self) -> None:
        assert parse_cookies("token=abc=def") == {"token": "abc=def"}


class TestSetCookie:
    def test_defaults(self) -> None:
        assert SetCookie("sid", "x").to_header_value() == "sid=x; Path=/; HttpOnly; SameSite=Lax"

    def test_all_attributes(self) -> None:
        cookie = SetCookie(
            "sid",
            "x",
            max_age=3600,
            domain="example.com",
            secure=True,
            samesite="strict",
        )
        assert cookie.to_header_value() == (
            "sid=x; Max-Age=3600; Path=/; Domain=example.com; Secure; HttpOnly; SameSite=Strict"
        )

    def test_deletion(self) -> None:
        value = SetCookie("sid", "", max_age=0).to_header_value()
        assert value.startswith("sid=; Max-Age=0")

    def test_minimal(self) -> None:
        cookie = SetCookie("a", "b", path="", httponly=False, samesite="")
        assert cookie.to_header_value() == "a=b"


class TestParseSetCookie:
    def test_round_trip_attributes(self) -> None:
        cookie = parse_set_cookie("sid=x; Max-Age=60; Path=/app; Secure; HttpOnly; SameSite=None")
        assert cookie == SetCookie(
            "sid", "x", max_age=60, path="/app", secure=True, httponly=True, samesite="none"
        )

    def test_bad_max_age_ignored(self) -> None:
        assert parse_set_cookie("a=b; Max-Age=soon").max_age is None

    def test_unknown_attribute_ignored(self) -> None:
        cookie = parse_set_cookie("a=b; Priority=High")
        assert (cookie.name, cookie.value) == ("a", "b")
