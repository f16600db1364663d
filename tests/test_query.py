"""Tests for smallapi.http.query — immutable query parameters."""

import pytest

from smallapi.http.query import QueryParams


class TestQueryParams:
    def test_first_value(self) -> None:
        params = QueryParams(b"tag=a&tag=b&page=2")
        assert params["tag"] == "a"
        assert params.get_list("tag") == ["a", "b"]

    def test_percent_decoding(self) -> None:
        assert QueryParams(b"q=hello%20world&name=caf%C3%A9")["name"] == "café"
        assert QueryParams(b"q=hello+world")["q"] == "hello world"

    def test_blank_values_kept(self) -> None:
        params = QueryParams(b"flag=&x=1")
        assert "flag" in params
        assert params.get("flag") == ""
        assert params.get_list("flag") == [""]

    def test_missing(self) -> None:
        params = QueryParams()
        assert params.get("x", "d") == "d"
        assert params.get_list("x") == []
        assert len(params) == 0
        with pytest.raises(KeyError):
            params["x"]

    def test_raw(self) -> None:
        assert QueryParams(b"a=1").raw == b"a=1"

    @pytest.mark.parametrize(
        ("query", "expected"),
        [(b"n=42", 42), (b"n=-3", -3), (b"n=abc", 7), (b"", 7)],
    )
    def test_get_int(self, query: bytes, expected: int) -> None:
        assert QueryParams(query).get_int("n", 7) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("true", True), ("1", True), ("YES", True), ("on", True), ("false", False), ("0", False)],
    )
    def test_get_bool(self, value: str, expected: bool) -> None:
        assert QueryParams(f"b={value}".encode()).get_bool("b") is expected

    def test_get_bool_default(self) -> None:
        assert QueryParams().get_bool("b", False) is False
