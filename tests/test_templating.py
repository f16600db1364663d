"""Tests for smallapi.templating and ``Context.render``."""

from pathlib import Path

import pytest

from smallapi import App
from smallapi.errors import ConfigurationError
from smallapi.templating import DEFAULT_FILTERS
from smallapi.testing import TestClient


class TestDefaultFilters:
    def test_arithmetic(self) -> None:
        assert DEFAULT_FILTERS["add"](2, 3) == 5
        assert DEFAULT_FILTERS["sub"](5, 3) == 2
        assert DEFAULT_FILTERS["mul"](4, 3) == 12
        assert DEFAULT_FILTERS["div"](9, 3) == 3

    def test_div_by_zero(self) -> None:
        assert DEFAULT_FILTERS["div"](1, 0) == 0

    def test_strings(self) -> None:
        assert DEFAULT_FILTERS["join"]([1, 2, 3]) == "1, 2, 3"
        assert DEFAULT_FILTERS["join"](["a", "b"], "-") == "a-b"
        assert DEFAULT_FILTERS["split"]("a,b") == ["a", "b"]


class TestFallbackRender:
    async def test_without_template_dir(self) -> None:
        app = App()

        @app.get("/")
        def index(ctx) -> None:
            ctx.render("index.html", title="<Home>", count=3)

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.status == 200
        assert response.content_type.startswith("text/html")
        assert "<h1>&lt;Home&gt;</h1>" in response.text
        assert "&#x27;count&#x27;: 3" in response.text


class TestKidaRender:
    async def test_render_with_filter(self, tmp_path: Path) -> None:
        pytest.importorskip("kida")
        (tmp_path / "hello.html").write_text("Hello {{ name | shout }}!")
        app = App()
        app.templates(tmp_path)

        @app.template_filter()
        def shout(value: str) -> str:
            return value.upper()

        @app.get("/hello/:name")
        def hello(ctx) -> None:
            ctx.render("hello.html", name=ctx.param("name"))

        async with TestClient(app) as client:
            response = await client.get("/hello/ada")

        assert response.text == "Hello ADA!"

    async def test_autoescape(self, tmp_path: Path) -> None:
        pytest.importorskip("kida")
        (tmp_path / "echo.html").write_text("{{ value }}")
        app = App()
        app.templates(tmp_path)

        @app.get("/")
        def echo(ctx) -> None:
            ctx.render("echo.html", {"value": "<b>"})

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.text == "&lt;b&gt;"

    async def test_missing_directory(self, tmp_path: Path) -> None:
        pytest.importorskip("kida")
        app = App()
        app.templates(tmp_path / "nope")
        with pytest.raises(ConfigurationError, match="does not exist"):
            async with TestClient(app):
                pass
