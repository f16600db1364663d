"""Tests for smallapi.middleware.static — static file mounts."""

from pathlib import Path

import pytest

from smallapi import App
from smallapi.http.request import Request
from smallapi.middleware.static import StaticFiles
from smallapi.testing import TestClient


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    root = tmp_path / "public"
    (root / "css").mkdir(parents=True)
    (root / "css" / "site.css").write_text("body { color: red; }")
    (root / "robots.txt").write_text("User-agent: *")
    (root / "blob.unknownext").write_bytes(b"\x00\x01")
    (tmp_path / "secret.txt").write_text("top secret")
    return root


def _request(path: str, method: str = "GET") -> Request:
    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request.from_asgi({"type": "http", "method": method, "path": path}, receive)


class TestStaticFiles:
    def test_serves_file(self, static_dir: Path) -> None:
        response = StaticFiles(static_dir, "/static").try_serve(_request("/static/css/site.css"))
        assert response is not None
        assert response.text == "body { color: red; }"
        assert response.content_type == "text/css"
        assert response.header("Cache-Control") == "public, max-age=3600"

    def test_unknown_type_is_octet_stream(self, static_dir: Path) -> None:
        response = StaticFiles(static_dir).try_serve(_request("/static/blob.unknownext"))
        assert response is not None
        assert response.content_type == "application/octet-stream"

    @pytest.mark.parametrize(
        "path",
        [
            "/static/missing.css",
            "/static/css",
            "/static/",
            "/static",
            "/staticfoo/robots.txt",
            "/other/robots.txt",
            "/static/../secret.txt",
        ],
    )
    def test_falls_through(self, static_dir: Path, path: str) -> None:
        assert StaticFiles(static_dir, "/static").try_serve(_request(path)) is None

    def test_only_get_and_head(self, static_dir: Path) -> None:
        mount = StaticFiles(static_dir, "/static")
        assert mount.try_serve(_request("/static/robots.txt", "HEAD")) is not None
        assert mount.try_serve(_request("/static/robots.txt", "POST")) is None

    def test_root_prefix(self, static_dir: Path) -> None:
        mount = StaticFiles(static_dir, "/")
        assert mount.prefix == "/"
        response = mount.try_serve(_request("/robots.txt"))
        assert response is not None
        assert response.text == "User-agent: *"

    def test_prefix_normalized(self, static_dir: Path) -> None:
        assert StaticFiles(static_dir, "assets/").prefix == "/assets"
        assert StaticFiles(static_dir).directory == static_dir.resolve()


class TestStaticThroughApp:
    async def test_mount_served(self, static_dir: Path) -> None:
        app = App()
        app.static("/static", static_dir)

        async with TestClient(app) as client:
            response = await client.get("/static/robots.txt")
        assert response.status == 200
        assert response.text == "User-agent: *"

    async def test_first_mount_wins(self, static_dir: Path, tmp_path: Path) -> None:
        other = tmp_path / "other"
        other.mkdir()
        (other / "robots.txt").write_text("second")
        app = App()
        app.static("/", static_dir)
        app.static("/", other)

        async with TestClient(app) as client:
            response = await client.get("/robots.txt")
        assert response.text == "User-agent: *"

    async def test_miss_reaches_router(self, static_dir: Path) -> None:
        app = App()
        app.static("/static", static_dir)

        @app.get("/static/dynamic")
        def dynamic(ctx) -> None:
            ctx.text("from handler")

        async with TestClient(app) as client:
            assert (await client.get("/static/dynamic")).text == "from handler"
            assert (await client.get("/static/nope.txt")).status == 404

    async def test_ctx_file(self, static_dir: Path) -> None:
        app = App()

        @app.get("/robots")
        def robots(ctx) -> None:
            ctx.file(static_dir / "robots.txt")

        @app.get("/gone")
        def gone(ctx) -> None:
            ctx.file(static_dir / "gone.txt")

        async with TestClient(app) as client:
            ok = await client.get("/robots")
            missing = await client.get("/gone")

        assert ok.status == 200
        assert ok.content_type == "text/plain"
        assert missing.status == 404
        assert missing.text == "404 page not found"
