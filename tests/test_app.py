"""Tests for smallapi.app — registration, groups, freezing, and ASGI lifespan."""

from typing import Any

import pytest

from smallapi import App, AppConfig
from smallapi.testing import TestClient


class TestRegistration:
    def test_verb_decorators(self) -> None:
        app = App()

        @app.get("/a")
        def a(ctx) -> None: ...

        @app.post("/a")
        def b(ctx) -> None: ...

        @app.put("/a")
        def c(ctx) -> None: ...

        @app.delete("/a")
        def d(ctx) -> None: ...

        @app.patch("/a")
        def e(ctx) -> None: ...

        @app.options("/a")
        def f(ctx) -> None: ...

        methods = [route.method for route in app.routes.routes]
        assert methods == ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]

    def test_direct_call_returns_handler(self) -> None:
        app = App()

        def index(ctx) -> None: ...

        assert app.get("/", index) is index
        assert app.routes.routes[0].handler is index

    def test_route_multiple_methods(self) -> None:
        app = App()

        @app.route("/items", methods=["get", "POST"])
        def items(ctx) -> None: ...

        assert [r.method for r in app.routes.routes] == ["GET", "POST"]

    def test_route_defaults_to_get(self) -> None:
        app = App()

        @app.route("/", name="home")
        def home(ctx) -> None: ...

        route = app.routes.routes[0]
        assert route.method == "GET"
        assert route.name == "home"

    def test_register_after_freeze_raises(self) -> None:
        app = App()
        app._ensure_frozen()
        with pytest.raises(RuntimeError, match="after it has started"):
            app.get("/", lambda ctx: None)

    def test_use_after_freeze_raises(self) -> None:
        app = App()
        _ = app.routes
        with pytest.raises(RuntimeError):
            app.use(lambda ctx: True)


class TestGroups:
    def test_prefix_joined(self) -> None:
        app = App()
        api = app.group("/api/v1")
        api.get("/users", lambda ctx: None)
        api.get("", lambda ctx: None)
        assert [r.path for r in app.routes.routes] == ["/api/v1/users", "/api/v1"]

    def test_nested_group(self) -> None:
        app = App()
        admin = app.group("/api").group("admin")
        admin.post("/stats/", lambda ctx: None)
        assert app.routes.routes[0].path == "/api/admin/stats"

    def test_empty_prefix(self) -> None:
        app = App()
        app.group("/").get("/", lambda ctx: None)
        assert app.routes.routes[0].path == "/"

    async def test_group_middleware_is_global(self) -> None:
        app = App()
        seen: list[str] = []

        def mark(ctx) -> bool:
            seen.append(ctx.path)
            return True

        app.group("/api").use(mark)
        app.get("/outside", lambda ctx: ctx.text("ok"))

        async with TestClient(app) as client:
            response = await client.get("/outside")

        assert response.status == 200
        assert seen == ["/outside"]


class TestServing:
    async def test_hello(self) -> None:
        app = App()

        @app.get("/")
        def index(ctx) -> None:
            ctx.text("Hello, World!")

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.status == 200
        assert response.text == "Hello, World!"
        assert response.content_type == "text/plain; charset=utf-8"

    async def test_async_handler(self) -> None:
        app = App()

        @app.get("/users/:id")
        async def show(ctx) -> None:
            ctx.json({"id": ctx.param_int("id")})

        async with TestClient(app) as client:
            response = await client.get("/users/7")

        assert response.json == {"id": 7}

    async def test_session_cookie_issued(self) -> None:
        app = App()
        app.get("/", lambda ctx: ctx.text(ctx.session.id))

        async with TestClient(app) as client:
            response = await client.get("/")

        cookie = response.cookies[0]
        assert cookie.name == "session_id"
        assert cookie.value == response.text


class TestLifespan:
    async def test_hooks_run(self) -> None:
        app = App()
        calls: list[str] = []

        @app.on_startup
        async def boot() -> None:
            calls.append("startup")

        @app.on_shutdown
        def stop() -> None:
            calls.append("shutdown")

        async with TestClient(app):
            assert calls == ["startup"]

        assert calls == ["startup", "shutdown"]

    async def test_asgi_lifespan_protocol(self) -> None:
        app = App()
        calls: list[str] = []
        app.on_startup(lambda: calls.append("up"))

        incoming = iter(
            [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        )
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return next(incoming)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)

        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]
        assert calls == ["up"]

    async def test_startup_failure_reported(self) -> None:
        app = App()

        @app.on_startup
        def boom() -> None:
            raise ValueError("no database")

        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return {"type": "lifespan.startup"}

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)

        assert sent == [{"type": "lifespan.startup.failed", "message": "no database"}]


class TestRun:
    def test_builtin_server_selected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        created: list[tuple[Any, ...]] = []

        class FakeServer:
            def __init__(self, app, host, port, **kwargs) -> None:
                created.append((app, host, port, kwargs))

            def run(self) -> None:
                created.append(("ran",))

        monkeypatch.setattr("smallapi.server.raw.Server", FakeServer)
        app = App(AppConfig(server="builtin", port=9999, shutdown_timeout=3.0))
        app.run()

        assert created[0][1:3] == ("127.0.0.1", 9999)
        assert created[0][3]["shutdown_timeout"] == 3.0
        assert created[1] == ("ran",)

    def test_pounce_selected_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[tuple[Any, ...]] = []

        def fake_run_pounce(app, host, port, *, reload=False, app_path=None) -> None:
            calls.append((host, port, reload))

        monkeypatch.setattr("smallapi.server.dev.run_pounce", fake_run_pounce)
        App(AppConfig(debug=True)).run(port=4000)

        assert calls == [("127.0.0.1", 4000, True)]
