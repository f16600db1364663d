"""Tests for smallapi.sessions — token resolution, signing, and expiry."""

import asyncio
import contextlib

from smallapi import App, AppConfig, SessionConfig
from smallapi.http.cookies import SetCookie
from smallapi.sessions import Session, SessionStore
from smallapi.testing import TestClient


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSession:
    def test_bag_operations(self) -> None:
        session = Session("abc", 0.0)
        session.set("user", "ada")
        session.set("visits", 2)
        assert session.get("user") == "ada"
        assert session.has("visits")
        assert sorted(session.keys()) == ["user", "visits"]
        session.delete("user")
        assert session.get("user") is None
        session.clear()
        assert session.keys() == []

    def test_typed_getters(self) -> None:
        session = Session("abc", 0.0)
        session.set("n", 5)
        session.set("s", "x")
        assert session.get_int("n") == 5
        assert session.get_int("s") == 0
        assert session.get_str("s") == "x"
        assert session.get_str("n") == ""


class TestSessionStore:
    def test_new_session_sets_cookie(self) -> None:
        store = SessionStore()
        issued: list[SetCookie] = []
        session = store.get_or_create({}, issued.append)

        assert len(issued) == 1
        assert issued[0].name == "session_id"
        assert issued[0].value == session.id
        assert issued[0].httponly
        assert issued[0].max_age == 86400
        assert len(store) == 1

    def test_known_cookie_reuses_bag(self) -> None:
        store = SessionStore()
        issued: list[SetCookie] = []
        first = store.get_or_create({}, issued.append)
        first.set("k", "v")

        second = store.get_or_create({"session_id": first.id}, issued.append)
        assert second is first
        assert len(issued) == 1

    def test_unknown_token_gets_empty_bag(self) -> None:
        store = SessionStore()
        issued: list[SetCookie] = []
        session = store.get_or_create({"session_id": "stale-token"}, issued.append)
        assert session.id == "stale-token"
        assert session.keys() == []
        assert issued == []

    def test_tokens_are_unique(self) -> None:
        store = SessionStore()
        ids = {store.get_or_create({}, lambda c: None).id for _ in range(50)}
        assert len(ids) == 50

    def test_custom_cookie_name(self) -> None:
        store = SessionStore(SessionConfig(cookie_name="sid", secure=True))
        issued: list[SetCookie] = []
        store.get_or_create({}, issued.append)
        assert issued[0].name == "sid"
        assert issued[0].secure


class TestSignedCookies:
    def test_cookie_value_is_signed(self) -> None:
        store = SessionStore(secret_key="s3cr3t")
        issued: list[SetCookie] = []
        session = store.get_or_create({}, issued.append)
        assert issued[0].value != session.id
        assert issued[0].value.startswith(session.id + ".")

        again = store.get_or_create({"session_id": issued[0].value}, issued.append)
        assert again is session
        assert len(issued) == 1

    def test_tampered_cookie_replaced(self) -> None:
        store = SessionStore(secret_key="s3cr3t")
        issued: list[SetCookie] = []
        victim = store.get_or_create({}, issued.append)

        forged = store.get_or_create({"session_id": victim.id}, issued.append)
        assert forged is not victim
        assert len(issued) == 2

    def test_other_key_rejected(self) -> None:
        signed_elsewhere = SessionStore(secret_key="a")
        issued: list[SetCookie] = []
        signed_elsewhere.get_or_create({}, issued.append)

        store = SessionStore(secret_key="b")
        store.get_or_create({"session_id": issued[0].value}, issued.append)
        assert len(issued) == 2


class TestExpiry:
    def test_sweep_drops_idle(self) -> None:
        clock = FakeClock()
        store = SessionStore(SessionConfig(max_age=60), clock=clock)
        old = store.get_or_create({}, lambda c: None)

        clock.now += 30
        fresh = store.get_or_create({}, lambda c: None)

        clock.now += 45
        assert store.sweep() == 1
        assert store.get(old.id) is None
        assert store.get(fresh.id) is fresh

    def test_touch_keeps_alive(self) -> None:
        clock = FakeClock()
        store = SessionStore(SessionConfig(max_age=60), clock=clock)
        session = store.get_or_create({}, lambda c: None)

        clock.now += 50
        store.get_or_create({"session_id": session.id}, lambda c: None)
        clock.now += 50
        assert store.sweep() == 0

    async def test_sweeper_task(self) -> None:
        clock = FakeClock()
        store = SessionStore(SessionConfig(max_age=1, sweep_interval=0.01), clock=clock)
        store.get_or_create({}, lambda c: None)
        clock.now += 5

        task = asyncio.create_task(store.run_sweeper())
        for _ in range(100):
            if len(store) == 0:
                break
            await asyncio.sleep(0.01)
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

        assert len(store) == 0

    def test_delete(self) -> None:
        store = SessionStore()
        session = store.get_or_create({}, lambda c: None)
        store.delete(session.id)
        assert store.get(session.id) is None


class TestSessionsThroughApp:
    async def test_values_persist_across_requests(self) -> None:
        app = App(AppConfig(secret_key="s3cr3t"))

        @app.get("/visit")
        def visit(ctx) -> None:
            count = ctx.session.get_int("visits") + 1
            ctx.session.set("visits", count)
            ctx.json({"visits": count})

        async with TestClient(app) as client:
            first = await client.get("/visit")
            second = await client.get("/visit")

        assert first.json == {"visits": 1}
        assert second.json == {"visits": 2}
        assert len(first.cookies) == 1
        assert second.cookies == ()

    async def test_separate_clients_separate_sessions(self) -> None:
        app = App()
        app.get("/", lambda ctx: ctx.text(ctx.session.id))

        async with TestClient(app) as a:
            first = (await a.get("/")).text
        async with TestClient(app) as b:
            second = (await b.get("/")).text

        assert first != second
