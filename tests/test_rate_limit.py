"""Tests for fixed-window rate limiting."""

import pytest

from smallapi import App
from smallapi.middleware import RateLimitConfig, RateLimitMiddleware, rate_limit
from smallapi.testing import TestClient


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestHit:
    def test_allows_up_to_limit(self) -> None:
        limiter = RateLimitMiddleware(RateLimitConfig(requests=3), clock=FakeClock())
        results = [limiter.hit("a")[:2] for _ in range(4)]
        assert results == [(True, 2), (True, 1), (True, 0), (False, 0)]

    def test_rejections_not_counted(self) -> None:
        clock = FakeClock()
        limiter = RateLimitMiddleware(RateLimitConfig(requests=1, window_seconds=10), clock=clock)
        limiter.hit("a")
        for _ in range(5):
            assert limiter.hit("a")[0] is False
        clock.now += 10
        assert limiter.hit("a")[:2] == (True, 0)

    def test_window_rollover(self) -> None:
        clock = FakeClock()
        limiter = RateLimitMiddleware(RateLimitConfig(requests=2, window_seconds=60), clock=clock)
        _, _, reset_at = limiter.hit("a")
        limiter.hit("a")
        assert reset_at == clock.now + 60

        clock.now += 59
        assert limiter.hit("a")[0] is False
        clock.now += 1
        assert limiter.hit("a")[0] is True

    def test_keys_independent(self) -> None:
        limiter = RateLimitMiddleware(RateLimitConfig(requests=1, shards=1), clock=FakeClock())
        assert limiter.hit("a")[0]
        assert limiter.hit("b")[0]
        assert not limiter.hit("a")[0]

    @pytest.mark.parametrize("config", [RateLimitConfig(requests=0), RateLimitConfig(shards=0)])
    def test_invalid_config(self, config: RateLimitConfig) -> None:
        with pytest.raises(ValueError):
            RateLimitMiddleware(config)


class TestMiddleware:
    async def test_headers_and_429(self) -> None:
        clock = FakeClock()
        app = App()
        app.use(RateLimitMiddleware(RateLimitConfig(requests=2, window_seconds=30), clock=clock))
        app.get("/", lambda ctx: ctx.text("ok"))

        async with TestClient(app) as client:
            first = await client.get("/")
            await client.get("/")
            clock.now += 10
            blocked = await client.get("/")

        assert first.status == 200
        assert first.header("x-ratelimit-limit") == "2"
        assert first.header("x-ratelimit-remaining") == "1"
        assert first.header("x-ratelimit-reset") == str(int(1_700_000_000 + 30))

        assert blocked.status == 429
        assert blocked.json == {"error": "Rate limit exceeded"}
        assert blocked.header("x-ratelimit-remaining") == "0"
        assert blocked.header("retry-after") == "20"

    async def test_clients_keyed_by_ip(self) -> None:
        app = App()
        app.use(RateLimitMiddleware(RateLimitConfig(requests=1), clock=FakeClock()))
        app.get("/", lambda ctx: ctx.text("ok"))

        async with TestClient(app) as client:
            a = await client.get("/", headers={"X-Forwarded-For": "1.1.1.1"})
            b = await client.get("/", headers={"X-Forwarded-For": "2.2.2.2"})
            a_again = await client.get("/", headers={"X-Forwarded-For": "1.1.1.1"})

        assert (a.status, b.status, a_again.status) == (200, 200, 429)

    async def test_key_header(self) -> None:
        app = App()
        config = RateLimitConfig(requests=1, key_header="X-API-Key")
        app.use(RateLimitMiddleware(config, clock=FakeClock()))
        app.get("/", lambda ctx: ctx.text("ok"))

        async with TestClient(app) as client:
            one = await client.get("/", headers={"X-API-Key": "k1"})
            two = await client.get("/", headers={"X-API-Key": "k2"})
            again = await client.get("/", headers={"X-API-Key": "k1"})

        assert (one.status, two.status, again.status) == (200, 200, 429)

    def test_rate_limit_factory(self) -> None:
        limiter = rate_limit(100)
        assert limiter.hit("x")[:2] == (True, 99)
