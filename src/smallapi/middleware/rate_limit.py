"""Fixed-window rate limiting per client.

Counters live in ``shards`` independent partitions, each behind its own
lock, so clients hashing to different shards never contend.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from smallapi.context import Context


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """Allow ``requests`` per ``window_seconds`` per client.

    The client key is the first hop of ``key_header`` when that header is
    set, else ``Context.ip``.
    """

    requests: int = 60
    window_seconds: float = 60.0
    shards: int = 16
    key_header: str | None = None


@dataclass(slots=True)
class _Window:
    count: int
    reset_at: float


class _Shard:
    __slots__ = ("lock", "windows")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.windows: dict[str, _Window] = {}


class RateLimitMiddleware:
    """Answer 429 once a client exceeds its window.

    Allowed requests get ``X-RateLimit-Limit``, ``X-RateLimit-Remaining``
    and ``X-RateLimit-Reset`` (unix seconds). Rejected requests also get
    ``Retry-After`` and are not counted.

    Usage::

        app.use(RateLimitMiddleware(RateLimitConfig(requests=100)))
    """

    __slots__ = ("_clock", "_config", "_shards")

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or RateLimitConfig()
        if self._config.requests < 1 or self._config.shards < 1:
            msg = "RateLimitConfig.requests and shards must be at least 1."
            raise ValueError(msg)
        self._clock = clock
        self._shards = tuple(_Shard() for _ in range(self._config.shards))

    def _client_key(self, ctx: Context) -> str:
        header_name = self._config.key_header
        if header_name:
            raw = ctx.header(header_name)
            first = raw.split(",")[0].strip()
            if first:
                return first
        return ctx.ip or "unknown"

    def _shard_for(self, key: str) -> _Shard:
        return self._shards[hash(key) % len(self._shards)]

    def hit(self, key: str) -> tuple[bool, int, float]:
        """Count one request for *key*.

        Returns ``(allowed, remaining, reset_at)``.
        """
        cfg = self._config
        now = self._clock()
        shard = self._shard_for(key)
        with shard.lock:
            for stale in [k for k, w in shard.windows.items() if now >= w.reset_at]:
                del shard.windows[stale]
            window = shard.windows.get(key)
            if window is None:
                window = _Window(count=0, reset_at=now + cfg.window_seconds)
                shard.windows[key] = window
            if window.count >= cfg.requests:
                return False, 0, window.reset_at
            window.count += 1
            return True, cfg.requests - window.count, window.reset_at

    def __call__(self, ctx: Context) -> bool:
        allowed, remaining, reset_at = self.hit(self._client_key(ctx))
        ctx.set_header("X-RateLimit-Limit", str(self._config.requests))
        ctx.set_header("X-RateLimit-Remaining", str(remaining))
        ctx.set_header("X-RateLimit-Reset", str(int(reset_at)))
        if allowed:
            return True
        retry_after = max(1, math.ceil(reset_at - self._clock()))
        ctx.set_header("Retry-After", str(retry_after))
        ctx.status(429).json({"error": "Rate limit exceeded"})
        return False


def rate_limit(requests_per_minute: int) -> RateLimitMiddleware:
    return RateLimitMiddleware(RateLimitConfig(requests=requests_per_minute))
