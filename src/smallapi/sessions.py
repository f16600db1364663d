"""Server-side session store.

Each browser gets an opaque random token in a cookie. The token keys a
lock-guarded bag of values held in process memory. Bags outlive
requests and are swept after ``SessionConfig.max_age`` seconds without
a request touching them.

When the app has a ``secret_key``, the cookie carries the token signed
with ``itsdangerous`` so a forged or altered cookie is treated as
absent.
"""

import asyncio
import logging
import secrets
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

from itsdangerous import BadSignature, Signer

from smallapi.config import SessionConfig
from smallapi.http.cookies import SetCookie

logger = logging.getLogger("smallapi.sessions")

_TOKEN_BYTES = 32


class Session:
    """A lock-guarded bag of values for one browser.

    Shared across concurrent requests carrying the same cookie, so every
    operation takes the bag's lock.
    """

    __slots__ = ("_data", "_lock", "id", "touched_at")

    def __init__(self, session_id: str, now: float) -> None:
        self.id = session_id
        self.touched_at = now
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def get_str(self, key: str) -> str:
        """Value as a string, or ``""`` when missing or not a string."""
        value = self.get(key)
        return value if isinstance(value, str) else ""

    def get_int(self, key: str) -> int:
        """Value as an int, or ``0`` when missing or not an int."""
        value = self.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            return 0
        return value

    def touch(self, now: float) -> None:
        with self._lock:
            self.touched_at = now

    def __repr__(self) -> str:
        return f"Session(id={self.id[:8]}..., keys={self.keys()!r})"


class SessionStore:
    """In-memory token -> Session map.

    Usage::

        store = SessionStore(SessionConfig(), secret_key="s3cr3t")
        session = store.get_or_create(request.cookies, ctx.set_cookie)
    """

    __slots__ = ("_clock", "_config", "_lock", "_sessions", "_signer")

    def __init__(
        self,
        config: SessionConfig | None = None,
        *,
        secret_key: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or SessionConfig()
        self._signer = Signer(secret_key, salt="smallapi.session") if secret_key else None
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    @property
    def config(self) -> SessionConfig:
        return self._config

    # -- Cookie value encoding --

    def _encode(self, session_id: str) -> str:
        if self._signer is None:
            return session_id
        return self._signer.sign(session_id).decode("ascii")

    def _decode(self, cookie_value: str) -> str | None:
        if self._signer is None:
            return cookie_value
        try:
            return self._signer.unsign(cookie_value).decode("ascii")
        except BadSignature:
            logger.debug("Rejected session cookie with a bad signature")
            return None

    # -- Resolution --

    def get_or_create(
        self,
        cookies: Mapping[str, str],
        set_cookie: Callable[[SetCookie], None],
    ) -> Session:
        """Resolve the session for a request.

        A missing, empty, or badly signed cookie gets a fresh token and a
        ``Set-Cookie`` through *set_cookie*. A valid token the store does
        not know (swept, or issued before a restart) gets an empty bag
        under the same token.
        """
        now = self._clock()
        raw = cookies.get(self._config.cookie_name, "")
        session_id = self._decode(raw) if raw else None

        if not session_id:
            session_id = secrets.token_urlsafe(_TOKEN_BYTES)
            cfg = self._config
            set_cookie(
                SetCookie(
                    name=cfg.cookie_name,
                    value=self._encode(session_id),
                    max_age=cfg.max_age,
                    path=cfg.path,
                    secure=cfg.secure,
                    httponly=cfg.httponly,
                    samesite=cfg.samesite,
                )
            )

        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = Session(session_id, now)
                self._sessions[session_id] = session
        session.touch(now)
        return session

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # -- Expiry --

    def sweep(self) -> int:
        """Drop bags idle longer than ``max_age``. Returns how many were dropped."""
        cutoff = self._clock() - self._config.max_age
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.touched_at < cutoff]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.debug("Swept %d idle session(s)", len(expired))
        return len(expired)

    async def run_sweeper(self) -> None:
        """Sweep every ``sweep_interval`` seconds until cancelled."""
        interval = self._config.sweep_interval
        while True:
            await asyncio.sleep(interval)
            self.sweep()
