"""Raw ASGI type aliases and the connection-takeover extension.

Only the request pipeline, the test client, and the builtin server touch
these directly. Users interact with ``Request`` and ``Context``.
"""

import asyncio
from collections.abc import Awaitable, Callable, Coroutine, MutableMapping
from typing import Any, Protocol, TypeAlias

Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]

# Scope extension key under which the builtin server offers connection takeover
TAKEOVER_EXTENSION = "smallapi.takeover"


class Takeover(Protocol):
    """Hands the raw socket of an HTTP request to the application.

    After ``take()`` the server writes nothing more for this request and
    leaves the socket open until the task passed to ``spawn()`` finishes.
    """

    def take(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]: ...

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]: ...


def get_takeover(scope: Scope) -> Takeover | None:
    """The takeover extension offered in *scope*, if any."""
    extensions = scope.get("extensions") or {}
    return extensions.get(TAKEOVER_EXTENSION)
