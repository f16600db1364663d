"""Middleware protocol.

A middleware is any callable matching::

    def my_mw(ctx: Context) -> bool: ...
    async def my_mw(ctx: Context) -> bool: ...

Middleware runs in registration order before the handler. Returning
``True`` continues the chain; returning ``False`` stops it, and the
middleware is expected to have written the response already (nothing is
written on its behalf). Work that must happen after the handler is
registered with ``ctx.on_finish()``.

No base class required. The framework checks the shape, not the lineage.
"""

from __future__ import annotations

from collections.abc import Awaitable, Sequence
from typing import TYPE_CHECKING, Protocol

from smallapi._internal.invoke import invoke

if TYPE_CHECKING:
    from smallapi.context import Context


class Middleware(Protocol):
    """Protocol for smallapi middleware.

    Accepts both functions and callable objects::

        # Function middleware
        def api_key(ctx: Context) -> bool:
            if ctx.header("X-API-Key") != "secret":
                ctx.status(401).json({"error": "Unauthorized"})
                return False
            return True

        # Class middleware
        class Counter:
            def __init__(self) -> None:
                self.hits = 0

            def __call__(self, ctx: Context) -> bool:
                self.hits += 1
                return True
    """

    def __call__(self, ctx: Context) -> bool | Awaitable[bool]: ...


async def run_chain(middleware: Sequence[Middleware], ctx: Context) -> bool:
    """Run *middleware* in order. ``False`` as soon as one stops the chain."""
    for mw in middleware:
        if not await invoke(mw, ctx):
            return False
    return True
