"""Handler time limits.

``timeout(seconds)`` wraps a handler so it runs under
``asyncio.wait_for``. When the limit passes first, the request is
answered with 408 ``{"error": "Request timeout"}`` unless the handler
already wrote something.

Async handlers are cancelled at the limit. Sync handlers run in a worker
thread; Python cannot stop a thread, so the thread is left to finish on
its own. The context is sealed at the limit, so its later status and
body writes are ignored.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from smallapi._internal.types import Handler
    from smallapi.context import Context

logger = logging.getLogger("smallapi.server")


def timeout(seconds: float) -> Callable[[Handler], Handler]:
    """Decorator bounding a handler's run time.

    Usage::

        @app.get("/report")
        @timeout(2.0)
        async def report(ctx: Context):
            ...
    """
    if seconds <= 0:
        msg = "timeout() needs a positive number of seconds."
        raise ValueError(msg)

    def decorator(handler: Handler) -> Handler:
        is_async = inspect.iscoroutinefunction(handler)

        @functools.wraps(handler)
        async def bounded(ctx: Context) -> Any:
            if is_async:
                work = handler(ctx)
            else:
                work = asyncio.to_thread(handler, ctx)
            try:
                return await asyncio.wait_for(work, seconds)
            except TimeoutError:
                logger.warning(
                    "Handler %s exceeded %.3gs on %s %s",
                    getattr(handler, "__qualname__", handler),
                    seconds,
                    ctx.method,
                    ctx.path,
                )
                ctx.seal(408, {"error": "Request timeout"})
                return None

        return bounded

    return decorator
