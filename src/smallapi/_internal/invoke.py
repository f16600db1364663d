"""Invoke helpers: call sync or async callables uniformly.

Handlers and middleware can be ``def`` or ``async def``. Any code that
calls a user-provided callable must handle both cases. This module keeps
the sync/async check in exactly one place.

Usage::

    from smallapi._internal.invoke import invoke

    result = await invoke(handler, ctx)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
