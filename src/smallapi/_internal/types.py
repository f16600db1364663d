"""Shared type aliases used across smallapi modules."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from smallapi.context import Context
    from smallapi.websocket.connection import WebSocket

# Route handler: receives the request context, writes the response into it
Handler: TypeAlias = Callable[["Context"], Any]

# Middleware: returns True to continue, False to stop (sync or async)
MiddlewareFunc: TypeAlias = Callable[["Context"], "bool | Awaitable[bool]"]

# WebSocket handler: owns the upgraded connection until it returns
WebSocketHandler: TypeAlias = Callable[["WebSocket"], Awaitable[None]]
