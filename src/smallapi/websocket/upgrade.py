"""``Context.upgrade``: switch a request over to a WebSocket.

Three situations:

- The builtin server offers the ``smallapi.takeover`` scope extension.
  The headers are validated, the raw ``101`` head is written straight to
  the socket, and the handler runs on its own task over a
  ``StreamTransport``. The request path returns at once.
- The ASGI server owns the socket (``websocket`` scope). The connection
  is accepted through ASGI and the handler runs over an ``ASGITransport``.
- Neither: the request is answered with 500
  ``{"error": "WebSocket upgrade not supported"}``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from smallapi._internal.asgi import get_takeover
from smallapi.config import AppConfig
from smallapi.errors import ConnectionClosed
from smallapi.websocket.connection import WebSocket
from smallapi.websocket.frames import CloseCode
from smallapi.websocket.handshake import (
    build_handshake_response,
    compute_accept_key,
    validate_upgrade,
)
from smallapi.websocket.transports import ASGITransport, StreamTransport

if TYPE_CHECKING:
    from smallapi._internal.types import WebSocketHandler
    from smallapi.context import Context

logger = logging.getLogger("smallapi.websocket")


async def serve(ws: WebSocket, handler: WebSocketHandler) -> None:
    """Run *handler* on a started connection and close it afterwards."""
    ws.start()
    try:
        await handler(ws)
    except ConnectionClosed:
        logger.debug("WebSocket %s closed by peer", ws.path)
    except Exception:
        logger.exception("Unhandled error in WebSocket handler for %s", ws.path)
        await ws.close(CloseCode.INTERNAL_ERROR)
    finally:
        await ws.close()


async def upgrade(ctx: Context, handler: WebSocketHandler) -> None:
    scope, receive, send = ctx.asgi
    config = ctx.config or AppConfig()

    if scope is not None and scope.get("type") == "websocket":
        assert receive is not None and send is not None
        message = await receive()
        if message["type"] != "websocket.connect":
            raise ConnectionClosed(CloseCode.ABNORMAL, "client left before accept")
        await send({"type": "websocket.accept", "headers": _cookie_headers(ctx)})
        ctx.hijacked = True
        ws = WebSocket(
            ASGITransport(receive, send),
            queue_size=config.websocket_queue_size,
            path=ctx.path,
            remote=ctx.request.client,
        )
        await serve(ws, handler)
        return

    key = validate_upgrade(ctx.request.headers)
    takeover = get_takeover(scope) if scope is not None else None
    if takeover is None:
        ctx.status(500).json({"error": "WebSocket upgrade not supported"})
        return

    reader, writer = takeover.take()
    ctx.hijacked = True
    cookies = [("Set-Cookie", cookie.to_header_value()) for cookie in ctx.pending_cookies]
    writer.write(build_handshake_response(compute_accept_key(key), cookies))
    await writer.drain()
    ws = WebSocket(
        StreamTransport(reader, writer, max_size=config.websocket_max_message_size),
        queue_size=config.websocket_queue_size,
        path=ctx.path,
        remote=ctx.request.client,
    )
    takeover.spawn(serve(ws, handler))


def _cookie_headers(ctx: Context) -> list[tuple[bytes, bytes]]:
    """Queued cookies (a new session id, say) as ``websocket.accept`` headers."""
    return [(b"set-cookie", cookie.to_header_value().encode("latin-1")) for cookie in ctx.pending_cookies]
