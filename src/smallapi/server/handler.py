"""ASGI handler: translates ASGI scope/messages to smallapi types.

Runs one request through the pipeline: static mounts, context creation,
session lookup, middleware, route match, handler. Everything after the
static check sits inside the recovery boundary. The context's buffer is
then frozen into a ``Response`` and sent, unless the connection was
taken over by a WebSocket upgrade.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from contextvars import Token
from typing import TYPE_CHECKING

from smallapi._internal.asgi import Receive, Scope, Send
from smallapi._internal.invoke import invoke
from smallapi.config import AppConfig
from smallapi.context import Context, context_var
from smallapi.errors import HTTPError, NotFound, PayloadTooLarge
from smallapi.http.request import Request
from smallapi.middleware.protocol import Middleware, run_chain
from smallapi.middleware.static import StaticFiles
from smallapi.routing.router import RouteTable
from smallapi.server.errors import handle_http_error, handle_internal_error
from smallapi.server.sender import send_response

if TYPE_CHECKING:
    from kida import Environment

    from smallapi.sessions import SessionStore

logger = logging.getLogger("smallapi.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    routes: RouteTable,
    middleware: Sequence[Middleware] = (),
    statics: Sequence[StaticFiles] = (),
    sessions: SessionStore | None = None,
    templates: Environment | None = None,
    config: AppConfig | None = None,
) -> None:
    """Process a single HTTP (or WebSocket) request through the full pipeline."""
    config = config or AppConfig()
    request = Request.from_asgi(scope, receive)
    is_websocket = scope["type"] == "websocket"
    head = request.method == "HEAD"

    if not is_websocket:
        for mount in statics:
            response = mount.try_serve(request)
            if response is not None:
                await send_response(response, send, head=head)
                return

    ctx = Context(
        request,
        templates=templates,
        config=config,
        scope=scope,
        receive=receive,
        send=send,
    )
    token: Token[Context] = context_var.set(ctx)
    try:
        await _dispatch(ctx, routes, middleware, sessions, config)
    except HTTPError as exc:
        handle_http_error(ctx, exc)
    except Exception as exc:
        handle_internal_error(ctx, exc)
    finally:
        context_var.reset(token)

    if ctx.hijacked:
        return

    try:
        response = await ctx.finish()
    except Exception as exc:
        handle_internal_error(ctx, exc)
        response = ctx.to_response()

    if is_websocket:
        # Reached only when no handler upgraded the connection
        await send({"type": "websocket.close", "code": 1008})
        return
    await send_response(response, send, head=head)


async def _dispatch(
    ctx: Context,
    routes: RouteTable,
    middleware: Sequence[Middleware],
    sessions: SessionStore | None,
    config: AppConfig,
) -> None:
    length = ctx.request.content_length
    if config.max_content_length and length is not None and length > config.max_content_length:
        raise PayloadTooLarge()

    await ctx.load_form()
    if sessions is not None:
        ctx.attach_session(sessions)

    if not await run_chain(middleware, ctx):
        return

    match = routes.match(ctx.method, ctx.request.raw_path)
    if match is None:
        raise NotFound()
    ctx.params = dict(match.params)
    await invoke(match.route.handler, ctx)
