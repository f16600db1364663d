"""smallapi application class.

Mutable during setup (route registration, middleware, static mounts,
template filters). Frozen at runtime when ``app.run()`` or
``__call__()`` is first invoked.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from smallapi._internal.asgi import Receive, Scope, Send
from smallapi._internal.invoke import invoke
from smallapi._internal.types import Handler
from smallapi.config import AppConfig, SessionConfig
from smallapi.middleware.protocol import Middleware
from smallapi.middleware.static import StaticFiles
from smallapi.routing.router import Router, RouteTable
from smallapi.server.handler import handle_request
from smallapi.sessions import SessionStore

if TYPE_CHECKING:
    from kida import Environment

    from smallapi.docs import DocsConfig

logger = logging.getLogger("smallapi.server")


class _Registrar:
    """Verb decorators shared by ``App`` and ``RouteGroup``.

    Each verb works as a decorator or as a direct call::

        @app.get("/users/:id")
        def show_user(ctx): ...

        app.post("/users", create_user)
    """

    __slots__ = ()

    def _add(self, method: str, path: str, handler: Handler, name: str | None) -> None:
        raise NotImplementedError

    def _register(
        self, method: str, path: str, handler: Handler | None, name: str | None
    ) -> Any:
        if handler is not None:
            self._add(method, path, handler, name)
            return handler

        def decorator(func: Handler) -> Handler:
            self._add(method, path, func, name)
            return func

        return decorator

    def get(self, path: str, handler: Handler | None = None, *, name: str | None = None) -> Any:
        return self._register("GET", path, handler, name)

    def post(self, path: str, handler: Handler | None = None, *, name: str | None = None) -> Any:
        return self._register("POST", path, handler, name)

    def put(self, path: str, handler: Handler | None = None, *, name: str | None = None) -> Any:
        return self._register("PUT", path, handler, name)

    def delete(self, path: str, handler: Handler | None = None, *, name: str | None = None) -> Any:
        return self._register("DELETE", path, handler, name)

    def patch(self, path: str, handler: Handler | None = None, *, name: str | None = None) -> Any:
        return self._register("PATCH", path, handler, name)

    def options(self, path: str, handler: Handler | None = None, *, name: str | None = None) -> Any:
        return self._register("OPTIONS", path, handler, name)

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a handler for several methods at once.

        Args:
            path: Path template. Use ``:param`` for path parameters.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional route name shown by ``smallapi routes`` and in docs.
        """

        def decorator(func: Handler) -> Handler:
            for method in methods or ["GET"]:
                self._add(method.upper(), path, func, name)
            return func

        return decorator


class RouteGroup(_Registrar):
    """Routes sharing a path prefix.

    Usage::

        api = app.group("/api/v1")

        @api.get("/users")
        def list_users(ctx): ...

    Middleware added with ``use()`` is registered on the app and runs for
    every request, not only for the group's routes.
    """

    __slots__ = ("_app", "prefix")

    def __init__(self, app: App, prefix: str) -> None:
        self._app = app
        self.prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""

    def _add(self, method: str, path: str, handler: Handler, name: str | None) -> None:
        full = self.prefix + ("/" + path.lstrip("/") if path.strip("/") else "")
        self._app._add(method, full or "/", handler, name)

    def group(self, prefix: str) -> RouteGroup:
        return RouteGroup(self._app, self.prefix + "/" + prefix.strip("/"))

    def use(self, *middleware: Middleware) -> RouteGroup:
        self._app.use(*middleware)
        return self


class App(_Registrar):
    """The smallapi application.

    Mutable during setup (routes, middleware, static mounts, filters).
    Frozen at runtime when ``app.run()`` or ``__call__()`` is first invoked.

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the app, even when several ASGI workers call
        ``__call__()`` concurrently on the first request.
    """

    __slots__ = (
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "_statics",
        "_sweeper",
        "_table",
        "_template_dir",
        "_template_env",
        "_template_filters",
        "config",
        "sessions",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        session_config: SessionConfig | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.sessions = SessionStore(session_config, secret_key=self.config.secret_key or None)
        self._router = Router()
        self._middleware_list: list[Middleware] = []
        self._statics: list[StaticFiles] = []
        self._template_dir: str | Path | None = self.config.template_dir
        self._template_filters: dict[str, Callable[..., Any]] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen = False
        self._freeze_lock = threading.Lock()
        self._sweeper: asyncio.Task[None] | None = None

        # Compiled state, set during _freeze()
        self._table: RouteTable | None = None
        self._middleware: tuple[Middleware, ...] = ()
        self._template_env: Environment | None = None

    # -- Route registration --

    def _add(self, method: str, path: str, handler: Handler, name: str | None) -> None:
        self._check_not_frozen()
        self._router.add(method, path, handler, name=name)

    def group(self, prefix: str) -> RouteGroup:
        """Return a ``RouteGroup`` that prefixes every path with *prefix*."""
        return RouteGroup(self, prefix)

    @property
    def routes(self) -> RouteTable:
        """The compiled route table (freezes the app)."""
        self._ensure_frozen()
        assert self._table is not None
        return self._table

    # -- Middleware and mounts --

    def use(self, *middleware: Middleware) -> App:
        """Append middleware. They run in registration order."""
        self._check_not_frozen()
        self._middleware_list.extend(middleware)
        return self

    def static(self, prefix: str, directory: str | Path) -> App:
        """Serve files under *directory* at URL *prefix*, before middleware runs."""
        self._check_not_frozen()
        self._statics.append(StaticFiles(directory, prefix))
        return self

    # -- Templates --

    def templates(self, directory: str | Path) -> App:
        """Render ``ctx.render()`` templates from *directory* (needs kida)."""
        self._check_not_frozen()
        self._template_dir = directory
        return self

    def template_filter(
        self, name: str | None = None
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a template filter/helper::

            @app.template_filter()
            def upper(value: str) -> str:
                return value.upper()
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_filters[name or func.__name__] = func
            return func

        return decorator

    # -- Docs --

    def enable_docs(self, config: DocsConfig | None = None) -> App:
        """Serve Swagger UI at ``/docs`` and the OpenAPI document at ``/docs.json``."""
        from smallapi.docs import DOCS_PATH, SPEC_PATH, DocsHandlers

        handlers = DocsHandlers(lambda: self.routes.routes, config)
        self.get(DOCS_PATH, handlers.page, name="docs")
        self.get(SPEC_PATH, handlers.spec, name="docs.json")
        return self

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook (sync or async) run during ASGI lifespan startup."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook (sync or async) run during ASGI lifespan shutdown."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Running --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Compile the app and serve it until SIGINT/SIGTERM.

        Uses pounce unless ``config.server == "builtin"``. WebSocket upgrades
        through raw-socket takeover need the builtin server.
        """
        self._ensure_frozen()
        _host = host or self.config.host
        _port = port or self.config.port

        if self.config.server == "builtin":
            from smallapi.server.raw import Server

            Server(
                self,
                _host,
                _port,
                shutdown_timeout=self.config.shutdown_timeout,
                max_body=self.config.max_content_length or None,
            ).run()
        else:
            from smallapi.server.dev import run_pounce

            run_pounce(self, _host, _port, reload=self.config.debug)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._table is not None

        await handle_request(
            scope,
            receive,
            send,
            routes=self._table,
            middleware=self._middleware,
            statics=self._statics,
            sessions=self.sessions,
            templates=self._template_env,
            config=self.config,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run startup/shutdown hooks and the session sweeper."""
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        """Run startup hooks and start the session sweeper."""
        for hook in self._startup_hooks:
            await invoke(hook)
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(
                self.sessions.run_sweeper(), name="smallapi-session-sweeper"
            )

    async def shutdown(self) -> None:
        """Stop the session sweeper and run shutdown hooks."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        for hook in self._shutdown_hooks:
            await invoke(hook)

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        self._table = self._router.compile()
        self._middleware = tuple(self._middleware_list)

        if self._template_dir is not None:
            from smallapi.templating import create_environment

            self._template_env = create_environment(
                self._template_dir, self._template_filters, debug=self.config.debug
            )

        self._frozen = True
        logger.debug(
            "App frozen: %d route(s), %d middleware, %d static mount(s)",
            len(self._table),
            len(self._middleware),
            len(self._statics),
        )

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and filters before calling app.run()."
            )
            raise RuntimeError(msg)
