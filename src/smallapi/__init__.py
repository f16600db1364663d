"""smallapi: a minimal ASGI web framework.

Routing with ``:param`` segments, boolean middleware, a per-request
context, server-side sessions, and WebSocket upgrades.

Basic usage::

    from smallapi import App

    app = App()

    @app.get("/")
    def index(ctx):
        ctx.text("Hello, World!")

    app.run()

Templates (``pip install smallapi[templates]``) and the pounce server
(``pip install smallapi[server]``) are optional extras.
"""

__version__ = "1.0.0"
__all__ = [
    "App",
    "AppConfig",
    "AuthManager",
    "BadRequest",
    "ConfigurationError",
    "Context",
    "DocsConfig",
    "HTTPError",
    "NotFound",
    "Request",
    "Response",
    "RouteGroup",
    "SessionConfig",
    "SmallAPIError",
    "WebSocket",
    "constraint",
    "get_context",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import smallapi`` fast while providing a clean top-level API.
    """
    if name in ("App", "RouteGroup"):
        from smallapi import app as _app

        return getattr(_app, name)

    if name in ("AppConfig", "SessionConfig"):
        from smallapi import config as _config

        return getattr(_config, name)

    if name in ("Context", "get_context"):
        from smallapi import context as _ctx

        return getattr(_ctx, name)

    if name == "Request":
        from smallapi.http.request import Request

        return Request

    if name == "Response":
        from smallapi.http.response import Response

        return Response

    if name == "AuthManager":
        from smallapi.auth import AuthManager

        return AuthManager

    if name == "DocsConfig":
        from smallapi.docs import DocsConfig

        return DocsConfig

    if name == "WebSocket":
        from smallapi.websocket.connection import WebSocket

        return WebSocket

    if name == "constraint":
        from smallapi.validation.structs import constraint

        return constraint

    if name in ("BadRequest", "ConfigurationError", "HTTPError", "NotFound", "SmallAPIError"):
        from smallapi import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
