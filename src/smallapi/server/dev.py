"""Run the app under pounce.

Pounce's ``run()`` takes an import string (e.g., ``"myapp:app"``), but
``App.run()`` has a live object, so ``pounce.Server`` is used directly
with the ASGI callable.
"""

from __future__ import annotations

from smallapi.errors import ConfigurationError


def run_pounce(
    app: object,
    host: str,
    port: int,
    *,
    reload: bool = False,
    app_path: str | None = None,
) -> None:
    """Start a single-worker pounce server for *app*.

    Args:
        app: ASGI callable (smallapi App instance).
        host: Bind host address.
        port: Bind port number.
        reload: Restart on file changes; needs *app_path* to pick up edits.
        app_path: Optional ``"module:attribute"`` import string that pounce
            re-imports on each reload.

    Raises:
        ConfigurationError: If pounce is not installed.
    """
    try:
        from pounce.config import ServerConfig
        from pounce.server import Server
    except ImportError:
        msg = (
            "The pounce server requires the 'bengal-pounce' package. "
            "Install it with: pip install smallapi[server], "
            "or use AppConfig(server='builtin')."
        )
        raise ConfigurationError(msg) from None

    config = ServerConfig(host=host, port=port, workers=1, reload=reload)
    server = Server(config, app, app_path=app_path)
    server.run()
