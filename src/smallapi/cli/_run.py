"""``smallapi run``: serve an app with pounce or the builtin server."""

import argparse
import sys

from smallapi.cli._resolve import resolve_app
from smallapi.errors import ConfigurationError


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and serve it until interrupted.

    ``--builtin`` (or ``AppConfig(server="builtin")``) selects the asyncio
    server; otherwise pounce runs the app, reloading on changes when the
    app is in debug mode.
    """
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    host = args.host or app.config.host
    port = args.port or app.config.port
    app._ensure_frozen()

    if args.builtin or app.config.server == "builtin":
        from smallapi.server.raw import Server

        Server(
            app,
            host,
            port,
            shutdown_timeout=app.config.shutdown_timeout,
            max_body=app.config.max_content_length or None,
        ).run()
        return

    from smallapi.server.dev import run_pounce

    try:
        run_pounce(app, host, port, reload=app.config.debug, app_path=args.app)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
