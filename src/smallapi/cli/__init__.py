"""smallapi CLI: serve an app and list its routes.

Entry point registered as ``smallapi`` in ``pyproject.toml``::

    [project.scripts]
    smallapi = "smallapi.cli:main"
"""

import argparse
import logging
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``smallapi`` command."""
    parser = argparse.ArgumentParser(
        prog="smallapi",
        description="smallapi: a minimal ASGI web framework.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Level for the smallapi.* loggers",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- smallapi run -----------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Start the server")
    run_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument(
        "--builtin",
        action="store_true",
        help="Use the builtin asyncio server instead of pounce",
    )

    # -- smallapi routes --------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List registered routes")
    routes_parser.add_argument("app", help="Import string (e.g. myapp:app)")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("smallapi").setLevel(args.log_level)

    if args.command == "run":
        from smallapi.cli._run import run_server

        run_server(args)
    elif args.command == "routes":
        from smallapi.cli._routes import run_routes

        run_routes(args)
