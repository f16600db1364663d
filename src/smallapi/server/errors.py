"""Recovery boundary for the request pipeline.

Maps ``HTTPError`` exceptions and unexpected failures onto the context's
response buffer. Nothing is written when the handler already wrote a
response; the failure is only logged.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from smallapi.errors import HTTPError, ValidationError

if TYPE_CHECKING:
    from smallapi.context import Context

logger = logging.getLogger("smallapi.server")


def handle_http_error(ctx: Context, exc: HTTPError) -> None:
    """Answer ``{"error": detail}`` with the exception's status and headers."""
    for name, value in exc.headers:
        ctx.set_header(name, value)
    if ctx.written:
        logger.warning(
            "%s raised after a response was written for %s %s", exc, ctx.method, ctx.path
        )
        return
    if exc.status >= 500:
        logger.error("%s %s -> %d %s", ctx.method, ctx.path, exc.status, exc.detail)
    payload: dict[str, object] = {"error": exc.detail}
    if isinstance(exc, ValidationError):
        payload["errors"] = exc.errors  # type: ignore[attr-defined]
    ctx.status(exc.status).json(payload)


def handle_internal_error(ctx: Context, exc: BaseException) -> None:
    """Log the failure; answer 500 unless a response was already written."""
    logger.error(
        "Unhandled error on %s %s", ctx.method, ctx.path, exc_info=(type(exc), exc, exc.__traceback__)
    )
    if ctx.written:
        return
    ctx.status(500).json({"error": "Internal Server Error"})
