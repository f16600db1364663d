"""Middleware: ``(ctx) -> bool`` callables, no inheritance required.

Built-in middleware:
    logger -- access log line per request
    cors -- Cross-Origin Resource Sharing headers and preflights
    recovery -- explicit marker; the pipeline always recovers
    secure -- security response headers
    basic_auth -- fixed HTTP Basic credentials
    require_auth -- session key must be present
    request_id -- X-Request-ID per request
    compress -- gzip response bodies
    RateLimitMiddleware -- fixed-window per-client limits
    auth / require_user -- resolve users through an AuthManager
    timeout -- handler decorator with a real deadline
"""

from smallapi.middleware.auth import auth, require_user
from smallapi.middleware.builtin import (
    AccessLogMiddleware,
    BasicAuthMiddleware,
    CompressMiddleware,
    CORSConfig,
    CORSMiddleware,
    SecurityHeadersConfig,
    SecurityHeadersMiddleware,
    basic_auth,
    compress,
    cors,
    logger,
    recovery,
    request_id,
    require_auth,
    secure,
)
from smallapi.middleware.protocol import Middleware, run_chain
from smallapi.middleware.rate_limit import RateLimitConfig, RateLimitMiddleware, rate_limit
from smallapi.middleware.static import StaticFiles
from smallapi.middleware.timeout import timeout

__all__ = [
    "AccessLogMiddleware",
    "BasicAuthMiddleware",
    "CORSConfig",
    "CORSMiddleware",
    "CompressMiddleware",
    "Middleware",
    "RateLimitConfig",
    "RateLimitMiddleware",
    "SecurityHeadersConfig",
    "SecurityHeadersMiddleware",
    "StaticFiles",
    "auth",
    "basic_auth",
    "compress",
    "cors",
    "logger",
    "rate_limit",
    "recovery",
    "request_id",
    "require_auth",
    "require_user",
    "run_chain",
    "secure",
    "timeout",
]
