"""Built-in middleware: access log, CORS, security headers, basic auth,
session auth, request IDs, and gzip compression.

Each built-in is a small class with a frozen config where it has
options, plus a lowercase factory for the common call::

    app.use(logger())
    app.use(cors())
    app.use(secure())
    app.use(basic_auth("admin", "s3cret"))
"""

from __future__ import annotations

import base64
import binascii
import gzip
import hmac
import logging
import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from smallapi._internal.types import MiddlewareFunc
from smallapi.http.response import Response

if TYPE_CHECKING:
    from smallapi.context import Context

access_logger = logging.getLogger("smallapi.access")


# ---------------------------------------------------------------------------
# Access log
# ---------------------------------------------------------------------------


class AccessLogMiddleware:
    """Log ``METHOD PATH STATUS DURATION`` once the response is built."""

    __slots__ = ("_logger",)

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log or access_logger

    def __call__(self, ctx: Context) -> bool:
        start = time.perf_counter()

        def log_response(response: Response) -> None:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self._logger.info(
                "%s %s %d %.2fms", ctx.method, ctx.path, response.status, elapsed_ms
            )

        ctx.on_finish(log_response)
        return True


def logger(log: logging.Logger | None = None) -> AccessLogMiddleware:
    return AccessLogMiddleware(log)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS configuration.

    Defaults allow any origin with the common verbs and headers::

        CORSConfig(allow_origins=("https://example.com",))
    """

    allow_origins: tuple[str, ...] = ("*",)
    allow_methods: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
    allow_headers: tuple[str, ...] = ("Content-Type", "Authorization")
    expose_headers: tuple[str, ...] = ()
    allow_credentials: bool = True
    max_age: int = 600


class CORSMiddleware:
    """Add CORS headers and answer preflights.

    An ``OPTIONS`` request carrying an ``Origin`` header is a preflight:
    it gets status 204 and the chain stops.
    """

    __slots__ = ("config",)

    def __init__(self, config: CORSConfig | None = None) -> None:
        self.config = config or CORSConfig()

    def _is_allowed_origin(self, origin: str) -> bool:
        return "*" in self.config.allow_origins or origin in self.config.allow_origins

    def __call__(self, ctx: Context) -> bool:
        origin = ctx.header("Origin")
        if not origin:
            return True

        cfg = self.config
        if self._is_allowed_origin(origin):
            if "*" in cfg.allow_origins and not cfg.allow_credentials:
                ctx.set_header("Access-Control-Allow-Origin", "*")
            else:
                ctx.set_header("Access-Control-Allow-Origin", origin)
                ctx.add_header("Vary", "Origin")
            if cfg.allow_credentials:
                ctx.set_header("Access-Control-Allow-Credentials", "true")
            if cfg.expose_headers:
                ctx.set_header("Access-Control-Expose-Headers", ", ".join(cfg.expose_headers))

        ctx.set_header("Access-Control-Allow-Methods", ", ".join(cfg.allow_methods))
        if cfg.allow_headers:
            ctx.set_header("Access-Control-Allow-Headers", ", ".join(cfg.allow_headers))

        if ctx.method == "OPTIONS":
            ctx.set_header("Access-Control-Max-Age", str(cfg.max_age))
            ctx.status(204)
            return False
        return True


def cors(config: CORSConfig | None = None) -> CORSMiddleware:
    return CORSMiddleware(config)


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------


def recovery() -> MiddlewareFunc:
    """Continue the chain.

    The request pipeline always wraps middleware and handlers in a
    recovery boundary; this keeps ``app.use(recovery())`` working.
    """

    def recover(ctx: Context) -> bool:
        return True

    return recover


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SecurityHeadersConfig:
    """Header values applied to every response. ``None`` skips a header."""

    x_content_type_options: str = "nosniff"
    x_frame_options: str = "DENY"
    x_xss_protection: str | None = "1; mode=block"
    strict_transport_security: str | None = "max-age=31536000"
    content_security_policy: str | None = "default-src 'self'"
    referrer_policy: str | None = None


class SecurityHeadersMiddleware:
    __slots__ = ("config",)

    def __init__(self, config: SecurityHeadersConfig | None = None) -> None:
        self.config = config or SecurityHeadersConfig()

    def __call__(self, ctx: Context) -> bool:
        cfg = self.config
        ctx.set_header("X-Content-Type-Options", cfg.x_content_type_options)
        ctx.set_header("X-Frame-Options", cfg.x_frame_options)
        optional = (
            ("X-XSS-Protection", cfg.x_xss_protection),
            ("Strict-Transport-Security", cfg.strict_transport_security),
            ("Content-Security-Policy", cfg.content_security_policy),
            ("Referrer-Policy", cfg.referrer_policy),
        )
        for name, value in optional:
            if value:
                ctx.set_header(name, value)
        return True


def secure(config: SecurityHeadersConfig | None = None) -> SecurityHeadersMiddleware:
    return SecurityHeadersMiddleware(config)


# ---------------------------------------------------------------------------
# HTTP Basic auth
# ---------------------------------------------------------------------------


def parse_basic_auth(header: str) -> tuple[str, str] | None:
    """Decode ``Basic base64(user:pass)`` into ``(user, pass)``, or None."""
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class BasicAuthMiddleware:
    """Require fixed HTTP Basic credentials, compared in constant time."""

    __slots__ = ("_password", "_realm", "_username")

    def __init__(self, username: str, password: str, realm: str = "Restricted") -> None:
        self._username = username.encode("utf-8")
        self._password = password.encode("utf-8")
        self._realm = realm

    def __call__(self, ctx: Context) -> bool:
        credentials = parse_basic_auth(ctx.header("Authorization"))
        if credentials is not None:
            user_ok = hmac.compare_digest(credentials[0].encode("utf-8"), self._username)
            pass_ok = hmac.compare_digest(credentials[1].encode("utf-8"), self._password)
            if user_ok and pass_ok:
                return True
        ctx.set_header("WWW-Authenticate", f'Basic realm="{self._realm}"')
        ctx.status(401).json({"error": "Unauthorized"})
        return False


def basic_auth(username: str, password: str, realm: str = "Restricted") -> BasicAuthMiddleware:
    return BasicAuthMiddleware(username, password, realm)


# ---------------------------------------------------------------------------
# Session auth
# ---------------------------------------------------------------------------


def require_auth(key: str = "user_id") -> MiddlewareFunc:
    """Stop with 401 unless the session holds *key*; copy it into the context store."""

    def check(ctx: Context) -> bool:
        value = ctx.session.get(key)
        if value is None:
            ctx.status(401).json({"error": "Authentication required"})
            return False
        ctx.set(key, value)
        return True

    return check


# ---------------------------------------------------------------------------
# Request ID
# ---------------------------------------------------------------------------


def request_id(header: str = "X-Request-ID") -> MiddlewareFunc:
    """Tag each request with a random ID (response header and ``request_id`` store key)."""

    def tag(ctx: Context) -> bool:
        rid = uuid.uuid4().hex
        ctx.set_header(header, rid)
        ctx.set("request_id", rid)
        return True

    return tag


# ---------------------------------------------------------------------------
# Compression
# ---------------------------------------------------------------------------


class CompressMiddleware:
    """Gzip response bodies for clients that accept it."""

    __slots__ = ("_level", "_minimum_size")

    def __init__(self, minimum_size: int = 500, level: int = 6) -> None:
        self._minimum_size = minimum_size
        self._level = level

    def __call__(self, ctx: Context) -> bool:
        if "gzip" not in ctx.header("Accept-Encoding").lower():
            return True

        def compress_body(response: Response) -> Response | None:
            body = response.body_bytes
            if len(body) < self._minimum_size or response.header("Content-Encoding"):
                return None
            return (
                response.with_body(gzip.compress(body, compresslevel=self._level))
                .with_header("Content-Encoding", "gzip")
                .with_header("Vary", "Accept-Encoding")
            )

        ctx.on_finish(compress_body)
        return True


def compress(minimum_size: int = 500, level: int = 6) -> CompressMiddleware:
    return CompressMiddleware(minimum_size, level)
