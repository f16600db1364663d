"""smallapi exception hierarchy.

Shared across Router, App, Context, middleware, and the WebSocket layer
so every module raises and catches the same types.
"""

from dataclasses import dataclass


class SmallAPIError(Exception):
    """Base for all smallapi-specific errors."""


class ConfigurationError(SmallAPIError):
    """Raised when app configuration is invalid.

    Typically caught during registration or ``App._freeze()`` at startup.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(SmallAPIError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers or middleware. The request pipeline catches these
    and answers with ``{"error": detail}`` and the matching status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818
    """400: malformed input (bad JSON, wrong shape)."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class Unauthorized(HTTPError):  # noqa: N818
    """401: authentication required or failed."""

    def __init__(
        self,
        detail: str = "Unauthorized",
        headers: tuple[tuple[str, str], ...] = (),
    ) -> None:
        super().__init__(status=401, detail=detail, headers=headers)


class Forbidden(HTTPError):  # noqa: N818
    """403: authenticated but not allowed."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class RequestTimeout(HTTPError):  # noqa: N818
    """408: the handler did not finish in time."""

    def __init__(self, detail: str = "Request timeout") -> None:
        super().__init__(status=408, detail=detail)


class PayloadTooLarge(HTTPError):  # noqa: N818
    """413: the declared body exceeds ``max_content_length``."""

    def __init__(self, detail: str = "Payload Too Large") -> None:
        super().__init__(status=413, detail=detail)


class TooManyRequests(HTTPError):  # noqa: N818
    """429: rate limit exceeded."""

    def __init__(
        self,
        detail: str = "Rate limit exceeded",
        headers: tuple[tuple[str, str], ...] = (),
    ) -> None:
        super().__init__(status=429, detail=detail, headers=headers)


class ValidationError(HTTPError):
    """400: one or more fields failed validation.

    Attributes:
        errors: Dict mapping field names to lists of error messages.
    """

    def __init__(self, errors: dict[str, list[str]]) -> None:
        messages = "; ".join(msg for msgs in errors.values() for msg in msgs)
        super().__init__(status=400, detail=messages or "Validation failed")
        object.__setattr__(self, "errors", errors)


# -- WebSocket --


class WebSocketError(SmallAPIError):
    """Base for WebSocket failures after the handshake."""


class ProtocolError(WebSocketError):
    """The peer sent a frame that violates the wire format."""


class ConnectionClosed(WebSocketError):
    """The connection is closed (by the peer, by us, or dropped).

    ``code`` is the close status code when one was exchanged.
    """

    def __init__(self, code: int = 1006, reason: str = "") -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"WebSocket closed ({code}){': ' + reason if reason else ''}")


# -- Auth --


class AuthError(SmallAPIError):
    """Registration, login, or account update failed.

    The message is safe to show to the client (``"user not found"``,
    ``"invalid password"``).
    """
