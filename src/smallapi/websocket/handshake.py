"""HTTP-to-WebSocket upgrade handshake.

``validate_upgrade`` checks the request headers, ``compute_accept_key``
derives ``Sec-WebSocket-Accept``, and ``build_handshake_response`` renders
the raw ``101 Switching Protocols`` head written onto a taken-over socket.
"""

import base64
import hashlib
from collections.abc import Iterable, Mapping

from smallapi.errors import BadRequest
from smallapi.http.headers import Headers

WEBSOCKET_GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"


def compute_accept_key(key: str) -> str:
    """Base64(SHA-1(key + GUID)).

    >>> compute_accept_key("dGhlIHNhbXBsZSBub25jZQ==")
    's3pPLMBiTxaQ9kYGzzhZRbK+xOo='
    """
    digest = hashlib.sha1((key + WEBSOCKET_GUID).encode("ascii")).digest()  # noqa: S324
    return base64.b64encode(digest).decode("ascii")


def validate_upgrade(headers: Headers | Mapping[str, str]) -> str:
    """Check the upgrade headers and return ``Sec-WebSocket-Key``.

    ``Connection`` must list the ``upgrade`` token and ``Upgrade`` must be
    ``websocket`` (both case-insensitive).

    Raises:
        BadRequest: If the request is not a WebSocket upgrade or has no key.
    """
    if isinstance(headers, Headers):
        has_upgrade_token = headers.has_token("connection", "upgrade")
        upgrade = headers.get("upgrade") or ""
        key = headers.get("sec-websocket-key") or ""
    else:
        lowered = {k.lower(): v for k, v in headers.items()}
        tokens = lowered.get("connection", "").split(",")
        has_upgrade_token = any(t.strip().lower() == "upgrade" for t in tokens)
        upgrade = lowered.get("upgrade", "")
        key = lowered.get("sec-websocket-key", "")

    if not has_upgrade_token or upgrade.strip().lower() != "websocket":
        msg = "Not a WebSocket upgrade request"
        raise BadRequest(msg)
    if not key.strip():
        msg = "Missing Sec-WebSocket-Key header"
        raise BadRequest(msg)
    return key.strip()


def build_handshake_response(accept: str, extra_headers: Iterable[tuple[str, str]] = ()) -> bytes:
    """The raw ``101 Switching Protocols`` response head.

    *extra_headers* (such as a new session's ``Set-Cookie``) are added
    before the blank line.
    """
    lines = [
        "HTTP/1.1 101 Switching Protocols",
        "Upgrade: websocket",
        "Connection: Upgrade",
        f"Sec-WebSocket-Accept: {accept}",
        *(f"{name}: {value}" for name, value in extra_headers),
    ]
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
