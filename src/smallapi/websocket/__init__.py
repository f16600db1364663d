"""WebSocket support: handshake, RFC 6455 frame codec, and connections."""

from smallapi.websocket.connection import WebSocket
from smallapi.websocket.frames import (
    CloseCode,
    Frame,
    Opcode,
    apply_mask,
    encode_frame,
    read_frame,
)
from smallapi.websocket.handshake import (
    WEBSOCKET_GUID,
    build_handshake_response,
    compute_accept_key,
    validate_upgrade,
)
from smallapi.websocket.transports import ASGITransport, StreamTransport, Transport

__all__ = [
    "WEBSOCKET_GUID",
    "ASGITransport",
    "CloseCode",
    "Frame",
    "Opcode",
    "StreamTransport",
    "Transport",
    "WebSocket",
    "apply_mask",
    "build_handshake_response",
    "compute_accept_key",
    "encode_frame",
    "read_frame",
    "validate_upgrade",
]
