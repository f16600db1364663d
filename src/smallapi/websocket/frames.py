"""RFC 6455 frame codec.

Reads frames from an ``asyncio.StreamReader`` and encodes frames to
bytes. Supports the 7-bit, 16-bit and 64-bit payload length forms and
enforces masking on client-to-server frames. Server frames are never
masked unless a mask is passed explicitly (the client side of tests
does this).
"""

import asyncio
import os
import struct
from dataclasses import dataclass
from enum import IntEnum

from smallapi.errors import ConnectionClosed, ProtocolError

DEFAULT_MAX_SIZE = 10_485_760  # 10 MB


class Opcode(IntEnum):
    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CLOSE = 0x8
    PING = 0x9
    PONG = 0xA

    @property
    def is_control(self) -> bool:
        return self >= Opcode.CLOSE


class CloseCode(IntEnum):
    NORMAL = 1000
    GOING_AWAY = 1001
    PROTOCOL_ERROR = 1002
    NO_STATUS = 1005
    ABNORMAL = 1006
    INVALID_DATA = 1007
    POLICY_VIOLATION = 1008
    MESSAGE_TOO_BIG = 1009
    INTERNAL_ERROR = 1011


@dataclass(frozen=True, slots=True)
class Frame:
    """One decoded frame. ``payload`` is already unmasked."""

    fin: bool
    opcode: Opcode
    payload: bytes
    masked: bool = False


def apply_mask(payload: bytes, mask: bytes) -> bytes:
    """XOR *payload* with the 4-byte *mask* (``payload[i] ^ mask[i % 4]``)."""
    if len(mask) != 4:
        msg = "WebSocket mask must be 4 bytes"
        raise ValueError(msg)
    n = len(payload)
    if n == 0:
        return b""
    key = (mask * (n // 4 + 1))[:n]
    return (int.from_bytes(payload, "big") ^ int.from_bytes(key, "big")).to_bytes(n, "big")


async def read_frame(
    reader: asyncio.StreamReader,
    *,
    require_mask: bool = True,
    max_size: int = DEFAULT_MAX_SIZE,
) -> Frame:
    """Read exactly one frame.

    Raises:
        ProtocolError: Reserved bits set, unknown opcode, malformed control
            frame, an unmasked frame when *require_mask*, or a payload
            larger than *max_size*.
        ConnectionClosed: The stream ended mid-frame.
    """
    try:
        head = await reader.readexactly(2)
        first, second = head[0], head[1]

        if first & 0x70:
            msg = "Reserved bits set without a negotiated extension"
            raise ProtocolError(msg)
        try:
            opcode = Opcode(first & 0x0F)
        except ValueError:
            msg = f"Unknown opcode {first & 0x0F:#x}"
            raise ProtocolError(msg) from None
        fin = bool(first & 0x80)
        masked = bool(second & 0x80)
        length = second & 0x7F

        if require_mask and not masked:
            msg = "Client frames must be masked"
            raise ProtocolError(msg)
        if opcode.is_control and (not fin or length > 125):
            msg = "Control frames must be final and at most 125 bytes"
            raise ProtocolError(msg)

        if length == 126:
            (length,) = struct.unpack("!H", await reader.readexactly(2))
        elif length == 127:
            (length,) = struct.unpack("!Q", await reader.readexactly(8))
            if length >> 63:
                msg = "Payload length has the most significant bit set"
                raise ProtocolError(msg)
        if length > max_size:
            msg = f"Frame of {length} bytes exceeds the {max_size} byte limit"
            raise ProtocolError(msg)

        mask = await reader.readexactly(4) if masked else b""
        payload = await reader.readexactly(length) if length else b""
    except asyncio.IncompleteReadError:
        raise ConnectionClosed(CloseCode.ABNORMAL, "connection dropped mid-frame") from None

    if masked:
        payload = apply_mask(payload, mask)
    return Frame(fin=fin, opcode=opcode, payload=payload, masked=masked)


def encode_frame(
    payload: bytes,
    opcode: Opcode = Opcode.TEXT,
    *,
    fin: bool = True,
    mask: bytes | None = None,
) -> bytes:
    """Encode one frame, choosing the shortest length form.

    Pass ``mask=b""`` for a random mask, or four bytes for a fixed one.
    """
    first = (0x80 if fin else 0) | opcode
    mask_bit = 0x80 if mask is not None else 0
    length = len(payload)

    if length < 126:
        header = struct.pack("!BB", first, mask_bit | length)
    elif length < 1 << 16:
        header = struct.pack("!BBH", first, mask_bit | 126, length)
    else:
        header = struct.pack("!BBQ", first, mask_bit | 127, length)

    if mask is None:
        return header + payload
    key = mask or os.urandom(4)
    return header + key + apply_mask(payload, key)


def encode_close_payload(code: int = CloseCode.NORMAL, reason: str = "") -> bytes:
    return struct.pack("!H", code) + reason.encode("utf-8")


def parse_close_payload(payload: bytes) -> tuple[int, str]:
    """Decode a close frame body into ``(code, reason)``.

    An empty body means no status was given (1005).
    """
    if not payload:
        return CloseCode.NO_STATUS, ""
    if len(payload) == 1:
        msg = "Close frame body of one byte"
        raise ProtocolError(msg)
    (code,) = struct.unpack("!H", payload[:2])
    try:
        reason = payload[2:].decode("utf-8")
    except UnicodeDecodeError:
        msg = "Close reason is not valid UTF-8"
        raise ProtocolError(msg) from None
    return code, reason
