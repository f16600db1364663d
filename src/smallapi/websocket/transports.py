"""Message transports under a ``WebSocket``.

``StreamTransport`` speaks the frame codec over raw asyncio streams (the
builtin server hands these over after the 101 handshake).
``ASGITransport`` maps messages onto ASGI ``websocket.*`` events when the
ASGI server owns the socket.

Both read whole messages: fragmented frames are reassembled and control
frames are answered inside the transport.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from smallapi._internal.asgi import Receive, Send
from smallapi.errors import ConnectionClosed, ProtocolError
from smallapi.websocket.frames import (
    DEFAULT_MAX_SIZE,
    CloseCode,
    Opcode,
    encode_close_payload,
    encode_frame,
    parse_close_payload,
    read_frame,
)

logger = logging.getLogger("smallapi.websocket")

type Message = str | bytes


class Transport(Protocol):
    async def read_message(self) -> Message: ...

    async def write_message(self, data: Message) -> None: ...

    async def close(self, code: int = CloseCode.NORMAL, reason: str = "") -> None: ...


class StreamTransport:
    """RFC 6455 over an ``asyncio`` reader/writer pair.

    Pings are answered with pongs carrying the same payload. A close
    frame from the peer is echoed and ends reading with
    ``ConnectionClosed``.
    """

    __slots__ = ("_close_sent", "_max_size", "_reader", "_write_lock", "_writer")

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        max_size: int = DEFAULT_MAX_SIZE,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._max_size = max_size
        self._write_lock = asyncio.Lock()
        self._close_sent = False

    async def _send_frame(self, payload: bytes, opcode: Opcode) -> None:
        async with self._write_lock:
            if self._writer.is_closing():
                raise ConnectionClosed(CloseCode.ABNORMAL, "transport closed")
            self._writer.write(encode_frame(payload, opcode))
            try:
                await self._writer.drain()
            except ConnectionError as exc:
                raise ConnectionClosed(CloseCode.ABNORMAL, str(exc)) from exc

    async def read_message(self) -> Message:
        opcode: Opcode | None = None
        parts: list[bytes] = []
        size = 0
        while True:
            try:
                frame = await read_frame(self._reader, require_mask=True, max_size=self._max_size)
            except ProtocolError as exc:
                await self.close(CloseCode.PROTOCOL_ERROR, str(exc)[:120])
                raise

            if frame.opcode == Opcode.PING:
                await self._send_frame(frame.payload, Opcode.PONG)
                continue
            if frame.opcode == Opcode.PONG:
                continue
            if frame.opcode == Opcode.CLOSE:
                code, reason = parse_close_payload(frame.payload)
                await self.close(code if code != CloseCode.NO_STATUS else CloseCode.NORMAL)
                raise ConnectionClosed(code, reason)

            if frame.opcode == Opcode.CONTINUATION:
                if opcode is None:
                    await self.close(CloseCode.PROTOCOL_ERROR)
                    msg = "Continuation frame without a message in progress"
                    raise ProtocolError(msg)
            else:
                if opcode is not None:
                    await self.close(CloseCode.PROTOCOL_ERROR)
                    msg = "New data frame before the previous message finished"
                    raise ProtocolError(msg)
                opcode = frame.opcode

            size += len(frame.payload)
            if size > self._max_size:
                await self.close(CloseCode.MESSAGE_TOO_BIG)
                msg = f"Message exceeds the {self._max_size} byte limit"
                raise ProtocolError(msg)
            parts.append(frame.payload)

            if frame.fin:
                data = b"".join(parts)
                if opcode == Opcode.TEXT:
                    try:
                        return data.decode("utf-8")
                    except UnicodeDecodeError:
                        await self.close(CloseCode.INVALID_DATA)
                        msg = "Text message is not valid UTF-8"
                        raise ProtocolError(msg) from None
                return data

    async def write_message(self, data: Message) -> None:
        if isinstance(data, str):
            await self._send_frame(data.encode("utf-8"), Opcode.TEXT)
        else:
            await self._send_frame(bytes(data), Opcode.BINARY)

    async def close(self, code: int = CloseCode.NORMAL, reason: str = "") -> None:
        """Send a close frame once. Errors from a dead socket are ignored."""
        if self._close_sent:
            return
        self._close_sent = True
        if code in (CloseCode.NO_STATUS, CloseCode.ABNORMAL):
            # Reserved codes that must not appear on the wire
            code, reason = CloseCode.NORMAL, ""
        try:
            await self._send_frame(encode_close_payload(code, reason), Opcode.CLOSE)
        except ConnectionClosed:
            logger.debug("Peer gone before close frame could be sent")


class ASGITransport:
    """``websocket.*`` ASGI events as a message transport."""

    __slots__ = ("_closed", "_receive", "_send")

    def __init__(self, receive: Receive, send: Send) -> None:
        self._receive = receive
        self._send = send
        self._closed = False

    async def read_message(self) -> Message:
        message = await self._receive()
        kind = message["type"]
        if kind == "websocket.receive":
            text = message.get("text")
            if text is not None:
                return text
            return message.get("bytes") or b""
        if kind == "websocket.disconnect":
            self._closed = True
            raise ConnectionClosed(message.get("code", CloseCode.NORMAL), message.get("reason") or "")
        msg = f"Unexpected ASGI message {kind!r}"
        raise ProtocolError(msg)

    async def write_message(self, data: Message) -> None:
        if self._closed:
            raise ConnectionClosed(CloseCode.ABNORMAL, "transport closed")
        if isinstance(data, str):
            await self._send({"type": "websocket.send", "text": data})
        else:
            await self._send({"type": "websocket.send", "bytes": bytes(data)})

    async def close(self, code: int = CloseCode.NORMAL, reason: str = "") -> None:
        if self._closed:
            return
        self._closed = True
        await self._send({"type": "websocket.close", "code": code, "reason": reason})
