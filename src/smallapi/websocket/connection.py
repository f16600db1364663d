"""The ``WebSocket`` handed to WebSocket handlers.

Each connection runs two tasks: a reader that moves inbound messages
from the transport into a bounded inbound queue, and a writer that
drains a bounded outbound queue onto the transport. ``send()`` never
waits for a slow peer: when the outbound queue is full the connection is
dropped and ``ConnectionClosed`` is raised instead.
"""

from __future__ import annotations

import asyncio
import contextlib
import json as json_module
import logging
from collections.abc import AsyncIterator
from typing import Any

from smallapi.errors import ConnectionClosed, ProtocolError
from smallapi.websocket.frames import CloseCode
from smallapi.websocket.transports import Message, Transport

logger = logging.getLogger("smallapi.websocket")


class _Closing:
    """Queue marker: stop after everything queued before it."""

    __slots__ = ("code", "reason")

    def __init__(self, code: int, reason: str) -> None:
        self.code = code
        self.reason = reason


class WebSocket:
    """An upgraded connection.

    Usage::

        async def echo(ws: WebSocket):
            async for message in ws:
                await ws.send(message)
    """

    __slots__ = (
        "_closed",
        "_closed_exc",
        "_inbound",
        "_outbound",
        "_reader_done",
        "_reader_task",
        "_transport",
        "_writer_task",
        "path",
        "remote",
    )

    def __init__(
        self,
        transport: Transport,
        *,
        queue_size: int = 256,
        path: str = "",
        remote: tuple[str, int] | None = None,
    ) -> None:
        self._transport = transport
        self._inbound: asyncio.Queue[Message | ConnectionClosed] = asyncio.Queue(queue_size)
        self._outbound: asyncio.Queue[Message | _Closing] = asyncio.Queue(queue_size)
        self._reader_task: asyncio.Task[None] | None = None
        self._reader_done = False
        self._writer_task: asyncio.Task[None] | None = None
        self._closed = False
        self._closed_exc: ConnectionClosed | None = None
        self.path = path
        self.remote = remote

    @property
    def closed(self) -> bool:
        return self._closed

    # -- Lifecycle --

    def start(self) -> None:
        """Spawn the reader and writer tasks."""
        if self._reader_task is not None:
            return
        self._reader_task = asyncio.create_task(self._read_loop(), name="smallapi-ws-reader")
        self._writer_task = asyncio.create_task(self._write_loop(), name="smallapi-ws-writer")

    async def _read_loop(self) -> None:
        try:
            while True:
                message = await self._transport.read_message()
                await self._inbound.put(message)
        except ConnectionClosed as exc:
            self._peer_gone(exc)
        except ProtocolError as exc:
            logger.info("WebSocket protocol error on %s: %s", self.path or "connection", exc)
            self._peer_gone(ConnectionClosed(CloseCode.PROTOCOL_ERROR, str(exc)))
        except OSError as exc:
            self._peer_gone(ConnectionClosed(CloseCode.ABNORMAL, str(exc)))
        finally:
            self._reader_done = True

    def _peer_gone(self, exc: ConnectionClosed) -> None:
        self._closed = True
        if self._closed_exc is None:
            self._closed_exc = exc
        # Wakes a receive() blocked on an empty queue; a full queue has no waiter
        with contextlib.suppress(asyncio.QueueFull):
            self._inbound.put_nowait(exc)
        try:
            self._outbound.put_nowait(_Closing(CloseCode.NORMAL, ""))
        except asyncio.QueueFull:
            if self._writer_task is not None:
                self._writer_task.cancel()

    async def _write_loop(self) -> None:
        try:
            while True:
                item = await self._outbound.get()
                if isinstance(item, _Closing):
                    await self._transport.close(item.code, item.reason)
                    return
                await self._transport.write_message(item)
        except ConnectionClosed as exc:
            self._closed = True
            if self._closed_exc is None:
                self._closed_exc = exc

    # -- Receiving --

    async def receive(self) -> Message:
        """Next message (``str`` for text, ``bytes`` for binary).

        Raises:
            ConnectionClosed: Once the peer closed or the connection dropped.
        """
        if self._reader_done and self._inbound.empty():
            raise self._closed_exc or ConnectionClosed()
        item = await self._inbound.get()
        if isinstance(item, ConnectionClosed):
            raise item
        return item

    async def receive_text(self) -> str:
        message = await self.receive()
        if isinstance(message, bytes):
            return message.decode("utf-8")
        return message

    async def receive_json(self) -> Any:
        return json_module.loads(await self.receive_text())

    def __aiter__(self) -> AsyncIterator[Message]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Message]:
        while True:
            try:
                yield await self.receive()
            except ConnectionClosed:
                return

    # -- Sending --

    async def send(self, data: Message) -> None:
        """Queue *data* for the writer task.

        Raises:
            ConnectionClosed: The connection is closed, or the outbound queue
                was full and the connection has been dropped.
        """
        if self._closed:
            raise self._closed_exc or ConnectionClosed()
        try:
            self._outbound.put_nowait(data)
        except asyncio.QueueFull:
            logger.warning("Dropping slow WebSocket consumer on %s", self.path or "connection")
            exc = ConnectionClosed(CloseCode.POLICY_VIOLATION, "send queue full")
            self._drop(exc)
            raise exc from None

    async def send_text(self, text: str) -> None:
        await self.send(text)

    async def send_bytes(self, data: bytes) -> None:
        await self.send(data)

    async def send_json(self, value: Any) -> None:
        from smallapi.context import dumps

        await self.send(dumps(value))

    # -- Closing --

    def _drop(self, exc: ConnectionClosed) -> None:
        self._closed = True
        if self._closed_exc is None:
            self._closed_exc = exc
        for task in (self._reader_task, self._writer_task):
            if task is not None:
                task.cancel()

    async def close(self, code: int = CloseCode.NORMAL, reason: str = "") -> None:
        """Flush queued messages, send a close frame, and stop both tasks."""
        if not self._closed:
            self._closed = True
            self._closed_exc = ConnectionClosed(code, reason)
            try:
                self._outbound.put_nowait(_Closing(code, reason))
            except asyncio.QueueFull:
                if self._writer_task is not None:
                    self._writer_task.cancel()
        if self._writer_task is not None:
            await asyncio.gather(self._writer_task, return_exceptions=True)
        if self._reader_task is not None:
            self._reader_task.cancel()
            await asyncio.gather(self._reader_task, return_exceptions=True)
        self._reader_done = True
        final = self._closed_exc or ConnectionClosed(code, reason)
        try:
            await self._transport.close(final.code, final.reason)
        except (ConnectionClosed, OSError):
            logger.debug("Transport already gone while closing %s", self.path or "connection")

    async def __aenter__(self) -> WebSocket:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<WebSocket {self.path or '?'} {state}>"
