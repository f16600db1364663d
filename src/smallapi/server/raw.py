"""Builtin asyncio HTTP/1.1 server.

A small ASGI server for running an app without pounce installed, and the
server the WebSocket layer relies on for connection takeover: every HTTP
scope carries the ``smallapi.takeover`` extension, so ``ctx.upgrade()``
can write the ``101`` response itself and keep the socket.

Keep-alive is honoured. Bodies are read by Content-Length or chunked
transfer coding. SIGINT/SIGTERM stop accepting connections, give
in-flight requests ``shutdown_timeout`` seconds, then cancel the rest.
"""

import asyncio
import contextlib
import logging
import signal
from collections.abc import Coroutine, MutableMapping
from email.utils import formatdate
from http import HTTPStatus
from typing import Any
from urllib.parse import unquote

from smallapi._internal.asgi import TAKEOVER_EXTENSION

logger = logging.getLogger("smallapi.server")

MAX_HEADER_SIZE = 64 * 1024
READ_TIMEOUT = 30.0
KEEP_ALIVE_TIMEOUT = 5.0


class BadHTTPRequest(Exception):  # noqa: N818
    """The client sent something that is not a usable HTTP/1.1 request."""


class _ParsedRequest:
    __slots__ = ("body", "headers", "method", "query_string", "raw_path", "version")

    def __init__(
        self,
        method: str,
        raw_path: str,
        version: str,
        headers: list[tuple[bytes, bytes]],
        body: bytes,
    ) -> None:
        self.method = method
        self.raw_path = raw_path
        self.version = version
        self.headers = headers
        self.body = body
        _, _, query = raw_path.partition("?")
        self.query_string = query.encode("latin-1")

    def header(self, name: bytes) -> str:
        for key, value in self.headers:
            if key == name:
                return value.decode("latin-1")
        return ""

    @property
    def keep_alive(self) -> bool:
        connection = self.header(b"connection").lower()
        if self.version == "HTTP/1.1":
            return "close" not in connection
        return "keep-alive" in connection


async def read_request(
    reader: asyncio.StreamReader,
    *,
    timeout: float = READ_TIMEOUT,
    max_body: int | None = None,
) -> _ParsedRequest | None:
    """Read one request from *reader*; None when the peer closed cleanly."""
    try:
        head = await asyncio.wait_for(reader.readuntil(b"\r\n\r\n"), timeout)
    except asyncio.IncompleteReadError as exc:
        if not exc.partial:
            return None
        msg = "Connection closed during header read"
        raise BadHTTPRequest(msg) from None
    except asyncio.LimitOverrunError:
        msg = "Headers exceed maximum allowed size"
        raise BadHTTPRequest(msg) from None

    lines = head[:-4].split(b"\r\n")
    parts = lines[0].decode("latin-1").split(" ")
    if len(parts) != 3 or not parts[2].startswith("HTTP/"):
        msg = f"Malformed request line: {lines[0]!r}"
        raise BadHTTPRequest(msg)
    method, raw_path, version = parts

    headers: list[tuple[bytes, bytes]] = []
    for line in lines[1:]:
        name, sep, value = line.partition(b":")
        if not sep:
            msg = f"Malformed header line: {line!r}"
            raise BadHTTPRequest(msg)
        headers.append((name.strip().lower(), value.strip()))

    request = _ParsedRequest(method, raw_path, version, headers, b"")
    if "chunked" in request.header(b"transfer-encoding").lower():
        request.body = await _read_chunked(reader, timeout, max_body)
    else:
        length_text = request.header(b"content-length") or "0"
        try:
            length = int(length_text)
        except ValueError:
            msg = f"Invalid Content-Length: {length_text!r}"
            raise BadHTTPRequest(msg) from None
        if max_body is not None and length > max_body:
            # Left unread; the app answers from the header alone
            return request
        if length:
            request.body = await asyncio.wait_for(reader.readexactly(length), timeout)
    return request


async def _read_chunked(
    reader: asyncio.StreamReader, timeout: float, max_body: int | None
) -> bytes:
    body = bytearray()
    while True:
        size_line = await asyncio.wait_for(reader.readuntil(b"\r\n"), timeout)
        try:
            size = int(size_line.split(b";", 1)[0].strip(), 16)
        except ValueError:
            msg = "Invalid chunk size"
            raise BadHTTPRequest(msg) from None
        if size == 0:
            # Trailers end with an empty line
            while await asyncio.wait_for(reader.readuntil(b"\r\n"), timeout) != b"\r\n":
                pass
            return bytes(body)
        body.extend(await asyncio.wait_for(reader.readexactly(size + 2), timeout))
        del body[-2:]
        if max_body is not None and len(body) > max_body:
            msg = "Body exceeds maximum allowed size"
            raise BadHTTPRequest(msg)


def _status_line(status: int) -> bytes:
    try:
        phrase = HTTPStatus(status).phrase
    except ValueError:
        phrase = ""
    return f"HTTP/1.1 {status} {phrase}\r\n".encode("latin-1")


def _error_response(status: int, message: str) -> bytes:
    body = message.encode("utf-8")
    return (
        _status_line(status)
        + b"content-type: text/plain; charset=utf-8\r\n"
        + f"content-length: {len(body)}\r\n".encode("latin-1")
        + b"connection: close\r\n\r\n"
        + body
    )


class ConnectionTakeover:
    """The ``smallapi.takeover`` extension for one connection."""

    __slots__ = ("_reader", "_tasks", "_writer", "taken", "task")

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        tasks: set[asyncio.Task[None]],
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._tasks = tasks
        self.taken = False
        self.task: asyncio.Task[None] | None = None

    def take(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        if self.taken:
            msg = "Connection already taken over."
            raise RuntimeError(msg)
        self.taken = True
        return self._reader, self._writer

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.create_task(coro, name="smallapi-takeover")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self.task = task
        return task


class _Exchange:
    """ASGI receive/send callables for one HTTP request on a connection."""

    __slots__ = ("_body", "_body_sent", "_keep_alive", "_writer", "complete", "started", "status")

    def __init__(self, writer: asyncio.StreamWriter, body: bytes, keep_alive: bool) -> None:
        self._writer = writer
        self._body = body
        self._body_sent = False
        self._keep_alive = keep_alive
        self.started = False
        self.complete = False
        self.status = 0

    async def receive(self) -> MutableMapping[str, Any]:
        if self._body_sent:
            return {"type": "http.disconnect"}
        self._body_sent = True
        return {"type": "http.request", "body": self._body, "more_body": False}

    async def send(self, message: MutableMapping[str, Any]) -> None:
        if message["type"] == "http.response.start":
            self.started = True
            self.status = message["status"]
            out = bytearray(_status_line(self.status))
            names: set[bytes] = set()
            for name, value in message.get("headers", []):
                names.add(name.lower())
                out += name + b": " + value + b"\r\n"
            if b"date" not in names:
                out += f"date: {formatdate(usegmt=True)}\r\n".encode("latin-1")
            if b"server" not in names:
                out += b"server: smallapi\r\n"
            if b"connection" not in names:
                out += b"connection: keep-alive\r\n" if self._keep_alive else b"connection: close\r\n"
            out += b"\r\n"
            self._writer.write(bytes(out))
        elif message["type"] == "http.response.body":
            body = message.get("body", b"")
            if body:
                self._writer.write(body)
            if not message.get("more_body", False):
                self.complete = True
            await self._writer.drain()


class Server:
    """Serve an ASGI *app* on *host*:*port*.

    Usage::

        Server(app, "127.0.0.1", 8080).run()

    ``port=0`` binds an ephemeral port; read it back from ``port`` once
    ``started`` is set.
    """

    def __init__(
        self,
        app: Any,
        host: str = "127.0.0.1",
        port: int = 8080,
        *,
        shutdown_timeout: float = 10.0,
        max_body: int | None = None,
    ) -> None:
        self.app = app
        self.host = host
        self.port = port
        self.shutdown_timeout = shutdown_timeout
        self.max_body = max_body
        self.started = asyncio.Event()
        self._stop = asyncio.Event()
        self._server: asyncio.Server | None = None
        self._connections: set[asyncio.Task[None]] = set()
        self._takeovers: set[asyncio.Task[None]] = set()
        self._lifespan: _Lifespan | None = None

    # -- Lifecycle --

    def run(self) -> None:
        """Block until SIGINT/SIGTERM, then shut down gracefully."""
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(self._run_with_signals())

    async def _run_with_signals(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, self.shutdown)
        await self.serve()

    def shutdown(self) -> None:
        """Stop accepting connections and begin the graceful shutdown."""
        self._stop.set()

    async def serve(self) -> None:
        self._lifespan = _Lifespan(self.app)
        await self._lifespan.startup()
        self._server = await asyncio.start_server(
            self._handle_connection, self.host, self.port, limit=MAX_HEADER_SIZE
        )
        sockname = self._server.sockets[0].getsockname()
        self.port = sockname[1]
        logger.info("smallapi listening on http://%s:%d", self.host, self.port)
        self.started.set()
        try:
            await self._stop.wait()
        finally:
            await self._shutdown()

    async def _shutdown(self) -> None:
        logger.info("Shutting down (waiting up to %.1fs for open requests)", self.shutdown_timeout)
        if self._server is not None:
            self._server.close()
        pending = self._connections | self._takeovers
        if pending:
            _, still_running = await asyncio.wait(pending, timeout=self.shutdown_timeout)
            for task in still_running:
                task.cancel()
            if still_running:
                logger.warning("Cancelled %d connection(s) at shutdown", len(still_running))
                await asyncio.gather(*still_running, return_exceptions=True)
        if self._server is not None:
            await self._server.wait_closed()
        if self._lifespan is not None:
            await self._lifespan.shutdown()
        logger.info("Server stopped")

    # -- Connections --

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._connections.add(task)
            task.add_done_callback(self._connections.discard)

        peer = writer.get_extra_info("peername")
        client = (peer[0], peer[1]) if peer else None
        takeover = ConnectionTakeover(reader, writer, self._takeovers)
        try:
            await self._serve_connection(reader, writer, client, takeover)
            if takeover.task is not None:
                await takeover.task
        except (ConnectionError, asyncio.IncompleteReadError, TimeoutError):
            logger.debug("Connection from %s dropped", client)
        finally:
            writer.close()
            with contextlib.suppress(ConnectionError, OSError):
                await writer.wait_closed()

    async def _serve_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        client: tuple[str, int] | None,
        takeover: ConnectionTakeover,
    ) -> None:
        first = True
        while not self._stop.is_set():
            timeout = READ_TIMEOUT if first else KEEP_ALIVE_TIMEOUT
            first = False
            try:
                request = await read_request(reader, timeout=timeout, max_body=self.max_body)
            except BadHTTPRequest as exc:
                logger.info("%s -> 400 %s", client, exc)
                writer.write(_error_response(400, str(exc)))
                await writer.drain()
                return
            if request is None:
                return

            keep_alive = request.keep_alive and not self._stop.is_set()
            exchange = _Exchange(writer, request.body, keep_alive)
            scope = self._build_scope(request, client, takeover)
            try:
                await self.app(scope, exchange.receive, exchange.send)
            except Exception:
                logger.exception("ASGI app raised for %s %s", request.method, request.raw_path)
                if not exchange.started and not takeover.taken:
                    writer.write(_error_response(500, "Internal Server Error"))
                    await writer.drain()
                return

            if takeover.taken:
                return
            if not exchange.complete or not keep_alive:
                return
            if self.max_body is not None and len(request.body) < _declared_length(request):
                # Unread body still sits in the stream
                return

    def _build_scope(
        self,
        request: _ParsedRequest,
        client: tuple[str, int] | None,
        takeover: ConnectionTakeover,
    ) -> dict[str, Any]:
        path, _, _ = request.raw_path.partition("?")
        return {
            "type": "http",
            "asgi": {"version": "3.0", "spec_version": "2.3"},
            "http_version": request.version.removeprefix("HTTP/"),
            "method": request.method,
            "scheme": "http",
            "path": unquote(path),
            "raw_path": path.encode("latin-1"),
            "query_string": request.query_string,
            "root_path": "",
            "headers": request.headers,
            "server": (self.host, self.port),
            "client": client,
            "extensions": {TAKEOVER_EXTENSION: takeover},
        }


def _declared_length(request: _ParsedRequest) -> int:
    try:
        return int(request.header(b"content-length") or "0")
    except ValueError:
        return 0


class _Lifespan:
    """Drive the ASGI lifespan protocol for the app."""

    def __init__(self, app: Any) -> None:
        self._app = app
        self._events: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._startup_done = asyncio.Event()
        self._shutdown_done = asyncio.Event()
        self._failed: str | None = None
        self._task: asyncio.Task[None] | None = None

    async def startup(self) -> None:
        self._task = asyncio.create_task(self._run(), name="smallapi-lifespan")
        await self._events.put({"type": "lifespan.startup"})
        await self._startup_done.wait()
        if self._failed is not None:
            msg = f"Application startup failed: {self._failed}"
            raise RuntimeError(msg)

    async def shutdown(self) -> None:
        if self._task is None or self._task.done():
            return
        await self._events.put({"type": "lifespan.shutdown"})
        await self._shutdown_done.wait()
        await self._task

    async def _run(self) -> None:
        scope = {"type": "lifespan", "asgi": {"version": "3.0", "spec_version": "2.3"}}
        try:
            await self._app(scope, self._events.get, self._send)
        except Exception:
            logger.exception("Lifespan handler raised")
            self._failed = self._failed or "lifespan error"
        finally:
            self._startup_done.set()
            self._shutdown_done.set()

    async def _send(self, message: MutableMapping[str, Any]) -> None:
        kind = message["type"]
        if kind == "lifespan.startup.complete":
            self._startup_done.set()
        elif kind == "lifespan.startup.failed":
            self._failed = message.get("message", "")
            self._startup_done.set()
        elif kind in ("lifespan.shutdown.complete", "lifespan.shutdown.failed"):
            self._shutdown_done.set()
