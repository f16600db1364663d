"""Per-request context.

A ``Context`` is created for every request after the static-file check.
It carries the immutable ``Request``, the path parameters bound by the
router, the resolved session, a per-request key-value store, and a
response buffer that handlers and middleware write into.

The buffer is turned into an immutable ``Response`` once the handler
returns. Writers (``text``, ``json``, ``html``, ``render``, ``redirect``,
``file``) append to it and set ``written``; calling several of them
concatenates their output. The first writer fixes the content type and
status, like a header flush on a raw socket.

The current context is also published in a ``ContextVar`` so helpers
deep in a call stack can reach it through ``get_context()``.
"""

from __future__ import annotations

import dataclasses
import datetime
import html as html_module
import json as json_module
import threading
from collections.abc import Awaitable, Callable, Mapping
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any

from smallapi._internal.invoke import invoke
from smallapi.errors import BadRequest
from smallapi.http.cookies import SetCookie
from smallapi.http.forms import FormData
from smallapi.http.response import TEXT_TYPE, Response

if TYPE_CHECKING:
    from kida import Environment

    from smallapi._internal.asgi import Receive, Scope, Send
    from smallapi._internal.types import WebSocketHandler
    from smallapi.config import AppConfig
    from smallapi.http.request import Request
    from smallapi.sessions import Session, SessionStore
    from smallapi.validation.result import ValidationResult

# Post-handler hook: receives the built response, may return a replacement
type FinishCallback = Callable[[Response], Response | None | Awaitable[Response | None]]

HTML_TYPE = "text/html; charset=utf-8"
JSON_TYPE = "application/json"

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

context_var: ContextVar[Context] = ContextVar("smallapi_context")


def get_context() -> Context:
    """Return the context of the request being handled.

    Raises ``LookupError`` outside a request.
    """
    return context_var.get()


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, datetime.datetime | datetime.date):
        return value.isoformat()
    if isinstance(value, set | frozenset | tuple):
        return list(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def dumps(value: Any) -> str:
    """Serialize *value* for a JSON response body."""
    return json_module.dumps(value, default=_json_default)


class Context:
    """Request and response state for a single request.

    Usage in a handler::

        @app.get("/users/:id")
        def show_user(ctx: Context):
            user = users.get(ctx.param("id"))
            if user is None:
                ctx.status(404).json({"error": "User not found"})
                return
            ctx.json(user)
    """

    __slots__ = (
        "_body",
        "_committed_status",
        "_config",
        "_content_type",
        "_cookies",
        "_finish",
        "_form",
        "_headers",
        "_receive",
        "_scope",
        "_send",
        "_session",
        "_status",
        "_store",
        "_sealed",
        "_templates",
        "_write_lock",
        "hijacked",
        "params",
        "request",
        "written",
    )

    def __init__(
        self,
        request: Request,
        *,
        params: dict[str, str] | None = None,
        form: FormData | None = None,
        session: Session | None = None,
        templates: Environment | None = None,
        config: AppConfig | None = None,
        scope: Scope | None = None,
        receive: Receive | None = None,
        send: Send | None = None,
    ) -> None:
        self.request = request
        self.params: dict[str, str] = params or {}
        self.written = False
        self.hijacked = False
        self._form = form or FormData()
        self._session = session
        self._templates = templates
        self._config = config
        self._scope = scope
        self._receive = receive
        self._send = send
        self._store: dict[str, Any] = {}
        self._status = 200
        self._committed_status: int | None = None
        self._content_type: str | None = None
        self._headers: list[tuple[str, str]] = []
        self._cookies: list[SetCookie] = []
        self._body = bytearray()
        self._finish: list[FinishCallback] = []
        self._sealed = False
        self._write_lock = threading.Lock()

    async def load_form(self) -> FormData:
        """Parse a urlencoded body for POST, PUT and PATCH before middleware runs."""
        if self.request.method in _BODY_METHODS:
            self._form = await self.request.form()
        return self._form

    # -- Session --

    def attach_session(self, store: SessionStore) -> Session:
        """Resolve the session through *store*, queueing a cookie if a new one is issued."""
        self._session = store.get_or_create(self.request.cookies, self.add_cookie)
        return self._session

    @property
    def session(self) -> Session:
        if self._session is None:
            msg = "No session is attached to this request."
            raise RuntimeError(msg)
        return self._session

    # -- Path, query and form input --

    def param(self, name: str, default: str = "") -> str:
        """Path parameter bound by the router (raw, not percent-decoded)."""
        return self.params.get(name, default)

    def param_int(self, name: str) -> int:
        """Path parameter as int.

        Raises:
            BadRequest: If the parameter is missing or not an integer.
        """
        value = self.params.get(name, "")
        if not value:
            msg = f"parameter {name} not found"
            raise BadRequest(msg)
        try:
            return int(value)
        except ValueError:
            msg = f"parameter {name} must be an integer"
            raise BadRequest(msg) from None

    def query(self, name: str, default: str = "") -> str:
        """First query value for *name*; *default* when missing or empty."""
        return self.request.query.get(name) or default

    def query_int(self, name: str, default: int | None = None) -> int | None:
        """Query value as int; *default* when missing or not numeric."""
        return self.request.query.get_int(name, default)

    def form(self, name: str, default: str = "") -> str:
        """First form value for *name*; *default* when missing or empty."""
        return self._form.get(name) or default

    @property
    def form_data(self) -> FormData:
        return self._form

    # -- Body --

    async def body(self) -> bytes:
        return await self.request.body()

    async def read_json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            BadRequest: If the body is not valid JSON.
        """
        try:
            return await self.request.json()
        except (ValueError, UnicodeDecodeError):
            msg = "Invalid JSON"
            raise BadRequest(msg) from None

    async def bind[T](self, datacls: type[T]) -> T:
        """Decode a JSON object body into dataclass *datacls*.

        Unknown keys are ignored. Missing fields without defaults, a non-object
        body, or malformed JSON raise ``BadRequest``.
        """
        payload = await self.read_json()
        if not isinstance(payload, dict):
            msg = "Invalid JSON: expected an object"
            raise BadRequest(msg)
        names = {f.name for f in dataclasses.fields(datacls) if f.init}  # type: ignore[arg-type]
        try:
            return datacls(**{k: v for k, v in payload.items() if k in names})
        except TypeError as exc:
            msg = f"Invalid JSON: {exc}"
            raise BadRequest(msg) from None

    def validate(self, obj: object) -> ValidationResult:
        """Check a dataclass instance against its ``constraint()`` tags."""
        from smallapi.validation.structs import validate_struct

        return validate_struct(obj)

    # -- Request info --

    def cookie(self, name: str) -> str | None:
        return self.request.cookies.get(name)

    def header(self, name: str, default: str = "") -> str:
        """Request header value (case-insensitive)."""
        return self.request.headers.get(name) or default

    @property
    def is_ajax(self) -> bool:
        return self.header("X-Requested-With").lower() == "xmlhttprequest"

    @property
    def ip(self) -> str:
        """Client address: first ``X-Forwarded-For`` hop, ``X-Real-IP``, then the socket peer."""
        forwarded = self.header("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        real_ip = self.header("X-Real-IP")
        if real_ip:
            return real_ip
        if self.request.client:
            return self.request.client[0]
        return ""

    @property
    def user_agent(self) -> str:
        return self.header("User-Agent")

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def url(self) -> str:
        return self.request.url

    # -- Per-request store --

    def set(self, key: str, value: Any) -> None:
        self._store[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._store.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._store

    def get_str(self, key: str) -> str:
        value = self._store.get(key)
        return value if isinstance(value, str) else ""

    def get_int(self, key: str) -> int:
        value = self._store.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            return 0
        return value

    # -- Response metadata (chainable) --

    def status(self, code: int) -> Context:
        if not self._sealed:
            self._status = code
        return self

    @property
    def status_code(self) -> int:
        if self._committed_status is not None:
            return self._committed_status
        return self._status

    def set_header(self, name: str, value: str) -> Context:
        """Set a response header, replacing any earlier value of the same name."""
        if name.lower() == "content-type":
            self._content_type = value
            return self
        lower = name.lower()
        self._headers = [(k, v) for k, v in self._headers if k.lower() != lower]
        self._headers.append((name, value))
        return self

    def add_header(self, name: str, value: str) -> Context:
        """Append a response header, keeping earlier values."""
        self._headers.append((name, value))
        return self

    def response_header(self, name: str) -> str | None:
        """A response header already set on this context, or None."""
        lower = name.lower()
        if lower == "content-type":
            return self._content_type
        for key, value in self._headers:
            if key.lower() == lower:
                return value
        return None

    def set_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "lax",
    ) -> Context:
        return self.add_cookie(
            SetCookie(
                name=name,
                value=value,
                max_age=max_age,
                path=path,
                domain=domain,
                secure=secure,
                httponly=httponly,
                samesite=samesite,
            )
        )

    def add_cookie(self, cookie: SetCookie) -> Context:
        self._cookies.append(cookie)
        return self

    def delete_cookie(self, name: str, path: str = "/") -> Context:
        return self.add_cookie(SetCookie(name=name, value="", max_age=0, path=path))

    @property
    def pending_cookies(self) -> tuple[SetCookie, ...]:
        """Cookies queued so far, in the order they were added."""
        return tuple(self._cookies)

    # -- Response writers --

    def _write(self, data: bytes, content_type: str) -> None:
        with self._write_lock:
            if not self._sealed:
                self._append(data, content_type)

    def _append(self, data: bytes, content_type: str) -> None:
        if not self.written:
            self._content_type = content_type
            self._committed_status = self._status
            self.written = True
        self._body.extend(data)

    def seal(self, status: int, payload: Any) -> None:
        """Stop accepting status and body writes.

        Answers *status* with *payload* as JSON unless a response was already
        written. Used for handlers abandoned on a worker thread.
        """
        with self._write_lock:
            self._sealed = True
            if not self.written:
                self._status = status
                self._append(dumps(payload).encode("utf-8"), JSON_TYPE)

    def text(self, text: str) -> None:
        self._write(text.encode("utf-8"), TEXT_TYPE)

    def json(self, value: Any) -> None:
        """Serialize *value* as the JSON response body."""
        self._write(dumps(value).encode("utf-8"), JSON_TYPE)

    def html(self, markup: str) -> None:
        self._write(markup.encode("utf-8"), HTML_TYPE)

    def render(self, template: str, context: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        """Render *template* with the app's kida environment.

        Without a configured template directory a plain page showing the
        data is written instead.
        """
        data = {**(context or {}), **kwargs}
        if self._templates is None:
            self.html(_fallback_page(template, data))
            return
        from smallapi.templating import render_template

        self.html(render_template(self._templates, template, data))

    def redirect(self, url: str, status: int = 302) -> None:
        self.set_header("Location", url)
        self._status = status
        self._write(b"", HTML_TYPE)

    def file(self, path: str | Path) -> None:
        """Send a file from disk; 404 when it is missing or not a regular file."""
        from smallapi.middleware.static import serve_file

        file_path = Path(path)
        if not file_path.is_file():
            self._status = 404
            self.text("404 page not found")
            return
        response = serve_file(file_path)
        self._write(response.body_bytes, response.content_type)

    async def upgrade(self, handler: WebSocketHandler) -> None:
        """Switch this request to a WebSocket and hand it to *handler*.

        See ``smallapi.websocket.upgrade`` for how the connection is obtained.
        """
        from smallapi.websocket.upgrade import upgrade

        await upgrade(self, handler)

    # -- Lifecycle --

    def on_finish(self, callback: FinishCallback) -> None:
        """Run *callback* with the built response after the handler returns.

        A callback may return a replacement ``Response``. Callbacks run in
        registration order.
        """
        self._finish.append(callback)

    def to_response(self) -> Response:
        """Freeze the buffer into a ``Response``."""
        return Response(
            body=bytes(self._body),
            status=self.status_code,
            content_type=self._content_type or TEXT_TYPE,
            headers=tuple(self._headers),
            cookies=tuple(self._cookies),
        )

    async def finish(self) -> Response:
        """Build the response and pass it through the ``on_finish`` callbacks."""
        response = self.to_response()
        for callback in self._finish:
            result = await invoke(callback, response)
            if isinstance(result, Response):
                response = result
        return response

    # -- Connection access for the WebSocket layer --

    @property
    def config(self) -> AppConfig | None:
        return self._config

    @property
    def asgi(self) -> tuple[Scope | None, Receive | None, Send | None]:
        return self._scope, self._receive, self._send

    def __repr__(self) -> str:
        return f"<Context {self.method} {self.path} status={self.status_code} written={self.written}>"


def _fallback_page(template: str, data: Mapping[str, Any]) -> str:
    title = html_module.escape(str(data.get("title", template)))
    dump = html_module.escape(repr(dict(data)))
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n"
        f"    <title>{title}</title>\n</head>\n<body>\n"
        f"    <h1>{title}</h1>\n    <pre>{dump}</pre>\n</body>\n</html>"
    )
