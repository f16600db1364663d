"""The incoming request as seen by handlers.

Everything except the body is fixed when the ASGI scope arrives. The
body is pulled from ``receive`` on first use and cached, so middleware
and handler can both read it.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field
from typing import Any

from smallapi._internal.asgi import Receive, Scope
from smallapi.http.cookies import parse_cookies
from smallapi.http.forms import FormData, is_form_content_type, parse_form
from smallapi.http.headers import Headers
from smallapi.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """Frozen request metadata plus lazy, cached body access."""

    method: str
    path: str
    # Target path exactly as sent; routing binds parameters from it
    raw_path: str
    headers: Headers
    query: QueryParams
    http_version: str
    scheme: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None
    cookies: Mapping[str, str]

    _receive: Receive
    # Body bytes and parsed form, filled on first read
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        headers = Headers(tuple(scope.get("headers", ())))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope.get("method", "GET"),
            path=scope["path"],
            raw_path=_raw_path(scope),
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            http_version=scope.get("http_version", "1.1"),
            scheme=scope.get("scheme", "http"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "")),
            _receive=receive,
        )

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """Declared body size; None when absent or not a number."""
        declared = self.headers.get("content-length")
        if declared is None or not declared.strip().isdigit():
            return None
        return int(declared)

    @property
    def url(self) -> str:
        """Path plus ``?query`` when a query string was sent."""
        raw_query = self.query.raw
        if not raw_query:
            return self.path
        return self.path + "?" + raw_query.decode("latin-1")

    async def stream(self) -> AsyncGenerator[bytes]:
        """Yield body chunks straight from ``receive`` (uncached)."""
        more = True
        while more:
            message = await self._receive()
            if message.get("type") == "http.disconnect":
                return
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            more = message.get("more_body", False)

    async def body(self) -> bytes:
        cached = self._cache.get("body")
        if cached is None:
            cached = b"".join([chunk async for chunk in self.stream()])
            self._cache["body"] = cached
        return cached

    async def text(self) -> str:
        return (await self.body()).decode("utf-8")

    async def json(self) -> Any:
        return json_module.loads(await self.body())

    async def form(self) -> FormData:
        """URL-encoded fields; empty for any other content type."""
        form = self._cache.get("form")
        if form is None:
            if is_form_content_type(self.content_type):
                form = parse_form(await self.body())
            else:
                form = FormData()
            self._cache["form"] = form
        return form


def _raw_path(scope: Scope) -> str:
    """``raw_path`` as text, or the decoded ``path`` when the server omits it."""
    raw = scope.get("raw_path")
    if not raw:
        return scope["path"]
    # Some servers include the query string in raw_path
    return raw.decode("latin-1").partition("?")[0]
