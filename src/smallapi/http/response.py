"""Finished HTTP responses.

``Context`` buffers what handlers and middleware write and freezes it
into a ``Response`` for the sender. The test client hands the same type
back to tests. ``with_*`` methods return modified copies.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from smallapi.http.cookies import SetCookie

TEXT_TYPE = "text/plain; charset=utf-8"


@dataclass(frozen=True, slots=True)
class Response:
    body: str | bytes = ""
    status: int = 200
    content_type: str = TEXT_TYPE
    headers: tuple[tuple[str, str], ...] = ()
    cookies: tuple[SetCookie, ...] = ()

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_body(self, body: str | bytes) -> Response:
        return replace(self, body=body)

    def with_content_type(self, content_type: str) -> Response:
        return replace(self, content_type=content_type)

    def with_header(self, name: str, value: str) -> Response:
        """Copy with one more header line; existing ones are kept."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        return replace(self, headers=self.headers + tuple(headers.items()))

    def with_cookie(self, cookie: SetCookie) -> Response:
        return replace(self, cookies=(*self.cookies, cookie))

    @property
    def body_bytes(self) -> bytes:
        return self.body.encode("utf-8") if isinstance(self.body, str) else self.body

    @property
    def text(self) -> str:
        return self.body if isinstance(self.body, str) else self.body.decode("utf-8")

    @property
    def json(self) -> Any:
        return json_module.loads(self.body_bytes)

    def header(self, name: str) -> str | None:
        """First value of header *name*, ignoring case.

        ``content-type`` is answered from ``content_type``.
        """
        wanted = name.lower()
        if wanted == "content-type":
            return self.content_type
        return next((value for key, value in self.headers if key.lower() == wanted), None)
