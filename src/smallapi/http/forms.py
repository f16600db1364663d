"""URL-encoded form bodies.

``Context`` parses the body eagerly for POST, PUT and PATCH requests
sent as ``application/x-www-form-urlencoded``. Other content types
leave the form empty.
"""

from urllib.parse import parse_qs

from smallapi.http.query import MultiValues

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class FormData(MultiValues):
    """Submitted form fields. ``get_list`` covers multi-selects."""

    __slots__ = ()


def is_form_content_type(content_type: str | None) -> bool:
    """True if *content_type* names a URL-encoded form body."""
    if not content_type:
        return False
    media_type, _, _ = content_type.partition(";")
    return media_type.strip().lower() == FORM_CONTENT_TYPE


def parse_form(body: bytes, charset: str = "utf-8") -> FormData:
    if not body:
        return FormData()
    text = body.decode(charset, errors="replace")
    return FormData(parse_qs(text, keep_blank_values=True))
