"""Cookie parsing and SetCookie serialization.

Read side (``parse_cookies``) is used by Request, write side
(``SetCookie``) by Context and Response, and ``parse_set_cookie`` by the
test client's cookie jar.
"""

from dataclasses import dataclass


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Returns an empty dict for empty or missing headers. The first
    occurrence of a name wins.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        pair = pair.strip()
        if "=" in pair:
            key, _, value = pair.partition("=")
            cookies.setdefault(key.strip(), value.strip())
    return cookies


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A ``Set-Cookie`` directive attached to a response."""

    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value string."""
        parts = [f"{self.name}={self.value}"]
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite:
            parts.append(f"SameSite={self.samesite.capitalize()}")
        return "; ".join(parts)


def parse_set_cookie(value: str) -> SetCookie:
    """Parse a ``Set-Cookie`` header value back into a ``SetCookie``.

    Unknown attributes are ignored. Used by ``TestClient`` to keep a
    cookie jar between requests.
    """
    first, *attrs = [part.strip() for part in value.split(";")]
    name, _, cookie_value = first.partition("=")
    options: dict[str, object] = {
        "path": "",
        "httponly": False,
        "samesite": "",
    }
    for attr in attrs:
        key, _, raw = attr.partition("=")
        key = key.lower()
        if key == "max-age":
            try:
                options["max_age"] = int(raw)
            except ValueError:
                continue
        elif key == "path":
            options["path"] = raw
        elif key == "domain":
            options["domain"] = raw
        elif key == "secure":
            options["secure"] = True
        elif key == "httponly":
            options["httponly"] = True
        elif key == "samesite":
            options["samesite"] = raw.lower()
    return SetCookie(name=name.strip(), value=cookie_value.strip(), **options)  # type: ignore[arg-type]
