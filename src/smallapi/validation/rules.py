"""Built-in rules for mapping validation.

Each rule is a callable with the signature::

    def rule(value: str) -> str | None:
        '''Return error message, or None if valid.'''

Parameterized rules are factories that return a rule. Any callable
matching ``(str) -> str | None`` works with ``validate()``.

The compiled patterns here are shared with tag-based struct validation
in ``smallapi.validation.structs``.
"""

import re
from collections.abc import Callable

type Validator = Callable[[str], str | None]

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")
URL_RE = re.compile(r"^https?://[^\s/$.?#].\S*$")
NUMERIC_RE = re.compile(r"^[0-9]+$")
ALPHA_RE = re.compile(r"^[a-zA-Z]+$")
ALPHANUM_RE = re.compile(r"^[a-zA-Z0-9]+$")


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


def required(value: str) -> str | None:
    """Field must be present and non-blank."""
    if not value or not value.strip():
        return "This field is required"
    return None


# ---------------------------------------------------------------------------
# Length
# ---------------------------------------------------------------------------


def min_length(n: int) -> Validator:
    """At least *n* characters."""

    def check(value: str) -> str | None:
        if len(value) < n:
            return f"Must be at least {n} characters"
        return None

    return check


def max_length(n: int) -> Validator:
    """At most *n* characters."""

    def check(value: str) -> str | None:
        if len(value) > n:
            return f"Must be at most {n} characters"
        return None

    return check


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------


def email(value: str) -> str | None:
    """Structural email check (not deliverability)."""
    if not EMAIL_RE.match(value):
        return "Must be a valid email address"
    return None


def url(value: str) -> str | None:
    """``http://`` or ``https://`` URL."""
    if not URL_RE.match(value):
        return "Must be a valid URL"
    return None


def numeric(value: str) -> str | None:
    """ASCII digits only."""
    if not NUMERIC_RE.match(value):
        return "Must contain only numbers"
    return None


def alpha(value: str) -> str | None:
    """ASCII letters only."""
    if not ALPHA_RE.match(value):
        return "Must contain only letters"
    return None


def alphanum(value: str) -> str | None:
    """ASCII letters and digits only."""
    if not ALPHANUM_RE.match(value):
        return "Must contain only letters and numbers"
    return None


def matches(pattern: str, message: str | None = None) -> Validator:
    """Value must match *pattern* (``re.match`` semantics)."""
    compiled = re.compile(pattern)

    def check(value: str) -> str | None:
        if not compiled.match(value):
            return message or "Does not match required pattern"
        return None

    return check


# ---------------------------------------------------------------------------
# Choice
# ---------------------------------------------------------------------------


def one_of(*choices: str) -> Validator:
    """Value must be one of *choices*."""
    allowed = frozenset(choices)

    def check(value: str) -> str | None:
        if value not in allowed:
            return f"Must be one of: {', '.join(sorted(allowed))}"
        return None

    return check


# ---------------------------------------------------------------------------
# Type coercion
# ---------------------------------------------------------------------------


def integer(value: str) -> str | None:
    """Parses as ``int``."""
    try:
        int(value)
    except (ValueError, TypeError):
        return "Must be a whole number"
    return None


def number(value: str) -> str | None:
    """Parses as ``float``."""
    try:
        float(value)
    except (ValueError, TypeError):
        return "Must be a number"
    return None
