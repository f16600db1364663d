"""Tag-based validation for dataclass instances.

Attach a rule tag to a field with ``constraint()``::

    @dataclass
    class Task:
        title: str = constraint("required,min=1,max=100")
        priority: str = constraint("regex=^(low|medium|high)$", default="low")

    result = validate_struct(task)

Tags are comma-separated rules, each ``name`` or ``name=arg``. They are
parsed when the class is defined, so a typo fails at import time.
"""

import dataclasses
import re
from collections.abc import Mapping, Sized
from dataclasses import MISSING
from typing import Any

from smallapi.errors import ConfigurationError
from smallapi.validation.result import ValidationResult
from smallapi.validation.rules import ALPHA_RE, ALPHANUM_RE, EMAIL_RE, NUMERIC_RE, URL_RE

METADATA_KEY = "validate"

_FORMATS: dict[str, tuple[re.Pattern[str], str]] = {
    "email": (EMAIL_RE, "must be a valid email address"),
    "url": (URL_RE, "must be a valid URL"),
    "numeric": (NUMERIC_RE, "must contain only numbers"),
    "alpha": (ALPHA_RE, "must contain only letters"),
    "alphanum": (ALPHANUM_RE, "must contain only letters and numbers"),
}

_KNOWN = frozenset({"required", "min", "max", "regex", *_FORMATS})


@dataclasses.dataclass(frozen=True, slots=True)
class Rule:
    """One parsed rule from a tag. ``limit`` and ``pattern`` are set per kind."""

    kind: str
    arg: str = ""
    limit: int = 0
    pattern: re.Pattern[str] | None = None


def parse_tag(tag: str) -> tuple[Rule, ...]:
    """Parse ``"required,min=3"`` into rules.

    Raises:
        ConfigurationError: Unknown rule name, a non-integer ``min``/``max``,
            or a ``regex`` that does not compile.
    """
    rules: list[Rule] = []
    for part in tag.split(","):
        part = part.strip()
        if not part:
            continue
        kind, _, arg = part.partition("=")
        if kind not in _KNOWN:
            msg = f"Unknown validation rule: {kind!r} in tag {tag!r}"
            raise ConfigurationError(msg)
        if kind in ("min", "max"):
            try:
                rules.append(Rule(kind, arg, limit=int(arg)))
            except ValueError:
                msg = f"Invalid {kind} value: {arg!r}"
                raise ConfigurationError(msg) from None
        elif kind == "regex":
            try:
                rules.append(Rule(kind, arg, pattern=re.compile(arg)))
            except re.error as exc:
                msg = f"Invalid regex pattern: {arg!r}"
                raise ConfigurationError(msg) from exc
        else:
            rules.append(Rule(kind, arg))
    return tuple(rules)


def constraint(
    tag: str,
    *,
    default: Any = MISSING,
    default_factory: Any = MISSING,
    **kwargs: Any,
) -> Any:
    """A ``dataclasses.field()`` carrying parsed validation rules."""
    metadata = {**kwargs.pop("metadata", {}), METADATA_KEY: parse_tag(tag)}
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata=metadata,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _check_required(name: str, value: object) -> str | None:
    if value is None:
        return f"{name} is required"
    if isinstance(value, str | Mapping | list | tuple | set | frozenset) and len(value) == 0:
        return f"{name} is required"
    return None


def _check_bound(name: str, value: object, rule: Rule) -> str | None:
    low = rule.kind == "min"
    word = "at least" if low else "at most"

    def fails(measure: float) -> bool:
        return measure < rule.limit if low else measure > rule.limit

    if isinstance(value, str):
        if fails(len(value)):
            return f"{name} must be {word} {rule.limit} characters"
    elif _is_number(value):
        if fails(value):  # type: ignore[arg-type]
            return f"{name} must be {word} {rule.limit}"
    elif isinstance(value, Sized) and fails(len(value)):
        return f"{name} must have {word} {rule.limit} items"
    return None


def _check_format(name: str, value: object, rule: Rule) -> str | None:
    if not isinstance(value, str):
        return f"{name} must be a string for {rule.kind} validation"
    if rule.kind == "regex":
        assert rule.pattern is not None
        if not rule.pattern.search(value):
            return f"{name} does not match required pattern"
        return None
    pattern, message = _FORMATS[rule.kind]
    if not pattern.match(value):
        return f"{name} {message}"
    return None


def check_value(name: str, value: object, rules: tuple[Rule, ...]) -> str | None:
    """First failing message for *value*, or None.

    ``None`` values only answer to ``required``; the other rules skip them
    so optional fields can carry format rules.
    """
    for rule in rules:
        if rule.kind == "required":
            error = _check_required(name, value)
        elif value is None:
            continue
        elif rule.kind in ("min", "max"):
            error = _check_bound(name, value, rule)
        else:
            error = _check_format(name, value, rule)
        if error is not None:
            return error
    return None


def validate_struct(obj: object) -> ValidationResult:
    """Check every tagged field of a dataclass instance.

    Reports the first failing rule per field. Untagged fields are ignored.

    Raises:
        TypeError: If *obj* is not a dataclass instance.
    """
    if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
        msg = f"validate_struct() needs a dataclass instance, got {type(obj).__name__}"
        raise TypeError(msg)

    errors: dict[str, list[str]] = {}
    data: dict[str, object] = {}
    for f in dataclasses.fields(obj):
        rules = f.metadata.get(METADATA_KEY)
        if not rules:
            continue
        value = getattr(obj, f.name)
        error = check_value(f.name, value, rules)
        if error is None:
            data[f.name] = value
        else:
            errors[f.name] = [error]
    return ValidationResult(data=data, errors=errors)
