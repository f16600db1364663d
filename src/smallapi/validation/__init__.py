"""Validation: composable rules for mappings, tag rules for dataclasses.

Mapping usage::

    from smallapi.validation import validate, required, max_length, email

    result = validate(form_values, {
        "title": [required, max_length(200)],
        "email": [required, email],
    })

Dataclass usage::

    from smallapi.validation import constraint, validate_struct

    @dataclass
    class Signup:
        username: str = constraint("required,min=3")
        email: str = constraint("required,email")

    result = validate_struct(Signup(username="ab", email="nope"))
"""

from collections.abc import Mapping

from smallapi.validation.result import ValidationResult
from smallapi.validation.rules import (
    Validator,
    alpha,
    alphanum,
    email,
    integer,
    matches,
    max_length,
    min_length,
    number,
    numeric,
    one_of,
    required,
    url,
)
from smallapi.validation.structs import constraint, parse_tag, validate_struct

__all__ = [
    "ValidationResult",
    "Validator",
    "alpha",
    "alphanum",
    "constraint",
    "email",
    "integer",
    "matches",
    "max_length",
    "min_length",
    "number",
    "numeric",
    "one_of",
    "parse_tag",
    "required",
    "url",
    "validate",
    "validate_struct",
]


def validate(
    data: Mapping[str, str],
    rules: dict[str, list[Validator]],
) -> ValidationResult:
    """Validate string values from any mapping against per-field rules.

    A ``required`` failure stops the remaining rules for that field; other
    rules all run and every message is kept. ``data`` in the result holds
    the fields that passed.
    """
    errors: dict[str, list[str]] = {}
    cleaned: dict[str, object] = {}

    for field_name, validators in rules.items():
        value = data.get(field_name) or ""
        field_errors: list[str] = []
        for validator in validators:
            error = validator(value)
            if error is None:
                continue
            field_errors.append(error)
            if validator is required:
                break
        if field_errors:
            errors[field_name] = field_errors
        else:
            cleaned[field_name] = value

    return ValidationResult(data=cleaned, errors=errors)
