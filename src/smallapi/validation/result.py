"""Validation result: immutable container for cleaned data or errors."""

from dataclasses import dataclass

from smallapi.errors import ValidationError


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of a validation pass.

    Falsy when invalid, so handlers can write::

        result = ctx.validate(task)
        if not result:
            ctx.status(400).json({"error": result.message})
            return

    ``errors`` maps field names to lists of messages.
    """

    data: dict[str, object]
    errors: dict[str, list[str]]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def message(self) -> str:
        """All messages joined with ``"; "`` in field order."""
        return "; ".join(msg for msgs in self.errors.values() for msg in msgs)

    def raise_for_errors(self) -> None:
        """Raise ``ValidationError`` (a 400) if anything failed."""
        if self.errors:
            raise ValidationError(self.errors)

    def __bool__(self) -> bool:
        return self.is_valid
