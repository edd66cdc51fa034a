"""Validation result: immutable container for validated data or errors."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of binding a payload against a form's rules.

    ``is_valid`` is True when there are no errors.
    The result is falsy when invalid, so you can write::

        form, result = bind(ArticleForm, payload)
        if not result:
            return {"errors": result.errors}, 422

    ``data`` contains the coerced values of every field that bound
    cleanly, whether or not other fields failed.

    ``errors`` maps field names to every failure message for that field,
    in rule declaration order::

        {"title": ["This field is required", "Must be at least 5 characters"]}
    """

    data: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        """True if validation passed with no errors."""
        return not self.errors

    def __bool__(self) -> bool:
        """Falsy when invalid; enables ``if not result:`` pattern."""
        return self.is_valid
