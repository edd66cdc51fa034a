"""Typed pipeline outcomes.

The dispatcher never raises for an expected failure. It returns either
``Success`` or one of the ``Failure`` values below, and the ASGI layer
turns failures into client-facing responses.

Each failure knows its HTTP status and how to describe itself as a
JSON-ready dict::

    outcome = await dispatcher.handle(request)
    match outcome:
        case Success(value):
            ...
        case EntityNotFound(entity, identifier):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from roost.validation.result import ValidationResult


@dataclass(frozen=True, slots=True)
class Success:
    """The handler ran and returned *value*."""

    value: Any


class Failure:
    """Base for typed pipeline failures.

    Subclasses are frozen dataclasses with a class-level ``status``.
    """

    __slots__ = ()

    status: ClassVar[int] = 500
    kind: ClassVar[str] = "failure"

    @property
    def detail(self) -> str:
        return self.kind

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": self.detail}


@dataclass(frozen=True, slots=True)
class RouteNotFound(Failure):
    """No registered route matches the verb and path."""

    status: ClassVar[int] = 404
    kind: ClassVar[str] = "route_not_found"

    verb: str
    path: str

    @property
    def detail(self) -> str:
        return f"No route matches {self.verb} {self.path!r}"


@dataclass(frozen=True, slots=True)
class InvalidParameter(Failure):
    """A path token could not be parsed into its declared type."""

    status: ClassVar[int] = 400
    kind: ClassVar[str] = "invalid_parameter"

    token: str
    value: str
    expected: str = ""

    @property
    def detail(self) -> str:
        if self.expected:
            return f"Invalid value {self.value!r} for {self.token}: expected {self.expected}"
        return f"Invalid value {self.value!r} for {self.token}"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": self.detail, "token": self.token}


@dataclass(frozen=True, slots=True)
class InvalidPayload(Failure):
    """The request body could not be decoded (or was too large)."""

    kind: ClassVar[str] = "invalid_payload"

    reason: str
    code: int = 400

    @property
    def status(self) -> int:  # type: ignore[override]
        return self.code

    @property
    def detail(self) -> str:
        return self.reason


@dataclass(frozen=True, slots=True)
class EntityNotFound(Failure):
    """The entity resolver found no record for the route identifier."""

    status: ClassVar[int] = 404
    kind: ClassVar[str] = "entity_not_found"

    entity: str
    identifier: Any

    @property
    def detail(self) -> str:
        return f"{self.entity} {self.identifier!r} not found"

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.kind,
            "detail": self.detail,
            "entity": self.entity,
            "id": self.identifier,
        }


@dataclass(frozen=True, slots=True)
class ValidationFailed(Failure):
    """One or more form fields failed their rules.

    Carries the complete result, never just the first failure.
    """

    status: ClassVar[int] = 422
    kind: ClassVar[str] = "validation_failed"

    form: str
    result: ValidationResult

    @property
    def errors(self) -> dict[str, list[str]]:
        return self.result.errors

    @property
    def detail(self) -> str:
        fields = ", ".join(sorted(self.result.errors))
        return f"{self.form} failed validation for: {fields}"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": self.detail, "errors": self.result.errors}


type Outcome = Success | Failure
