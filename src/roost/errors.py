"""Roost exception hierarchy.

Configuration errors are raised while the app freezes and must stop it
from starting. ``HTTPError`` is the one exception a handler raises on
purpose: a domain fault that maps straight to a status code.

Expected per-request failures (no route, bad parameter, missing entity,
invalid form) are *not* exceptions; see ``roost.outcomes``.
"""

from dataclasses import dataclass


class RoostError(Exception):
    """Base for all roost-specific errors."""


class ConfigurationError(RoostError):
    """Raised when app configuration is invalid.

    Typically raised during ``App._freeze()`` at startup.
    """


class DuplicateRoute(ConfigurationError):  # noqa: N818
    """Two routes share a verb and an identical path pattern."""

    def __init__(self, verb: str, pattern: str, existing: str) -> None:
        self.verb = verb
        self.pattern = pattern
        self.existing = existing
        super().__init__(
            f"Duplicate route {verb} {pattern!r}: already registered as {existing!r}"
        )


class AmbiguousRoute(ConfigurationError):  # noqa: N818
    """Two routes can match the same path and neither outranks the other."""

    def __init__(self, verb: str, pattern: str, other: str) -> None:
        self.verb = verb
        self.pattern = pattern
        self.other = other
        super().__init__(
            f"Ambiguous route {verb} {pattern!r}: overlaps {other!r} "
            "with the same number of leading literal segments"
        )


class UnknownRule(ConfigurationError):  # noqa: N818
    """A form field references a validation rule that is not registered."""

    def __init__(self, name: str, owner: str = "") -> None:
        self.name = name
        self.owner = owner
        where = f" (in {owner})" if owner else ""
        super().__init__(f"Unknown validation rule {name!r}{where}")


@dataclass(frozen=True, slots=True)
class HTTPError(RoostError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers for domain faults (``raise HTTPError(403)``).
    The ASGI handler catches these and dispatches to the matching
    ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)
