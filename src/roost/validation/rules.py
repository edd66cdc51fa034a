"""Named validation rules.

Each rule is a pure callable with the signature::

    def rule(value: Any, *args: Any) -> str | None:
        '''Return error message, or None if valid.'''

Rules live in a ``RuleRegistry`` keyed by name. Form fields refer to
them by name (``"required"``) or through ``rule("min_length", 5)``, and
the names are checked when the form's spec is built, not per request::

    registry = RuleRegistry.with_builtins()

    @registry.rule("slug")
    def slug(value: str) -> str | None:
        if not _SLUG_RE.match(value):
            return "Must be a slug"
        return None

    registry.evaluate("min_length", "Hi", 5)  # "Must be at least 5 characters"
"""

from __future__ import annotations

import re
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from roost.errors import UnknownRule

# Type alias for a rule function
type Rule = Callable[..., str | None]


@dataclass(frozen=True, slots=True)
class RuleRef:
    """A reference to a registered rule plus its arguments."""

    name: str
    args: tuple[Any, ...] = ()

    def __str__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}({', '.join(repr(a) for a in self.args)})"


def rule(name: str, *args: Any) -> RuleRef:
    """Build a parameterized rule reference: ``rule("min_length", 5)``."""
    return RuleRef(name, args)


def as_ref(value: str | RuleRef) -> RuleRef:
    """Normalize a rule declaration (bare name or ``RuleRef``)."""
    if isinstance(value, RuleRef):
        return value
    if isinstance(value, str):
        return RuleRef(value)
    msg = f"Rules are declared by name or rule(...), got {value!r}"
    raise TypeError(msg)


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return not value
    return False


def required(value: Any) -> str | None:
    """Field must be present and non-empty."""
    if _is_empty(value):
        return "This field is required"
    return None


# ---------------------------------------------------------------------------
# Length
# ---------------------------------------------------------------------------


def _length(value: Any) -> int | None:
    """Length of *value*, 0 for ``None``, ``None`` if it has no length."""
    if value is None:
        return 0
    try:
        return len(value)
    except TypeError:
        return None


def min_length(value: Any, n: int) -> str | None:
    """String (or collection) must have at least *n* items."""
    length = _length(value)
    if length is None or length < n:
        return f"Must be at least {n} characters"
    return None


def max_length(value: Any, n: int) -> str | None:
    """String (or collection) must have at most *n* items."""
    length = _length(value)
    if length is None or length > n:
        return f"Must be at most {n} characters"
    return None


# ---------------------------------------------------------------------------
# Numeric bounds
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def minimum(value: Any, n: float) -> str | None:
    """Number must be at least *n*."""
    if not _is_number(value) or value < n:
        return f"Must be at least {n}"
    return None


def maximum(value: Any, n: float) -> str | None:
    """Number must be at most *n*."""
    if value is None:
        return None
    if not _is_number(value) or value > n:
        return f"Must be at most {n}"
    return None


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------

# Basic email pattern; checks structure, not deliverability
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")


def email(value: Any) -> str | None:
    """Value must be a valid email address (basic format check)."""
    if not isinstance(value, str) or not _EMAIL_RE.match(value):
        return "Must be a valid email address"
    return None


# Basic URL pattern; checks scheme + host structure
_URL_RE = re.compile(r"^https?://[^\s/$.?#].\S*$", re.IGNORECASE)


def url(value: Any) -> str | None:
    """Value must be a valid URL (http/https)."""
    if not isinstance(value, str) or not _URL_RE.match(value):
        return "Must be a valid URL"
    return None


def matches(value: Any, pattern: str, message: str | None = None) -> str | None:
    """Value must match the given regex pattern."""
    if not isinstance(value, str) or not re.match(pattern, value):
        return message or f"Must match pattern: {pattern}"
    return None


# ---------------------------------------------------------------------------
# Choice
# ---------------------------------------------------------------------------


def one_of(value: Any, *choices: Any) -> str | None:
    """Value must be one of the given choices."""
    if value not in choices:
        options = ", ".join(sorted(str(c) for c in choices))
        return f"Must be one of: {options}"
    return None


BUILTIN_RULES: Mapping[str, Rule] = {
    "required": required,
    "min_length": min_length,
    "max_length": max_length,
    "min": minimum,
    "max": maximum,
    "email": email,
    "url": url,
    "matches": matches,
    "one_of": one_of,
}


class RuleRegistry:
    """Rules keyed by name.

    Registration is a setup-time activity. Lookups after setup are
    read-only, so evaluating rules from concurrent requests needs no lock.
    """

    __slots__ = ("_lock", "_rules")

    def __init__(self, rules: Mapping[str, Rule] | None = None) -> None:
        self._rules: dict[str, Rule] = dict(rules or {})
        self._lock = threading.Lock()

    @classmethod
    def with_builtins(cls) -> RuleRegistry:
        return cls(BUILTIN_RULES)

    def register(self, name: str, func: Rule) -> None:
        """Register *func* under *name*, replacing any previous rule."""
        with self._lock:
            self._rules[name] = func

    def rule(self, name: str | None = None) -> Callable[[Rule], Rule]:
        """Register a rule via decorator."""

        def decorator(func: Rule) -> Rule:
            self.register(name or func.__name__, func)
            return func

        return decorator

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def names(self) -> list[str]:
        return sorted(self._rules)

    def get(self, name: str, *, owner: str = "") -> Rule:
        """Return the rule registered as *name*.

        Raises ``UnknownRule`` if no such rule exists.
        """
        try:
            return self._rules[name]
        except KeyError:
            raise UnknownRule(name, owner) from None

    def resolve(self, ref: str | RuleRef, *, owner: str = "") -> RuleRef:
        """Normalize *ref* and check that its rule is registered."""
        ref = as_ref(ref)
        self.get(ref.name, owner=owner)
        return ref

    def evaluate(self, name: str, value: Any, *args: Any) -> str | None:
        """Run rule *name* against *value*. Returns the error message or ``None``."""
        return self.get(name)(value, *args)


default_registry = RuleRegistry.with_builtins()
"""Process-wide registry used by forms unless they name another."""
