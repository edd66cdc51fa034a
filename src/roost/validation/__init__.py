"""Validation rules: named, composable predicates.

Usage::

    from roost.validation import default_registry, rule

    default_registry.evaluate("required", "")  # "This field is required"
    default_registry.evaluate("min_length", "Hi", 5)

Forms declare rules by name; see ``roost.forms``::

    title: str = field(rules=["required", rule("min_length", 5)])
"""

from roost.validation.result import ValidationResult
from roost.validation.rules import (
    BUILTIN_RULES,
    Rule,
    RuleRef,
    RuleRegistry,
    default_registry,
    rule,
)

__all__ = [
    "BUILTIN_RULES",
    "Rule",
    "RuleRef",
    "RuleRegistry",
    "ValidationResult",
    "default_registry",
    "rule",
]
