"""Path parameter parsing and type conversion.

Built-in converters for primitive handler parameters such as
``def show(id: int)`` on a ``/articles/:id`` route.
"""

from collections.abc import Callable
from typing import Any


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    msg = f"not a boolean: {value!r}"
    raise ValueError(msg)


# python_type -> parser for each supported primitive
CONVERTERS: dict[type, Callable[[str], Any]] = {
    str: str,
    int: int,
    float: float,
    bool: _parse_bool,
}


def is_primitive(annotation: Any) -> bool:
    """True if *annotation* is a type path tokens can be parsed into."""
    return annotation in CONVERTERS


def convert_param(value: str, target: type) -> Any:
    """Convert a captured path token string to the target type.

    Raises ``ValueError`` if the string cannot be converted.
    Raises ``KeyError`` if *target* is not a supported primitive.
    """
    return CONVERTERS[target](value)
