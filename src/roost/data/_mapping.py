"""Row-to-dataclass mapping with type coercion.

Converts raw database rows (dicts) into entity dataclasses.
Uses dataclass field introspection; no metaclass magic.

Type coercion handles the mismatch between database drivers (SQLite
returns ints for booleans, strings for some column types) and the
entity's annotations.
"""

import dataclasses
import types
from typing import Any, Union, get_args, get_origin, get_type_hints

# Scalar types we know how to coerce from database driver values.
_COERCIBLE: dict[type, Any] = {
    int: lambda v: int(v) if v != "" else 0,
    float: lambda v: float(v) if v != "" else 0.0,
    bool: lambda v: bool(int(v)) if isinstance(v, str) else bool(v),
    str: str,
}

_coercion_maps: dict[type, dict[str, type | None]] = {}


def _coercion_map(cls: type) -> dict[str, type | None]:
    """Build (once per class) a {field_name: target_type} map.

    ``None`` marks fields that don't need coercion (complex types,
    generics, etc.).
    """
    cached = _coercion_maps.get(cls)
    if cached is not None:
        return cached

    fields = dataclasses.fields(cls)
    hints = get_type_hints(cls) if any(isinstance(f.type, str) for f in fields) else {}
    result: dict[str, type | None] = {}
    for f in fields:
        annotation = hints.get(f.name, f.type)
        # Unwrap Optional (X | None); coerce to the non-None branch
        origin = get_origin(annotation)
        if origin is types.UnionType or origin is Union:
            args = [a for a in get_args(annotation) if a is not type(None)]
            annotation = args[0] if len(args) == 1 else None
        result[f.name] = annotation if annotation in _COERCIBLE else None
    _coercion_maps[cls] = result
    return result


def _coerce(value: Any, target: type | None) -> Any:
    """Coerce a single value to the target type, if needed."""
    if target is None or value is None or isinstance(value, target):
        return value
    return _COERCIBLE[target](value)


def map_row[T](cls: type[T], row: dict[str, Any]) -> T:
    """Map a dict-like row to a dataclass instance.

    Only passes keys that match dataclass fields. Extra columns are
    ignored (``SELECT *`` is fine even if the class has fewer fields).

    Raises ``TypeError`` if required fields are missing from the row.
    """
    if not dataclasses.is_dataclass(cls):
        msg = f"{cls.__name__} is not a dataclass; roost.data maps rows to dataclasses"
        raise TypeError(msg)

    coercion = _coercion_map(cls)
    return cls(**{k: _coerce(v, coercion[k]) for k, v in row.items() if k in coercion})


def map_rows[T](cls: type[T], rows: list[dict[str, Any]]) -> list[T]:
    """Map a list of dict-like rows to dataclass instances."""
    return [map_row(cls, row) for row in rows]
