"""Form binding: payload in, typed form plus validation result out.

For each declared field:

1. Missing from the payload (or an empty string for a non-``str``
   field): rules see the field default, or ``None`` when it declares
   none, so ``required`` fails for an absent int or bool. The instance
   holds the default, or the empty value for the type. Absence alone is
   never an error; ``required`` decides that.
2. Present: coerce to the declared type. A value that cannot be coerced
   records ``"invalid type"`` and that field's rules are skipped.
3. Run every rule for the field in declaration order, collecting every
   failure. Fields are independent of each other.

Binding is pure. It never touches persistence.
"""

from collections.abc import Callable, Mapping
from typing import Any

from roost.forms.form import FieldSpec, FormSpec, form_spec
from roost.validation.result import ValidationResult

INVALID_TYPE = "invalid type"

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off", ""})


def _to_str(value: Any) -> str:
    if isinstance(value, (list, tuple, dict)):
        raise TypeError("expected a scalar")
    return str(value).strip()


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("booleans are not integers")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("not a whole number")
        return int(value)
    if isinstance(value, int):
        return value
    return int(str(value).strip())


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("booleans are not numbers")
    if isinstance(value, (int, float)):
        return float(value)
    return float(str(value).strip())


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise ValueError(f"not a boolean: {value!r}")


# Type coercion map for bind()
_COERCIONS: dict[Any, Callable[[Any], Any]] = {
    str: _to_str,
    int: _to_int,
    float: _to_float,
    bool: _to_bool,
}


def _coerce_scalar(value: Any, target: Any) -> Any:
    coerce = _COERCIONS.get(target)
    if coerce is None:
        # Unknown type (UploadFile, dict, Any): pass the raw value through
        return value
    return coerce(value)


def _raw_value(payload: Mapping[str, Any], spec: FieldSpec) -> tuple[bool, Any]:
    """Extract ``(present, raw)`` for *spec* from the payload."""
    if spec.name not in payload:
        return False, None
    if spec.target is list and hasattr(payload, "get_list"):
        # Multi-valued form/query data: checkboxes, repeated keys
        return True, payload.get_list(spec.name)
    raw = payload[spec.name]
    if raw is None and spec.optional:
        return True, None
    if raw is None:
        return False, None
    if isinstance(raw, str) and not raw.strip() and spec.target is not str:
        return False, None
    return True, raw


def coerce_field(spec: FieldSpec, raw: Any) -> Any:
    """Coerce *raw* to the field's declared type.

    Raises ``ValueError`` or ``TypeError`` on failure.
    """
    if raw is None:
        return None
    if spec.target is list:
        items = raw if isinstance(raw, (list, tuple)) else [raw]
        return [_coerce_scalar(item, spec.item_type) for item in items]
    return _coerce_scalar(raw, spec.target)


def bind[F](form: type[F] | FormSpec, payload: Mapping[str, Any]) -> tuple[F, ValidationResult]:
    """Bind *payload* to a form instance and validate it.

    Args:
        form: A ``Form`` dataclass, or a ``FormSpec`` built for one.
        payload: Any mapping of field names to raw values; ``FormData``,
            ``QueryParams``, or a parsed JSON object.

    Returns:
        ``(instance, result)``. The instance is always constructed; fields
        that failed coercion hold their default. ``result`` carries every
        error for every field.

    Example::

        form, result = bind(ArticleForm, {"title": "Hi", "content": "world"})
        # result.errors == {"title": ["Must be at least 5 characters"]}
    """
    spec = form if isinstance(form, FormSpec) else form_spec(form)

    values: dict[str, Any] = {}
    cleaned: dict[str, Any] = {}
    errors: dict[str, list[str]] = {}

    for field_spec in spec.fields:
        present, raw = _raw_value(payload, field_spec)

        if not present:
            value = field_spec.empty()
            checked = value if field_spec.has_default else None
        else:
            try:
                value = coerce_field(field_spec, raw)
            except (ValueError, TypeError):
                errors[field_spec.name] = [INVALID_TYPE]
                values[field_spec.name] = field_spec.empty()
                continue
            checked = value

        field_errors: list[str] = []
        for ref, check in field_spec.checks:
            error = check(checked, *ref.args)
            if error is not None:
                field_errors.append(error)

        values[field_spec.name] = value
        if field_errors:
            errors[field_spec.name] = field_errors
        else:
            cleaned[field_spec.name] = value

    instance = spec.form(**values)
    return instance, ValidationResult(data=cleaned, errors=errors)
