"""Form classes and their compiled specs.

A form is a dataclass that subclasses ``Form``. Fields declare their
rules through ``field(rules=...)``::

    @dataclass(frozen=True, slots=True)
    class ArticleForm(Form):
        title: str = field(rules=["required", rule("min_length", 5)])
        content: str = field(rules=["required"])
        tags: list[int] = field(default_factory=list)

The first time a form class is bound (or when the app freezes, for every
form a handler declares) its ``FormSpec`` is built: type hints are
resolved, rule names are looked up, and the result is cached for the
life of the process. Misspelled rule names raise ``UnknownRule`` there.
"""

import dataclasses
import threading
import types
from collections.abc import Callable, Iterable
from dataclasses import MISSING, dataclass
from typing import Any, ClassVar, Union, get_args, get_origin, get_type_hints

from roost.errors import ConfigurationError
from roost.validation.rules import Rule, RuleRef, RuleRegistry, as_ref, default_registry

_RULES_KEY = "roost.rules"


class Form:
    """Base class for request-body forms.

    Subclasses must be dataclasses. ``__rules__`` may name a registry
    other than the process-wide default.
    """

    __slots__ = ()

    __rules__: ClassVar[RuleRegistry | None] = None

    def values(self) -> dict[str, Any]:
        """Field values as a plain dict (shallow)."""
        return {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}  # type: ignore[arg-type]


def field(
    default: Any = MISSING,
    *,
    default_factory: Callable[[], Any] | Any = MISSING,
    rules: Iterable[str | RuleRef] = (),
) -> Any:
    """Declare a form field with an ordered list of rules.

    Rules are names (``"required"``) or ``rule(name, *args)`` references.
    """
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={_RULES_KEY: tuple(as_ref(r) for r in rules)},
    )


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One bound field: its type, default, and compiled rule checks."""

    name: str
    annotation: Any
    target: Any
    # dataclasses.MISSING when the form field declares none
    default: Any
    default_factory: Any
    item_type: Any = None
    optional: bool = False
    checks: tuple[tuple[RuleRef, Rule], ...] = ()

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING or self.default_factory is not MISSING

    @property
    def rules(self) -> tuple[RuleRef, ...]:
        return tuple(ref for ref, _ in self.checks)

    def empty(self) -> Any:
        """The value used when the payload omits this field."""
        if self.default is not MISSING:
            return self.default
        if self.default_factory is not MISSING:
            return self.default_factory()
        if self.optional:
            return None
        return _EMPTY.get(self.target, lambda: None)()


_EMPTY: dict[Any, Callable[[], Any]] = {
    str: str,
    int: int,
    float: float,
    bool: bool,
    list: list,
}


@dataclass(frozen=True, slots=True)
class FormSpec:
    """The compiled field/rule schema for one form class."""

    form: type
    fields: tuple[FieldSpec, ...]

    @property
    def name(self) -> str:
        return self.form.__name__

    def field(self, name: str) -> FieldSpec:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)


def _unwrap(annotation: Any) -> tuple[Any, Any, bool]:
    """Return ``(target, item_type, optional)`` for a field annotation."""
    optional = False
    origin = get_origin(annotation)
    if origin is types.UnionType or origin is Union:
        args = [a for a in get_args(annotation) if a is not type(None)]
        optional = len(args) != len(get_args(annotation))
        annotation = args[0] if len(args) == 1 else Any
        origin = get_origin(annotation)

    if annotation is list or origin is list:
        args = get_args(annotation)
        return list, (args[0] if args else Any), optional
    return annotation, None, optional


_specs: dict[type, FormSpec] = {}
_specs_lock = threading.Lock()


def build_form_spec(form_cls: type, registry: RuleRegistry | None = None) -> FormSpec:
    """Build (without caching) the spec for *form_cls*.

    Raises ``ConfigurationError`` if *form_cls* is not a dataclass and
    ``UnknownRule`` if a field names an unregistered rule.
    """
    if not dataclasses.is_dataclass(form_cls):
        msg = f"{form_cls.__name__} is not a dataclass; decorate forms with @dataclass"
        raise ConfigurationError(msg)

    registry = registry or getattr(form_cls, "__rules__", None) or default_registry
    hints = get_type_hints(form_cls)
    specs: list[FieldSpec] = []

    for f in dataclasses.fields(form_cls):
        if not f.init:
            continue
        annotation = hints.get(f.name, str)
        target, item_type, optional = _unwrap(annotation)
        refs: tuple[RuleRef, ...] = f.metadata.get(_RULES_KEY, ())
        owner = f"{form_cls.__name__}.{f.name}"
        checks = tuple((ref, registry.get(ref.name, owner=owner)) for ref in refs)
        specs.append(
            FieldSpec(
                name=f.name,
                annotation=annotation,
                target=target,
                item_type=item_type,
                optional=optional,
                default=f.default,
                default_factory=f.default_factory,
                checks=checks,
            )
        )

    return FormSpec(form=form_cls, fields=tuple(specs))


def form_spec(form_cls: type) -> FormSpec:
    """Return the cached spec for *form_cls*, building it on first use."""
    spec = _specs.get(form_cls)
    if spec is not None:
        return spec
    with _specs_lock:
        spec = _specs.get(form_cls)
        if spec is None:
            spec = build_form_spec(form_cls)
            _specs[form_cls] = spec
        return spec


def is_form(annotation: Any) -> bool:
    """True if *annotation* is a ``Form`` subclass."""
    return isinstance(annotation, type) and issubclass(annotation, Form) and annotation is not Form
