"""Entities: persisted records declared as dataclasses.

Usage::

    @dataclass(frozen=True, slots=True)
    class Article(Entity):
        id: int | None = None
        title: str = ""
        content: str = ""
        created_at: str = ""
        updated_at: str = ""

        comments: ClassVar[HasMany[Comment]] = HasMany(lambda: Comment, "article_id")

Conventions, each overridable with a class attribute:

- ``__table__``: lower-cased class name + ``s`` (``articles``)
- ``__token__``: the class name (``Article``), the route token that
  resolves to this entity (``/articles/:Article``)
- ``__id_field__``: ``id``

Entities are immutable values. Form input flows in through ``fill()``
(returns an updated copy) and ``from_form()`` (a new, unsaved record);
writing is always an explicit ``store.save(...)`` in the handler.
"""

from __future__ import annotations

import dataclasses
import threading
import types
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Union, get_args, get_origin, get_type_hints

from roost.errors import ConfigurationError

if TYPE_CHECKING:
    from roost.data.persistence import Persistence
    from roost.entities.relations import HasMany

TIMESTAMP_FIELDS = ("created_at", "updated_at")


class Entity:
    """Base class for persisted records. Subclasses must be dataclasses.

    Two private slots carry per-instance state that is not part of the
    record's data: the store it was loaded through, and its materialized
    relation collections.
    """

    __slots__ = ("_roost_relations", "_roost_store")

    __table__: ClassVar[str | None] = None
    __token__: ClassVar[str | None] = None
    __id_field__: ClassVar[str] = "id"

    # -- Identity --

    @property
    def pk(self) -> Any:
        """The record's identifier value (``None`` until saved)."""
        return getattr(self, entity_spec(type(self)).id_field)

    @property
    def store(self) -> Persistence | None:
        """The store this instance was loaded through or saved with."""
        return getattr(self, "_roost_store", None)

    # -- Form integration --

    def fill(self, form: Any) -> Any:
        """Return a copy with matching column values taken from *form*.

        The identifier never changes. The copy keeps the store binding
        but starts with no loaded relations.
        """
        spec = entity_spec(type(self))
        changes = {k: v for k, v in _form_values(form).items() if k in spec.writable}
        updated = dataclasses.replace(self, **changes)  # type: ignore[type-var]
        if self.store is not None:
            attach(updated, self.store)
        return updated

    @classmethod
    def from_form(cls, form: Any, **extra: Any) -> Any:
        """Build a new, unsaved instance from matching *form* values."""
        spec = entity_spec(cls)
        values = {k: v for k, v in _form_values(form).items() if k in spec.writable}
        values.update(extra)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Column values as a plain dict. Relations are not included."""
        return {name: getattr(self, name) for name in entity_spec(type(self)).columns}


def _form_values(form: Any) -> dict[str, Any]:
    if hasattr(form, "values") and callable(form.values) and dataclasses.is_dataclass(form):
        return form.values()
    if isinstance(form, dict):
        return form
    if dataclasses.is_dataclass(form):
        return {f.name: getattr(form, f.name) for f in dataclasses.fields(form)}
    msg = f"Cannot read field values from {type(form).__name__}"
    raise TypeError(msg)


def attach[E](entity: E, store: Persistence) -> E:
    """Bind *entity* to the store it was loaded through."""
    object.__setattr__(entity, "_roost_store", store)
    return entity


@dataclass(frozen=True, slots=True)
class EntitySpec:
    """Compiled metadata for one entity class."""

    entity: type
    table: str
    token: str
    id_field: str
    id_type: Any
    columns: tuple[str, ...]
    relations: dict[str, HasMany[Any]]

    @property
    def name(self) -> str:
        return self.entity.__name__

    @property
    def writable(self) -> frozenset[str]:
        """Columns a form may set: everything but the id and timestamps."""
        return frozenset(self.columns) - {self.id_field, *TIMESTAMP_FIELDS}

    @property
    def timestamps(self) -> tuple[str, ...]:
        return tuple(name for name in TIMESTAMP_FIELDS if name in self.columns)

    def convert_id(self, raw: Any) -> Any:
        """Convert a raw route value to the identifier type.

        Raises ``ValueError``/``TypeError`` if it does not convert.
        """
        if self.id_type is Any or isinstance(raw, self.id_type):
            return raw
        return self.id_type(raw)


def _id_type(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is types.UnionType or origin is Union:
        args = [a for a in get_args(annotation) if a is not type(None)]
        return args[0] if len(args) == 1 else Any
    return annotation if isinstance(annotation, type) else Any


_specs: dict[type, EntitySpec] = {}
_specs_lock = threading.Lock()


def _build_entity_spec(cls: type) -> EntitySpec:
    from roost.entities.relations import HasMany

    if not dataclasses.is_dataclass(cls):
        msg = f"{cls.__name__} is not a dataclass; decorate entities with @dataclass"
        raise ConfigurationError(msg)

    columns = tuple(f.name for f in dataclasses.fields(cls))
    id_field = getattr(cls, "__id_field__", "id")
    if id_field not in columns:
        msg = f"{cls.__name__} has no identifier field {id_field!r}"
        raise ConfigurationError(msg)

    id_annotation = next(f.type for f in dataclasses.fields(cls) if f.name == id_field)
    if isinstance(id_annotation, str):
        id_annotation = get_type_hints(cls).get(id_field, Any)
    relations = {
        name: value
        for klass in reversed(cls.__mro__)
        for name, value in vars(klass).items()
        if isinstance(value, HasMany)
    }

    return EntitySpec(
        entity=cls,
        table=getattr(cls, "__table__", None) or f"{cls.__name__.lower()}s",
        token=getattr(cls, "__token__", None) or cls.__name__,
        id_field=id_field,
        id_type=_id_type(id_annotation),
        columns=columns,
        relations=relations,
    )


def entity_spec(cls: type) -> EntitySpec:
    """Return the cached spec for entity class *cls*."""
    spec = _specs.get(cls)
    if spec is not None:
        return spec
    with _specs_lock:
        spec = _specs.get(cls)
        if spec is None:
            spec = _build_entity_spec(cls)
            _specs[cls] = spec
        return spec


def is_entity(annotation: Any) -> bool:
    """True if *annotation* is an ``Entity`` subclass."""
    return (
        isinstance(annotation, type)
        and issubclass(annotation, Entity)
        and annotation is not Entity
    )
