"""Persisted entities, lazy to-many relations, and route resolution."""

from roost.entities.entity import Entity, EntitySpec, attach, entity_spec, is_entity
from roost.entities.relations import HasMany, RelatedCollection
from roost.entities.resolver import EntityResolver

__all__ = [
    "Entity",
    "EntityResolver",
    "EntitySpec",
    "HasMany",
    "RelatedCollection",
    "attach",
    "entity_spec",
    "is_entity",
]
