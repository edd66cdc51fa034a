"""Entity resolution: route identifier in, loaded entity out.

Exactly one ``find_by_id`` per call, no retries. A miss is returned as an
``EntityNotFound`` value for the dispatcher to report; it is not raised.
"""

import dataclasses
import logging
from typing import Any

from roost.data.persistence import Persistence
from roost.entities.entity import attach, entity_spec
from roost.outcomes import EntityNotFound, InvalidParameter

logger = logging.getLogger("roost.dispatch")


class EntityResolver:
    """Loads the entity a route token points at.

    Usage::

        resolver = EntityResolver(store)
        found = await resolver.resolve(Article, "42")
        if isinstance(found, EntityNotFound):
            ...
    """

    __slots__ = ("_store",)

    def __init__(self, store: Persistence) -> None:
        self._store = store

    @property
    def store(self) -> Persistence:
        return self._store

    async def resolve[E](
        self, entity: type[E], raw_id: str
    ) -> E | EntityNotFound | InvalidParameter:
        """Convert *raw_id* to the entity's id type and load the record."""
        spec = entity_spec(entity)
        try:
            identifier: Any = spec.convert_id(raw_id)
        except (ValueError, TypeError):
            return InvalidParameter(
                token=spec.token,
                value=raw_id,
                expected=getattr(spec.id_type, "__name__", str(spec.id_type)),
            )

        record = await self._store.find_by_id(entity, identifier)
        if record is None:
            logger.debug("%s %r not found", spec.name, identifier)
            return EntityNotFound(entity=spec.name, identifier=identifier)
        # Relation caches live on the instance; a store may hand back a
        # shared object, so every resolution gets its own copy.
        store = getattr(record, "_roost_store", None) or self._store
        return attach(dataclasses.replace(record), store)
