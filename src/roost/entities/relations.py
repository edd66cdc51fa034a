"""To-many relations, materialized lazily and cached per instance.

A relation is declared on the entity class and read through an explicit
accessor, so the I/O is always visible at the call site::

    @dataclass(frozen=True, slots=True)
    class Article(Entity):
        id: int | None = None
        title: str = ""

        comments: ClassVar[HasMany[Comment]] = HasMany(lambda: Comment, "article_id")

    comments = await article.comments.all()   # first call queries
    comments = await article.comments.all()   # cached, no query
    article.comments.loaded                    # True
    await article.comments.reload()            # explicit invalidation

The cache lives on the entity instance, and entity instances are request
scoped, so nothing here is shared between requests.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import anyio

if TYPE_CHECKING:
    from roost.data.persistence import Persistence


class HasMany[T]:
    """A to-many relation keyed by a foreign column on the target.

    Args:
        target: The related entity class, or a zero-argument callable
            returning it (for classes defined later in the module).
        foreign_key: Column on the target holding this entity's id.
    """

    __slots__ = ("_target", "foreign_key", "name")

    def __init__(self, target: type[T] | Callable[[], type[T]], foreign_key: str) -> None:
        self._target = target
        self.foreign_key = foreign_key
        self.name = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    @property
    def target(self) -> type[T]:
        """The related entity class."""
        from roost.entities.entity import Entity

        target = self._target
        if isinstance(target, type) and issubclass(target, Entity):
            return target  # type: ignore[return-value]
        return target()  # type: ignore[operator,call-arg]

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return RelatedCollection(self, instance)

    def __repr__(self) -> str:
        return f"HasMany({self.name!r}, foreign_key={self.foreign_key!r})"


class _RelationState:
    """Per-instance cache of materialized relations."""

    __slots__ = ("items", "locks")

    def __init__(self) -> None:
        self.items: dict[str, list[Any]] = {}
        self.locks: dict[str, anyio.Lock] = {}

    def lock(self, name: str) -> anyio.Lock:
        lock = self.locks.get(name)
        if lock is None:
            lock = anyio.Lock()
            self.locks[name] = lock
        return lock


def _state(instance: Any) -> _RelationState:
    state = getattr(instance, "_roost_relations", None)
    if state is None:
        state = _RelationState()
        object.__setattr__(instance, "_roost_relations", state)
    return state


class RelatedCollection[T]:
    """Accessor for one relation on one entity instance.

    ``all()`` returns the cached collection, querying through the
    instance's store on first access only.
    """

    __slots__ = ("_instance", "_relation")

    def __init__(self, relation: HasMany[T], instance: Any) -> None:
        self._relation = relation
        self._instance = instance

    @property
    def loaded(self) -> bool:
        """True once the collection has been materialized."""
        return self._relation.name in _state(self._instance).items

    def cached(self) -> list[T] | None:
        """The materialized collection, or ``None`` if not loaded yet."""
        items = _state(self._instance).items.get(self._relation.name)
        return list(items) if items is not None else None

    async def all(self, store: Persistence | None = None) -> list[T]:
        """Return the related records, fetching them on first access.

        Args:
            store: Store to query; defaults to the one the instance was
                loaded through.
        """
        state = _state(self._instance)
        name = self._relation.name
        items = state.items.get(name)
        if items is not None:
            return list(items)
        async with state.lock(name):
            # A concurrent caller may have filled the cache while we waited
            items = state.items.get(name)
            if items is None:
                items = await self._fetch(store)
                state.items[name] = items
        return list(items)

    async def reload(self, store: Persistence | None = None) -> list[T]:
        """Drop the cached collection and fetch it again."""
        self.invalidate()
        return await self.all(store)

    def invalidate(self) -> None:
        """Drop the cached collection without fetching."""
        _state(self._instance).items.pop(self._relation.name, None)

    async def _fetch(self, store: Persistence | None) -> list[T]:
        store = store or getattr(self._instance, "_roost_store", None)
        if store is None:
            msg = (
                f"{type(self._instance).__name__}.{self._relation.name} cannot load: "
                "the instance is not attached to a store. Load it through a "
                "store or pass store= explicitly."
            )
            raise RuntimeError(msg)
        key = self._instance.pk
        if key is None:
            return []
        rows = await store.query_by_foreign_key(
            self._relation.target, self._relation.foreign_key, key
        )
        return list(rows)

    def __repr__(self) -> str:
        state = "loaded" if self.loaded else "unloaded"
        return f"<{type(self._instance).__name__}.{self._relation.name} {state}>"
