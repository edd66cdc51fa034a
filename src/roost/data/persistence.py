"""The persistence interface the pipeline and handlers consume.

Only ``find_by_id`` (entity resolution) and ``query_by_foreign_key``
(relation loading) are called by roost itself. ``find_all``, ``save``
and ``delete`` exist for handlers; the pipeline never writes.

Any object with these coroutine methods works; ``DatabaseStore`` is the
SQL implementation shipped with roost.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Persistence(Protocol):
    """Async record access keyed by entity class."""

    async def find_by_id[E](self, entity: type[E], identifier: Any) -> E | None: ...

    async def find_all[E](self, entity: type[E]) -> Sequence[E]: ...

    async def query_by_foreign_key[E](
        self, entity: type[E], foreign_field: str, value: Any
    ) -> Sequence[E]: ...

    async def save[E](self, record: E) -> E: ...

    async def delete(self, record: Any) -> None: ...
