"""SQL-backed ``Persistence`` over a ``Database``.

One table per entity class, named by its ``EntitySpec``. Every query is
plain SQL with quoted identifiers and ``?`` placeholders; nothing is
generated beyond the five statements below. Schema management stays with
the application (``db.execute_script(...)``).

Usage::

    db = Database("sqlite:///blog.db")
    store = DatabaseStore(db)

    article = await store.find_by_id(Article, 7)
    article = await store.save(article.fill(form))
    await store.delete(article)
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import UTC, datetime
from typing import Any

from roost.data.database import Database
from roost.data.errors import StaleRecordError
from roost.entities.entity import EntitySpec, attach, entity_spec

logger = logging.getLogger("roost.data")


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds")


class DatabaseStore:
    """Persistence for ``Entity`` dataclasses backed by SQL tables.

    Records returned by the store are attached to it, so their
    relations load through the same database.
    """

    __slots__ = ("_db",)

    def __init__(self, db: Database) -> None:
        self._db = db

    @property
    def db(self) -> Database:
        return self._db

    # -- Reads --

    async def find_by_id[E](self, entity: type[E], identifier: Any) -> E | None:
        spec = entity_spec(entity)
        sql = (
            f"SELECT * FROM {_quote(spec.table)} "
            f"WHERE {_quote(spec.id_field)} = ?"
        )
        record = await self._db.fetch_one(entity, sql, identifier)
        if record is None:
            return None
        return attach(record, self)

    async def find_all[E](self, entity: type[E]) -> list[E]:
        spec = entity_spec(entity)
        sql = f"SELECT * FROM {_quote(spec.table)} ORDER BY {_quote(spec.id_field)}"
        return [attach(r, self) for r in await self._db.fetch(entity, sql)]

    async def query_by_foreign_key[E](
        self, entity: type[E], foreign_field: str, value: Any
    ) -> list[E]:
        spec = entity_spec(entity)
        if foreign_field not in spec.columns:
            msg = f"{spec.name} has no column {foreign_field!r}"
            raise ValueError(msg)
        sql = (
            f"SELECT * FROM {_quote(spec.table)} "
            f"WHERE {_quote(foreign_field)} = ? "
            f"ORDER BY {_quote(spec.id_field)}"
        )
        return [attach(r, self) for r in await self._db.fetch(entity, sql, value)]

    # -- Writes --

    async def save[E](self, record: E) -> E:
        """Insert *record* if it has no id, otherwise update it by id.

        Returns the stored version: a copy carrying the new id and
        timestamps, attached to this store.
        """
        spec = entity_spec(type(record))
        if getattr(record, spec.id_field) is None:
            return await self._insert(spec, record)
        return await self._update(spec, record)

    async def delete(self, record: Any) -> None:
        """Delete *record* by id.

        Raises ``StaleRecordError`` if no row was removed.
        """
        spec = entity_spec(type(record))
        identifier = getattr(record, spec.id_field)
        if identifier is None:
            msg = f"Cannot delete an unsaved {spec.name}"
            raise ValueError(msg)
        sql = f"DELETE FROM {_quote(spec.table)} WHERE {_quote(spec.id_field)} = ?"
        count = await self._db.execute(sql, identifier)
        if count == 0:
            raise StaleRecordError(f"{spec.name} {identifier!r} no longer exists")
        logger.debug("deleted %s %r", spec.name, identifier)

    async def _insert[E](self, spec: EntitySpec, record: E) -> E:
        now = _now()
        stamps = {name: getattr(record, name) or now for name in spec.timestamps}
        record = dataclasses.replace(record, **stamps)  # type: ignore[type-var]

        columns = [c for c in spec.columns if c != spec.id_field]
        values = [getattr(record, c) for c in columns]
        sql = (
            f"INSERT INTO {_quote(spec.table)} "
            f"({', '.join(_quote(c) for c in columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)}) "
            f"RETURNING {_quote(spec.id_field)}"
        )
        new_id = await self._db.fetch_val(sql, *values)
        stored = dataclasses.replace(record, **{spec.id_field: new_id})  # type: ignore[type-var]
        logger.debug("inserted %s %r", spec.name, new_id)
        return attach(stored, self)

    async def _update[E](self, spec: EntitySpec, record: E) -> E:
        if "updated_at" in spec.timestamps:
            record = dataclasses.replace(record, updated_at=_now())  # type: ignore[type-var]

        columns = [c for c in spec.columns if c not in (spec.id_field, "created_at")]
        identifier = getattr(record, spec.id_field)
        sql = (
            f"UPDATE {_quote(spec.table)} "
            f"SET {', '.join(f'{_quote(c)} = ?' for c in columns)} "
            f"WHERE {_quote(spec.id_field)} = ?"
        )
        count = await self._db.execute(sql, *(getattr(record, c) for c in columns), identifier)
        if count == 0:
            raise StaleRecordError(f"{spec.name} {identifier!r} no longer exists")
        logger.debug("updated %s %r", spec.name, identifier)
        return attach(record, self)
