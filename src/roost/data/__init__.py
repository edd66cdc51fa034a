"""Persistence for roost: the ``Persistence`` protocol and a SQL store.

SQL in, entity dataclasses out. Not an ORM: no query builder, no
migrations.

Basic usage::

    from roost.data import Database, DatabaseStore

    db = Database("sqlite:///blog.db")
    store = DatabaseStore(db)

    article = await store.find_by_id(Article, 42)
    comments = await db.fetch(Comment, "SELECT * FROM comments WHERE article_id = ?", 42)

PostgreSQL needs ``asyncpg``::

    pip install roost[pg]
"""

from roost.data.persistence import Persistence
from roost.data.database import Database, pg_placeholders
from roost.data.errors import DataError, DriverNotInstalledError, QueryError, StaleRecordError
from roost.data.store import DatabaseStore

__all__ = [
    "DataError",
    "Database",
    "DatabaseStore",
    "DriverNotInstalledError",
    "Persistence",
    "QueryError",
    "StaleRecordError",
    "pg_placeholders",
]
