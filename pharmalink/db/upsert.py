"""
Dialect-aware INSERT .. ON CONFLICT support.

Both PostgreSQL (production) and SQLite (tests) expose the same
``on_conflict_do_update`` / ``on_conflict_do_nothing`` API and ``excluded``
pseudo-table, so services build upserts through ``insert_for``.
"""
from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from pharmalink.core.errors import StorageError

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def insert_for(db: Session, table: Table):
    """Return an upsert-capable INSERT construct for the session's dialect."""
    dialect = db.get_bind().dialect.name
    factory = _INSERT_BY_DIALECT.get(dialect)
    if factory is None:
        raise StorageError(f"Upsert is not supported on dialect '{dialect}'")
    return factory(table)
