"""Dialect-specific INSERT constructs (ON CONFLICT support)."""

from __future__ import annotations

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def insert_for(db: Session, model):
    """Return an INSERT for model that supports on_conflict_do_nothing/_do_update.

    Postgres in production, SQLite in tests; both accept the same ON CONFLICT
    arguments (index_elements, index_where, set_).
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"ON CONFLICT insert not supported for dialect {dialect!r}")
