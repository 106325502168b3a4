"""Dialect-specific statement helpers for conflict-aware inserts."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(db: Session, table: Any) -> Any:
    """Return an INSERT for ``table`` supporting ``on_conflict_*`` clauses.

    Raises:
        NotImplementedError: If the bound dialect has no ON CONFLICT support.
    """
    name = db.get_bind().dialect.name
    try:
        factory = _INSERTS[name]
    except KeyError as err:
        raise NotImplementedError(f"ON CONFLICT inserts are not supported on {name}") from err
    return factory(table)
