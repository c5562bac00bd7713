from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, model):
    """
    Dialect-specific INSERT supporting ON CONFLICT (PostgreSQL and SQLite).
    Used for idempotent creates and atomic counters keyed by a unique constraint.
    """
    name = db.get_bind().dialect.name
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"ON CONFLICT inserts are not supported on dialect {name!r}")
    return insert(model)
