"""Dialect-aware create-if-absent and upsert statements."""

from __future__ import annotations
from typing import Any

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession


def _dialect_name(session: AsyncSession) -> str:
    return session.get_bind().dialect.name


def _dialect_insert(session: AsyncSession, model):
    name = _dialect_name(session)
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as pg_insert
        return pg_insert(model)
    if name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert
        return sqlite_insert(model)
    if name in ("mysql", "mariadb"):
        from sqlalchemy.dialects.mysql import insert as mysql_insert
        return mysql_insert(model)
    return insert(model)


async def insert_ignore(session: AsyncSession, model, values: dict[str, Any]) -> None:
    """INSERT that silently loses to a concurrent insert of the same unique key."""
    stmt = _dialect_insert(session, model).values(**values)
    name = _dialect_name(session)
    if name in ("postgresql", "sqlite"):
        stmt = stmt.on_conflict_do_nothing()
    elif name in ("mysql", "mariadb"):
        stmt = stmt.prefix_with("IGNORE")
    await session.execute(stmt)


async def upsert(
    session: AsyncSession,
    model,
    key: dict[str, Any],
    values: dict[str, Any],
) -> None:
    """INSERT ... ON CONFLICT(key) DO UPDATE, last writer wins on ``values``."""
    stmt = _dialect_insert(session, model).values(**key, **values)
    name = _dialect_name(session)
    if name in ("postgresql", "sqlite"):
        if values:
            stmt = stmt.on_conflict_do_update(index_elements=list(key), set_=values)
        else:
            stmt = stmt.on_conflict_do_nothing()
        await session.execute(stmt)
    elif name in ("mysql", "mariadb"):
        stmt = stmt.on_duplicate_key_update(**values) if values else stmt.prefix_with("IGNORE")
        await session.execute(stmt)
    else:
        # Generic fallback: read-then-write inside the caller's transaction
        existing = await session.get(model, tuple(key.values()))
        if existing is None:
            session.add(model(**key, **values))
        else:
            for attr, value in values.items():
                setattr(existing, attr, value)
        await session.flush()
