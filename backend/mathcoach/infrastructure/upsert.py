"""Upsert Primitive — dialect-aware INSERT ... ON CONFLICT for create-if-absent and overwrite.

Invariants:
    - insert_if_absent never raises on a key collision; it reports whether it inserted
    - upsert_row overwrites only the listed columns on collision
    - Both run as a single statement (atomic at the database)

Design Decisions:
    - postgresql and sqlite both support ON CONFLICT; dialect chosen from the
      bound connection so the same service code runs in production and tests
"""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase


def _insert_for(db: AsyncSession, model: type[DeclarativeBase]):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upsert not supported for dialect '{dialect}'")


async def insert_if_absent(
    db: AsyncSession,
    model: type[DeclarativeBase],
    values: dict,
    conflict_columns: list[str],
) -> bool:
    """INSERT ... ON CONFLICT DO NOTHING. Returns True when a row was inserted."""
    stmt = (
        _insert_for(db, model)
        .values(**values)
        .on_conflict_do_nothing(index_elements=conflict_columns)
    )
    result = await db.execute(stmt)
    return result.rowcount == 1


async def upsert_row(
    db: AsyncSession,
    model: type[DeclarativeBase],
    values: dict,
    conflict_columns: list[str],
    update_columns: list[str],
) -> None:
    """INSERT ... ON CONFLICT DO UPDATE SET <update_columns> = excluded.<col>."""
    stmt = _insert_for(db, model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=conflict_columns,
        set_={col: stmt.excluded[col] for col in update_columns},
    )
    await db.execute(stmt)
