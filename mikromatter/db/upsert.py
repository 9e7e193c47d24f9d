"""Insert-if-absent and upsert helpers.

Both helpers issue a single ``INSERT ... ON CONFLICT`` statement so concurrent
identical writes are resolved by the table's unique/primary key rather than by
a read-then-write race.
"""
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from mikromatter.db.session import dialect_name

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _insert_for(db: AsyncSession):
    name = dialect_name(db)
    try:
        return _INSERTS[name]
    except KeyError:
        raise NotImplementedError(f"insert-if-absent is not supported on {name!r}") from None


async def insert_if_absent(db: AsyncSession, model, **values) -> bool:
    """Insert a row unless its key already exists. Returns True when a row was written."""
    stmt = _insert_for(db)(model.__table__).values(**values).on_conflict_do_nothing()
    result = await db.execute(stmt)
    return (result.rowcount or 0) > 0


async def upsert_by_key(db: AsyncSession, model, key: list[str], values: dict, changes: dict) -> None:
    """Insert ``values``, or apply ``changes`` to the row that already holds the same ``key``."""
    stmt = _insert_for(db)(model.__table__).values(**values)
    stmt = stmt.on_conflict_do_update(index_elements=key, set_=changes)
    await db.execute(stmt)
