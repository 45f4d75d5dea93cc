"""Dialect-aware SQL helpers — insert-if-absent, row locking."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession


def get_dialect(engine: Engine | AsyncEngine) -> str:
    """Return 'sqlite', 'postgresql', or 'mssql'."""
    # AsyncEngine wraps a sync engine
    sync_engine = getattr(engine, "sync_engine", engine)
    name = sync_engine.dialect.name
    if name == "sqlite":
        return "sqlite"
    if name in ("postgresql", "postgres"):
        return "postgresql"
    if name in ("mssql", "pyodbc"):
        return "mssql"
    return name


async def insert_ignore(
    session: AsyncSession,
    dialect: str,
    values: dict[str, Any],
    conflict_keys: list[str],
    model: type,
    schema: str | None = None,
) -> int:
    """Insert *values* unless a row with the same *conflict_keys* exists.

    Returns the rowcount (1 when a row was inserted, 0 otherwise).  The
    existing row is never modified, which makes this the race-free first
    half of an upsert: concurrent callers all end up pointing at the one
    row the unique constraint admitted.

    - SQLite/PostgreSQL: INSERT ... ON CONFLICT DO NOTHING
    - MSSQL: MERGE INTO ... WITH (HOLDLOCK) WHEN NOT MATCHED
    """
    if dialect == "mssql":
        return await _insert_ignore_mssql(session, values, conflict_keys, model, schema)
    return await _insert_ignore_sqlite_pg(session, dialect, values, conflict_keys, model, schema)


async def _insert_ignore_sqlite_pg(
    session: AsyncSession,
    dialect: str,
    values: dict[str, Any],
    conflict_keys: list[str],
    model: type,
    schema: str | None = None,
) -> int:
    """SQLite / PostgreSQL insert using INSERT ... ON CONFLICT DO NOTHING."""
    from sqlalchemy.dialects import sqlite as sqlite_dialect

    dialect_module = sqlite_dialect
    if dialect == "postgresql":
        from sqlalchemy.dialects import postgresql as pg_dialect

        dialect_module = pg_dialect

    stmt = dialect_module.insert(model).values(**values)
    stmt = stmt.on_conflict_do_nothing(index_elements=conflict_keys)

    if schema:
        stmt = stmt.execution_options(schema_translate_map={None: schema})

    result = await session.execute(stmt)
    return result.rowcount  # type: ignore[return-value]


async def _insert_ignore_mssql(
    session: AsyncSession,
    values: dict[str, Any],
    conflict_keys: list[str],
    model: type,
    schema: str | None = None,
) -> int:
    """MSSQL insert-if-absent using MERGE INTO ... WITH (HOLDLOCK)."""
    table_name: str = getattr(model, "__tablename__", "edgeprops_edges")
    if schema:
        table_name = f"[{schema}].{table_name}"
    on_clause = " AND ".join(f"target.{k} = :{k}" for k in conflict_keys)
    insert_cols = ", ".join(values.keys())
    insert_vals = ", ".join(f":{k}" for k in values)

    merge_sql = f"""
        MERGE INTO {table_name} WITH (HOLDLOCK) AS target
        USING (SELECT {", ".join(f":{k} AS {k}" for k in conflict_keys)}) AS source
        ON {on_clause}
        WHEN NOT MATCHED THEN
            INSERT ({insert_cols})
            VALUES ({insert_vals});
    """

    result = await session.execute(text(merge_sql), values)
    return result.rowcount  # type: ignore[return-value]


def supports_row_locks(dialect: str) -> bool:
    """True when ``SELECT ... FOR UPDATE`` is meaningful for *dialect*."""
    return dialect in ("postgresql", "mssql")
