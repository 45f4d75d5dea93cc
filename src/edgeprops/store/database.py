"""DatabaseCollection — edge documents stored in a SQL table via SQLModel."""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from edgeprops.dialect import get_dialect, insert_ignore, supports_row_locks
from edgeprops.exceptions import StorageError

from .matching import MISSING, apply_update, equality_value, matches, project

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

    from edgeprops.models.edges import EdgeBase

logger = logging.getLogger(__name__)

_COLUMN_FIELDS = ("src", "dest", "unique_index")


class DatabaseCollection:
    """SQL-backed collection — one row per edge, properties in a JSON column.

    Holds only configuration (dialect, model, schema) and a session
    factory; every primitive runs in its own session, committed on
    success and rolled back on error.  Database errors propagate
    unchanged.

    ``src``, ``dest`` and ``unique_index`` equality conditions are pushed
    down to SQL; everything else (property conditions) is evaluated on
    the loaded documents.

    Property merges take a row lock on dialects that support one.  On
    SQLite they are serialized by a per-collection :class:`asyncio.Lock`
    instead.
    """

    def __init__(
        self,
        session_factory: Callable[..., AsyncSession],
        *,
        dialect: str = "sqlite",
        edge_model: type[EdgeBase] | None = None,
        schema: str | None = None,
        engine: AsyncEngine | None = None,
        owns_engine: bool = False,
    ) -> None:
        from edgeprops.models.edges import StoredEdge

        self.dialect = dialect
        self.schema = schema
        self._session_factory = session_factory
        self._model: type[EdgeBase] = edge_model or StoredEdge
        self._engine = engine
        self._owns_engine = owns_engine
        self._merge_lock = asyncio.Lock()

    @classmethod
    def from_engine(
        cls,
        engine: AsyncEngine,
        *,
        edge_model: type[EdgeBase] | None = None,
        schema: str | None = None,
        owns_engine: bool = False,
    ) -> DatabaseCollection:
        """Build a collection with its own session factory on *engine*."""
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        return cls(
            factory,
            dialect=get_dialect(engine),
            edge_model=edge_model,
            schema=schema,
            engine=engine,
            owns_engine=owns_engine,
        )

    @property
    def serializes_merges(self) -> bool:
        """True when the dialect cannot lock the row being merged."""
        return not supports_row_locks(self.dialect)

    @property
    def edge_model(self) -> type[EdgeBase]:
        return self._model

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Create the edge table when an engine is known and it is missing."""
        if self._engine is None:
            return
        model = self._model
        async with self._engine.begin() as conn:
            await conn.run_sync(
                lambda c: model.__table__.create(c, checkfirst=True)  # type: ignore[attr-defined]
            )
        logger.debug("Edge table %s ready", getattr(model, "__tablename__", model.__name__))

    async def close(self) -> None:
        """Dispose the engine if this collection created it."""
        if self._engine is not None and self._owns_engine:
            await self._engine.dispose()

    # ------------------------------------------------------------------
    # Session management (per-operation only)
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession]:
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    async def upsert_one(
        self,
        filter: dict[str, Any],  # noqa: A002
        update: dict[str, dict[str, Any]],
        *,
        upsert: bool = True,
        projection: tuple[str, ...] = (),
    ) -> dict[str, Any] | None:
        # Without row locks the props merge below is a plain read-modify-write,
        # so concurrent merges through this collection run one at a time.
        if self.serializes_merges:
            async with self._merge_lock:
                return await self._upsert_one(filter, update, upsert, projection)
        return await self._upsert_one(filter, update, upsert, projection)

    async def _upsert_one(
        self,
        filter: dict[str, Any],  # noqa: A002
        update: dict[str, dict[str, Any]],
        upsert: bool,
        projection: tuple[str, ...],
    ) -> dict[str, Any] | None:
        columns = _pinned_columns(filter)
        async with self._session() as session:
            if upsert:
                inserted = await insert_ignore(
                    session,
                    self.dialect,
                    self._seed_values(columns),
                    ["unique_index"],
                    self._model,
                    self.schema,
                )
                if inserted:
                    logger.debug("Inserted edge %s", columns["unique_index"])

            stmt = self._select(columns)
            if supports_row_locks(self.dialect):
                stmt = stmt.with_for_update()
            result = await session.execute(stmt)

            for row in result.scalars():
                document = _to_document(row)
                if matches(document, filter):
                    break
            else:
                return None

            if update:
                apply_update(document, update)
                row.props = document.get("props")
                row.updated_at = datetime.now(UTC)
                await session.flush()

        return _shape(document, projection)

    async def find_many(
        self,
        filter: dict[str, Any],  # noqa: A002
        projection: tuple[str, ...] = (),
    ) -> list[dict[str, Any]]:
        columns = _pinned_columns(filter)
        async with self._session() as session:
            result = await session.execute(self._select(columns))
            documents = [_to_document(row) for row in result.scalars()]
        return [_shape(doc, projection) for doc in documents if matches(doc, filter)]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _select(self, columns: dict[str, Any]) -> Any:
        model = self._model
        stmt = select(model).where(
            *(getattr(model, name) == value for name, value in columns.items())
        )
        stmt = stmt.order_by(model.created_at, model.id)  # type: ignore[arg-type]
        if self.schema:
            stmt = stmt.execution_options(schema_translate_map={None: self.schema})
        return stmt

    def _seed_values(self, columns: dict[str, Any]) -> dict[str, Any]:
        missing = [name for name in _COLUMN_FIELDS if name not in columns]
        if missing:
            raise StorageError(f"Upsert filter must pin {', '.join(missing)}")
        src, dest, key = columns["src"], columns["dest"], columns["unique_index"]
        if key != f"{src}:{dest}":
            raise StorageError(f"unique_index {key!r} does not match src/dest")
        now = datetime.now(UTC)
        return {
            "id": str(uuid.uuid4()),
            "src": src,
            "dest": dest,
            "unique_index": key,
            "created_at": now,
            "updated_at": now,
        }


def _pinned_columns(filter: dict[str, Any]) -> dict[str, Any]:
    columns: dict[str, Any] = {}
    for name in _COLUMN_FIELDS:
        value = equality_value(filter.get(name, MISSING))
        if value is not MISSING and value is not None:
            columns[name] = value
    return columns


def _to_document(row: EdgeBase) -> dict[str, Any]:
    document: dict[str, Any] = {
        "src": row.src,
        "dest": row.dest,
        "unique_index": row.unique_index,
    }
    if row.props is not None:
        document["props"] = copy.deepcopy(row.props)
    return document


def _shape(document: dict[str, Any], projection: tuple[str, ...]) -> dict[str, Any]:
    if not projection:
        return document
    return project(document, projection)
