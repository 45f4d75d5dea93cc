"""EdgesAsync — primary async class for edge property storage."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from edgeprops.compiler import compile_descriptor
from edgeprops.exceptions import DescriptorError
from edgeprops.executor import execute, execute_many, execute_one
from edgeprops.store.database import DatabaseCollection
from edgeprops.types import EdgeDescriptor, to_selector

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

    from edgeprops.filters import FilterExpression
    from edgeprops.models.edges import EdgeBase
    from edgeprops.store.protocol import EdgeCollection
    from edgeprops.types import EdgeId, EdgeRecord, PropertySelector, PropertyValue

    Selection = PropertySelector | Mapping[str, Any] | Iterable[str] | None

logger = logging.getLogger(__name__)


class EdgesAsync:
    """Async edge property store.

    Each public method builds an :class:`EdgeDescriptor`, compiles it and
    runs it as exactly one collection call.  The store keeps no state of
    its own; the collection (and its connection) is owned by the caller.

    Engine-based (SQL table)::

        engine = create_async_engine("postgresql+asyncpg://...")
        async with EdgesAsync(engine=engine) as edges:
            await edges.set_properties(a, b, {"friend": True})
            edge = await edges.get_properties(a, b)

    Any ``EdgeCollection``::

        edges = EdgesAsync(MemoryCollection())
    """

    def __init__(
        self,
        collection: EdgeCollection | None = None,
        *,
        engine: AsyncEngine | None = None,
        session_factory: Callable[..., AsyncSession] | None = None,
        dialect: str = "sqlite",
        edge_model: type[EdgeBase] | None = None,
        db_schema: str | None = None,
    ) -> None:
        sources = [s for s in (collection, engine, session_factory) if s is not None]
        if len(sources) != 1:
            raise ValueError("Provide exactly one of collection, engine, or session_factory")

        if engine is not None:
            collection = DatabaseCollection.from_engine(
                engine, edge_model=edge_model, schema=db_schema
            )
        elif session_factory is not None:
            collection = DatabaseCollection(
                session_factory, dialect=dialect, edge_model=edge_model, schema=db_schema
            )

        assert collection is not None
        self._collection: EdgeCollection = collection
        self._closed = False

    @property
    def collection(self) -> EdgeCollection:
        return self._collection

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Prepare the collection (e.g. create the edge table)."""
        await self._collection.open()

    async def close(self) -> None:
        """Close the collection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self._collection.close()

    async def __aenter__(self) -> EdgesAsync:
        await self.open()
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def run(self, descriptor: EdgeDescriptor) -> EdgeRecord | list[EdgeRecord] | None:
        """Compile and execute an arbitrary descriptor."""
        return await execute(compile_descriptor(descriptor), self._collection)

    async def set_properties(
        self,
        src: EdgeId,
        dest: EdgeId,
        props: Mapping[str, PropertyValue],
    ) -> None:
        """Assign *props* on the edge ``src → dest``, creating it if needed.

        Existing properties with the same names are overwritten; all
        others are left untouched.
        """
        if not isinstance(props, Mapping):
            raise DescriptorError(f"props must be a mapping, got {type(props).__name__}")
        op = compile_descriptor(EdgeDescriptor(src=src, dest=dest, set=props))
        await execute_one(op, self._collection)

    async def get_properties(
        self,
        src: EdgeId,
        dest: EdgeId,
        props: Selection = None,
    ) -> EdgeRecord:
        """Return the edge with the properties named by *props* (all if ``None``).

        Reads go through the upsert primitive, so reading a pair that has
        never been written creates it with no properties.
        """
        op = compile_descriptor(EdgeDescriptor(src=src, dest=dest, get=to_selector(props)))
        record = await execute_one(op, self._collection)
        assert record is not None
        return record

    async def remove_properties(
        self,
        src: EdgeId,
        dest: EdgeId,
        props: Selection = None,
    ) -> None:
        """Clear the properties named by *props*, or every property if ``None``."""
        op = compile_descriptor(EdgeDescriptor(src=src, dest=dest, remove=to_selector(props)))
        await execute_one(op, self._collection)

    async def find_edges(
        self,
        *,
        src: EdgeId | None = None,
        dest: EdgeId | None = None,
        props: Selection = None,
        find: Mapping[str, Any] | FilterExpression | None = None,
    ) -> list[EdgeRecord]:
        """Return every edge matching *src*, *dest* and *find*.

        At least one criterion is required; without any, the result is
        empty and the collection is never queried.  *props* selects the
        properties returned (all if ``None``).
        """
        if src is None and dest is None and find is None:
            logger.debug("find_edges without criteria; returning no edges")
            return []

        op = compile_descriptor(
            EdgeDescriptor(
                src=src,
                dest=dest,
                find=find if find is not None else {},
                get=to_selector(props),
            )
        )
        return await execute_many(op, self._collection)
