"""Edges — synchronous wrapper around EdgesAsync."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import create_async_engine

from edgeprops._edges_async import EdgesAsync
from edgeprops.store.database import DatabaseCollection

if TYPE_CHECKING:
    from collections.abc import Mapping

    from edgeprops.filters import FilterExpression
    from edgeprops.models.edges import EdgeBase
    from edgeprops.types import EdgeDescriptor, EdgeId, EdgeRecord, PropertyValue

logger = logging.getLogger(__name__)

DATABASE_URL_ENV = "EDGEPROPS_DATABASE_URL"
_DEFAULT_URL = "sqlite+aiosqlite://"


class Edges:
    """Synchronous edge property store backed by a private event loop.

    The loop runs in a daemon thread; every call blocks until its single
    database operation completes.  The connection URL falls back to the
    ``EDGEPROPS_DATABASE_URL`` environment variable, then to an
    in-memory SQLite database.

    Usage::

        with Edges("sqlite+aiosqlite:///edges.db") as edges:
            edges.set_properties(a, b, {"friend": True})
            edges.find_edges(src=a, find={"friend": {"$ne": False}})
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        edge_model: type[EdgeBase] | None = None,
        db_schema: str | None = None,
        echo: bool = False,
    ) -> None:
        self._closed = False
        self._url = url or os.environ.get(DATABASE_URL_ENV) or _DEFAULT_URL

        # Private event loop in a daemon thread
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._thread.start()

        try:
            self._edges = self._run(self._async_init(edge_model, db_schema, echo))
        except Exception:
            self._stop_loop()
            raise

    async def _async_init(
        self,
        edge_model: type[EdgeBase] | None,
        db_schema: str | None,
        echo: bool,
    ) -> EdgesAsync:
        engine = create_async_engine(self._url, echo=echo)
        collection = DatabaseCollection.from_engine(
            engine, edge_model=edge_model, schema=db_schema, owns_engine=True
        )
        edges = EdgesAsync(collection)
        await edges.open()
        logger.debug("Edge store opened on %s", engine.url.render_as_string(hide_password=True))
        return edges

    def _run(self, coro: Any) -> Any:
        """Submit *coro* to the private loop and block for the result."""
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    def _stop_loop(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    def close(self) -> None:
        """Dispose the engine, stop the event loop and join the thread."""
        if self._closed:
            return
        self._closed = True

        try:
            self._run(self._edges.close())
        finally:
            self._stop_loop()

    def __enter__(self) -> Edges:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Operations (sync)
    # ------------------------------------------------------------------

    def run(self, descriptor: EdgeDescriptor) -> EdgeRecord | list[EdgeRecord] | None:
        return self._run(self._edges.run(descriptor))

    def set_properties(self, src: EdgeId, dest: EdgeId, props: Mapping[str, PropertyValue]) -> None:
        self._run(self._edges.set_properties(src, dest, props))

    def get_properties(self, src: EdgeId, dest: EdgeId, props: Any = None) -> EdgeRecord:
        return self._run(self._edges.get_properties(src, dest, props))

    def remove_properties(self, src: EdgeId, dest: EdgeId, props: Any = None) -> None:
        self._run(self._edges.remove_properties(src, dest, props))

    def find_edges(
        self,
        *,
        src: EdgeId | None = None,
        dest: EdgeId | None = None,
        props: Any = None,
        find: Mapping[str, Any] | FilterExpression | None = None,
    ) -> list[EdgeRecord]:
        return self._run(self._edges.find_edges(src=src, dest=dest, props=props, find=find))
