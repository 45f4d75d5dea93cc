"""MemoryCollection — in-process edge documents, for tests and embedding."""

from __future__ import annotations

import copy
import logging
from typing import Any

from edgeprops.exceptions import StorageError

from .matching import MISSING, apply_update, equality_value, matches, project, set_path

logger = logging.getLogger(__name__)

_UNIQUE_FIELD = "unique_index"


class MemoryCollection:
    """Dict-backed collection keyed by ``unique_index``.

    Every operation completes without awaiting, so under a single event
    loop each call is atomic.  Callers always receive deep copies.
    """

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._documents)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """No-op — nothing to connect to."""

    async def close(self) -> None:
        """No-op — documents live as long as the instance."""

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
        current = self._find_first(filter)
        if current is None:
            if not upsert:
                return None
            working = _seed_document(filter)
            key = working.get(_UNIQUE_FIELD)
            if not isinstance(key, str):
                raise StorageError("Inserted documents require a unique_index")
            if key in self._documents:
                raise StorageError(f"Duplicate key: unique_index {key!r}")
            logger.debug("Inserting edge document %s", key)
        else:
            working = copy.deepcopy(current)

        # Mutate a copy so a failing update leaves the stored document intact
        apply_update(working, update)
        self._documents[working[_UNIQUE_FIELD]] = working
        return self._shape(working, projection)

    async def find_many(
        self,
        filter: dict[str, Any],  # noqa: A002
        projection: tuple[str, ...] = (),
    ) -> list[dict[str, Any]]:
        return [
            self._shape(doc, projection)
            for doc in self._documents.values()
            if matches(doc, filter)
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_first(self, filter: dict[str, Any]) -> dict[str, Any] | None:
        key = equality_value(filter.get(_UNIQUE_FIELD, MISSING))
        if isinstance(key, str):
            doc = self._documents.get(key)
            return doc if doc is not None and matches(doc, filter) else None
        for doc in self._documents.values():
            if matches(doc, filter):
                return doc
        return None

    @staticmethod
    def _shape(document: dict[str, Any], projection: tuple[str, ...]) -> dict[str, Any]:
        if not projection:
            return copy.deepcopy(document)
        return project(document, projection)


def _seed_document(filter: dict[str, Any]) -> dict[str, Any]:
    """Build the document an upsert inserts: the filter's pinned fields."""
    document: dict[str, Any] = {}
    for path, condition in filter.items():
        if path.startswith("$"):
            continue
        value = equality_value(condition)
        if value is not MISSING:
            set_path(document, path, value)
    return document
