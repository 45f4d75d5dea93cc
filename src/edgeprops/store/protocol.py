"""Collection protocol — the two persistence primitives the core relies on.

Any storage engine that can find-one-and-update with upsert and run a
filtered multi-result read can back an edge store.  Filters and updates
are Mongo-style documents produced by :mod:`edgeprops.compiler`.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class EdgeCollection(Protocol):
    """Persistence collaborator for edge documents."""

    async def upsert_one(
        self,
        filter: dict[str, Any],  # noqa: A002
        update: dict[str, dict[str, Any]],
        *,
        upsert: bool = True,
        projection: tuple[str, ...] = (),
    ) -> dict[str, Any] | None:
        """Update the single document matching *filter*, inserting it first
        when absent and *upsert* is true.

        Returns the post-update document restricted to *projection*, or
        ``None`` when nothing matched and nothing was inserted.
        """
        ...

    async def find_many(
        self,
        filter: dict[str, Any],  # noqa: A002
        projection: tuple[str, ...] = (),
    ) -> list[dict[str, Any]]:
        """Return every document matching *filter*, restricted to *projection*."""
        ...

    async def open(self) -> None: ...
    async def close(self) -> None: ...
