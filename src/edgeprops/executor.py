"""Operation executor — runs compiled operations against a collection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from edgeprops.types import CompiledOperation, EdgeRecord, Target

if TYPE_CHECKING:
    from edgeprops.store.protocol import EdgeCollection

logger = logging.getLogger(__name__)


async def execute(
    operation: CompiledOperation,
    collection: EdgeCollection,
) -> EdgeRecord | list[EdgeRecord] | None:
    """Run *operation* and reshape the raw documents into records.

    Single-edge operations go through ``upsert_one`` and return the
    projected edge only when it was asked for.  Multi-edge operations go
    through ``find_many`` and always return a list.  Collection errors
    propagate unchanged.
    """
    if operation.target is Target.ONE:
        return await execute_one(operation, collection)
    return await execute_many(operation, collection)


async def execute_one(operation: CompiledOperation, collection: EdgeCollection) -> EdgeRecord | None:
    logger.debug("upsert_one filter=%s update=%s", operation.filter, operation.update)
    document = await collection.upsert_one(
        operation.filter,
        operation.update,
        upsert=True,
        projection=operation.projection,
    )
    if not operation.returns_edge or document is None:
        return None
    return EdgeRecord.from_document(document)


async def execute_many(operation: CompiledOperation, collection: EdgeCollection) -> list[EdgeRecord]:
    logger.debug("find_many filter=%s projection=%s", operation.filter, operation.projection)
    documents = await collection.find_many(operation.filter, operation.projection)
    return [EdgeRecord.from_document(doc) for doc in documents]
