"""edgeprops: property storage for directed edges.

Set, get and remove properties on ``(src, dest)`` edges, and find edges
by property conditions, on top of any collection that can upsert.
"""

__version__ = "0.1.0"

from edgeprops._edges import Edges
from edgeprops._edges_async import EdgesAsync
from edgeprops.compiler import compile_descriptor, unique_index
from edgeprops.exceptions import DescriptorError, EdgePropsError, QueryError, StorageError
from edgeprops.filters import (
    FilterExpression,
    and_,
    eq,
    gt,
    gte,
    in_,
    lt,
    lte,
    ne,
    or_,
)
from edgeprops.store import DatabaseCollection, EdgeCollection, MemoryCollection
from edgeprops.types import (
    ALL,
    All,
    CompiledOperation,
    EdgeDescriptor,
    EdgeRecord,
    Named,
    PropertySelector,
    PropertyValue,
    Target,
    named,
)

__all__ = [
    "ALL",
    "All",
    "CompiledOperation",
    "DatabaseCollection",
    "DescriptorError",
    "EdgeCollection",
    "EdgeDescriptor",
    "EdgePropsError",
    "EdgeRecord",
    "Edges",
    "EdgesAsync",
    "FilterExpression",
    "MemoryCollection",
    "Named",
    "PropertySelector",
    "PropertyValue",
    "QueryError",
    "StorageError",
    "Target",
    "__version__",
    "and_",
    "compile_descriptor",
    "eq",
    "gt",
    "gte",
    "in_",
    "lt",
    "lte",
    "named",
    "ne",
    "or_",
    "unique_index",
]
