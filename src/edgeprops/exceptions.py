"""Custom exception hierarchy for edgeprops."""


class EdgePropsError(Exception):
    """Base exception for all edgeprops errors."""


class DescriptorError(EdgePropsError):
    """Raised when an edge descriptor violates the caller contract.

    Examples: a single-edge operation without ``src`` or ``dest``, a
    malformed identifier, or a mutation inside a multi-edge search.
    """


class QueryError(EdgePropsError):
    """Raised on malformed filter or update documents (unknown operators)."""


class StorageError(EdgePropsError):
    """Raised by the bundled collections on storage-level failures."""
