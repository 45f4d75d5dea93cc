"""SQLModel database models for edgeprops."""

from edgeprops.models.edges import EdgeBase, StoredEdge

__all__ = [
    "EdgeBase",
    "StoredEdge",
]
