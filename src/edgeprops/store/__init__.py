"""Persistence collaborators — the collection protocol and its implementations."""

from edgeprops.store.database import DatabaseCollection
from edgeprops.store.memory import MemoryCollection
from edgeprops.store.protocol import EdgeCollection

__all__ = [
    "DatabaseCollection",
    "EdgeCollection",
    "MemoryCollection",
]
