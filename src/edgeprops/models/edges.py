"""Edge models — one row per directed ``(src, dest)`` pair.

Provides ``EdgeBase``, a non-table base class.  Subclass with
``table=True`` and a custom ``__tablename__`` to store edges in a
different table.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime
from sqlmodel import Field, SQLModel


class EdgeBase(SQLModel):
    """Base fields for a stored edge. Subclass with ``table=True`` for a concrete table."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    src: uuid.UUID = Field(index=True)
    dest: uuid.UUID = Field(index=True)
    unique_index: str = Field(unique=True)
    props: dict[str, Any] | None = Field(default=None, sa_type=JSON(none_as_null=True))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )


class StoredEdge(EdgeBase, table=True):
    """A directed edge and its property map.

    ``unique_index`` is ``"{src}:{dest}"`` and carries the only
    uniqueness constraint; it must never be written independently of
    ``src`` and ``dest``.
    """

    __tablename__ = "edgeprops_edges"
