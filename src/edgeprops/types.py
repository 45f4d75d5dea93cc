"""Core value types — descriptors, selectors, compiled operations, records."""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from edgeprops.filters import FilterExpression

PropertyValue = bool | int | float | str | None | list["PropertyValue"] | dict[str, "PropertyValue"]
"""Recursive union of values a property may hold."""

EdgeId = uuid.UUID | str
"""Accepted identifier inputs; strings are normalized to ``uuid.UUID``."""


# ------------------------------------------------------------------
# Property selectors
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class All:
    """Selects the whole ``props`` subtree."""

    def __repr__(self) -> str:
        return "ALL"


@dataclass(frozen=True, slots=True)
class Named:
    """Selects individual properties by (dot-path) name."""

    names: frozenset[str]


PropertySelector = All | Named

ALL = All()


def named(*names: str) -> Named:
    """Build a :class:`Named` selector from property names."""
    return Named(frozenset(names))


def to_selector(value: PropertySelector | Mapping[str, Any] | Iterable[str] | None) -> PropertySelector:
    """Normalize a caller-supplied selection into a :class:`PropertySelector`.

    ``None`` means every property.  A mapping contributes its keys, so the
    ``{"friend": True}`` calling style works for selection as well as for
    assignment.  A bare string is treated as a single name.
    """
    if value is None:
        return ALL
    if isinstance(value, (All, Named)):
        return value
    if isinstance(value, str):
        return Named(frozenset((value,)))
    if isinstance(value, Mapping):
        return Named(frozenset(value.keys()))
    return Named(frozenset(value))


# ------------------------------------------------------------------
# Descriptor
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EdgeDescriptor:
    """Declarative request against one edge or a set of edges.

    Attributes:
        src: Identifier the edge starts from.
        dest: Identifier the edge ends at.
        find: Property conditions; presence turns the request into a
            multi-edge search.
        get: Properties to return.  ``None`` returns identity fields only.
        set: Properties to assign.
        remove: Properties to clear.
    """

    src: EdgeId | None = None
    dest: EdgeId | None = None
    find: Mapping[str, Any] | FilterExpression | None = None
    get: PropertySelector | None = None
    set: Mapping[str, PropertyValue] | None = None
    remove: PropertySelector | None = None


# ------------------------------------------------------------------
# Compiled operation
# ------------------------------------------------------------------


class Target(Enum):
    """How many edges a compiled operation addresses."""

    ONE = "one"
    MANY = "many"


@dataclass(frozen=True, slots=True)
class CompiledOperation:
    """A descriptor translated into persistence terms.

    Attributes:
        target: Single-edge upsert or multi-edge search.
        filter: Mongo-style filter document.
        projection: Dot paths of the fields to return.
        update: Update document with optional ``$set`` / ``$unset`` clauses.
        returns_edge: Whether the caller asked for the edge back.
    """

    target: Target
    filter: dict[str, Any]
    projection: tuple[str, ...]
    update: dict[str, dict[str, Any]] = field(default_factory=dict)
    returns_edge: bool = False


# ------------------------------------------------------------------
# Results
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EdgeRecord:
    """An edge as returned to callers.

    ``props`` is ``None`` when the stored (or projected) document carries
    no ``props`` field at all.
    """

    src: uuid.UUID
    dest: uuid.UUID
    props: dict[str, Any] | None = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> EdgeRecord:
        props = document.get("props")
        return cls(
            src=_as_uuid(document["src"]),
            dest=_as_uuid(document["dest"]),
            props=dict(props) if props is not None else None,
        )


def _as_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))
