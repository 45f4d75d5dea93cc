"""Edge descriptor compiler — pure translation of descriptors to operations.

A descriptor becomes a Mongo-style filter, a projection and (for
mutations) an update document.  Property names are addressed below the
``props`` field by dot path, so single leaves can be assigned, read or
cleared without touching their siblings.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

from edgeprops.exceptions import DescriptorError
from edgeprops.filters import compile_filter, is_filter_expression
from edgeprops.types import (
    All,
    CompiledOperation,
    EdgeDescriptor,
    PropertySelector,
    Target,
)

PROPS_FIELD = "props"
IDENTITY_FIELDS: tuple[str, ...] = ("src", "dest")
UNIQUE_FIELD = "unique_index"


def unique_index(src: uuid.UUID, dest: uuid.UUID) -> str:
    """Canonical uniqueness key for the ordered pair ``(src, dest)``."""
    return f"{src}:{dest}"


def coerce_id(value: Any, name: str) -> uuid.UUID:
    """Normalize an identifier to ``uuid.UUID`` or raise ``DescriptorError``."""
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        try:
            return uuid.UUID(value)
        except ValueError:
            raise DescriptorError(f"{name} is not a valid identifier: {value!r}") from None
    raise DescriptorError(f"{name} must be a UUID or string, got {type(value).__name__}")


def prop_path(name: str) -> str:
    """Prefix a property name with ``props.`` after validating it."""
    if not isinstance(name, str) or not name:
        raise DescriptorError(f"Property names must be non-empty strings, got {name!r}")
    if name.startswith("$") or ".$" in name or name.startswith(".") or name.endswith("."):
        raise DescriptorError(f"Invalid property name: {name!r}")
    if ".." in name:
        raise DescriptorError(f"Property name has an empty segment: {name!r}")
    return f"{PROPS_FIELD}.{name}"


def compile_descriptor(descriptor: EdgeDescriptor) -> CompiledOperation:
    """Translate *descriptor* into a :class:`CompiledOperation`.

    Without ``find`` the operation addresses exactly one edge: both
    ``src`` and ``dest`` are required and the filter is pinned to the
    edge's ``unique_index``, so an upsert can never create a duplicate.
    With ``find`` it is a read-only search over all matching edges.

    Raises:
        DescriptorError: On any caller-contract violation.
    """
    conditions: dict[str, Any] = {}
    src = dest = None

    if descriptor.src is not None:
        src = coerce_id(descriptor.src, "src")
        conditions["src"] = src

    if descriptor.dest is not None:
        dest = coerce_id(descriptor.dest, "dest")
        conditions["dest"] = dest

    if descriptor.find is not None:
        conditions.update(_compile_find(descriptor.find))

    projection = _compile_projection(descriptor.get)
    update = _compile_update(descriptor)

    if descriptor.find is None:
        if src is None or dest is None:
            raise DescriptorError("Single-edge operations require both src and dest")
        conditions[UNIQUE_FIELD] = unique_index(src, dest)
        return CompiledOperation(
            target=Target.ONE,
            filter=conditions,
            projection=projection,
            update=update,
            returns_edge=descriptor.get is not None,
        )

    if update:
        raise DescriptorError("Multi-edge searches cannot set or remove properties")
    return CompiledOperation(
        target=Target.MANY,
        filter=conditions,
        projection=projection,
        returns_edge=True,
    )


def _compile_find(find: Any) -> dict[str, Any]:
    if is_filter_expression(find):
        return compile_filter(find, prefix=f"{PROPS_FIELD}.")
    if not isinstance(find, Mapping):
        raise DescriptorError(f"find must be a mapping or filter expression, got {type(find).__name__}")
    # Conditions pass through untouched; only the path is prefixed.
    return {prop_path(name): condition for name, condition in find.items()}


def _compile_projection(selector: PropertySelector | None) -> tuple[str, ...]:
    if selector is None:
        return IDENTITY_FIELDS
    if isinstance(selector, All):
        return (*IDENTITY_FIELDS, PROPS_FIELD)
    return (*IDENTITY_FIELDS, *(prop_path(name) for name in sorted(selector.names)))


def _compile_update(descriptor: EdgeDescriptor) -> dict[str, dict[str, Any]]:
    update: dict[str, dict[str, Any]] = {}

    if descriptor.set is not None and descriptor.set:
        update["$set"] = {prop_path(name): value for name, value in descriptor.set.items()}

    if descriptor.remove is not None:
        if isinstance(descriptor.remove, All):
            # One unset of the subtree, whatever keys it holds.
            update["$unset"] = {PROPS_FIELD: ""}
        elif descriptor.remove.names:
            update["$unset"] = {prop_path(name): "" for name in sorted(descriptor.remove.names)}

    if "$set" in update and "$unset" in update:
        unset = update["$unset"]
        for path in update["$set"]:
            if PROPS_FIELD in unset or path in unset:
                raise DescriptorError(f"Cannot set and remove {path!r} in one operation")

    return update
