"""Document matching — Mongo-style filters, updates and projections on dicts.

Used by the collections to evaluate compiled operations against stored
edge documents.  Paths are dot-separated (``"props.meta.weight"``).

Supported query operators: ``$eq $ne $gt $gte $lt $lte $in $nin
$exists $not $regex`` on fields, ``$and $or $nor`` at the top level.
Supported update clauses: ``$set`` and ``$unset``.
"""

from __future__ import annotations

import copy
import re
from typing import Any

from edgeprops.exceptions import QueryError


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()
"""Returned by :func:`get_path` when a path does not resolve."""


# ------------------------------------------------------------------
# Paths
# ------------------------------------------------------------------


def get_path(document: dict[str, Any], path: str) -> Any:
    """Resolve *path* in *document*, returning :data:`MISSING` if absent."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return MISSING
        current = current[part]
    return current


def set_path(document: dict[str, Any], path: str, value: Any) -> None:
    """Assign *value* at *path*, creating intermediate maps as needed."""
    *parents, leaf = path.split(".")
    current = document
    for part in parents:
        child = current.get(part)
        if child is None:
            child = current[part] = {}
        elif not isinstance(child, dict):
            raise QueryError(f"Cannot create field {leaf!r} in non-object element at {path!r}")
        current = child
    current[leaf] = copy.deepcopy(value)


def unset_path(document: dict[str, Any], path: str) -> None:
    """Remove the value at *path*; missing paths are ignored."""
    *parents, leaf = path.split(".")
    current: Any = document
    for part in parents:
        if not isinstance(current, dict) or part not in current:
            return
        current = current[part]
    if isinstance(current, dict):
        current.pop(leaf, None)


# ------------------------------------------------------------------
# Filters
# ------------------------------------------------------------------


def matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
    """True when *document* satisfies every condition in *query*."""
    for key, condition in query.items():
        if key == "$and":
            if not all(matches(document, sub) for sub in _clauses(key, condition)):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in _clauses(key, condition)):
                return False
        elif key == "$nor":
            if any(matches(document, sub) for sub in _clauses(key, condition)):
                return False
        elif key.startswith("$"):
            raise QueryError(f"Unknown top-level operator: {key}")
        elif not match_condition(get_path(document, key), condition):
            return False
    return True


def match_condition(value: Any, condition: Any) -> bool:
    """Evaluate one field condition against a resolved *value*."""
    if not is_operator_expression(condition):
        return _equals(value, condition)

    options = condition.get("$options", "")
    for op, operand in condition.items():
        if op == "$options":
            continue
        if not _apply_operator(op, value, operand, options):
            return False
    return True


def is_operator_expression(condition: Any) -> bool:
    """True for dicts such as ``{"$ne": True}``.

    Raises ``QueryError`` when operator and plain keys are mixed.
    """
    if not isinstance(condition, dict) or not condition:
        return False
    dollar = [k.startswith("$") for k in condition]
    if all(dollar):
        return True
    if any(dollar):
        raise QueryError(f"Cannot mix operators and fields in condition: {condition!r}")
    return False


def _clauses(key: str, condition: Any) -> list[dict[str, Any]]:
    if not isinstance(condition, list) or not condition:
        raise QueryError(f"{key} requires a non-empty list")
    return condition


def _apply_operator(op: str, value: Any, operand: Any, options: str) -> bool:
    if op == "$eq":
        return _equals(value, operand)
    if op == "$ne":
        return not _equals(value, operand)
    if op in _ORDERING:
        return _compare(op, value, operand)
    if op == "$in":
        return any(_equals(value, item) for item in _as_list(op, operand))
    if op == "$nin":
        return not any(_equals(value, item) for item in _as_list(op, operand))
    if op == "$exists":
        return (value is not MISSING) == bool(operand)
    if op == "$not":
        if not is_operator_expression(operand):
            raise QueryError("$not requires an operator expression")
        return not match_condition(value, operand)
    if op == "$regex":
        if not isinstance(value, str):
            return False
        flags = re.IGNORECASE if "i" in options else 0
        return re.search(operand, value, flags) is not None
    raise QueryError(f"Unknown operator: {op}")


def _as_list(op: str, operand: Any) -> list[Any]:
    if not isinstance(operand, (list, tuple, set, frozenset)):
        raise QueryError(f"{op} requires a list")
    return list(operand)


def _equals(value: Any, target: Any) -> bool:
    # null matches both explicit None and a missing field
    if target is None:
        return value is MISSING or value is None
    if value is MISSING:
        return False
    if isinstance(value, list) and not isinstance(target, list):
        return any(_same(item, target) for item in value)
    return _same(value, target)


def _same(a: Any, b: Any) -> bool:
    # bool is an int subclass; keep True distinct from 1
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    return a == b


_ORDERING = {
    "$gt": lambda a, b: a > b,
    "$gte": lambda a, b: a >= b,
    "$lt": lambda a, b: a < b,
    "$lte": lambda a, b: a <= b,
}


def _compare(op: str, value: Any, operand: Any) -> bool:
    if value is MISSING or not _comparable(value, operand):
        return False
    return _ORDERING[op](value, operand)


def _comparable(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool)
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return True
    return isinstance(a, str) and isinstance(b, str)


# ------------------------------------------------------------------
# Updates and projections
# ------------------------------------------------------------------


def apply_update(document: dict[str, Any], update: dict[str, dict[str, Any]]) -> None:
    """Apply ``$set`` then ``$unset`` clauses to *document* in place."""
    unknown = set(update) - {"$set", "$unset"}
    if unknown:
        raise QueryError(f"Unsupported update clauses: {sorted(unknown)}")
    for path, value in update.get("$set", {}).items():
        set_path(document, path, value)
    for path in update.get("$unset", {}):
        unset_path(document, path)


def project(document: dict[str, Any], projection: tuple[str, ...] | list[str]) -> dict[str, Any]:
    """Return a deep copy of *document* restricted to *projection* paths.

    Existing parent objects are kept even when the leaf is missing, so
    projecting ``props.foe`` from ``{"props": {"friend": True}}`` yields
    ``{"props": {}}``.
    """
    result: dict[str, Any] = {}
    for path in projection:
        *parents, leaf = path.split(".")
        source: Any = document
        target = result
        for part in parents:
            source = source.get(part) if isinstance(source, dict) else None
            if not isinstance(source, dict):
                break
            target = target.setdefault(part, {})
        else:
            if isinstance(source, dict) and leaf in source:
                target[leaf] = copy.deepcopy(source[leaf])
    return result


def equality_value(condition: Any) -> Any:
    """The value a condition pins its field to, or :data:`MISSING`.

    Plain values and ``{"$eq": x}`` pin; anything else does not.
    """
    if is_operator_expression(condition):
        if set(condition) == {"$eq"}:
            return condition["$eq"]
        return MISSING
    return condition
