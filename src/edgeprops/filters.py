"""Filter AST — typed property conditions compiled to Mongo-style documents.

``find`` conditions may be given either as a plain mapping (passed through
untouched) or built from these helpers::

    find_edges(src=a, find=and_(ne("friend", True), gte("weight", 2)))
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# ------------------------------------------------------------------
# Enums
# ------------------------------------------------------------------


class FilterOp(Enum):
    """Operators a single edge property can be compared with."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"


class LogicalOp(Enum):
    """How child conditions of a group are joined."""

    AND = "and"
    OR = "or"


# ------------------------------------------------------------------
# AST nodes
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Comparison:
    """One condition on an edge property, e.g. ``friend == True``.

    ``field`` is a property name relative to ``props`` and may be a dot
    path into a nested value.
    """

    field: str
    op: FilterOp
    value: Any


@dataclass(frozen=True, slots=True)
class LogicalGroup:
    """Conditions joined by ``$and`` or ``$or``."""

    op: LogicalOp
    expressions: list[FilterExpression]


FilterExpression = Comparison | LogicalGroup


# ------------------------------------------------------------------
# Builder helpers
# ------------------------------------------------------------------


def eq(field: str, value: Any) -> Comparison:
    """``field == value``."""
    return Comparison(field=field, op=FilterOp.EQ, value=value)


def ne(field: str, value: Any) -> Comparison:
    """``field != value`` (also matches edges where *field* is unset)."""
    return Comparison(field=field, op=FilterOp.NE, value=value)


def gt(field: str, value: Any) -> Comparison:
    """``field > value``."""
    return Comparison(field=field, op=FilterOp.GT, value=value)


def gte(field: str, value: Any) -> Comparison:
    """``field >= value``."""
    return Comparison(field=field, op=FilterOp.GTE, value=value)


def lt(field: str, value: Any) -> Comparison:
    """``field < value``."""
    return Comparison(field=field, op=FilterOp.LT, value=value)


def lte(field: str, value: Any) -> Comparison:
    """``field <= value``."""
    return Comparison(field=field, op=FilterOp.LTE, value=value)


def in_(field: str, values: list[Any]) -> Comparison:
    """``field IN values``."""
    return Comparison(field=field, op=FilterOp.IN, value=values)


def and_(*exprs: FilterExpression) -> LogicalGroup:
    """Combine expressions with AND."""
    return LogicalGroup(op=LogicalOp.AND, expressions=list(exprs))


def or_(*exprs: FilterExpression) -> LogicalGroup:
    """Combine expressions with OR."""
    return LogicalGroup(op=LogicalOp.OR, expressions=list(exprs))


# ------------------------------------------------------------------
# Compiler
# ------------------------------------------------------------------

_MONGO_OPS: dict[FilterOp, str] = {
    FilterOp.EQ: "$eq",
    FilterOp.NE: "$ne",
    FilterOp.GT: "$gt",
    FilterOp.GTE: "$gte",
    FilterOp.LT: "$lt",
    FilterOp.LTE: "$lte",
    FilterOp.IN: "$in",
}


def compile_filter(expr: FilterExpression, prefix: str = "") -> dict[str, Any]:
    """Compile a ``FilterExpression`` to a Mongo-style filter document.

    Every field name is prefixed with *prefix*.

    Examples::

        compile_filter(eq("friend", True), prefix="props.")
        # {"props.friend": {"$eq": True}}

        compile_filter(and_(ne("friend", True), gt("weight", 2)))
        # {"$and": [{"friend": {"$ne": True}}, {"weight": {"$gt": 2}}]}
    """
    if isinstance(expr, Comparison):
        op_str = _MONGO_OPS[expr.op]
        return {prefix + expr.field: {op_str: expr.value}}

    # LogicalGroup
    logical_key = "$and" if expr.op == LogicalOp.AND else "$or"
    return {logical_key: [compile_filter(child, prefix) for child in expr.expressions]}


def is_filter_expression(value: object) -> bool:
    """True when *value* is a node of the filter AST."""
    return isinstance(value, (Comparison, LogicalGroup))
