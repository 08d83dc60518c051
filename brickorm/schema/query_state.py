"""Pydantic models for the mutable state behind one Query Builder.

``QueryState`` carries everything a statement needs (type tag, target table,
select list, predicate lists, ordering, limits, insert rows, update
assignments) plus the result-shape directives read by the Result Cursor.
The builder mutates it; the compiler only reads it.

Predicates are stored flat, in call order, as :class:`Condition` tokens.
Grouping calls (``where_open`` / ``where_close``) add ``open`` / ``close``
tokens, so the compiler can rebuild the exact parenthesisation::

    [AND leaf(name = 'x'), OR open, AND leaf(id > 1), AND leaf(id < 9), close]
    -> `name` = 'x' OR (`id` > 1 AND `id` < 9)

Column / table references and values are left as ``Any``: they may be plain
strings, ``(name, alias)`` pairs, :class:`~brickorm.schema.expression.Expression`
objects or nested queries, and are resolved by the quoters at compile time.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

_STATE = ConfigDict(extra="forbid", arbitrary_types_allowed=True)


class QueryType(str, Enum):
    """Statement kind of a query."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Condition(BaseModel):
    """One token of a predicate list.

    Attributes:
        connective: ``AND`` / ``OR`` joining this token to the previous one.
        kind: ``leaf`` for ``(column, op, value)``; ``open`` / ``close`` for
            a parenthesised group boundary.
        column: Left-hand column reference (leaf only).
        op: SQL operator (leaf only), e.g. ``=``, ``LIKE``, ``IN``.
        value: Right-hand value (leaf only).
    """

    model_config = _STATE

    connective: Literal["AND", "OR"] = "AND"
    kind: Literal["leaf", "open", "close"] = "leaf"
    column: Any = None
    op: str = ""
    value: Any = None


class JoinClause(BaseModel):
    """A single ``[type] JOIN table ON ...`` entry.

    Attributes:
        table: Table reference (name, ``(name, alias)`` pair or sub-query).
        type: Join type keyword (``LEFT``, ``INNER``, ...) or ``None``.
        on: ``ON`` conditions; leaf values are column references.
    """

    model_config = _STATE

    table: Any
    type: str | None = None
    on: list[Condition] = Field(default_factory=list)


class OrderByItem(BaseModel):
    """A single ``ORDER BY`` entry."""

    model_config = _STATE

    column: Any
    direction: Literal["ASC", "DESC"] | None = None


class QueryState(BaseModel):
    """Accumulated builder state for one statement.

    Attributes:
        type: Statement kind.
        table: Target table reference (FROM / INTO / UPDATE / DELETE FROM).
        columns: SELECT list; empty means ``*``.
        distinct: Emit ``SELECT DISTINCT``.
        joins: JOIN entries in call order.
        where: WHERE predicate tokens.
        group_by: GROUP BY column references.
        having: HAVING predicate tokens.
        order_by: ORDER BY entries in call order.
        limit: Row limit.
        offset: Row offset.
        insert_columns: Explicit INSERT column list.
        values: INSERT rows; each row is a sequence or a column mapping.
        insert_select: Sub-query supplying INSERT rows.
        set_values: UPDATE assignments in call order.
        as_object: Result shape: ``False`` for plain rows, ``True`` for
            attribute objects, or a class to hydrate.
        object_args: Extra positional arguments for hydration.
        index_by: Column whose value keys materialized results.
    """

    model_config = _STATE

    type: QueryType = QueryType.SELECT
    table: Any = None
    columns: list[Any] = Field(default_factory=list)
    distinct: bool = False
    joins: list[JoinClause] = Field(default_factory=list)
    where: list[Condition] = Field(default_factory=list)
    group_by: list[Any] = Field(default_factory=list)
    having: list[Condition] = Field(default_factory=list)
    order_by: list[OrderByItem] = Field(default_factory=list)
    limit: int | None = None
    offset: int | None = None
    insert_columns: list[str] = Field(default_factory=list)
    values: list[Any] = Field(default_factory=list)
    insert_select: Any = None
    set_values: dict[str, Any] = Field(default_factory=dict)
    as_object: Any = False
    object_args: list[Any] = Field(default_factory=list)
    index_by: str | None = None
