"""Clause-level SQL builders.

Each class handles exactly one SQL clause and returns its fragment,
keyword included.  Values and identifiers are always routed through the
shared :class:`~brickorm.compile.context.CompilationContext` quoters.

Classes
-------
SelectClauseBuilder   - ``SELECT [DISTINCT] <columns>``
JoinClauseBuilder     - ``[type] JOIN <table> ON …``
OrderByClauseBuilder  - ``ORDER BY <column> [dir], …``
LimitClauseBuilder    - ``LIMIT n [OFFSET m]``
InsertClauseBuilder   - ``INSERT INTO <table> (<cols>) VALUES … | SELECT …``
SetClauseBuilder      - ``SET <column> = <value>, …``
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from brickorm.compile.condition_builder import ConditionBuilder
from brickorm.compile.context import CompilationContext
from brickorm.errors import QueryBuildError
from brickorm.schema.query_state import JoinClause, OrderByItem, QueryState

_JOIN_TYPES = frozenset(
    {"INNER", "LEFT", "RIGHT", "CROSS", "NATURAL", "LEFT OUTER", "RIGHT OUTER", "STRAIGHT"}
)


class SelectClauseBuilder:
    """Builds the ``SELECT [DISTINCT] …`` clause."""

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    def build(self, state: QueryState) -> str:
        prefix = "SELECT DISTINCT" if state.distinct else "SELECT"
        if not state.columns:
            return f"{prefix} *"
        column = self._ctx.identifiers.column
        return f"{prefix} {', '.join(column(c) for c in state.columns)}"


class JoinClauseBuilder:
    """Builds a single ``JOIN … ON …`` fragment."""

    def __init__(self, ctx: CompilationContext, conditions: ConditionBuilder) -> None:
        self._ctx = ctx
        self._conditions = conditions

    def build(self, join: JoinClause) -> str:
        keyword = "JOIN"
        if join.type:
            join_type = join.type.strip().upper()
            if join_type not in _JOIN_TYPES:
                raise QueryBuildError(f"Unknown join type '{join.type}'.", clause="JOIN")
            keyword = f"{join_type} JOIN"
        sql = f"{keyword} {self._ctx.identifiers.table(join.table)}"
        if join.on:
            on_sql = self._conditions.build(join.on, clause="JOIN", value_is_column=True)
            sql += f" ON ({on_sql})"
        return sql


class OrderByClauseBuilder:
    """Builds the ``ORDER BY …`` clause."""

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    def build(self, items: list[OrderByItem]) -> str:
        parts = [self._build_item(item) for item in items]
        return f"ORDER BY {', '.join(parts)}"

    def _build_item(self, item: OrderByItem) -> str:
        column_sql = self._ctx.identifiers.column(item.column)
        if item.direction:
            return f"{column_sql} {item.direction}"
        return column_sql


class LimitClauseBuilder:
    """Builds ``LIMIT n`` / ``OFFSET m``."""

    def build(self, limit: int | None, offset: int | None) -> str:
        parts: list[str] = []
        if limit is not None:
            parts.append(f"LIMIT {int(limit)}")
        if offset is not None:
            parts.append(f"OFFSET {int(offset)}")
        return " ".join(parts)


class InsertClauseBuilder:
    """Builds ``INSERT INTO … (…) VALUES (…), (…)`` or ``INSERT … SELECT``.

    Rows may be sequences (parallel to the column list) or mappings.  When
    no explicit column list is set, columns come from the first mapping's
    keys; mapping rows are then read in column order.
    """

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    def build(self, state: QueryState) -> str:
        ident = self._ctx.identifiers
        columns = list(state.insert_columns)
        if not columns and state.values and isinstance(state.values[0], Mapping):
            columns = list(state.values[0].keys())

        sql = f"INSERT INTO {ident.table(state.table)}"
        if columns:
            sql += f" ({', '.join(ident.column(c) for c in columns)})"

        if state.insert_select is not None:
            return f"{sql} {self._ctx.values.subquery(state.insert_select)}"

        rows = [self._build_row(row, columns) for row in state.values]
        return f"{sql} VALUES {', '.join(rows)}"

    def _build_row(self, row: Any, columns: list[str]) -> str:
        if isinstance(row, Mapping):
            missing = [c for c in columns if c not in row]
            if missing:
                raise QueryBuildError(
                    f"INSERT row is missing values for columns {missing}.", clause="VALUES"
                )
            values = [row[c] for c in columns]
        else:
            values = list(row)
            if columns and len(values) != len(columns):
                raise QueryBuildError(
                    f"INSERT row has {len(values)} values for {len(columns)} columns.",
                    clause="VALUES",
                )
        if not values:
            raise QueryBuildError("INSERT row is empty.", clause="VALUES")
        return "(" + ", ".join(self._ctx.values.quote(v) for v in values) + ")"


class SetClauseBuilder:
    """Builds the ``SET col = value, …`` clause of an UPDATE."""

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    def build(self, assignments: dict[str, Any]) -> str:
        column = self._ctx.identifiers.column
        quote = self._ctx.values.quote
        parts = [f"{column(name)} = {quote(value)}" for name, value in assignments.items()]
        return f"SET {', '.join(parts)}"
