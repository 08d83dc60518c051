"""Core QueryState → SQL compilation logic.

``QueryCompiler`` is the top-level orchestrator.  It validates the state
for its statement type, then wires together focused clause-level
sub-builders in a fixed order:

    SELECT → FROM → JOIN → WHERE → GROUP BY → HAVING → ORDER BY → LIMIT/OFFSET

regardless of the order in which the builder methods were called.  Within
one clause, entries keep call order.

Sub-builder hierarchy
---------------------
QueryCompiler
  ├── StateValidator        (validator.py)
  ├── ConditionBuilder      (condition_builder.py)
  ├── SelectClauseBuilder   (clause_builders.py)
  ├── JoinClauseBuilder     (clause_builders.py)
  ├── OrderByClauseBuilder  (clause_builders.py)
  ├── LimitClauseBuilder    (clause_builders.py)
  ├── InsertClauseBuilder   (clause_builders.py)
  └── SetClauseBuilder      (clause_builders.py)

Sub-queries
-----------
The value quoter receives a ``compile_subquery`` function bound to this
compiler, so nested queries in columns, tables, predicates and
``INSERT … SELECT`` are compiled with the same engine escaping as the
outer statement.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from brickorm.compile.clause_builders import (
    InsertClauseBuilder,
    JoinClauseBuilder,
    LimitClauseBuilder,
    OrderByClauseBuilder,
    SelectClauseBuilder,
    SetClauseBuilder,
)
from brickorm.compile.condition_builder import ConditionBuilder
from brickorm.compile.context import CompilationContext
from brickorm.compile.quoting import EscapeFn, IdentifierQuoter, ValueQuoter
from brickorm.compile.validator import StateValidator
from brickorm.schema.query_state import QueryState, QueryType

if TYPE_CHECKING:
    from brickorm.query import Query


@dataclass
class CompiledQuery:
    """The output of a successful compilation.

    Attributes:
        sql: The compiled SQL string, literals inlined and escaped.
        type: The statement kind.
        as_object: Result shape for SELECT (``False``, ``True`` or a class).
        object_args: Extra positional hydration arguments.
        index_by: Column keying materialized results, if any.
    """

    sql: str
    type: QueryType
    as_object: Any = False
    object_args: list[Any] = field(default_factory=list)
    index_by: str | None = None

    def __str__(self) -> str:
        return self.sql


class QueryCompiler:
    """Compiles :class:`QueryState` to SQL for one engine.

    Args:
        escape: The engine's string-escaping primitive.
    """

    def __init__(self, escape: EscapeFn) -> None:
        values = ValueQuoter(escape)
        values.compile_subquery = self._compile_subquery
        self._ctx = CompilationContext(values=values, identifiers=IdentifierQuoter(values))
        self._validator = StateValidator()
        self._conditions = ConditionBuilder(self._ctx)
        self._select = SelectClauseBuilder(self._ctx)
        self._join = JoinClauseBuilder(self._ctx, self._conditions)
        self._order_by = OrderByClauseBuilder(self._ctx)
        self._limit = LimitClauseBuilder()
        self._insert = InsertClauseBuilder(self._ctx)
        self._set = SetClauseBuilder(self._ctx)

    @property
    def values(self) -> ValueQuoter:
        return self._ctx.values

    @property
    def identifiers(self) -> IdentifierQuoter:
        return self._ctx.identifiers

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compile(self, state: QueryState) -> CompiledQuery:
        """Compile ``state`` to SQL.

        Returns:
            :class:`CompiledQuery` with ``sql`` and, for SELECT, the result
            shape directives.

        Raises:
            QueryBuildError: If the state is incomplete or inapplicable.
            QuotingError: If the engine fails to escape a value.
        """
        self._validator.validate(state)

        if state.type is QueryType.SELECT:
            return CompiledQuery(
                sql=self._build_select(state),
                type=state.type,
                as_object=state.as_object,
                object_args=list(state.object_args),
                index_by=state.index_by,
            )
        if state.type is QueryType.INSERT:
            sql = self._insert.build(state)
        elif state.type is QueryType.UPDATE:
            sql = self._build_update(state)
        else:
            sql = self._build_delete(state)
        return CompiledQuery(sql=sql, type=state.type)

    # ------------------------------------------------------------------
    # Statement assembly
    # ------------------------------------------------------------------

    def _build_select(self, state: QueryState) -> str:
        ident = self._ctx.identifiers
        parts: list[str] = [self._select.build(state)]

        if state.table is not None:
            parts.append(f"FROM {ident.table(state.table)}")

        for join in state.joins:
            parts.append(self._join.build(join))

        if state.where:
            parts.append(f"WHERE {self._conditions.build(state.where, clause='WHERE')}")

        if state.group_by:
            parts.append(f"GROUP BY {', '.join(ident.column(c) for c in state.group_by)}")

        if state.having:
            parts.append(f"HAVING {self._conditions.build(state.having, clause='HAVING')}")

        parts.extend(self._build_tail(state))
        return " ".join(parts)

    def _build_update(self, state: QueryState) -> str:
        parts = [f"UPDATE {self._ctx.identifiers.table(state.table)}", self._set.build(state.set_values)]
        if state.where:
            parts.append(f"WHERE {self._conditions.build(state.where, clause='WHERE')}")
        parts.extend(self._build_tail(state))
        return " ".join(parts)

    def _build_delete(self, state: QueryState) -> str:
        parts = [f"DELETE FROM {self._ctx.identifiers.table(state.table)}"]
        if state.where:
            parts.append(f"WHERE {self._conditions.build(state.where, clause='WHERE')}")
        parts.extend(self._build_tail(state))
        return " ".join(parts)

    def _build_tail(self, state: QueryState) -> list[str]:
        parts: list[str] = []
        if state.order_by:
            parts.append(self._order_by.build(state.order_by))
        limit_sql = self._limit.build(state.limit, state.offset)
        if limit_sql:
            parts.append(limit_sql)
        return parts

    def _compile_subquery(self, query: Query) -> str:
        return self.compile(query.state).sql
