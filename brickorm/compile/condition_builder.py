"""Predicate compiler for WHERE, HAVING and JOIN ... ON.

Conditions arrive as the flat token list recorded by the builder
(see :class:`~brickorm.schema.query_state.Condition`).  They are emitted
left to right; a connective is written before every token except the first
one and the first one inside a group.

Operator normalisation
----------------------
* ``= NULL`` becomes ``IS NULL``; ``!= NULL`` / ``<> NULL`` become ``IS NOT NULL``.
* ``BETWEEN`` with a two-item sequence becomes ``BETWEEN a AND b``.
* ``IN`` / ``NOT IN`` with an empty sequence is rejected: ``IN ()`` is not
  valid SQL.
"""
from __future__ import annotations

from brickorm.compile.context import CompilationContext
from brickorm.errors import QueryBuildError
from brickorm.schema.query_state import Condition

_NULL_OPS: dict[str, str] = {
    "=": "IS",
    "!=": "IS NOT",
    "<>": "IS NOT",
}


class ConditionBuilder:
    """Compiles predicate token lists to SQL.

    Args:
        ctx: Compilation context (quoters).
    """

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(
        self,
        conditions: list[Condition],
        clause: str = "WHERE",
        value_is_column: bool = False,
    ) -> str:
        """Compile ``conditions`` to a SQL fragment (without the keyword).

        Args:
            conditions: Tokens in call order.
            clause: Clause name used in error messages.
            value_is_column: Quote leaf values as column references
                (``JOIN ... ON``) instead of literals.

        Raises:
            QueryBuildError: On unbalanced or empty groups, or an invalid
                operand for the operator.
        """
        sql = ""
        depth = 0
        previous: Condition | None = None
        for cond in conditions:
            if cond.kind == "close":
                if depth == 0:
                    raise QueryBuildError(f"Unbalanced ')' in {clause}.", clause=clause)
                if previous is not None and previous.kind == "open":
                    raise QueryBuildError(f"Empty group in {clause}.", clause=clause)
                depth -= 1
                sql += ")"
            else:
                if sql and (previous is None or previous.kind != "open"):
                    sql += f" {cond.connective} "
                if cond.kind == "open":
                    depth += 1
                    sql += "("
                else:
                    sql += self._build_leaf(cond, clause, value_is_column)
            previous = cond

        if depth != 0:
            raise QueryBuildError(f"Unclosed '(' in {clause}.", clause=clause)
        return sql

    # ------------------------------------------------------------------
    # Leaf compilation
    # ------------------------------------------------------------------

    def _build_leaf(self, cond: Condition, clause: str, value_is_column: bool) -> str:
        op = cond.op.strip().upper()
        value = cond.value

        if value is None and op in _NULL_OPS:
            op = _NULL_OPS[op]

        if value_is_column and value is not None:
            value_sql = self._ctx.identifiers.column(value)
        elif op in ("BETWEEN", "NOT BETWEEN") and isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise QueryBuildError(
                    f"{op} needs exactly two bounds, got {len(value)}.", clause=clause
                )
            low, high = value
            quote = self._ctx.values.quote
            value_sql = f"{quote(low)} AND {quote(high)}"
        else:
            if op in ("IN", "NOT IN") and isinstance(value, (list, tuple, set, frozenset)) and not value:
                raise QueryBuildError(f"{op} needs at least one value.", clause=clause)
            value_sql = self._ctx.values.quote(value)

        if cond.column is None:
            return f"{op} {value_sql}"
        return f"{self._ctx.identifiers.column(cond.column)} {op} {value_sql}"
