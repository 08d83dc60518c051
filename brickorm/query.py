"""Fluent query builder.

A :class:`Query` only accumulates state.  Every clause method mutates the
builder's :class:`~brickorm.schema.query_state.QueryState` and returns the
same builder; nothing is compiled or sent to the engine until a terminal
method (``get`` / ``one`` / ``all`` / ``count`` / ``scalar`` / ``execute``)
is called::

    users = (
        Query()
        .select("id", ("name", "n"))
        .from_("users")
        .where("name", "LIKE", "%oh")
        .or_where_open()
            .where("id", "IN", [1, 2])
            .and_where("active", "=", True)
        .or_where_close()
        .order_by("id", "desc")
        .limit(10)
        .all()
    )

A builder is single-owner state; do not share one across threads.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from brickorm.compile.builder import CompiledQuery
from brickorm.database import Database
from brickorm.errors import QueryBuildError
from brickorm.result import Result
from brickorm.schema.expression import Expression
from brickorm.schema.query_state import (
    Condition,
    JoinClause,
    OrderByItem,
    QueryState,
    QueryType,
)

_COUNT_ALIAS = "records_found"


class Query:
    """Chainable state container for one statement.

    Args:
        db: Database to compile and execute against; defaults to
            :meth:`Database.instance` at execution time.
    """

    def __init__(self, db: Database | None = None) -> None:
        self._db = db
        self.state = QueryState()

    @property
    def db(self) -> Database:
        return self._db if self._db is not None else Database.instance()

    # ------------------------------------------------------------------
    # Statement kind
    # ------------------------------------------------------------------

    def select(self, *columns: Any) -> Query:
        """Start (or extend) a SELECT; no columns means ``*``.

        Columns may be names, ``(name, alias)`` pairs, expressions or
        sub-queries.  A single list argument is taken as the column list.
        """
        self.state.type = QueryType.SELECT
        if len(columns) == 1 and isinstance(columns[0], list):
            columns = tuple(columns[0])
        self.state.columns.extend(columns)
        return self

    def insert(self, table: Any = None, values: Mapping[str, Any] | None = None) -> Query:
        """Start an INSERT, optionally with one row given as a mapping."""
        self.state.type = QueryType.INSERT
        if table is not None:
            self.state.table = table
        if values is not None:
            self.values(values)
        return self

    def update(self, table: Any = None) -> Query:
        self.state.type = QueryType.UPDATE
        if table is not None:
            self.state.table = table
        return self

    def delete(self, table: Any = None) -> Query:
        self.state.type = QueryType.DELETE
        if table is not None:
            self.state.table = table
        return self

    # ------------------------------------------------------------------
    # SELECT clauses
    # ------------------------------------------------------------------

    def distinct(self, value: bool = True) -> Query:
        self.state.distinct = value
        return self

    def from_(self, table: Any) -> Query:
        """Set the table to select from (name, ``(name, alias)`` or sub-query)."""
        self.state.table = table
        return self

    def table(self, table: Any) -> Query:
        """Set the target table for any statement kind."""
        self.state.table = table
        return self

    def join(self, table: Any, type: str | None = None) -> Query:
        """Add a JOIN; follow with :meth:`on` for its conditions."""
        self.state.joins.append(JoinClause(table=table, type=type))
        return self

    def on(self, column: Any, op: str, other: Any) -> Query:
        """Add an ``ON`` condition comparing two columns to the last join."""
        return self._add_on("AND", column, op, other)

    def and_on(self, column: Any, op: str, other: Any) -> Query:
        return self._add_on("AND", column, op, other)

    def or_on(self, column: Any, op: str, other: Any) -> Query:
        return self._add_on("OR", column, op, other)

    def group_by(self, *columns: Any) -> Query:
        if len(columns) == 1 and isinstance(columns[0], list):
            columns = tuple(columns[0])
        self.state.group_by.extend(columns)
        return self

    def having(self, column: Any, op: str | None = None, value: Any = None) -> Query:
        return self.and_having(column, op, value)

    def and_having(self, column: Any, op: str | None = None, value: Any = None) -> Query:
        self.state.having.append(_leaf("AND", column, op, value))
        return self

    def or_having(self, column: Any, op: str | None = None, value: Any = None) -> Query:
        self.state.having.append(_leaf("OR", column, op, value))
        return self

    def having_open(self) -> Query:
        return self.and_having_open()

    def and_having_open(self) -> Query:
        self.state.having.append(Condition(connective="AND", kind="open"))
        return self

    def or_having_open(self) -> Query:
        self.state.having.append(Condition(connective="OR", kind="open"))
        return self

    def having_close(self) -> Query:
        self.state.having.append(Condition(kind="close"))
        return self

    # ------------------------------------------------------------------
    # WHERE (SELECT / UPDATE / DELETE)
    # ------------------------------------------------------------------

    def where(self, column: Any, op: str | None = None, value: Any = None) -> Query:
        """Add an AND condition.

        Accepts ``where(col, op, value)`` or a list of
        ``[col, op, value]`` triples, all joined with AND.
        """
        if op is None and isinstance(column, list):
            for condition in column:
                if not isinstance(condition, (list, tuple)) or len(condition) != 3:
                    raise QueryBuildError(
                        f"where() conditions must be [column, op, value], got {condition!r}.",
                        clause="WHERE",
                    )
                self.and_where(*condition)
            return self
        return self.and_where(column, op, value)

    def and_where(self, column: Any, op: str | None = None, value: Any = None) -> Query:
        self.state.where.append(_leaf("AND", column, op, value))
        return self

    def or_where(self, column: Any, op: str | None = None, value: Any = None) -> Query:
        self.state.where.append(_leaf("OR", column, op, value))
        return self

    def where_open(self) -> Query:
        return self.and_where_open()

    def and_where_open(self) -> Query:
        self.state.where.append(Condition(connective="AND", kind="open"))
        return self

    def or_where_open(self) -> Query:
        self.state.where.append(Condition(connective="OR", kind="open"))
        return self

    def where_close(self) -> Query:
        self.state.where.append(Condition(kind="close"))
        return self

    and_where_close = where_close
    or_where_close = where_close

    # ------------------------------------------------------------------
    # Ordering and paging
    # ------------------------------------------------------------------

    def order_by(self, column: Any, direction: str | None = None) -> Query:
        normalized = direction.strip().upper() if direction else None
        if normalized not in (None, "ASC", "DESC"):
            raise QueryBuildError(f"Invalid sort direction '{direction}'.", clause="ORDER BY")
        self.state.order_by.append(OrderByItem(column=column, direction=normalized))
        return self

    def limit(self, number: int | None) -> Query:
        self.state.limit = number
        return self

    def offset(self, number: int | None) -> Query:
        self.state.offset = number
        return self

    # ------------------------------------------------------------------
    # INSERT / UPDATE values
    # ------------------------------------------------------------------

    def columns(self, columns: Sequence[str]) -> Query:
        """Set the INSERT column list."""
        self.state.insert_columns = list(columns)
        return self

    def values(self, *rows: Any) -> Query:
        """Add INSERT rows.

        Each argument is one row (a sequence parallel to :meth:`columns`, or
        a column mapping).  A single list of rows is a batch.
        """
        if len(rows) == 1 and isinstance(rows[0], list) and rows[0] and all(
            isinstance(r, (list, tuple, Mapping)) for r in rows[0]
        ):
            rows = tuple(rows[0])
        self.state.values.extend(rows)
        return self

    def values_from(self, query: Query) -> Query:
        """Use a SELECT sub-query as the INSERT source."""
        self.state.insert_select = query
        return self

    def set(self, values: Mapping[str, Any] | str, value: Any = None) -> Query:
        """Add UPDATE assignments from a mapping, or one ``(column, value)``."""
        if isinstance(values, Mapping):
            self.state.set_values.update(values)
        else:
            self.state.set_values[values] = value
        return self

    # ------------------------------------------------------------------
    # Result shape
    # ------------------------------------------------------------------

    def as_array(self) -> Query:
        """Return rows as dicts (the default)."""
        self.state.as_object = False
        self.state.object_args = []
        return self

    def as_object(self, cls: Any = True, args: Sequence[Any] | None = None) -> Query:
        """Return rows as objects: ``True`` for attribute objects, or a class."""
        self.state.as_object = cls
        self.state.object_args = list(args or [])
        return self

    def index_by(self, column: str | None) -> Query:
        """Key :meth:`all` output by ``column``; later duplicates win."""
        self.state.index_by = column
        return self

    # ------------------------------------------------------------------
    # Compilation and execution
    # ------------------------------------------------------------------

    def compile(self, db: Database | None = None) -> CompiledQuery:
        """Compile the current state without executing it."""
        return (db or self.db).compiler.compile(self.state)

    def execute(self, db: Database | None = None) -> Any:
        """Compile and run the statement.

        Returns:
            SELECT: a :class:`Result`.  INSERT: the inserted id.
            UPDATE / DELETE: the affected-row count.
        """
        db = db or self.db
        return db.execute_compiled(db.compiler.compile(self.state))

    def get(self, db: Database | None = None) -> Any:
        """Alias of :meth:`execute`; reads naturally for SELECT."""
        return self.execute(db)

    def one(self, db: Database | None = None) -> Any:
        """Return the first row, or ``None`` when nothing matches.

        The builder's own limit is left untouched.
        """
        self._require_select("one")
        single = self._clone(limit=1)
        result: Result = single.execute(db)
        return result.current()

    def all(self, db: Database | None = None) -> list[Any] | dict[Any, Any]:
        self._require_select("all")
        result: Result = self.execute(db)
        return result.all()

    def scalar(self, db: Database | None = None) -> Any:
        """Return the first column of the first row, or ``None``."""
        self._require_select("scalar")
        result: Result = self.execute(db)
        return result.scalar()

    def count(self, db: Database | None = None) -> int:
        """Return the number of matching rows.

        The count runs on a clone; this builder's select list, ordering and
        limits are untouched, so it can still be used for ``all()``.
        Ordering and paging are ignored.  DISTINCT and GROUP BY queries are
        counted through a derived table.
        """
        self._require_select("count")
        count_column = (Expression("COUNT(*)"), _COUNT_ALIAS)
        if self.state.distinct or self.state.group_by:
            inner = self._clone(order_by=[], limit=None, offset=None)
            counter = Query(self._db)
            counter.state = QueryState(
                columns=[count_column],
                table=(inner, "counted"),
            )
        else:
            counter = self._clone(
                columns=[count_column],
                distinct=False,
                order_by=[],
                limit=None,
                offset=None,
                as_object=False,
                object_args=[],
                index_by=None,
            )
        result: Result = counter.execute(db)
        return int(result.column(_COUNT_ALIAS, 0))

    def __str__(self) -> str:
        return self.compile().sql

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _clone(self, **update: Any) -> Query:
        # Shallow: nested sub-queries are shared, compilation never mutates them.
        clone = Query(self._db)
        clone.state = self.state.model_copy(update=update)
        return clone

    def _require_select(self, method: str) -> None:
        if self.state.type is not QueryType.SELECT:
            raise QueryBuildError(
                f"{method}() only applies to SELECT queries, not {self.state.type.value}.",
                clause=self.state.type.value,
            )

    def _add_on(self, connective: str, column: Any, op: str, other: Any) -> Query:
        if not self.state.joins:
            raise QueryBuildError("on() must follow join().", clause="JOIN")
        self.state.joins[-1].on.append(
            Condition(connective=connective, column=column, op=op, value=other)
        )
        return self


def _leaf(connective: str, column: Any, op: str | None, value: Any) -> Condition:
    if op is None:
        raise QueryBuildError(f"Condition on {column!r} has no operator.", clause="WHERE")
    return Condition(connective=connective, column=column, op=op, value=value)
