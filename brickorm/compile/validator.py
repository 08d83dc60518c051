"""Per-statement-type state validator.

Builder state is shared across statement kinds, but each kind only accepts
part of it: ``values`` means nothing to a SELECT, ``set`` means nothing to
a DELETE.  ``StateValidator`` rejects state that does not apply to the
current type and state that a type requires but is missing, so the compiler
never emits SQL that silently drops part of what the caller asked for.

Result-shape directives (``as_object``, ``index_by``) are read by the
Result Cursor, not compiled, and are ignored for write statements.
"""
from __future__ import annotations

from brickorm.errors import QueryBuildError
from brickorm.schema.query_state import QueryState, QueryType

# State fields (and their builder method names) that each type rejects.
_FORBIDDEN: dict[QueryType, dict[str, str]] = {
    QueryType.SELECT: {
        "insert_columns": "columns()",
        "values": "values()",
        "insert_select": "values_from()",
        "set_values": "set()",
    },
    QueryType.INSERT: {
        "columns": "select()",
        "distinct": "distinct()",
        "joins": "join()",
        "where": "where()",
        "group_by": "group_by()",
        "having": "having()",
        "order_by": "order_by()",
        "limit": "limit()",
        "offset": "offset()",
        "set_values": "set()",
    },
    QueryType.UPDATE: {
        "columns": "select()",
        "distinct": "distinct()",
        "joins": "join()",
        "group_by": "group_by()",
        "having": "having()",
        "offset": "offset()",
        "insert_columns": "columns()",
        "values": "values()",
        "insert_select": "values_from()",
    },
    QueryType.DELETE: {
        "columns": "select()",
        "distinct": "distinct()",
        "joins": "join()",
        "group_by": "group_by()",
        "having": "having()",
        "offset": "offset()",
        "insert_columns": "columns()",
        "values": "values()",
        "insert_select": "values_from()",
        "set_values": "set()",
    },
}


class StateValidator:
    """Validates a :class:`QueryState` before compilation.

    The two checks are public so callers can run them separately; the
    builder itself only calls :meth:`validate`.
    """

    def validate(self, state: QueryState) -> None:
        """Raise on the first inapplicable or missing piece of state.

        Raises:
            QueryBuildError: If the state cannot compile to a valid statement.
        """
        self.validate_applicable(state)
        self.validate_required(state)

    def validate_applicable(self, state: QueryState) -> None:
        for field_name, method in _FORBIDDEN[state.type].items():
            if _is_set(getattr(state, field_name)):
                raise QueryBuildError(
                    f"{method} does not apply to a {state.type.value} query.",
                    clause=state.type.value,
                )

    def validate_required(self, state: QueryState) -> None:
        kind = state.type.value
        if state.type is not QueryType.SELECT and state.table is None:
            raise QueryBuildError(f"{kind} query has no table.", clause=kind)
        if state.type is QueryType.SELECT and state.table is None and (
            state.joins or state.where or state.group_by or state.having
        ):
            raise QueryBuildError("SELECT with conditions or joins needs from().", clause=kind)
        if state.type is QueryType.INSERT:
            if not state.values and state.insert_select is None:
                raise QueryBuildError("INSERT query has no values.", clause="VALUES")
            if state.values and state.insert_select is not None:
                raise QueryBuildError(
                    "INSERT cannot take both values() and a sub-query.", clause="VALUES"
                )
        if state.type is QueryType.UPDATE and not state.set_values:
            raise QueryBuildError("UPDATE query has no SET assignments.", clause="SET")
        if state.offset is not None and state.limit is None:
            raise QueryBuildError("offset() requires limit().", clause="LIMIT")


def _is_set(value: object) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, (list, dict)):
        return bool(value)
    return True
