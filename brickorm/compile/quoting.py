"""Value and identifier quoting.

Every caller-supplied value that ends up in SQL text passes through
:meth:`ValueQuoter.quote`; every table / column name passes through
:class:`IdentifierQuoter`.  Type dispatch happens once here, never in the
clause builders.

Value rules
-----------
=====================  ==========================================
``None``               ``NULL``
``bool``               ``'1'`` / ``'0'``
``int``                decimal text, unquoted
``float`` / Decimal    fixed notation, never exponent or locale
list / tuple / set     ``(a, b, c)``
``bytes``              ``X'..'`` hex literal
sub-query              ``(<compiled SELECT>)``
Expression             its compiled text, unescaped
``str`` / other        engine escape primitive, single-quoted
=====================  ==========================================

Identifiers are quoted with backticks; embedded backticks are doubled and
dotted names are quoted segment by segment, leaving ``*`` bare::

    users.name      -> `users`.`name`
    ("name", "n")   -> `name` AS `n`
    users.*         -> `users`.*
"""
from __future__ import annotations

import math
from collections.abc import Callable
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from brickorm.errors import QueryBuildError
from brickorm.schema.expression import Expression

if TYPE_CHECKING:
    from brickorm.query import Query

#: ``(text) -> single-quoted literal``; may raise QuotingError.
EscapeFn = Callable[[str], str]

#: ``(sub-query) -> compiled SELECT text``.
SubqueryFn = Callable[["Query"], str]

_DELIMITER = "`"
_SEPARATOR = "."
_WILDCARD = "*"


def _is_subquery(value: Any) -> bool:
    from brickorm.query import Query

    return isinstance(value, Query)


def _fixed_notation(value: float | Decimal) -> str:
    if isinstance(value, float) and not math.isfinite(value):
        raise QueryBuildError(f"Cannot quote non-finite float {value!r}.", clause="value")
    # repr() gives the shortest round-tripping digits; Decimal renders them
    # without an exponent.
    number = Decimal(repr(float(value))) if isinstance(value, float) else value
    if not number.is_finite():
        raise QueryBuildError(f"Cannot quote non-finite decimal {value!r}.", clause="value")
    return format(number, "f")


class ValueQuoter:
    """Turns typed program values into SQL literals.

    Args:
        escape: The engine's string-escaping primitive.
        compile_subquery: Compiles a nested query to SQL text.  Injected by
            :class:`~brickorm.compile.builder.QueryCompiler` after
            construction.
    """

    def __init__(self, escape: EscapeFn, compile_subquery: SubqueryFn | None = None) -> None:
        self._escape = escape
        self.compile_subquery = compile_subquery

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def quote(self, value: Any) -> str:
        """Return ``value`` as a SQL literal.

        Raises:
            QuotingError: If the engine's escape primitive fails.
            QueryBuildError: For non-finite floats, or a sub-query when no
                sub-query compiler is configured.
        """
        if value is None:
            return "NULL"
        if value is True:
            return "'1'"
        if value is False:
            return "'0'"
        if isinstance(value, int):
            return str(int(value))
        if isinstance(value, (float, Decimal)):
            return _fixed_notation(value)
        if isinstance(value, (list, tuple, set, frozenset)):
            return "(" + ", ".join(self.quote(v) for v in value) + ")"
        if isinstance(value, (bytes, bytearray)):
            return f"X'{bytes(value).hex()}'"
        if isinstance(value, Expression):
            return value.compile(self)
        if _is_subquery(value):
            return f"({self.subquery(value)})"
        return self.escape(str(value))

    def escape(self, value: str) -> str:
        """Escape ``value`` through the engine and return a quoted literal."""
        return self._escape(value)

    def subquery(self, query: Query) -> str:
        """Compile a nested query to SQL text (without parentheses)."""
        if self.compile_subquery is None:
            raise QueryBuildError("No sub-query compiler configured.", clause="subquery")
        return self.compile_subquery(query)


class IdentifierQuoter:
    """Quotes column, table and generic identifiers.

    All three variants share one algorithm; they differ only in whether a
    table qualifier may be prefixed (columns).

    Args:
        values: The value quoter, used for expressions and sub-queries.
    """

    def __init__(self, values: ValueQuoter) -> None:
        self._values = values

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def column(self, column: Any, table: str | None = None) -> str:
        """Quote a column reference, optionally qualified by ``table``.

        ``table`` only applies when the column text has no separator of its
        own.
        """
        return self._quote(column, table)

    def table(self, table: Any) -> str:
        """Quote a table reference."""
        return self._quote(table, None)

    def identifier(self, value: Any) -> str:
        """Quote a generic identifier."""
        return self._quote(value, None)

    # ------------------------------------------------------------------
    # Shared algorithm
    # ------------------------------------------------------------------

    def _quote(self, value: Any, table: str | None) -> str:
        if isinstance(value, (tuple, list)):
            if len(value) != 2:
                raise QueryBuildError(
                    f"Aliased identifier must be a (name, alias) pair, got {value!r}.",
                    clause="identifier",
                )
            name, alias = value
            return f"{self._quote(name, table)} AS {self._wrap(str(alias))}"
        if isinstance(value, Expression):
            return value.compile(self._values)
        if _is_subquery(value):
            return f"({self._values.subquery(value)})"

        text = str(value).replace(_DELIMITER, _DELIMITER * 2)
        if table is not None and _SEPARATOR not in text:
            qualifier = str(table).replace(_DELIMITER, _DELIMITER * 2)
            text = f"{qualifier}{_SEPARATOR}{text}"
        return _SEPARATOR.join(
            part if part == _WILDCARD else f"{_DELIMITER}{part}{_DELIMITER}"
            for part in text.split(_SEPARATOR)
        )

    @staticmethod
    def _wrap(name: str) -> str:
        escaped = name.replace(_DELIMITER, _DELIMITER * 2)
        return f"{_DELIMITER}{escaped}{_DELIMITER}"
