"""Unit tests for the value and identifier quoters."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum, IntEnum

import pytest

from brickorm import Query, expr
from brickorm.compile.builder import QueryCompiler
from brickorm.compile.quoting import IdentifierQuoter, ValueQuoter
from brickorm.errors import QueryBuildError
from tests.fixtures import quote_text


def _values() -> ValueQuoter:
    return QueryCompiler(quote_text).values


def _ident() -> IdentifierQuoter:
    return QueryCompiler(quote_text).identifiers


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


def test_none_is_null():
    assert _values().quote(None) == "NULL"


def test_booleans_are_quoted_digits():
    q = _values()
    assert q.quote(True) == "'1'"
    assert q.quote(False) == "'0'"


def test_integers_are_unquoted():
    assert _values().quote(42) == "42"
    assert _values().quote(-7) == "-7"


class Priority(IntEnum):
    LOW = 1
    HIGH = 9


class Ratio(float, Enum):
    HALF = 0.5


def test_numeric_subclasses_render_as_numbers():
    q = _values()
    assert q.quote(Priority.HIGH) == "9"
    assert q.quote([Priority.LOW, Priority.HIGH]) == "(1, 9)"
    assert q.quote(Ratio.HALF) == "0.5"


def test_floats_use_fixed_notation():
    q = _values()
    assert q.quote(1.5) == "1.5"
    assert q.quote(1e-7) == "0.0000001"
    assert q.quote(1e20) == "100000000000000000000"
    assert "e" not in q.quote(123456789.123).lower()


def test_decimal_uses_fixed_notation():
    assert _values().quote(Decimal("1E+3")) == "1000"


def test_non_finite_float_raises():
    with pytest.raises(QueryBuildError):
        _values().quote(float("nan"))
    with pytest.raises(QueryBuildError):
        _values().quote(float("inf"))


def test_strings_go_through_escape_primitive():
    assert _values().quote("O'Brien") == "'O''Brien'"


def test_sequences_become_parenthesized_lists():
    assert _values().quote([1, "a", None]) == "(1, 'a', NULL)"
    assert _values().quote((True,)) == "('1')"


def test_bytes_become_hex_literal():
    assert _values().quote(b"\x00\xff") == "X'00ff'"


def test_expression_is_inserted_verbatim():
    assert _values().quote(expr("NOW()")) == "NOW()"


def test_expression_params_are_quoted():
    e = expr("name = :name AND id IN :ids", {":name": "x'y", ":ids": [1, 2]})
    assert _values().quote(e) == "name = 'x''y' AND id IN (1, 2)"


def test_expression_param_names_do_not_collide():
    e = expr(":id, :id_list", {":id": 1, ":id_list": [2, 3]})
    assert _values().quote(e) == "1, (2, 3)"


def test_expression_param_value_is_not_rescanned():
    e = expr(":a :b", {":a": ":b", ":b": 5})
    assert _values().quote(e) == "':b' 5"


def test_expression_params_without_quoter_raise():
    with pytest.raises(QueryBuildError):
        expr(":x", {":x": 1}).compile()


def test_objects_are_stringified():
    class Name:
        def __str__(self) -> str:
            return "it's"

    assert _values().quote(Name()) == "'it''s'"


def test_subquery_is_compiled_in_parentheses():
    sub = Query().select("id").from_("users")
    assert _values().quote(sub) == "(SELECT `id` FROM `users`)"


def test_subquery_without_compiler_raises():
    with pytest.raises(QueryBuildError):
        ValueQuoter(quote_text).quote(Query().select().from_("users"))


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


def test_plain_column():
    assert _ident().column("name") == "`name`"


def test_dotted_column_is_quoted_per_segment():
    assert _ident().column("users.name") == "`users`.`name`"


def test_wildcard_stays_bare():
    assert _ident().column("*") == "*"
    assert _ident().column("users.*") == "`users`.*"


def test_table_qualifier_applies_only_without_separator():
    ident = _ident()
    assert ident.column("name", "users") == "`users`.`name`"
    assert ident.column("p.name", "users") == "`p`.`name`"


def test_alias_pair():
    assert _ident().column(("name", "n")) == "`name` AS `n`"
    assert _ident().table(("users", "u")) == "`users` AS `u`"


def test_alias_pair_must_have_two_items():
    with pytest.raises(QueryBuildError):
        _ident().column(("a", "b", "c"))


def test_delimiter_is_doubled():
    assert _ident().identifier("we`ird") == "`we``ird`"
    assert _ident().column("col", "ta`b") == "`ta``b`.`col`"


def test_safe_identifier_is_stable():
    once = _ident().table("users")
    assert once == "`users`"
    assert _ident().table("users") == once


def test_expression_identifier_is_verbatim():
    assert _ident().column(expr("COUNT(*)")) == "COUNT(*)"
    assert _ident().column((expr("COUNT(*)"), "total")) == "COUNT(*) AS `total`"


def test_subquery_identifier():
    sub = Query().select("id").from_("users")
    assert _ident().table((sub, "u")) == "(SELECT `id` FROM `users`) AS `u`"
