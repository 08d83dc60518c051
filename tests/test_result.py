"""Unit tests for the Result cursor over buffered and forward-only handles."""

from __future__ import annotations

from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any

import pytest

from brickorm import BufferedResult, Result
from brickorm.engine.base import DriverResult
from brickorm.errors import CursorError, FieldNotFoundError

COLUMNS = ["id", "name", "email"]
ROWS = [
    (1, "John", "john@example.com"),
    (2, "Jane", None),
    (3, "Bob", "bob@example.com"),
]


def _result(**kwargs: Any) -> Result:
    return Result(BufferedResult(COLUMNS, ROWS), **kwargs)


class ForwardOnlyResult(BufferedResult):
    """Buffered rows that refuse a second pass."""

    rewindable = False


class FailingResult(DriverResult):
    @property
    def columns(self) -> list[str]:
        return ["id"]

    @property
    def row_count(self) -> int:
        return 2

    def fetch_row(self, index: int) -> tuple[Any, ...]:
        if index > 0:
            raise CursorError("connection lost")
        return (1,)

    def fetch_all(self) -> list[tuple[Any, ...]]:
        raise CursorError("connection lost")


@dataclass
class Person:
    id: int
    name: str
    email: str | None


class Tagged:
    def __init__(self, tag: str, **row: Any) -> None:
        self.tag = tag
        self.row = row


class Hydrated:
    def __init__(self, row: dict[str, Any], source: str) -> None:
        self.row = row
        self.source = source

    @classmethod
    def from_row(cls, row: dict[str, Any], source: str = "db") -> Hydrated:
        return cls(row, source)


# ---------------------------------------------------------------------------
# Positioning
# ---------------------------------------------------------------------------


def test_len_and_count():
    result = _result()
    assert len(result) == 3
    assert result.count() == 3
    assert result.columns == COLUMNS


def test_current_and_seek():
    result = _result()
    assert result.current() == {"id": 1, "name": "John", "email": "john@example.com"}
    assert result.seek(2) is True
    assert result.current()["name"] == "Bob"
    assert result.seek(3) is False
    assert result.current()["name"] == "Bob"


def test_current_on_empty_result_is_none():
    assert Result(BufferedResult(COLUMNS, [])).current() is None


def test_getitem_supports_negative_index():
    result = _result()
    assert result[0]["name"] == "John"
    assert result[-1]["name"] == "Bob"
    with pytest.raises(IndexError):
        result[3]


def test_iteration_is_restartable_when_buffered():
    result = _result()
    first = [row["id"] for row in result]
    second = [row["id"] for row in result]
    assert first == second == [1, 2, 3]


def test_second_pass_on_forward_only_raises():
    result = Result(ForwardOnlyResult(COLUMNS, ROWS))
    assert len(list(result)) == 3
    with pytest.raises(CursorError):
        list(result)


def test_fetch_failure_propagates():
    result = Result(FailingResult())
    with pytest.raises(CursorError):
        list(result)


# ---------------------------------------------------------------------------
# Materialization
# ---------------------------------------------------------------------------


def test_all_returns_dict_rows():
    rows = _result().all()
    assert isinstance(rows, list)
    assert rows[1] == {"id": 2, "name": "Jane", "email": None}


def test_all_on_empty_result():
    assert Result(BufferedResult(COLUMNS, [])).all() == []


def test_index_by_last_row_wins():
    driver = BufferedResult(["k", "v"], [("a", 1), ("b", 2), ("a", 3)])
    indexed = Result(driver, index_by="k").all()
    assert indexed == {"a": {"k": "a", "v": 3}, "b": {"k": "b", "v": 2}}


def test_index_by_missing_column_raises():
    with pytest.raises(FieldNotFoundError):
        _result(index_by="nope").all()


def test_column_reads_current_row():
    result = _result()
    assert result.column("name") == "John"
    result.seek(1)
    assert result.column("email") is None
    assert result.column("email", "n/a") == "n/a"


def test_column_missing_raises_even_when_empty():
    with pytest.raises(FieldNotFoundError) as exc_info:
        Result(BufferedResult(COLUMNS, [])).column("nope")
    assert exc_info.value.field == "nope"


def test_column_past_end_returns_default():
    assert Result(BufferedResult(COLUMNS, [])).column("name", "none") == "none"


def test_scalar():
    assert _result().scalar() == 1
    assert Result(BufferedResult(COLUMNS, [])).scalar() is None


def test_to_list():
    assert _result().to_list("id", "name") == {1: "John", 2: "Jane", 3: "Bob"}


def test_to_list_with_first_entry():
    assert _result().to_list("id", "name", "-- pick --") == {"": "-- pick --", 1: "John", 2: "Jane", 3: "Bob"}
    assert list(_result().to_list("id", "name", {0: "none"})) == [0, 1, 2, 3]


def test_to_list_missing_column_raises():
    with pytest.raises(FieldNotFoundError):
        _result().to_list("id", "nope")


# ---------------------------------------------------------------------------
# Hydration
# ---------------------------------------------------------------------------


def test_as_object_true_gives_namespaces():
    row = _result(as_object=True).current()
    assert isinstance(row, SimpleNamespace)
    assert row.name == "John"


def test_as_object_class_gets_row_as_keywords():
    people = _result(as_object=Person).all()
    assert people[2] == Person(3, "Bob", "bob@example.com")


def test_object_args_are_passed_positionally():
    tagged = _result(as_object=Tagged, object_args=["t"]).current()
    assert tagged.tag == "t"
    assert tagged.row["id"] == 1


def test_from_row_protocol_is_preferred():
    hydrated = _result(as_object=Hydrated, object_args=["cache"]).all()
    assert hydrated[0].source == "cache"
    assert hydrated[0].row["name"] == "John"


def test_index_by_with_objects():
    indexed = _result(as_object=Person, index_by="name").all()
    assert indexed["Jane"].id == 2


def test_to_array_exports_objects():
    assert _result(as_object=Person).to_array()[0] == {"id": 1, "name": "John", "email": "john@example.com"}
    assert _result(as_object=True).to_array()[1]["name"] == "Jane"
    assert _result().to_array() == [dict(zip(COLUMNS, r)) for r in ROWS]
