"""Result cursor over a driver result handle.

A :class:`Result` gives row-oriented access to one SELECT without copying
rows until asked::

    result = select().from_("users").get()

    len(result)            # total rows
    result.current()       # row at the cursor position, or None
    result.seek(2)         # move the cursor
    result[0]              # random access
    for row in result:     # forward iteration
        ...
    result.all()           # list (or dict, with index_by)

Row shape follows the query's directives: ``dict`` rows by default,
:class:`types.SimpleNamespace` for ``as_object(True)``, or hydrated
instances of the class given to ``as_object``.  Classes that define
``from_row(row, *args)`` (e.g. :class:`~brickorm.orm.record.Record`) are
hydrated through it; any other class is called as ``cls(*args, **row)``.
"""
from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping
from types import SimpleNamespace
from typing import Any

from brickorm.engine.base import DriverResult
from brickorm.errors import CursorError, FieldNotFoundError


class Result:
    """Row-oriented view over one driver result handle.

    Args:
        driver: The driver result handle (owned exclusively by this cursor).
        as_object: ``False`` for dict rows, ``True`` for attribute objects,
            or a class to hydrate.
        object_args: Extra positional hydration arguments.
        index_by: Column keying the output of :meth:`all`.
    """

    def __init__(
        self,
        driver: DriverResult,
        as_object: Any = False,
        object_args: list[Any] | None = None,
        index_by: str | None = None,
    ) -> None:
        self._driver = driver
        self._as_object = as_object
        self._object_args = list(object_args or [])
        self._index_by = index_by
        self._position = 0
        self._consumed = False

    # ------------------------------------------------------------------
    # Sizing and positioning
    # ------------------------------------------------------------------

    @property
    def columns(self) -> list[str]:
        return self._driver.columns

    def __len__(self) -> int:
        return self._driver.row_count

    def count(self) -> int:
        """Total number of rows."""
        return self._driver.row_count

    def seek(self, position: int) -> bool:
        """Move the cursor to ``position``; return ``False`` if out of range."""
        if not 0 <= position < self._driver.row_count:
            return False
        self._position = position
        return True

    def current(self) -> Any:
        """Return the row at the cursor position, or ``None`` past the end."""
        if not 0 <= self._position < self._driver.row_count:
            return None
        return self._shape(self._row_dict(self._position))

    def __getitem__(self, index: int) -> Any:
        size = self._driver.row_count
        if index < 0:
            index += size
        if not 0 <= index < size:
            raise IndexError(f"Result index {index} out of range.")
        return self._shape(self._row_dict(index))

    def __iter__(self) -> Iterator[Any]:
        if self._consumed and not self._driver.rewindable:
            raise CursorError("Result was already iterated and cannot be rewound.")
        self._consumed = True
        for position in range(self._driver.row_count):
            self._position = position
            yield self._shape(self._row_dict(position))

    # ------------------------------------------------------------------
    # Materialization
    # ------------------------------------------------------------------

    def all(self) -> list[Any] | dict[Any, Any]:
        """Materialize every row.

        Returns:
            A list of rows, or with ``index_by`` a dict keyed by that
            column.  Duplicate keys keep the last row.
        """
        columns = self._driver.columns
        if self._as_object is False:
            rows: list[dict[str, Any]] = [dict(zip(columns, r)) for r in self._driver.fetch_all()]
            shaped: list[Any] = rows
        else:
            rows = [self._row_dict(i) for i in range(self._driver.row_count)]
            shaped = [self._shape(r) for r in rows]

        if self._index_by is None:
            return shaped
        if self._index_by not in columns:
            raise FieldNotFoundError(self._index_by, type(self).__name__)
        return {row[self._index_by]: item for row, item in zip(rows, shaped)}

    def column(self, name: str, default: Any = None) -> Any:
        """Return one field of the current row.

        Returns ``default`` when the value is NULL or the cursor is past the
        end.

        Raises:
            FieldNotFoundError: If the result has no such column.
        """
        if name not in self._driver.columns:
            raise FieldNotFoundError(name, type(self).__name__)
        if not 0 <= self._position < self._driver.row_count:
            return default
        value = self._row_dict(self._position)[name]
        return default if value is None else value

    def scalar(self) -> Any:
        """Return the first column of the current row, or ``None``."""
        if not 0 <= self._position < self._driver.row_count:
            return None
        return self._driver.fetch_row(self._position)[0]

    def to_list(self, key: str, value: str, first: Any = None) -> dict[Any, Any]:
        """Map ``key`` column values to ``value`` column values.

        Args:
            key: Column supplying the dict keys.
            value: Column supplying the dict values.
            first: Optional leading entry: a mapping is merged in first, any
                other value is stored under the ``""`` key.

        Raises:
            FieldNotFoundError: If either column is missing.
        """
        columns = self._driver.columns
        for name in (key, value):
            if name not in columns:
                raise FieldNotFoundError(name, type(self).__name__)

        out: dict[Any, Any] = {}
        if first is not None:
            if isinstance(first, Mapping):
                out.update(first)
            else:
                out[""] = first
        key_index = columns.index(key)
        value_index = columns.index(value)
        for row in self._driver.fetch_all():
            out[row[key_index]] = row[value_index]
        return out

    def to_array(self) -> list[dict[str, Any]]:
        """Return every row as a plain dict, exporting hydrated objects."""
        return [_export(item) for item in self]

    # ------------------------------------------------------------------
    # Row shaping
    # ------------------------------------------------------------------

    def _row_dict(self, index: int) -> dict[str, Any]:
        return dict(zip(self._driver.columns, self._driver.fetch_row(index)))

    def _shape(self, row: dict[str, Any]) -> Any:
        target = self._as_object
        if target is False:
            return row
        if target is True:
            return SimpleNamespace(**row)
        from_row = getattr(target, "from_row", None)
        if callable(from_row):
            return from_row(row, *self._object_args)
        return target(*self._object_args, **row)


def _export(item: Any) -> dict[str, Any]:
    if isinstance(item, dict):
        return dict(item)
    to_dict = getattr(item, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    model_dump = getattr(item, "model_dump", None)
    if callable(model_dump):
        return model_dump()
    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        return dataclasses.asdict(item)
    return dict(vars(item))
