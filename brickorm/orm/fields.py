"""Declared record fields.

A :class:`Field` is a descriptor giving a :class:`~brickorm.orm.record.Record`
subclass a typed attribute for one column.  Reads and writes go through
``Record.get`` / ``Record.set``, so change tracking and the serialize cache
apply whether a field is touched as an attribute or by name::

    class User(Record):
        __table__ = "users"

        id = Field(int)
        name = Field(str)
        settings = Field(dict, serialize=True)

When a type is given, values written by callers are validated (and
coerced, in pydantic's lax mode) against it.  Values loaded from the
database are stored as the driver returns them.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter

if TYPE_CHECKING:
    from brickorm.orm.record import Record


class Field:
    """Descriptor for one record column.

    Args:
        type_: Python type for caller-written values, or ``None`` for any.
        serialize: Store the column as JSON text and expose it decoded.
    """

    def __init__(self, type_: Any = None, *, serialize: bool = False) -> None:
        self.type_ = type_
        self.serialize = serialize
        self.name = ""
        self._adapter: TypeAdapter[Any] | None = TypeAdapter(type_) if type_ is not None else None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: Record | None, owner: type) -> Any:
        if obj is None:
            return self
        return obj.get(self.name)

    def __set__(self, obj: Record, value: Any) -> None:
        obj.set(self.name, value)

    def validate(self, value: Any) -> Any:
        """Return ``value`` validated against the declared type.

        ``None`` always passes; nullability is the database's concern.

        Raises:
            pydantic.ValidationError: If the value does not fit the type.
        """
        if self._adapter is None or value is None:
            return value
        return self._adapter.validate_python(value)

    def __repr__(self) -> str:
        type_name = getattr(self.type_, "__name__", repr(self.type_))
        return f"Field({self.name!r}, {type_name}, serialize={self.serialize})"
