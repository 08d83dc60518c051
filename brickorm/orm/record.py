"""Active-record mapper.

A :class:`Record` subclass maps one table.  Instances hold the loaded column
values, track which fields changed since load, and persist themselves with
:meth:`Record.create`, :meth:`Record.update` and :meth:`Record.delete`::

    class User(Record):
        __table__ = "users"
        __order_by__ = {"name": "ASC"}

        id = Field(int)
        name = Field(str)
        settings = Field(dict, serialize=True)

    user = User.find_by_id(1)
    user.name = "Jane"           # marks "name" changed
    user.update()                # UPDATE `users` SET `name` = 'Jane' WHERE `id` = 1

Load state
----------
``CONSTRUCTING``  hydrating from a raw row; writes skip change tracking.
``NEW``           never persisted (or deleted); ``create()`` inserts it.
``PERSISTED``     backed by a row; writes are tracked, ``update()`` and
                  ``delete()`` are allowed.

Serialize fields
----------------
Fields declared with ``serialize=True`` are stored as JSON text.  The first
read decodes the text once and caches the structure; writes go to the same
cache.  Pending cache entries are encoded back into the attribute slot
before ``create()`` / ``update()``, and the field is only marked changed
when the encoded text actually differs.

Two instances loaded from the same row are independent copies; the last
``update()`` wins.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, ClassVar, TypeVar

from brickorm.database import Database
from brickorm.errors import FieldNotFoundError, NotLoadedError, QueryBuildError, RecordNotFoundError
from brickorm.orm.fields import Field
from brickorm.query import Query

logger = logging.getLogger(__name__)

R = TypeVar("R", bound="Record")

_MISSING = object()


class LoadState(Enum):
    """Persistence state of a record instance."""

    CONSTRUCTING = "constructing"
    NEW = "new"
    PERSISTED = "persisted"


class Record:
    """Base class for table-mapped records.

    Class attributes:
        __table__: Table name.
        __order_by__: Default ordering for :meth:`select_query`, as
            ``{column: direction}``.
        __serialize_fields__: Extra JSON-serialized field names, on top of
            fields declared with ``Field(serialize=True)``.
        __exclude_fields__: Fields left out of :meth:`fields`.
        database: Database for this class; defaults to
            :meth:`Database.instance`.

    Args:
        values: Initial attribute values.
        loaded: ``True`` when ``values`` is a row read from the database.
    """

    __table__: ClassVar[str] = ""
    __order_by__: ClassVar[dict[str, str]] = {}
    __serialize_fields__: ClassVar[tuple[str, ...]] = ()
    __exclude_fields__: ClassVar[tuple[str, ...]] = ()

    database: ClassVar[Database | None] = None

    _declared_fields: ClassVar[dict[str, Field]] = {}
    _serialize_fields: ClassVar[tuple[str, ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        declared: dict[str, Field] = {}
        for klass in reversed(cls.__mro__):
            declared.update({k: v for k, v in vars(klass).items() if isinstance(v, Field)})
        cls._declared_fields = declared
        serialize = [name for name, f in declared.items() if f.serialize]
        serialize += [name for name in cls.__serialize_fields__ if name not in serialize]
        cls._serialize_fields = tuple(serialize)

    def __init__(self, values: Mapping[str, Any] | None = None, loaded: bool = False) -> None:
        self._attributes: dict[str, Any] = {}
        self._changed: dict[str, bool] = {}
        self._serialize_cache: dict[str, Any] = {}
        if not loaded:
            # Caller-supplied values: validated, serialize fields cached.
            self._state = LoadState.NEW
            if values is not None:
                self.set(values)
            return
        self._state = LoadState.CONSTRUCTING
        if values is not None:
            for key, value in values.items():
                self._write(key, value)
        self._state = LoadState.PERSISTED

    @classmethod
    def from_row(cls: type[R], row: Mapping[str, Any], loaded: bool = True) -> R:
        """Hydrate an instance from a result row (Result Cursor protocol)."""
        return cls(row, loaded)

    # ------------------------------------------------------------------
    # Query entry points
    # ------------------------------------------------------------------

    @classmethod
    def _db(cls) -> Database:
        return cls.database if cls.database is not None else Database.instance()

    @classmethod
    def raw_query(cls) -> Query:
        return Query(cls.database)

    @classmethod
    def query(cls) -> Query:
        """A SELECT on this table hydrating instances, without default order."""
        return cls.raw_query().select().from_(cls.__table__).as_object(cls)

    @classmethod
    def select_query(cls, with_order: bool = True) -> Query:
        """A SELECT on this table hydrating instances, with default order."""
        query = cls.query()
        if with_order:
            for column, direction in cls.__order_by__.items():
                query.order_by(column, direction)
        return query

    @classmethod
    def find(cls, conditions: list[Any] | None = None) -> Query:
        """A SELECT filtered by ``[col, op, value]`` condition(s)."""
        query = cls.select_query()
        if conditions is None:
            return query
        if len(conditions) == 3 and isinstance(conditions[1], str):
            conditions = [conditions]
        return query.where(conditions)

    @classmethod
    def all(cls: type[R], ids: list[Any] | None = None) -> list[R]:
        """Every row, or the rows whose ``id`` is in ``ids``."""
        if ids is None:
            return cls.find().all()
        if any(isinstance(i, (list, tuple, dict)) for i in ids):
            raise QueryBuildError("Record.all() accepts only a flat list of ids.", clause="WHERE")
        if not ids:
            return []
        return cls.select_query().where("id", "IN", list(ids)).all()

    @classmethod
    def find_by_id(cls: type[R], ident: Any) -> R | None:
        """Return the record with ``id == ident``, or ``None``."""
        return cls.select_query(with_order=False).where("id", "=", ident).one()

    @classmethod
    def find_by_id_or_fail(cls: type[R], ident: Any) -> R:
        """Return the record with ``id == ident``.

        Raises:
            RecordNotFoundError: If no row matches.
        """
        record = cls.find_by_id(ident)
        if record is None:
            raise RecordNotFoundError(cls.__name__, ident)
        return record

    @classmethod
    def select_list(cls, key: str, display: str, first: Any = None) -> dict[Any, Any]:
        """Map ``key`` column values to ``display`` column values."""
        table = cls.__table__
        query = (
            cls.raw_query()
            .select(f"{table}.{key}", f"{table}.{display}")
            .from_(table)
            .as_array()
        )
        for column, direction in cls.__order_by__.items():
            query.order_by(column, direction)
        return query.get().to_list(key, display, first)

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any:
        """Return a field value; serialize fields are decoded lazily.

        Raises:
            FieldNotFoundError: If the record has no such field.
        """
        if key in self._serialize_fields:
            if key in self._serialize_cache:
                return self._serialize_cache[key]
            if key in self._attributes:
                return self._unserialize_value(key)
        elif key in self._attributes:
            return self._attributes[key]
        raise FieldNotFoundError(key, type(self).__name__)

    def set(self, values: Mapping[str, Any] | str, value: Any = _MISSING) -> Record:
        """Assign one field (``set(key, value)``) or several (``set(mapping)``)."""
        if isinstance(values, Mapping):
            items = values.items()
        elif value is _MISSING:
            raise TypeError("set(key, value) needs a value.")
        else:
            items = [(values, value)]
        for key, item in items:
            self._write(key, item)
        return self

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self._write(key, value)

    def __contains__(self, key: object) -> bool:
        return key in self._attributes or key in self._serialize_cache

    def _write(self, key: str, value: Any) -> None:
        if self._state is LoadState.CONSTRUCTING:
            self._attributes[key] = value
            return

        declared = self._declared_fields.get(key)
        if declared is not None:
            value = declared.validate(value)

        if key in self._serialize_fields:
            self._serialize_cache[key] = value
            return

        if self._state is LoadState.PERSISTED and _differs(self._attributes.get(key, _MISSING), value):
            self._changed[key] = True
        self._attributes[key] = value

    # ------------------------------------------------------------------
    # State inspection
    # ------------------------------------------------------------------

    @property
    def load_state(self) -> LoadState:
        return self._state

    def loaded(self) -> bool:
        """Return ``True`` when the record is backed by a row."""
        return self._state is LoadState.PERSISTED

    def changed(self, field: str | list[str] | None = None) -> bool:
        """Check whether ``field`` (any of a list, or any at all) changed.

        A record that is not persisted always reports ``True``.
        """
        if not self.loaded():
            return True
        if field is None:
            return bool(self._changed)
        if isinstance(field, list):
            return any(f in self._changed for f in field)
        return field in self._changed

    def changed_fields(self) -> list[str]:
        """Names of the fields changed since load, in change order."""
        return list(self._changed)

    def fields(self) -> list[str]:
        """Qualified, quoted column list of this record's attributes."""
        db = self._db()
        return [
            db.quote_column(key, self.__table__)
            for key in self._attributes
            if key not in self.__exclude_fields__
        ]

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict export; serialize fields as their decoded values."""
        data = dict(self._attributes)
        for key in self._serialize_fields:
            if key in self._serialize_cache or isinstance(data.get(key), str):
                data[key] = self.get(key)
        return data

    # ------------------------------------------------------------------
    # Lifecycle hooks (override in subclasses)
    # ------------------------------------------------------------------

    def on_create(self) -> bool:
        """Return ``False`` to cancel :meth:`create`."""
        return True

    def on_update(self) -> bool:
        """Return ``False`` to cancel :meth:`update`."""
        return True

    def on_change(self) -> None:
        pass

    def on_after_create(self) -> None:
        pass

    def on_after_update(self) -> None:
        pass

    def on_after_change(self) -> None:
        pass

    def on_after_delete(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def create(self) -> Any:
        """INSERT this record and store the new id.

        Returns:
            The inserted id, or ``0`` when :meth:`on_create` cancels.
        """
        self._invalidate_serialize_cache()

        if self.on_create() is False:
            return 0

        self.on_change()

        ident = (
            self.raw_query()
            .insert(self.__table__)
            .columns(list(self._attributes))
            .values(self._attributes)
            .execute()
        )

        self._state = LoadState.PERSISTED
        self._attributes["id"] = ident
        logger.debug("Created %s id=%s", type(self).__name__, ident)

        self.on_after_create()
        self.on_after_change()

        self._changed.clear()
        return ident

    def update(self) -> int:
        """UPDATE the changed fields of this record.

        Returns:
            Affected rows; ``0`` without SQL when nothing changed or
            :meth:`on_update` cancels.

        Raises:
            NotLoadedError: If the record is not persisted.
        """
        if not self.loaded():
            raise NotLoadedError(type(self).__name__, "update")

        self._invalidate_serialize_cache()

        if not self._changed:
            return 0

        if self.on_update() is False:
            return 0

        self.on_change()

        data = {key: self._attributes[key] for key in self._changed}
        affected = (
            self.raw_query()
            .update(self.__table__)
            .set(data)
            .where("id", "=", self._attributes["id"])
            .execute()
        )
        logger.debug("Updated %s id=%s fields=%s", type(self).__name__, self._attributes["id"], list(data))

        self.on_after_update()
        self.on_after_change()

        self._changed.clear()
        return affected

    def delete(self) -> None:
        """DELETE this record's row.

        The instance stays readable but is no longer persisted.

        Raises:
            NotLoadedError: If the record is not persisted.
        """
        if not self.loaded():
            raise NotLoadedError(type(self).__name__, "delete")

        self.raw_query().delete(self.__table__).where("id", "=", self._attributes["id"]).execute()
        self._state = LoadState.NEW
        logger.debug("Deleted %s id=%s", type(self).__name__, self._attributes["id"])

        self.on_after_delete()

    # ------------------------------------------------------------------
    # Serialize cache
    # ------------------------------------------------------------------

    def _invalidate_serialize_cache(self) -> None:
        if not self._serialize_cache:
            return
        for key in self._serialize_fields:
            if key not in self._serialize_cache:
                continue
            encoded = self._serialize_value(self._serialize_cache[key])
            current = self._attributes.get(key, _MISSING)
            if encoded == current or encoded == self._canonical_json(current):
                continue
            self._attributes[key] = encoded
            if self._state is LoadState.PERSISTED:
                self._changed[key] = True

    @classmethod
    def _canonical_json(cls, raw: Any) -> str | None:
        """Re-encode stored JSON text compactly, or ``None`` if it is not JSON."""
        if not isinstance(raw, str):
            return None
        try:
            return cls._serialize_value(json.loads(raw))
        except ValueError:
            return None

    @staticmethod
    def _serialize_value(value: Any) -> str:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))

    def _unserialize_value(self, key: str) -> Any:
        if key not in self._serialize_cache:
            raw = self._attributes[key]
            assert isinstance(raw, str), f"Serialized field '{key}' must hold a string value."
            self._serialize_cache[key] = json.loads(raw)
        return self._serialize_cache[key]

    def __repr__(self) -> str:
        ident = self._attributes.get("id")
        return f"<{type(self).__name__} id={ident!r} {self._state.value}>"


def _differs(current: Any, value: Any) -> bool:
    return current is _MISSING or type(current) is not type(value) or current != value
