"""brickORM – SQL query builder, result cursor and active-record mapper.

Build queries fluently, run them, and get rows back as dicts or as
change-tracked records.

Public API
----------
``select`` / ``insert`` / ``update`` / ``delete``
    Start a :class:`Query` against the default database.

``expr``
    Wrap raw SQL in an :class:`Expression` (inserted unescaped).

``Database``
    Connection wrapper: quoting, execution, transactions, advisory locks.

``Record`` / ``Field``
    Active-record base class and declared field descriptor.

Quick start::

    import brickorm
    from brickorm import Database, Field, Record, select

    brickorm.Database.set_default(
        Database.from_config({"driver": "sqlite", "database": ":memory:"})
    )

    class User(Record):
        __table__ = "users"
        id = Field(int)
        name = Field(str)

    select().from_("users").where("name", "LIKE", "%oh").count()

Extensibility
-------------
New engines can be registered via::

    from brickorm.engine.registry import EngineFactory

    @EngineFactory.register("postgres")
    class PostgresEngine(Engine):
        ...

After registration, ``Database.from_config`` picks it up for any
``DatabaseConfig`` with that ``driver``.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from brickorm.compile.builder import CompiledQuery, QueryCompiler
from brickorm.config import DatabaseConfig
from brickorm.database import Database
from brickorm.engine.base import BufferedResult, DriverResult, Engine
from brickorm.engine.mysql import MySQLEngine
from brickorm.engine.registry import EngineFactory
from brickorm.engine.sqlalchemy import SQLAlchemyEngine
from brickorm.engine.sqlite import SQLiteEngine
from brickorm.errors import (
    BrickORMError,
    ConfigError,
    CursorError,
    DatabaseError,
    FieldNotFoundError,
    NotLoadedError,
    QueryBuildError,
    QuotingError,
    RecordNotFoundError,
)
from brickorm.orm.fields import Field
from brickorm.orm.record import LoadState, Record
from brickorm.query import Query
from brickorm.result import Result
from brickorm.schema.expression import Expression
from brickorm.schema.query_state import QueryState, QueryType

# ---------------------------------------------------------------------------
# Register built-in engines with EngineFactory
# ---------------------------------------------------------------------------

EngineFactory.register_class("sqlite", SQLiteEngine)
EngineFactory.register_class("mysql", MySQLEngine)
EngineFactory.register_class("sqlalchemy", SQLAlchemyEngine)

__all__ = [
    # Shortcuts
    "expr",
    "select",
    "insert",
    "update",
    "delete",
    # Core types
    "Database",
    "DatabaseConfig",
    "Query",
    "QueryState",
    "QueryType",
    "Result",
    "Expression",
    "CompiledQuery",
    "QueryCompiler",
    # Engines
    "Engine",
    "EngineFactory",
    "DriverResult",
    "BufferedResult",
    "SQLiteEngine",
    "MySQLEngine",
    "SQLAlchemyEngine",
    # ORM
    "Record",
    "Field",
    "LoadState",
    # Errors
    "BrickORMError",
    "ConfigError",
    "QueryBuildError",
    "DatabaseError",
    "QuotingError",
    "CursorError",
    "FieldNotFoundError",
    "NotLoadedError",
    "RecordNotFoundError",
]


def expr(value: str, params: Mapping[str, Any] | None = None) -> Expression:
    """Wrap raw SQL; ``params`` placeholders are quoted on compile."""
    return Expression(value, dict(params or {}))


def select(*columns: Any, db: Database | None = None) -> Query:
    """Start a SELECT; no columns means ``*``."""
    return Query(db).select(*columns)


def insert(table: Any, values: Mapping[str, Any] | None = None, db: Database | None = None) -> Query:
    """Start an INSERT into ``table``, optionally with one mapping row."""
    return Query(db).insert(table, values)


def update(table: Any, db: Database | None = None) -> Query:
    return Query(db).update(table)


def delete(table: Any, db: Database | None = None) -> Query:
    return Query(db).delete(table)
