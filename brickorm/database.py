"""Database connection / query wrapper.

``Database`` ties one :class:`~brickorm.engine.base.Engine` to one
:class:`~brickorm.compile.builder.QueryCompiler`.  It connects lazily on the
first statement, quotes values and identifiers, runs SQL, wraps SELECT
results in a :class:`~brickorm.result.Result`, and exposes transactions and
named advisory locks::

    db = Database.from_config({"driver": "sqlite", "database": ":memory:"})
    Database.set_default(db)

    with db.transaction():
        insert("users").values({"name": "Ann"}).execute()

Statements are logged at DEBUG on the ``brickorm.database`` logger; with
``profiling`` enabled the elapsed time is logged too.  Failures are logged
at WARNING and re-raised unchanged.  Nothing is retried.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, ClassVar

from pydantic import ValidationError

from brickorm.compile.builder import CompiledQuery, QueryCompiler
from brickorm.config import DatabaseConfig
from brickorm.engine.base import Engine
from brickorm.engine.registry import EngineFactory
from brickorm.errors import ConfigError, DatabaseError
from brickorm.result import Result
from brickorm.schema.query_state import QueryType

logger = logging.getLogger(__name__)


class Database:
    """Connection wrapper and quoting helper.

    Args:
        engine: The engine that runs statements.
        profiling: If ``True``, log the elapsed time of every statement.
    """

    _default: ClassVar[Database | None] = None

    def __init__(self, engine: Engine, profiling: bool = False) -> None:
        self._engine = engine
        self._profiling = profiling
        self._compiler: QueryCompiler | None = None

    # ------------------------------------------------------------------
    # Construction and the default instance
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: DatabaseConfig | Mapping[str, Any]) -> Database:
        """Build a database from a config model or a plain mapping.

        Raises:
            ConfigError: If the mapping is not a valid ``DatabaseConfig`` or
                the driver is not registered.
        """
        if not isinstance(config, DatabaseConfig):
            try:
                config = DatabaseConfig.model_validate(config)
            except ValidationError as exc:
                raise ConfigError(f"Invalid database config: {exc}") from exc
        return cls(EngineFactory.create(config), profiling=config.profiling)

    @classmethod
    def set_default(cls, db: Database | None) -> None:
        """Set (or clear, with ``None``) the process-wide default database."""
        cls._default = db

    @classmethod
    def instance(cls) -> Database:
        """Return the default database.

        Raises:
            ConfigError: If no default has been set.
        """
        if cls._default is None:
            raise ConfigError("No default database configured; call Database.set_default().")
        return cls._default

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def compiler(self) -> QueryCompiler:
        if self._compiler is None:
            self._compiler = QueryCompiler(self._engine.escape_string)
        return self._compiler

    def connect(self) -> None:
        self._engine.connect()

    def disconnect(self) -> None:
        self._engine.disconnect()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def query(
        self,
        type: QueryType | None,
        sql: str,
        as_object: Any = False,
        object_args: list[Any] | None = None,
        index_by: str | None = None,
    ) -> Result | None:
        """Run raw SQL.

        Args:
            type: Statement kind; SELECT returns a :class:`Result`.
            sql: SQL text, already quoted.
            as_object: Result shape: ``False`` for dict rows, ``True`` for
                attribute objects, or a class to hydrate.
            object_args: Extra positional hydration arguments.
            index_by: Column keying :meth:`Result.all` output.

        Returns:
            A :class:`Result` for SELECT, else ``None``.

        Raises:
            DatabaseError: If the engine fails.
        """
        logger.debug("Executing: %s", sql)
        started = time.perf_counter()
        try:
            handle = self._engine.execute(sql)
        except DatabaseError as exc:
            logger.warning("Query failed (code=%s): %s", exc.code, exc)
            raise
        if self._profiling:
            elapsed = (time.perf_counter() - started) * 1000
            logger.debug("Query took %.2f ms: %s", elapsed, sql)

        if type is QueryType.SELECT:
            if handle is None:
                raise DatabaseError(f"SELECT returned no result set [ {sql} ]", sql=sql)
            return Result(handle, as_object, object_args, index_by)
        return None

    def multi_query(self, sql: str) -> int:
        """Run several ``;``-separated raw statements in one call.

        Row-returning statements in the script are executed but their rows
        are discarded.

        Returns:
            The total number of rows changed by the script.

        Raises:
            DatabaseError: If the engine fails.
        """
        logger.debug("Executing script: %s", sql)
        started = time.perf_counter()
        try:
            changed = self._engine.execute_script(sql)
        except DatabaseError as exc:
            logger.warning("Script failed (code=%s): %s", exc.code, exc)
            raise
        if self._profiling:
            elapsed = (time.perf_counter() - started) * 1000
            logger.debug("Script took %.2f ms: %s", elapsed, sql)
        return changed

    def execute_compiled(self, compiled: CompiledQuery) -> Any:
        """Run a compiled statement and shape its outcome.

        Returns:
            SELECT: a :class:`Result`.  INSERT: the inserted id.
            UPDATE / DELETE: the affected-row count.
        """
        result = self.query(
            compiled.type,
            compiled.sql,
            compiled.as_object,
            compiled.object_args,
            compiled.index_by,
        )
        if compiled.type is QueryType.SELECT:
            return result
        if compiled.type is QueryType.INSERT:
            return self.inserted_id()
        return self.affected_rows()

    def inserted_id(self) -> Any:
        return self._engine.inserted_id()

    def affected_rows(self) -> int:
        return self._engine.affected_rows()

    # ------------------------------------------------------------------
    # Quoting
    # ------------------------------------------------------------------

    def quote(self, value: Any) -> str:
        """Quote a value for an SQL query.

        ::

            db.quote(None)    # NULL
            db.quote(10)      # 10
            db.quote("fred")  # 'fred'
        """
        return self.compiler.values.quote(value)

    def escape(self, value: str) -> str:
        """Escape a string through the engine and single-quote it."""
        return self.compiler.values.escape(value)

    def quote_column(self, column: Any, table: str | None = None) -> str:
        return self.compiler.identifiers.column(column, table)

    def quote_table(self, table: Any) -> str:
        return self.compiler.identifiers.table(table)

    def quote_identifier(self, value: Any) -> str:
        return self.compiler.identifiers.identifier(value)

    # ------------------------------------------------------------------
    # Transactions and locks
    # ------------------------------------------------------------------

    def begin(self, mode: str | None = None) -> None:
        """Start a transaction.  Nesting is not supported."""
        logger.debug("BEGIN %s", mode or "")
        self._engine.begin(mode)

    def commit(self) -> None:
        logger.debug("COMMIT")
        self._engine.commit()

    def rollback(self) -> None:
        logger.debug("ROLLBACK")
        self._engine.rollback()

    @contextmanager
    def transaction(self, mode: str | None = None) -> Iterator[Database]:
        """Run the block in a transaction; roll back if it raises."""
        self.begin(mode)
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    def get_lock(self, name: str, timeout: int = 0) -> bool:
        return self._engine.get_lock(name, timeout)

    def release_lock(self, name: str) -> bool:
        return self._engine.release_lock(name)

    def __str__(self) -> str:
        return f"db:{self._engine.dialect_name}"
