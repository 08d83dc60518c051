"""Engine adapter over a SQLAlchemy ``Engine``.

Lets brickORM share a connection pool with an application that already
uses SQLAlchemy.  Compiled SQL is sent as-is through
:meth:`sqlalchemy.engine.Connection.exec_driver_sql`; SQLAlchemy's own
compiler is not involved.

Install the optional dependency before using this module::

    pip install "brickorm[sqlalchemy]"

Example::

    from sqlalchemy import create_engine
    from brickorm import Database
    from brickorm.engine.sqlalchemy import SQLAlchemyEngine

    db = Database(SQLAlchemyEngine(create_engine("sqlite:///app.db")))

Outside an explicit :meth:`begin` / :meth:`commit` pair every statement is
committed immediately, row-returning ones included.  Multi-statement scripts
run on the raw DBAPI connection; on SQLite, ``executescript`` commits any
transaction the driver has pending before it starts.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from brickorm.engine.base import BufferedResult, DriverResult, Engine
from brickorm.errors import DatabaseError, QuotingError

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection
    from sqlalchemy.engine import Engine as SAEngine

    from brickorm.config import DatabaseConfig

logger = logging.getLogger(__name__)


class SQLAlchemyEngine(Engine):
    """Engine running statements on a SQLAlchemy connection.

    Args:
        engine: A SQLAlchemy engine.
    """

    def __init__(self, engine: SAEngine) -> None:
        super().__init__()
        self._engine = engine
        self._conn: Connection | None = None
        self._in_transaction = False

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> SQLAlchemyEngine:
        from sqlalchemy import create_engine

        assert config.url is not None
        return cls(create_engine(config.url, connect_args=dict(config.connect_args)))

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    @property
    def connected(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> Connection:
        """The open SQLAlchemy connection (connecting if needed)."""
        self.ensure_connected()
        assert self._conn is not None
        return self._conn

    def connect(self) -> None:
        from sqlalchemy.exc import SQLAlchemyError

        try:
            self._conn = self._engine.connect()
        except SQLAlchemyError as exc:
            self._conn = None
            raise DatabaseError(str(exc), code=_error_code(exc)) from exc
        logger.info("Connected through SQLAlchemy engine %s", self._engine.url.render_as_string())

    def disconnect(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        self._in_transaction = False
        logger.info("Disconnected from SQLAlchemy engine %s", self._engine.url.render_as_string())

    def _execute(self, sql: str) -> DriverResult | None:
        from sqlalchemy.exc import SQLAlchemyError

        assert self._conn is not None
        try:
            result = self._conn.exec_driver_sql(sql)
            if result.returns_rows:
                buffered = BufferedResult(list(result.keys()), result.fetchall())
                if not self._in_transaction:
                    self._conn.commit()
                return buffered
            self._inserted_id = result.lastrowid
            self._affected_rows = result.rowcount
            if not self._in_transaction:
                self._conn.commit()
        except SQLAlchemyError as exc:
            if not self._in_transaction:
                self._conn.rollback()
            raise DatabaseError(f"{exc} [ {sql} ]", code=_error_code(exc), sql=sql) from exc
        return None

    def _execute_script(self, sql: str) -> int:
        assert self._conn is not None
        dbapi_conn = self._conn.connection.dbapi_connection
        assert dbapi_conn is not None
        if self.dialect_name == "sqlite":
            before = dbapi_conn.total_changes
            self._run_dbapi(sql, lambda: dbapi_conn.executescript(sql))
            total = dbapi_conn.total_changes - before
        else:
            cursor = dbapi_conn.cursor()
            total = 0

            def run() -> None:
                nonlocal total
                cursor.execute(sql)
                while True:
                    if cursor.rowcount > 0:
                        total += cursor.rowcount
                    if not cursor.nextset():
                        break

            try:
                self._run_dbapi(sql, run)
            finally:
                cursor.close()
        self._affected_rows = total
        return total

    def _run_dbapi(self, sql: str, run: Callable[[], Any]) -> None:
        assert self._conn is not None
        try:
            run()
        except self._engine.dialect.loaded_dbapi.Error as exc:
            if not self._in_transaction:
                self._conn.rollback()
            raise DatabaseError(f"{exc} [ {sql} ]", code=_dbapi_error_code(exc), sql=sql) from exc
        if not self._in_transaction:
            self._conn.commit()

    def _escape(self, text: str) -> str:
        try:
            text.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise QuotingError(f"Cannot escape string: {exc}") from exc
        if self.dialect_name == "mysql":
            return self._mysql_escape(text)
        escaped = text.replace("'", "''")
        if self.dialect_name == "sqlite":
            escaped = escaped.replace("\x00", "' || char(0) || '")
        return escaped

    def _mysql_escape(self, text: str) -> str:
        # The driver connection knows the session's sql_mode; PyMySQL's
        # converters are the fallback for drivers without escape_string.
        escape = None
        if self._conn is not None:
            escape = getattr(self._conn.connection.dbapi_connection, "escape_string", None)
        if escape is None:
            from pymysql.converters import escape_string

            return escape_string(text)
        escaped = escape(text)
        return escaped.decode("utf-8") if isinstance(escaped, bytes) else escaped

    def begin(self, mode: str | None = None) -> None:
        self.ensure_connected()
        assert self._conn is not None
        if self._conn.in_transaction():
            self._conn.commit()
        if mode:
            self._conn.execution_options(isolation_level=mode.upper().replace(" ", "_"))
        self._conn.begin()
        self._in_transaction = True

    def commit(self) -> None:
        self.ensure_connected()
        assert self._conn is not None
        self._conn.commit()
        self._in_transaction = False

    def rollback(self) -> None:
        self.ensure_connected()
        assert self._conn is not None
        self._conn.rollback()
        self._in_transaction = False


def _error_code(exc: Any) -> int | None:
    orig = getattr(exc, "orig", None)
    return _dbapi_error_code(orig) if orig is not None else None


def _dbapi_error_code(exc: Exception) -> int | None:
    code = getattr(exc, "sqlite_errorcode", None)
    if code is not None:
        return code
    if exc.args and isinstance(exc.args[0], int):
        return exc.args[0]
    return None
