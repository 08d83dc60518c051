"""SQLite engine on the standard library ``sqlite3`` driver.

SQLite accepts backtick-quoted identifiers, so compiled SQL is shared with
MySQL.  Differences handled here:

* Strings are escaped by doubling single quotes; SQLite does not treat
  backslashes specially.  NUL characters are spliced in with ``char(0)``.
* Transactions open with ``BEGIN [DEFERRED|IMMEDIATE|EXCLUSIVE]``; the
  connection runs in autocommit mode between explicit transactions.
* ``GET_LOCK`` does not exist; named advisory locks are emulated with
  process-local locks.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from typing import TYPE_CHECKING, Any, ClassVar

from brickorm.engine.base import BufferedResult, DriverResult, Engine
from brickorm.errors import DatabaseError, QuotingError

if TYPE_CHECKING:
    from brickorm.config import DatabaseConfig

logger = logging.getLogger(__name__)


class SQLiteEngine(Engine):
    """Engine backed by a ``sqlite3`` connection.

    Args:
        database: File path, or ``":memory:"``.
        connect_args: Extra keyword arguments for :func:`sqlite3.connect`.
    """

    begin_statement = "BEGIN"

    _locks: ClassVar[dict[str, threading.Lock]] = {}
    _locks_guard: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, database: str, connect_args: dict[str, Any] | None = None) -> None:
        super().__init__()
        self._database = database
        self._connect_args = connect_args or {}
        self._conn: sqlite3.Connection | None = None
        self._held: dict[str, int] = {}

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> SQLiteEngine:
        return cls(config.database, dict(config.connect_args))

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    @property
    def connected(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> sqlite3.Connection:
        """The open driver connection (connecting if needed)."""
        self.ensure_connected()
        assert self._conn is not None
        return self._conn

    def connect(self) -> None:
        try:
            self._conn = sqlite3.connect(
                self._database, isolation_level=None, **self._connect_args
            )
        except sqlite3.Error as exc:
            self._conn = None
            raise DatabaseError(str(exc), code=_error_code(exc)) from exc
        logger.info("Connected to sqlite database %s", self._database)

    def disconnect(self) -> None:
        for name in list(self._held):
            self._held[name] = 1
            self.release_lock(name)
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.info("Disconnected from sqlite database %s", self._database)

    def _execute(self, sql: str) -> DriverResult | None:
        assert self._conn is not None
        try:
            cursor = self._conn.execute(sql)
            if cursor.description is not None:
                columns = [d[0] for d in cursor.description]
                return BufferedResult(columns, cursor.fetchall())
        except (sqlite3.Error, ValueError) as exc:
            raise DatabaseError(f"{exc} [ {sql} ]", code=_error_code(exc), sql=sql) from exc
        self._inserted_id = cursor.lastrowid
        self._affected_rows = cursor.rowcount
        return None

    def _execute_script(self, sql: str) -> int:
        assert self._conn is not None
        before = self._conn.total_changes
        try:
            self._conn.executescript(sql)
        except (sqlite3.Error, ValueError) as exc:
            raise DatabaseError(f"{exc} [ {sql} ]", code=_error_code(exc), sql=sql) from exc
        self._affected_rows = self._conn.total_changes - before
        return self._affected_rows

    def _escape(self, text: str) -> str:
        try:
            text.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise QuotingError(f"Cannot escape string: {exc}") from exc
        escaped = text.replace("'", "''")
        return escaped.replace("\x00", "' || char(0) || '")

    def begin(self, mode: str | None = None) -> None:
        self.execute(f"BEGIN {mode.upper()}" if mode else self.begin_statement)

    def get_lock(self, name: str, timeout: int = 0) -> bool:
        # Locks are re-entrant per engine, like MySQL's GET_LOCK on one session.
        if name in self._held:
            self._held[name] += 1
            return True
        with self._locks_guard:
            lock = self._locks.setdefault(name, threading.Lock())
        acquired = lock.acquire(timeout=timeout) if timeout > 0 else lock.acquire(blocking=False)
        if acquired:
            self._held[name] = 1
        return acquired

    def release_lock(self, name: str) -> bool:
        if name not in self._held:
            return False
        self._held[name] -= 1
        if self._held[name] == 0:
            del self._held[name]
            self._locks[name].release()
        return True


def _error_code(exc: Exception) -> int | None:
    return getattr(exc, "sqlite_errorcode", None)
