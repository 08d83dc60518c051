"""MySQL engine on PyMySQL.

Install the optional dependency before using this module::

    pip install "brickorm[mysql]"

The connection runs with ``autocommit=True``; explicit transactions are
opened with ``START TRANSACTION`` by :meth:`Engine.begin`.  The password is
forgotten once the connect attempt finishes, successful or not.  Connections
are opened with ``CLIENT.MULTI_STATEMENTS`` so scripts can run in one call.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from brickorm.engine.base import BufferedResult, DriverResult, Engine
from brickorm.errors import DatabaseError, QuotingError

if TYPE_CHECKING:
    from pymysql.connections import Connection

    from brickorm.config import DatabaseConfig

logger = logging.getLogger(__name__)


class MySQLEngine(Engine):
    """Engine backed by a PyMySQL connection.

    Args:
        hostname: Server host.
        username: Login user.
        password: Login password.
        database: Default schema.
        port: Server port.
        charset: Connection character set, or ``None`` for the driver default.
        connect_args: Extra keyword arguments for :func:`pymysql.connect`.
    """

    def __init__(
        self,
        hostname: str = "127.0.0.1",
        username: str = "",
        password: str | None = "",
        database: str = "",
        port: int = 3306,
        charset: str | None = "utf8",
        connect_args: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self._hostname = hostname
        self._username = username
        self._password = password
        self._database = database
        self._port = port
        self._charset = charset
        self._connect_args = connect_args or {}
        self._conn: Connection | None = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> MySQLEngine:
        return cls(
            hostname=config.hostname,
            username=config.username,
            password=config.password_value(),
            database=config.database,
            port=config.port,
            charset=config.charset,
            connect_args=dict(config.connect_args),
        )

    @property
    def dialect_name(self) -> str:
        return "mysql"

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def connect(self) -> None:
        import pymysql
        from pymysql.constants import CLIENT

        kwargs: dict[str, Any] = dict(self._connect_args)
        kwargs["client_flag"] = kwargs.get("client_flag", 0) | CLIENT.MULTI_STATEMENTS
        if self._charset is not None:
            kwargs["charset"] = self._charset
        try:
            self._conn = pymysql.connect(
                host=self._hostname,
                user=self._username,
                password=self._password or "",
                database=self._database or None,
                port=self._port,
                autocommit=True,
                **kwargs,
            )
        except pymysql.MySQLError as exc:
            self._conn = None
            raise DatabaseError(str(exc), code=_error_code(exc)) from exc
        finally:
            self._password = None
        logger.info("Connected to mysql %s@%s:%s/%s", self._username, self._hostname, self._port, self._database)

    def disconnect(self) -> None:
        if self._conn is None:
            return
        import pymysql

        try:
            self._conn.close()
        except pymysql.MySQLError:
            logger.warning("Error while closing mysql connection", exc_info=True)
        self._conn = None
        logger.info("Disconnected from mysql %s:%s", self._hostname, self._port)

    def _execute(self, sql: str) -> DriverResult | None:
        import pymysql

        assert self._conn is not None
        try:
            with self._conn.cursor() as cursor:
                cursor.execute(sql)
                if cursor.description is not None:
                    columns = [d[0] for d in cursor.description]
                    return BufferedResult(columns, cursor.fetchall())
                self._inserted_id = cursor.lastrowid
                self._affected_rows = cursor.rowcount
        except pymysql.MySQLError as exc:
            raise DatabaseError(f"{exc} [ {sql} ]", code=_error_code(exc), sql=sql) from exc
        return None

    def _execute_script(self, sql: str) -> int:
        import pymysql

        assert self._conn is not None
        total = 0
        try:
            with self._conn.cursor() as cursor:
                cursor.execute(sql)
                while True:
                    if cursor.rowcount > 0:
                        total += cursor.rowcount
                    if not cursor.nextset():
                        break
        except pymysql.MySQLError as exc:
            raise DatabaseError(f"{exc} [ {sql} ]", code=_error_code(exc), sql=sql) from exc
        self._affected_rows = total
        return total

    def _escape(self, text: str) -> str:
        import pymysql

        assert self._conn is not None
        try:
            return self._conn.escape_string(text)
        except (pymysql.MySQLError, UnicodeError) as exc:
            raise QuotingError(str(exc), code=_error_code(exc)) from exc


def _error_code(exc: Exception) -> int | None:
    if exc.args and isinstance(exc.args[0], int):
        return exc.args[0]
    return None
