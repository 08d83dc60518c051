"""Engine abstractions: the driver result handle and the Engine ABC.

The Template Method pattern (GoF) is used:

- ``Engine`` defines the connection lifecycle, transaction and advisory
  lock statements on top of a few driver-specific primitives.
- ``SQLiteEngine``, ``MySQLEngine`` and ``SQLAlchemyEngine`` override the
  primitives (connect, execute, escape).

Engines never retry.  Any driver exception raised while connecting or
executing is re-raised as :class:`~brickorm.errors.DatabaseError` carrying
the driver error code and the offending SQL.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from brickorm.errors import CursorError

if TYPE_CHECKING:
    from brickorm.config import DatabaseConfig


class DriverResult(ABC):
    """A driver-native result handle for one SELECT.

    ``rewindable`` tells the Result Cursor whether rows can be fetched
    again after a full pass.
    """

    rewindable: bool = False

    @property
    @abstractmethod
    def columns(self) -> list[str]:
        """Column names, in select-list order."""

    @property
    @abstractmethod
    def row_count(self) -> int:
        """Total number of rows."""

    @abstractmethod
    def fetch_row(self, index: int) -> tuple[Any, ...]:
        """Return the row at ``index``.

        Raises:
            CursorError: If the row cannot be fetched.
        """

    @abstractmethod
    def fetch_all(self) -> list[tuple[Any, ...]]:
        """Return every row in one bulk call."""


class BufferedResult(DriverResult):
    """Rows fully fetched from the driver at execute time.

    Equivalent to a stored (client-side buffered) result: random access,
    restartable iteration.

    Args:
        columns: Column names from the cursor description.
        rows: All fetched rows.
    """

    rewindable = True

    def __init__(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        self._columns = list(columns)
        self._rows = [tuple(r) for r in rows]

    @property
    def columns(self) -> list[str]:
        return self._columns

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def fetch_row(self, index: int) -> tuple[Any, ...]:
        if not 0 <= index < len(self._rows):
            raise CursorError(f"Row {index} is outside the result (0..{len(self._rows) - 1}).")
        return self._rows[index]

    def fetch_all(self) -> list[tuple[Any, ...]]:
        return list(self._rows)


class Engine(ABC):
    """Abstract base for database engines.

    Subclasses implement the driver primitives; :class:`~brickorm.database.Database`
    uses this interface via the Strategy / Template Method patterns.
    """

    #: Statement that opens a transaction.
    begin_statement: str = "START TRANSACTION"

    def __init__(self) -> None:
        self._inserted_id: Any = None
        self._affected_rows: int = 0

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    @abstractmethod
    def from_config(cls, config: DatabaseConfig) -> Engine:
        """Create an engine from validated configuration."""

    # ------------------------------------------------------------------
    # Driver primitives
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the canonical engine name (``'sqlite'``, ``'mysql'``, ...)."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Return ``True`` while a driver connection is open."""

    @abstractmethod
    def connect(self) -> None:
        """Open the driver connection.

        Raises:
            DatabaseError: If the driver cannot connect.
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Close the driver connection, if open."""

    @abstractmethod
    def _execute(self, sql: str) -> DriverResult | None:
        """Run ``sql`` on an open connection.

        Implementations store the inserted id and affected-row count and
        return a result handle for row-returning statements.
        """

    @abstractmethod
    def _escape(self, text: str) -> str:
        """Escape ``text`` for use inside single quotes."""

    def _execute_script(self, sql: str) -> int:
        """Run several ``;``-separated statements and return the rows they changed."""
        raise NotImplementedError(f"{type(self).__name__} cannot run multi-statement scripts")

    # ------------------------------------------------------------------
    # Template methods
    # ------------------------------------------------------------------

    def ensure_connected(self) -> None:
        """Connect lazily before the first statement."""
        if not self.connected:
            self.connect()

    def execute(self, sql: str) -> DriverResult | None:
        """Execute ``sql``, connecting first if needed.

        Returns:
            A :class:`DriverResult` for row-returning statements, else ``None``.

        Raises:
            DatabaseError: On any driver failure.
        """
        self.ensure_connected()
        return self._execute(sql)

    def execute_script(self, sql: str) -> int:
        """Execute a multi-statement script, connecting first if needed.

        Returns:
            The total number of rows changed by the script's statements.

        Raises:
            DatabaseError: On any driver failure.
        """
        self.ensure_connected()
        return self._execute_script(sql)

    def escape_string(self, text: str) -> str:
        """Return ``text`` as a single-quoted, injection-safe literal.

        Raises:
            QuotingError: If the escape primitive fails.
        """
        self.ensure_connected()
        return f"'{self._escape(text)}'"

    def inserted_id(self) -> Any:
        """Identifier generated by the last INSERT."""
        return self._inserted_id

    def affected_rows(self) -> int:
        """Rows changed by the last write statement."""
        return self._affected_rows

    def begin(self, mode: str | None = None) -> None:
        """Open a transaction; ``mode`` is an isolation level."""
        if mode:
            self.execute(f"SET TRANSACTION ISOLATION LEVEL {mode}")
        self.execute(self.begin_statement)

    def commit(self) -> None:
        self.execute("COMMIT")

    def rollback(self) -> None:
        self.execute("ROLLBACK")

    def get_lock(self, name: str, timeout: int = 0) -> bool:
        """Acquire a named advisory lock, waiting up to ``timeout`` seconds."""
        result = self.execute(f"SELECT GET_LOCK({self.escape_string(name)}, {int(timeout)})")
        return _first_cell_truthy(result)

    def release_lock(self, name: str) -> bool:
        """Release a named advisory lock held by this connection."""
        result = self.execute(f"SELECT RELEASE_LOCK({self.escape_string(name)})")
        return _first_cell_truthy(result)


def _first_cell_truthy(result: DriverResult | None) -> bool:
    if result is None or result.row_count == 0:
        return False
    return bool(result.fetch_row(0)[0])
