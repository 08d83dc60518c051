"""Custom exception hierarchy for brickORM.

All public errors inherit from BrickORMError so callers can catch the base
class for any brickORM-specific failure.
"""
from __future__ import annotations

from typing import Any


class BrickORMError(Exception):
    """Base exception for all brickORM errors."""

    def to_error_response(self) -> dict[str, Any]:
        """Returns a structured description of the error."""
        return {
            "error": type(self).__name__,
            "message": str(self),
        }


class ConfigError(BrickORMError):
    """Raised when a DatabaseConfig is misconfigured or no database is set.

    Args:
        message: Human-readable description.
        field: The configuration field at fault, if any.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class QueryBuildError(BrickORMError):
    """Raised when builder state is incomplete or does not apply to the query type.

    This is a programming error; it is raised before any SQL reaches the
    engine.

    Args:
        message: Human-readable description.
        clause: The clause being compiled when the error occurred.
    """

    def __init__(self, message: str, clause: str | None = None) -> None:
        super().__init__(message)
        self.clause = clause

    def to_error_response(self) -> dict[str, Any]:
        return {**super().to_error_response(), "clause": self.clause}


class DatabaseError(BrickORMError):
    """Raised when the engine fails to connect or to execute a statement.

    Args:
        message: Driver message, usually suffixed with ``[ <sql> ]``.
        code: Driver error code, when the driver reports one.
        sql: The offending SQL text.
    """

    def __init__(
        self,
        message: str,
        code: int | None = None,
        sql: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.sql = sql

    def to_error_response(self) -> dict[str, Any]:
        return {**super().to_error_response(), "code": self.code, "sql": self.sql}


class QuotingError(DatabaseError):
    """Raised when the engine's string-escaping primitive fails."""


class CursorError(BrickORMError):
    """Raised on a driver-level fetch failure.

    The cursor position is undefined afterwards; do not keep iterating.
    """


class FieldNotFoundError(BrickORMError):
    """Raised when a column does not exist on a result row or record.

    A column that exists but holds NULL is *not* an error.

    Args:
        field: The missing column name.
        owner: The result or record class name the lookup was made on.
    """

    def __init__(self, field: str, owner: str) -> None:
        super().__init__(f"Field '{field}' does not exist in {owner}.")
        self.field = field
        self.owner = owner


class NotLoadedError(BrickORMError):
    """Raised when delete/update is attempted on a non-persisted record."""

    def __init__(self, model: str, action: str) -> None:
        super().__init__(f"Cannot {action} a non-loaded model {model}.")
        self.model = model
        self.action = action


class RecordNotFoundError(BrickORMError):
    """Raised by the find-or-fail lookup when no row matches.

    Args:
        model: The record class name.
        ident: The identifier that was looked up.
    """

    def __init__(self, model: str, ident: Any) -> None:
        super().__init__(f"{model} with id={ident!r} not found.")
        self.model = model
        self.ident = ident
