"""Pydantic model for database connection settings.

A ``DatabaseConfig`` is validated once, when it is built, so a missing URL or
an unknown driver is reported before the first query runs::

    from brickorm import Database, DatabaseConfig

    db = Database.from_config(
        DatabaseConfig(driver="mysql", username="app", database="shop")
    )
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator


class DatabaseConfig(BaseModel):
    """Connection settings for a :class:`~brickorm.database.Database`.

    Attributes:
        driver: Engine driver name, resolved through ``EngineFactory``.
        hostname: Server host (MySQL only).
        username: Login user (MySQL only).
        password: Login password; dropped by the engine after connecting.
        database: Schema name for MySQL, file path (or ``:memory:``) for SQLite.
        port: Server port (MySQL only).
        charset: Connection character set; ``None`` keeps the server default.
        url: SQLAlchemy URL, required when ``driver="sqlalchemy"``.
        profiling: If ``True``, log the elapsed time of every statement.
        connect_args: Extra keyword arguments passed to the driver's connect.
    """

    model_config = ConfigDict(extra="forbid")

    driver: str = "sqlite"
    hostname: str = "127.0.0.1"
    username: str = ""
    password: SecretStr | None = None
    database: str = ""
    port: int = Field(3306, gt=0, lt=65536)
    charset: str | None = "utf8"
    url: str | None = None
    profiling: bool = False
    connect_args: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_driver_requirements(self) -> DatabaseConfig:
        if self.driver == "sqlalchemy" and not self.url:
            raise ValueError("driver='sqlalchemy' requires a 'url'.")
        if self.driver == "sqlite" and not self.database:
            raise ValueError("driver='sqlite' requires 'database' (path or ':memory:').")
        return self

    def password_value(self) -> str:
        """Return the plain-text password, or an empty string."""
        return self.password.get_secret_value() if self.password is not None else ""
