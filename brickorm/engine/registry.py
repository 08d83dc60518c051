"""Engine registry (Open/Closed Principle).

``EngineFactory`` maps driver names (the ``driver`` field of
:class:`~brickorm.config.DatabaseConfig`) to :class:`~brickorm.engine.base.Engine`
implementations.  Register a new engine once; :meth:`Database.from_config`
looks it up automatically.

Usage::

    from brickorm.engine.registry import EngineFactory

    @EngineFactory.register("postgres")
    class PostgresEngine(Engine):
        ...
"""
from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, ClassVar

from brickorm.engine.base import Engine
from brickorm.errors import ConfigError

if TYPE_CHECKING:
    from brickorm.config import DatabaseConfig


class EngineFactory:
    """Registry mapping driver names to :class:`Engine` classes.

    Example::

        @EngineFactory.register("mysql")
        class MySQLEngine(Engine):
            ...

        engine = EngineFactory.create(DatabaseConfig(driver="mysql"))
    """

    _engines: ClassVar[dict[str, type[Engine]]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[Engine]], type[Engine]]:
        """Decorator that registers an engine class under ``name``.

        Args:
            name: The driver name (e.g. ``"sqlite"``).

        Returns:
            A decorator that registers and returns the engine class.
        """

        def decorator(engine_cls: type[Engine]) -> type[Engine]:
            cls._engines[name] = engine_cls
            return engine_cls

        return decorator

    @classmethod
    def register_class(cls, name: str, engine_cls: type[Engine]) -> None:
        """Register an engine class without using the decorator form."""
        cls._engines[name] = engine_cls

    @classmethod
    def create(cls, config: DatabaseConfig) -> Engine:
        """Instantiate the engine registered for ``config.driver``.

        Raises:
            ConfigError: If no engine is registered for the driver.
        """
        engine_cls = cls._engines.get(config.driver)
        if engine_cls is None:
            raise ConfigError(
                f"Unsupported driver: '{config.driver}'. Registered drivers: {cls.registered_drivers()}.",
                field="driver",
            )
        return engine_cls.from_config(config)

    @classmethod
    def registered_drivers(cls) -> list[str]:
        """Return the sorted list of registered driver names."""
        return sorted(cls._engines)
