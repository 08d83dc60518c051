"""brickORM engine layer: driver connections behind one interface.

``MySQLEngine`` and ``SQLAlchemyEngine`` import their drivers lazily, so
importing this package does not require the optional extras.
"""
from brickorm.engine.base import BufferedResult, DriverResult, Engine
from brickorm.engine.mysql import MySQLEngine
from brickorm.engine.registry import EngineFactory
from brickorm.engine.sqlalchemy import SQLAlchemyEngine
from brickorm.engine.sqlite import SQLiteEngine

__all__ = [
    "BufferedResult",
    "DriverResult",
    "Engine",
    "EngineFactory",
    "MySQLEngine",
    "SQLAlchemyEngine",
    "SQLiteEngine",
]
