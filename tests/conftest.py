"""Shared pytest fixtures for brickORM unit and integration tests."""
from __future__ import annotations

from collections.abc import Iterator

import pytest

from brickorm import Database
from brickorm.compile.builder import QueryCompiler
from tests.fixtures import RecordingEngine, quote_text, seeded_engine


@pytest.fixture()
def engine() -> Iterator[RecordingEngine]:
    """Seeded in-memory SQLite engine; statement log starts empty."""
    eng = seeded_engine()
    eng.statements.clear()
    yield eng
    eng.disconnect()


@pytest.fixture()
def db(engine: RecordingEngine) -> Iterator[Database]:
    """Database over the seeded engine, installed as the process default."""
    database = Database(engine)
    Database.set_default(database)
    yield database
    Database.set_default(None)


@pytest.fixture()
def compiler() -> QueryCompiler:
    """Compiler with a connection-free escape primitive."""
    return QueryCompiler(quote_text)
