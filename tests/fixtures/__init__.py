"""Test fixtures: sample schema DDL, seed rows and a statement-recording engine."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from brickorm.engine.base import DriverResult
from brickorm.engine.sqlite import SQLiteEngine

_FIXTURES_DIR = Path(__file__).parent

#: (id, name, email, active, score, settings)
USERS = [
    (1, "John", "john@example.com", 1, 4.5, '{"theme":"dark"}'),
    (2, "Jane", "jane@example.com", 1, None, None),
    (3, "Bob", None, 0, 2.0, "[]"),
]

#: (id, user_id, title, views)
POSTS = [
    (1, 1, "Hello", 10),
    (2, 1, "Again", 5),
    (3, 2, "Jane's post", 7),
]

#: Awkward strings that must survive quoting and come back unchanged.
QUOTED_STRINGS = [
    "O'Reilly",
    "back\\slash",
    "quote '' doubled",
    "new\nline\ttab\r\x1a",
    "'; DROP TABLE users; --",
    "emoji \U0001f600",
    "nul\x00byte",
]


def load_ddl(target: Literal["sqlite"] = "sqlite") -> str:
    """Return the sample DDL SQL string for the given backend."""
    return (_FIXTURES_DIR / f"ddl_{target}.sql").read_text()


def quote_text(text: str) -> str:
    """Stand-in escape primitive: single-quoted, quotes doubled."""
    return "'" + text.replace("'", "''") + "'"


class RecordingEngine(SQLiteEngine):
    """In-memory SQLite engine that keeps every executed statement."""

    def __init__(self) -> None:
        super().__init__(":memory:")
        self.statements: list[str] = []

    def _execute(self, sql: str) -> DriverResult | None:
        self.statements.append(sql)
        return super()._execute(sql)


def seeded_engine() -> RecordingEngine:
    """A connected engine with the sample schema and seed rows loaded."""
    engine = RecordingEngine()
    conn = engine.connection
    conn.executescript(load_ddl("sqlite"))
    conn.executemany("INSERT INTO users VALUES (?,?,?,?,?,?)", USERS)
    conn.executemany("INSERT INTO posts VALUES (?,?,?,?)", POSTS)
    return engine
