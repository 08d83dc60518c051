"""Integration tests: build → compile → execute against a real SQLite database.

Uses a file-backed database configured through ``Database.from_config`` so the
whole stack (config, engine registry, compiler, cursor, records) is exercised
the way an application wires it.
"""
from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from brickorm import Database, Field, Record, expr, insert, select, update
from tests.fixtures import USERS, load_ddl


class User(Record):
    __table__ = "users"

    id = Field(int)
    name = Field(str)
    settings = Field(dict, serialize=True)


@pytest.fixture()
def file_db(tmp_path: Path) -> Iterator[Database]:
    db = Database.from_config({"driver": "sqlite", "database": str(tmp_path / "app.db")})
    db.engine.connection.executescript(load_ddl("sqlite"))
    for row in USERS:
        insert("users").columns(["id", "name", "email", "active", "score", "settings"]).values(row).execute(db)
    Database.set_default(db)
    yield db
    Database.set_default(None)
    db.disconnect()


def test_like_count_scenario(file_db: Database):
    assert select().from_("users").where("name", "like", "%oh%").count() == 1
    assert select().from_("users").where("name", "like", "%oh").count() == 0


def test_insert_then_find_by_id_scenario(file_db: Database):
    ident = insert("users").values({"name": "Ann"}).execute()
    assert ident == 4
    user = User.find_by_id(ident)
    assert user.loaded()
    assert user.name == "Ann"
    assert user.changed_fields() == []


def test_injection_attempt_is_stored_verbatim(file_db: Database):
    payload = "Robert'); DROP TABLE users; --"
    ident = insert("users").values({"name": payload}).execute()
    assert select("name").from_("users").where("id", "=", ident).scalar() == payload
    assert select().from_("users").count() == 4


def test_dirty_tracking_end_to_end(file_db: Database):
    user = User.find_by_id(1)
    user.name = "John"
    assert user.update() == 0
    user.name = "Johnny"
    assert user.update() == 1
    assert select("name").from_("users").where("id", "=", 1).scalar() == "Johnny"


def test_serialize_field_end_to_end(file_db: Database):
    user = User({"name": "Ann", "settings": {"lang": "fr", "beta": True}})
    user.create()
    fresh = User.find_by_id(user.id)
    assert fresh.settings == {"lang": "fr", "beta": True}
    fresh.settings = {"lang": "de"}
    fresh.update()
    assert select("settings").from_("users").where("id", "=", user.id).scalar() == '{"lang":"de"}'


def test_create_update_delete_lifecycle(file_db: Database):
    user = User({"name": "Ann"})
    user.create()
    assert user.update() == 0
    user.delete()
    assert User.find_by_id(user.id) is None


def test_index_by_duplicate_keys_keep_last_row(file_db: Database):
    update("users").set("name", "Same").where("id", "IN", [1, 2]).execute()
    indexed = select("id", "name").from_("users").order_by("id").index_by("name").all()
    assert indexed["Same"] == {"id": 2, "name": "Same"}
    assert len(indexed) == 2


def test_count_then_all_returns_full_rows(file_db: Database):
    q = select("id", "name").from_("users").where("id", "<", 3).order_by("id")
    assert q.count() == 2
    assert q.all() == [{"id": 1, "name": "John"}, {"id": 2, "name": "Jane"}]


def test_join_with_aggregate(file_db: Database):
    file_db.engine.connection.executescript(
        "INSERT INTO posts (user_id, title, views) VALUES (1, 'a', 3), (1, 'b', 4), (2, 'c', 1);"
    )
    rows = (
        select("users.name", (expr("SUM(`posts`.`views`)"), "views"))
        .from_("users")
        .join("posts")
        .on("posts.user_id", "=", "users.id")
        .group_by("users.name")
        .having(expr("SUM(`posts`.`views`)"), ">", 2)
        .order_by("views", "DESC")
        .all()
    )
    assert rows == [{"name": "John", "views": 7}]


def test_expression_params_end_to_end(file_db: Database):
    matches = expr("SUM(`name` IN :names)", {":names": ["Jane", "Bob"]})
    assert select((matches, "n")).from_("users").scalar() == 2


def test_transaction_and_persistence_across_connections(file_db: Database, tmp_path: Path):
    with file_db.transaction():
        insert("users").values({"name": "Ann"}).execute()
    other = Database.from_config({"driver": "sqlite", "database": str(tmp_path / "app.db")})
    assert select().from_("users").count(other) == 4
    other.disconnect()
