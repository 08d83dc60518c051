"""Tests for Database: configuration, quoting helpers, transactions and locks."""

from __future__ import annotations

import logging
from types import SimpleNamespace

import pydantic
import pytest

from brickorm import (
    Database,
    DatabaseConfig,
    EngineFactory,
    MySQLEngine,
    QueryType,
    SQLAlchemyEngine,
    SQLiteEngine,
    insert,
    select,
)
from brickorm.errors import ConfigError, DatabaseError, QuotingError
from tests.fixtures import QUOTED_STRINGS, RecordingEngine

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def test_from_config_mapping_builds_sqlite_engine():
    db = Database.from_config({"driver": "sqlite", "database": ":memory:"})
    assert isinstance(db.engine, SQLiteEngine)
    assert str(db) == "db:sqlite"


def test_invalid_mapping_raises_config_error():
    with pytest.raises(ConfigError):
        Database.from_config({"driver": "sqlite", "database": ":memory:", "bogus": 1})


def test_sqlite_requires_database():
    with pytest.raises(pydantic.ValidationError):
        DatabaseConfig(driver="sqlite")


def test_sqlalchemy_requires_url():
    with pytest.raises(ConfigError):
        Database.from_config({"driver": "sqlalchemy"})


def test_port_is_range_checked():
    with pytest.raises(pydantic.ValidationError):
        DatabaseConfig(driver="mysql", port=70000)


def test_unknown_driver_raises():
    with pytest.raises(ConfigError) as exc_info:
        Database.from_config(DatabaseConfig(driver="oracle"))
    assert exc_info.value.field == "driver"


def test_builtin_drivers_are_registered():
    assert {"sqlite", "mysql", "sqlalchemy"} <= set(EngineFactory.registered_drivers())


def test_password_is_secret():
    config = DatabaseConfig(driver="mysql", password="hunter2")
    assert "hunter2" not in repr(config)
    assert config.password_value() == "hunter2"
    assert DatabaseConfig(driver="mysql").password_value() == ""


def test_instance_without_default_raises():
    Database.set_default(None)
    with pytest.raises(ConfigError):
        Database.instance()


def test_set_default(db: Database):
    assert Database.instance() is db


# ---------------------------------------------------------------------------
# Quoting helpers
# ---------------------------------------------------------------------------


def test_quote_helpers(db: Database):
    assert db.quote(None) == "NULL"
    assert db.quote(10) == "10"
    assert db.quote("fred") == "'fred'"
    assert db.escape("it's") == "'it''s'"
    assert db.quote_column("name", "users") == "`users`.`name`"
    assert db.quote_table(("users", "u")) == "`users` AS `u`"
    assert db.quote_identifier("a.b") == "`a`.`b`"


@pytest.mark.parametrize("text", QUOTED_STRINGS)
def test_quoted_strings_round_trip(db: Database, text: str):
    result = db.query(QueryType.SELECT, f"SELECT {db.quote(text)} AS v")
    assert result.column("v") == text


def test_unencodable_string_raises_quoting_error(db: Database):
    with pytest.raises(QuotingError):
        db.quote("bad \ud800 surrogate")


# ---------------------------------------------------------------------------
# Execution and logging
# ---------------------------------------------------------------------------


def test_failed_statement_raises_with_sql(db: Database, caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.WARNING, logger="brickorm.database"):
        with pytest.raises(DatabaseError) as exc_info:
            select().from_("missing_table").all()
    err = exc_info.value
    assert "missing_table" in err.sql
    assert f"[ {err.sql} ]" in str(err)
    assert err.to_error_response()["sql"] == err.sql
    assert "Query failed" in caplog.text


def test_statements_are_logged_at_debug(db: Database, caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.DEBUG, logger="brickorm.database"):
        select().from_("users").all()
    assert "SELECT * FROM `users`" in caplog.text


def test_profiling_logs_timings(engine: RecordingEngine, caplog: pytest.LogCaptureFixture):
    db = Database(engine, profiling=True)
    with caplog.at_level(logging.DEBUG, logger="brickorm.database"):
        select().from_("users").all(db)
    assert "Query took" in caplog.text


def test_raw_write_query_returns_none(db: Database):
    assert db.query(QueryType.DELETE, "DELETE FROM `posts`") is None
    assert db.affected_rows() == 3


def test_multi_query_runs_every_statement(db: Database, engine: RecordingEngine):
    changed = db.multi_query(
        "UPDATE `users` SET `active` = 0 WHERE `id` = 1;"
        " DELETE FROM `posts` WHERE `user_id` = 1;"
        " INSERT INTO `archive` (`name`) VALUES ('a; b');"
    )
    assert changed == 4
    assert select().from_("users").where("active", "=", False).count() == 2
    assert select().from_("posts").count() == 1
    assert select("name").from_("archive").scalar() == "a; b"


def test_multi_query_failure_raises_with_sql(db: Database, caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.WARNING, logger="brickorm.database"):
        with pytest.raises(DatabaseError) as exc_info:
            db.multi_query("DELETE FROM `posts`; DELETE FROM `missing_table`;")
    assert "missing_table" in exc_info.value.sql
    assert "Script failed" in caplog.text


def test_lazy_connect():
    engine = RecordingEngine()
    db = Database(engine)
    assert not engine.connected
    db.quote("x")
    assert engine.connected
    db.disconnect()
    assert not engine.connected


# ---------------------------------------------------------------------------
# Transactions and locks
# ---------------------------------------------------------------------------


def test_transaction_commits(db: Database):
    with db.transaction():
        insert("users").values({"name": "Ann"}).execute()
    assert select().from_("users").count() == 4


def test_transaction_rolls_back_on_error(db: Database):
    with pytest.raises(RuntimeError):
        with db.transaction():
            insert("users").values({"name": "Ann"}).execute()
            raise RuntimeError("boom")
    assert select().from_("users").count() == 3


def test_begin_mode_and_explicit_rollback(db: Database, engine: RecordingEngine):
    db.begin("immediate")
    insert("users").values({"name": "Ann"}).execute()
    db.rollback()
    assert engine.statements[0] == "BEGIN IMMEDIATE"
    assert select().from_("users").count() == 3


def test_advisory_lock_is_exclusive(db: Database):
    other = Database(RecordingEngine())
    assert db.get_lock("jobs") is True
    assert other.get_lock("jobs") is False
    assert db.release_lock("jobs") is True
    assert db.release_lock("jobs") is False
    assert other.get_lock("jobs") is True
    other.disconnect()
    assert db.get_lock("jobs") is True
    db.release_lock("jobs")


def test_advisory_lock_is_reentrant_per_connection(db: Database):
    other = Database(RecordingEngine())
    assert db.get_lock("jobs") is True
    assert db.get_lock("jobs") is True
    assert db.release_lock("jobs") is True
    assert other.get_lock("jobs") is False
    assert db.release_lock("jobs") is True
    assert db.release_lock("jobs") is False
    assert other.get_lock("jobs") is True
    other.disconnect()


def test_disconnect_releases_reentrant_locks(db: Database):
    holder = Database(RecordingEngine())
    assert holder.get_lock("jobs") is True
    assert holder.get_lock("jobs") is True
    holder.disconnect()
    assert db.get_lock("jobs") is True
    db.release_lock("jobs")


# ---------------------------------------------------------------------------
# Other engines (no server needed)
# ---------------------------------------------------------------------------


def test_mysql_engine_from_config_does_not_connect():
    db = Database.from_config({"driver": "mysql", "username": "app", "password": "pw", "database": "shop"})
    assert isinstance(db.engine, MySQLEngine)
    assert db.engine.dialect_name == "mysql"
    assert not db.engine.connected


def _sqlalchemy_engine(dialect: str) -> SQLAlchemyEngine:
    return SQLAlchemyEngine(SimpleNamespace(dialect=SimpleNamespace(name=dialect)))


def test_sqlalchemy_engine_escapes_mysql_with_pymysql():
    pytest.importorskip("pymysql")
    engine = _sqlalchemy_engine("mysql")
    assert engine._escape("it's\n\\\x00") == "it\\'s\\n\\\\\\0"


def test_sqlalchemy_engine_prefers_driver_escape_for_mysql():
    # A server in NO_BACKSLASH_ESCAPES mode doubles quotes instead.
    driver = SimpleNamespace(escape_string=lambda text: text.replace("'", "''").encode("utf-8"))
    engine = _sqlalchemy_engine("mysql")
    engine._conn = SimpleNamespace(connection=SimpleNamespace(dbapi_connection=driver))
    assert engine._escape("it's\\") == "it''s\\"


def test_sqlalchemy_engine_sqlite_escapes():
    engine = _sqlalchemy_engine("sqlite")
    assert engine._escape("it's\n") == "it''s\n"
    assert engine._escape("a\x00'") == "a' || char(0) || '''"
    assert _sqlalchemy_engine("postgresql")._escape("it's") == "it''s"
