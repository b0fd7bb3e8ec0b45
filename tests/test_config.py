"""
tests/test_config.py
--------------------
Unit tests for config.py and pipeline/connections.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

from pathlib import Path

import pytest

from config import DatabaseConfig, MigrationConfig, parse_table_list
from pipeline.connections import open_connection
from pipeline.database import DatabaseManager
from pipeline.sqlite_store import SQLiteConnection

_DB_KEYS = ("ENGINE", "HOST", "PORT", "USER", "PASSWORD", "DATABASE", "NAME", "SSL")


@pytest.fixture
def clean_env(monkeypatch):
    for prefix in ("SOURCE_DB_", "DEST_DB_", "MYSQL_"):
        for key in _DB_KEYS:
            monkeypatch.delenv(prefix + key, raising=False)
    for name in ("MIGRATION_TABLES", "SNAPSHOT_FILE", "DUMP_FILE", "DUMP_DIALECT",
                 "MIGRATION_VERIFY", "MAX_ROW_ERROR_RATE"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestParseTableList:
    def test_keeps_order_and_strips(self) -> None:
        assert parse_table_list(" users, orders ,,items ") == ("users", "orders", "items")

    def test_empty(self) -> None:
        assert parse_table_list("") == ()


class TestDatabaseConfig:
    def test_from_env(self, clean_env) -> None:
        clean_env.setenv("SOURCE_DB_HOST", "db.internal")
        clean_env.setenv("SOURCE_DB_PORT", "3307")
        clean_env.setenv("SOURCE_DB_USER", "reader")
        clean_env.setenv("SOURCE_DB_PASSWORD", "secret")
        clean_env.setenv("SOURCE_DB_NAME", "shop")
        clean_env.setenv("SOURCE_DB_SSL", "true")
        cfg = DatabaseConfig.from_env("SOURCE_DB_")
        assert (cfg.engine, cfg.host, cfg.port, cfg.user, cfg.database) == (
            "mysql", "db.internal", 3307, "reader", "shop"
        )
        assert cfg.ssl is True
        assert "secret" not in cfg.describe()

    def test_fallback_prefix(self, clean_env) -> None:
        clean_env.setenv("MYSQL_HOST", "hosted.example")
        clean_env.setenv("MYSQL_DATABASE", "railway")
        clean_env.setenv("DEST_DB_USER", "writer")
        cfg = DatabaseConfig.from_env("DEST_DB_", fallback_prefix="MYSQL_")
        assert cfg.host == "hosted.example"
        assert cfg.database == "railway"
        assert cfg.user == "writer"

    def test_defaults(self, clean_env) -> None:
        cfg = DatabaseConfig.from_env("SOURCE_DB_")
        assert (cfg.host, cfg.port, cfg.user) == ("localhost", 3306, "root")
        assert cfg.ssl is False

    def test_sqlite_describe(self) -> None:
        assert DatabaseConfig(engine="sqlite", database="x.db").describe() == "sqlite:x.db"


class TestMigrationConfig:
    def test_from_env(self, clean_env) -> None:
        clean_env.setenv("MIGRATION_TABLES", "users,orders")
        clean_env.setenv("MIGRATION_VERIFY", "yes")
        clean_env.setenv("MAX_ROW_ERROR_RATE", "0.25")
        clean_env.setenv("DUMP_FILE", "out/dump.sql")
        cfg = MigrationConfig()
        assert cfg.tables == ("users", "orders")
        assert cfg.verify is True
        assert cfg.max_row_error_rate == 0.25
        assert cfg.dump_file == Path("out/dump.sql")

    def test_defaults(self, clean_env) -> None:
        cfg = MigrationConfig()
        assert cfg.tables == ()
        assert cfg.snapshot_file == Path("data-export.json")
        assert cfg.dump_file is None
        assert cfg.dialect == "ansi"
        assert cfg.max_row_error_rate is None


class TestOpenConnection:
    def test_mysql(self) -> None:
        assert isinstance(open_connection(DatabaseConfig(engine="mysql")), DatabaseManager)

    def test_sqlite(self, tmp_path: Path) -> None:
        conn = open_connection(DatabaseConfig(engine="sqlite", database=str(tmp_path / "a.db")))
        assert isinstance(conn, SQLiteConnection)

    def test_sqlite_needs_path(self) -> None:
        with pytest.raises(ValueError, match="file path"):
            open_connection(DatabaseConfig(engine="sqlite"))

    def test_unknown_engine(self) -> None:
        with pytest.raises(ValueError, match="Unsupported database engine"):
            open_connection(DatabaseConfig(engine="oracle"))
