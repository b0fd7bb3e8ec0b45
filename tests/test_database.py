"""
tests/test_database.py
----------------------
Unit tests for pipeline/database.py using a mocked mysql.connector.
Run with: python -m pytest tests/
"""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import mysql.connector
import pytest

from config import DatabaseConfig
from pipeline.database import ConnectionLostError, DatabaseError, DatabaseManager


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_conn() -> MagicMock:
    conn = MagicMock()
    conn.is_connected.return_value = True
    return conn


@pytest.fixture
def mock_cursor(mock_conn: MagicMock) -> MagicMock:
    cursor = MagicMock()
    cursor.description = None
    mock_conn.cursor.return_value = cursor
    return cursor


@pytest.fixture
def db(mock_conn: MagicMock, mock_cursor: MagicMock):
    with patch("pipeline.database.mysql.connector.connect", return_value=mock_conn):
        manager = DatabaseManager(
            host="localhost", port=3306, user="root", password="", database="shop",
            retry_delay=0,
        )
        manager.connect()
        yield manager


def _result(cursor: MagicMock, columns: list[str], rows: list[tuple]) -> None:
    cursor.description = [(c,) for c in columns]
    cursor.fetchall.return_value = rows


# ---------------------------------------------------------------------------
# Connection lifecycle
# ---------------------------------------------------------------------------

class TestConnect:
    def test_autocommit_and_database_passed(self, mock_conn: MagicMock) -> None:
        with patch("pipeline.database.mysql.connector.connect", return_value=mock_conn) as connect:
            DatabaseManager("h", 3307, "u", "p", database="shop").connect()
        kwargs = connect.call_args.kwargs
        assert kwargs["autocommit"] is True
        assert kwargs["database"] == "shop"
        assert kwargs["port"] == 3307

    def test_retries_then_raises(self) -> None:
        with patch(
            "pipeline.database.mysql.connector.connect",
            side_effect=mysql.connector.Error("refused"),
        ) as connect:
            manager = DatabaseManager("h", 3306, "u", "p", max_retries=3, retry_delay=0)
            with pytest.raises(DatabaseError, match="after 3 attempts"):
                manager.connect()
        assert connect.call_count == 3

    def test_context_manager_closes_on_error(self, mock_conn: MagicMock, mock_cursor) -> None:
        with patch("pipeline.database.mysql.connector.connect", return_value=mock_conn):
            with pytest.raises(RuntimeError):
                with DatabaseManager("h", 3306, "u", "p"):
                    raise RuntimeError("boom")
        mock_conn.close.assert_called_once()

    def test_from_config(self) -> None:
        cfg = DatabaseConfig(host="db.example", port=3310, user="app", password="pw", database="prod")
        manager = DatabaseManager.from_config(cfg)
        assert manager.current_database == "prod"

    def test_execute_requires_connection(self) -> None:
        manager = DatabaseManager("h", 3306, "u", "p")
        with pytest.raises(ConnectionLostError):
            manager.execute("SELECT 1")


# ---------------------------------------------------------------------------
# execute
# ---------------------------------------------------------------------------

class TestExecute:
    def test_rows_become_ordered_dicts(self, db: DatabaseManager, mock_cursor: MagicMock) -> None:
        _result(mock_cursor, ["id", "name"], [(1, "Ann"), (2, "Bob")])
        rows = db.execute("SELECT * FROM `users`")
        assert rows == [{"id": 1, "name": "Ann"}, {"id": 2, "name": "Bob"}]
        assert list(rows[0]) == ["id", "name"]

    def test_statement_without_result_set(self, db: DatabaseManager, mock_cursor: MagicMock) -> None:
        assert db.execute("DELETE FROM `users`") == []
        mock_cursor.fetchall.assert_not_called()

    def test_params_passed_as_tuple(self, db: DatabaseManager, mock_cursor: MagicMock) -> None:
        db.execute("INSERT INTO `t` (`a`) VALUES (%s)", [5])
        mock_cursor.execute.assert_called_with("INSERT INTO `t` (`a`) VALUES (%s)", (5,))

    def test_driver_error_wrapped(self, db: DatabaseManager, mock_cursor: MagicMock) -> None:
        mock_cursor.execute.side_effect = mysql.connector.Error("Duplicate entry")
        with pytest.raises(DatabaseError, match="Duplicate entry"):
            db.execute("INSERT INTO `t` VALUES (1)")


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------

class TestCatalog:
    def test_table_exists_exact_match(self, db: DatabaseManager, mock_cursor: MagicMock) -> None:
        _result(mock_cursor, ["Tables_in_shop (legacy_customers)"], [("legacy_customers",)])
        assert db.table_exists("legacy_customers")
        mock_cursor.execute.assert_called_with("SHOW TABLES LIKE %s", ("legacy_customers",))

    def test_like_wildcard_is_not_a_match(self, db: DatabaseManager, mock_cursor: MagicMock) -> None:
        # '_' is a LIKE wildcard, so MySQL may return a near miss
        _result(mock_cursor, ["Tables_in_shop (legacy_customers)"], [("legacyXcustomers",)])
        assert not db.table_exists("legacy_customers")

    def test_missing_table(self, db: DatabaseManager, mock_cursor: MagicMock) -> None:
        _result(mock_cursor, ["Tables_in_shop (ghost)"], [])
        assert not db.table_exists("ghost")

    def test_count_rows(self, db: DatabaseManager, mock_cursor: MagicMock) -> None:
        _result(mock_cursor, ["row_count"], [(500,)])
        assert db.count_rows("orders") == 500
        mock_cursor.execute.assert_called_with(
            "SELECT COUNT(*) AS row_count FROM `orders`", None
        )

    def test_list_databases_excludes_system(self, db: DatabaseManager, mock_cursor: MagicMock) -> None:
        _result(mock_cursor, ["Database"], [("shop",), ("mysql",), ("app",), ("sys",)])
        assert db.list_databases() == ["app", "shop"]

    def test_select_database(self, db: DatabaseManager, mock_cursor: MagicMock) -> None:
        db.select_database("app")
        mock_cursor.execute.assert_called_with("USE `app`", None)
        assert db.current_database == "app"
