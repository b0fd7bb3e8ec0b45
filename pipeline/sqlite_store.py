"""
pipeline/sqlite_store.py
------------------------
SQLite implementation of the pipeline connection capability.

Used for file-based source/destination stores and as the real database
behind the loader and orchestrator tests.  Mirrors :class:`DatabaseManager`
so either can sit on either side of a transfer.
"""
from __future__ import annotations

import datetime
import decimal
import sqlite3
from pathlib import Path
from typing import Any, Sequence

from logger import get_logger
from pipeline.codec import format_datetime, format_timedelta
from pipeline.database import ConnectionLostError, DatabaseError, Record, rows_to_records
from pipeline.dialect import SQLITE, Dialect

log = get_logger(__name__)

# sqlite3 has no native DECIMAL or TIME storage and its default date
# adapters are deprecated, so every such value is bound as the same text
# the SQL dump would contain.
sqlite3.register_adapter(decimal.Decimal, str)
sqlite3.register_adapter(datetime.datetime, format_datetime)
sqlite3.register_adapter(datetime.date, datetime.date.isoformat)
sqlite3.register_adapter(datetime.time, datetime.time.isoformat)
sqlite3.register_adapter(datetime.timedelta, format_timedelta)


class SQLiteConnection:
    """
    Autocommit SQLite connection.

    Example::

        with SQLiteConnection("local.db") as db:
            db.execute("INSERT INTO t (a) VALUES (?)", (1,))
    """

    placeholder = "?"
    dialect: Dialect = SQLITE

    def __init__(self, path: Path | str = ":memory:") -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    def __enter__(self) -> "SQLiteConnection":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def connect(self) -> None:
        try:
            # isolation_level=None → autocommit; each statement stands alone
            self._conn = sqlite3.connect(self._path, isolation_level=None)
        except sqlite3.Error as exc:
            raise DatabaseError(f"Could not open SQLite database '{self._path}': {exc}") from exc
        log.info("Opened SQLite database: %s", self._path)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            log.info("SQLite database closed: %s", self._path)

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> list[Record]:
        """
        Execute *sql* and return its rows as ordered dicts.

        Raises:
            ConnectionLostError: If not connected.
            DatabaseError: On SQLite errors.
        """
        if self._conn is None:
            raise ConnectionLostError("SQLite connection is not open. Call connect() first.")
        try:
            cursor = self._conn.execute(sql, tuple(params) if params is not None else ())
            if cursor.description is None:
                return []
            names = [col[0] for col in cursor.description]
            return rows_to_records(names, cursor.fetchall())
        except sqlite3.Error as exc:
            log.debug("SQL execution error: %s | SQL: %.500s", exc, sql)
            raise DatabaseError(str(exc)) from exc

    def list_tables(self) -> list[str]:
        rows = self.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [row["name"] for row in rows]

    def table_exists(self, table_name: str) -> bool:
        # '=' on sqlite_master.name is case-sensitive (BINARY collation)
        rows = self.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table_name,),
        )
        return bool(rows)

    def count_rows(self, table_name: str) -> int:
        rows = self.execute(
            f"SELECT COUNT(*) AS row_count FROM {self.dialect.quote_identifier(table_name)}"
        )
        return int(rows[0]["row_count"]) if rows else 0
