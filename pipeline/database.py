"""
pipeline/database.py
--------------------
MySQL connection management and the connection capability used by the
transfer pipeline.

Design Decisions:
    * ``DatabaseManager`` is a context manager so callers can use it with
      ``with`` statements and be guaranteed the connection is closed on exit.
    * Connections run in autocommit mode.  Every statement the pipeline
      issues stands alone, so one failed INSERT never rolls back its
      neighbours.
    * Retry logic is implemented for transient connection errors using
      back-off (configurable via ``max_retries`` / ``retry_delay``).
    * Data values always travel as parameters (``%s``).  Only identifiers,
      quoted by the connection's dialect, are interpolated into SQL text.
    * ``execute`` returns rows as ordered dicts keyed by the column names in
      the result metadata, so callers never depend on driver cursor types.
"""
from __future__ import annotations

import time
from typing import Any, Protocol, Sequence

import mysql.connector
from mysql.connector import MySQLConnection
from mysql.connector.cursor import MySQLCursor

from config import DatabaseConfig
from logger import get_logger
from pipeline.dialect import MYSQL, Dialect
from pipeline.errors import PipelineError

log = get_logger(__name__)

# One result row: column name → value, in result-metadata column order.
Record = dict[str, Any]


class DatabaseError(PipelineError):
    """Raised for database-level failures reported by this module."""


class ConnectionLostError(DatabaseError):
    """Raised when the connection is detected as lost."""


class Connection(Protocol):
    """What the pipeline needs from a relational store."""

    placeholder: str
    dialect: Dialect

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> list[Record]: ...

    def table_exists(self, table_name: str) -> bool: ...

    def count_rows(self, table_name: str) -> int: ...

    def list_tables(self) -> list[str]: ...

    def close(self) -> None: ...

    def __enter__(self) -> "Connection": ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool: ...


def rows_to_records(column_names: Sequence[str], rows: Sequence[Sequence[Any]]) -> list[Record]:
    """Zip raw row tuples with their column names, keeping both orders."""
    names = list(column_names)
    return [dict(zip(names, row)) for row in rows]


class DatabaseManager:
    """
    MySQL connection wrapper implementing the pipeline connection capability.

    Provides:
        * Connect with retry back-off.
        * Context-manager support (``with DatabaseManager(...) as db``).
        * Catalog helpers (databases, tables, existence, row counts).

    Example::

        with DatabaseManager.from_config(CONFIG.source) as db:
            rows = db.execute("SELECT * FROM `users`")
    """

    placeholder = "%s"
    dialect: Dialect = MYSQL

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        database: str = "",
        charset: str = "utf8mb4",
        connect_timeout: int = 10,
        ssl: bool = False,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._database = database
        self._charset = charset
        self._connect_timeout = connect_timeout
        self._ssl = ssl
        self._max_retries = max_retries
        self._retry_delay = retry_delay

        self._conn: MySQLConnection | None = None
        self._cursor: MySQLCursor | None = None
        self.current_database: str | None = database or None

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, cfg: DatabaseConfig) -> "DatabaseManager":
        """Convenience factory using a :class:`DatabaseConfig`."""
        return cls(
            host=cfg.host,
            port=cfg.port,
            user=cfg.user,
            password=cfg.password,
            database=cfg.database,
            charset=cfg.charset,
            connect_timeout=cfg.connect_timeout,
            ssl=cfg.ssl,
        )

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> "DatabaseManager":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            log.warning("Unhandled exception in DatabaseManager context: %s", exc_val)
        self.close()
        return False  # Never suppress exceptions

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """
        Open the MySQL connection, retrying with back-off.

        Raises:
            DatabaseError: If connection fails after all retries.
        """
        kwargs: dict[str, Any] = dict(
            host=self._host,
            port=self._port,
            user=self._user,
            password=self._password,
            charset=self._charset,
            connect_timeout=self._connect_timeout,
            autocommit=True,
            ssl_disabled=not self._ssl,
        )
        if self._database:
            kwargs["database"] = self._database

        for attempt in range(1, self._max_retries + 1):
            try:
                log.info(
                    "Connecting to MySQL at %s:%s (attempt %d/%d)",
                    self._host, self._port, attempt, self._max_retries,
                )
                self._conn = mysql.connector.connect(**kwargs)
                self._cursor = self._conn.cursor(buffered=True)
                log.info("Connected to MySQL successfully.")
                return
            except mysql.connector.Error as exc:
                log.warning("Connection attempt %d failed: %s", attempt, exc)
                if attempt < self._max_retries:
                    time.sleep(self._retry_delay * attempt)
        raise DatabaseError(
            f"Could not connect to MySQL at {self._host}:{self._port} "
            f"after {self._max_retries} attempts."
        )

    def close(self) -> None:
        """Close cursor and connection; cleanup errors are logged, not raised."""
        try:
            if self._cursor:
                self._cursor.close()
        except mysql.connector.Error as exc:
            log.debug("Ignoring error while closing cursor: %s", exc)
        try:
            if self._conn and self._conn.is_connected():
                self._conn.close()
                log.info("Database connection closed.")
        except mysql.connector.Error as exc:
            log.debug("Ignoring error while closing connection: %s", exc)
        self._cursor = None
        self._conn = None

    @property
    def is_connected(self) -> bool:
        return bool(self._conn and self._conn.is_connected())

    def _ensure_connected(self) -> None:
        if not self.is_connected:
            raise ConnectionLostError(
                "Database connection is not open. Call connect() first."
            )

    # ------------------------------------------------------------------
    # Connection capability
    # ------------------------------------------------------------------

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> list[Record]:
        """
        Execute a SQL statement and return its rows, if any.

        Args:
            sql:    SQL statement. Use %s placeholders for values.
            params: Parameter values (optional).

        Returns:
            Result rows as ordered dicts; empty for statements without a
            result set.

        Raises:
            ConnectionLostError: If not connected.
            DatabaseError: On MySQL execution errors.
        """
        self._ensure_connected()
        assert self._cursor is not None
        try:
            self._cursor.execute(sql, tuple(params) if params is not None else None)
            if not self._cursor.description:
                return []
            names = [col[0] for col in self._cursor.description]
            return rows_to_records(names, self._cursor.fetchall())
        except mysql.connector.Error as exc:
            log.debug("SQL execution error: %s | SQL: %.500s", exc, sql)
            raise DatabaseError(str(exc)) from exc

    # ------------------------------------------------------------------
    # High-level database operations
    # ------------------------------------------------------------------

    def list_databases(self, exclude_system: bool = True) -> list[str]:
        """
        Return database names, optionally filtering system databases.

        Args:
            exclude_system: When True (default), omits information_schema,
                            mysql, performance_schema, and sys.
        """
        system = {"information_schema", "mysql", "performance_schema", "sys"}
        dbs = [next(iter(row.values())) for row in self.execute("SHOW DATABASES")]
        if exclude_system:
            dbs = [d for d in dbs if d not in system]
        return sorted(dbs)

    def select_database(self, name: str) -> None:
        """
        Switch the active database.

        Raises:
            DatabaseError: If the USE statement fails.
        """
        self.execute(f"USE {self.dialect.quote_identifier(name)}")
        self.current_database = name
        log.info("Selected database: %s", name)

    def list_tables(self) -> list[str]:
        """Return table names in the current database."""
        return [next(iter(row.values())) for row in self.execute("SHOW TABLES")]

    def table_exists(self, table_name: str) -> bool:
        """
        Return True if *table_name* exists in the current database.

        ``LIKE`` treats ``_`` and ``%`` as wildcards, so candidates are
        filtered for an exact, case-sensitive match.
        """
        rows = self.execute("SHOW TABLES LIKE %s", (table_name,))
        return any(next(iter(row.values())) == table_name for row in rows)

    def count_rows(self, table_name: str) -> int:
        """
        Return ``COUNT(*)`` for *table_name*.

        Raises:
            DatabaseError: If the table cannot be counted.
        """
        rows = self.execute(
            f"SELECT COUNT(*) AS row_count FROM {self.dialect.quote_identifier(table_name)}"
        )
        return int(rows[0]["row_count"]) if rows else 0
