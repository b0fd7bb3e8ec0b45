"""pipeline/connections.py"""
from __future__ import annotations

from config import DatabaseConfig
from pipeline.database import Connection, DatabaseManager
from pipeline.sqlite_store import SQLiteConnection


def open_connection(cfg: DatabaseConfig) -> Connection:
    """
    Build an (unopened) connection for *cfg*; use it as a context manager.

    Raises:
        ValueError: If ``cfg.engine`` is not ``mysql`` or ``sqlite``.
    """
    if cfg.engine == "mysql":
        return DatabaseManager.from_config(cfg)
    if cfg.engine == "sqlite":
        if not cfg.database:
            raise ValueError("SQLite connections need a database file path.")
        return SQLiteConnection(cfg.database)
    raise ValueError(f"Unsupported database engine '{cfg.engine}'.")
