"""
config.py
---------
Centralised configuration management for the table data transfer tool.

Loads settings from environment variables (with .env file support via
python-dotenv). Provides typed settings as frozen dataclasses so
configuration is immutable at runtime.

Design Decision:
    Source and destination connections share one ``DatabaseConfig`` type,
    built from a variable prefix (``SOURCE_DB_`` / ``DEST_DB_``).  The
    destination also honours the plain ``MYSQL_*`` variables that hosted
    MySQL providers inject, so deployments work without renaming them.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path)


def _env(*names: str, default: str = "") -> str:
    """Return the first non-empty environment variable among *names*."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str) -> float | None:
    raw = os.getenv(name)
    if not raw:
        return None
    return float(raw)


def parse_table_list(raw: str) -> tuple[str, ...]:
    """Split a comma separated table list, keeping declared order."""
    return tuple(t.strip() for t in raw.split(",") if t.strip())


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Connection settings for one side of a transfer.

    ``engine`` is ``"mysql"`` or ``"sqlite"``.  For SQLite, ``database`` is
    the path of the database file.
    """
    engine: str = "mysql"
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = ""
    charset: str = field(default_factory=lambda: os.getenv("DB_CHARSET", "utf8mb4"))
    connect_timeout: int = field(
        default_factory=lambda: int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
    )
    ssl: bool = False
    # Passwords are read from the environment only and never written back out.

    @classmethod
    def from_env(cls, prefix: str, fallback_prefix: str | None = None) -> "DatabaseConfig":
        """
        Build a config from ``<prefix>HOST``, ``<prefix>PORT`` … variables.

        Args:
            prefix:          e.g. ``"SOURCE_DB_"``.
            fallback_prefix: Consulted when a ``prefix`` variable is unset,
                             e.g. ``"MYSQL_"``.
        """
        def lookup(key: str, default: str = "") -> str:
            names = [prefix + key]
            if fallback_prefix:
                names.append(fallback_prefix + key)
            return _env(*names, default=default)

        return cls(
            engine=lookup("ENGINE", "mysql").lower(),
            host=lookup("HOST", "localhost"),
            port=int(lookup("PORT", "3306")),
            user=lookup("USER", "root"),
            password=lookup("PASSWORD"),
            database=lookup("DATABASE") or lookup("NAME"),
            ssl=_env_bool(prefix + "SSL"),
        )

    def describe(self) -> str:
        """Human readable target, without credentials."""
        if self.engine == "sqlite":
            return f"sqlite:{self.database}"
        return f"mysql://{self.user}@{self.host}:{self.port}/{self.database}"


@dataclass(frozen=True)
class MigrationConfig:
    """Transfer pipeline settings."""
    tables: tuple[str, ...] = field(
        default_factory=lambda: parse_table_list(os.getenv("MIGRATION_TABLES", ""))
    )
    snapshot_file: Path = field(
        default_factory=lambda: Path(os.getenv("SNAPSHOT_FILE", "data-export.json"))
    )
    dump_file: Path | None = field(
        default_factory=lambda: Path(os.environ["DUMP_FILE"]) if os.getenv("DUMP_FILE") else None
    )
    dialect: str = field(
        default_factory=lambda: os.getenv("DUMP_DIALECT", "ansi").lower()
    )
    verify: bool = field(default_factory=lambda: _env_bool("MIGRATION_VERIFY"))
    max_row_error_rate: float | None = field(
        default_factory=lambda: _env_float("MAX_ROW_ERROR_RATE")  # None → never escalate
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    log_file: str | None = field(
        default_factory=lambda: os.getenv("LOG_FILE")  # None → log to stderr only
    )


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration."""
    source: DatabaseConfig = field(
        default_factory=lambda: DatabaseConfig.from_env("SOURCE_DB_")
    )
    destination: DatabaseConfig = field(
        default_factory=lambda: DatabaseConfig.from_env("DEST_DB_", fallback_prefix="MYSQL_")
    )
    migration: MigrationConfig = field(default_factory=MigrationConfig)
    app_name: str = "Table Data Transfer"
    app_version: str = "1.0.0"


def load_config() -> AppConfig:
    """
    Build and return the application configuration.

    Example::

        cfg = load_config()
        print(cfg.source.host)            # "localhost"
        print(cfg.migration.tables)       # ("users", "orders")
    """
    return AppConfig()


# Module-level singleton used throughout the application
CONFIG: AppConfig = load_config()


def get_log_level() -> int:
    """Convert string log level from config to logging module constant."""
    level = getattr(logging, CONFIG.migration.log_level, None)
    if not isinstance(level, int):
        return logging.INFO
    return level
