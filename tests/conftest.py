"""
tests/conftest.py
-----------------
Shared fixtures: real in-memory SQLite stores standing in for the source
and destination databases.
"""
from __future__ import annotations

from typing import Iterator

import pytest

from pipeline.sqlite_store import SQLiteConnection

WIDGETS_DDL = "CREATE TABLE widgets (id INTEGER PRIMARY KEY, name TEXT NOT NULL)"


def insert_rows(conn: SQLiteConnection, table: str, rows: list[dict]) -> None:
    """Insert *rows* (dicts sharing one shape) into *table*."""
    for row in rows:
        cols = ", ".join(row)
        marks = ", ".join("?" for _ in row)
        conn.execute(f"INSERT INTO {table} ({cols}) VALUES ({marks})", list(row.values()))


def all_rows(conn: SQLiteConnection, table: str) -> list[dict]:
    return conn.execute(f"SELECT * FROM {table} ORDER BY rowid")


@pytest.fixture
def source_db() -> Iterator[SQLiteConnection]:
    with SQLiteConnection(":memory:") as conn:
        yield conn


@pytest.fixture
def dest_db() -> Iterator[SQLiteConnection]:
    with SQLiteConnection(":memory:") as conn:
        yield conn


@pytest.fixture
def widgets_rows() -> list[dict]:
    return [{"id": 1, "name": "O'Brien"}, {"id": 2, "name": "Lee"}]
