"""
pipeline/schema_probe.py
------------------------
Dynamic discovery of table existence and record shape.

Design Decision:
    Column order comes from the data, not from a compiled schema: the keys
    of the first record fix the column list for the whole table.  Every
    other record is checked against that list before any SQL is emitted,
    so a record with a different shape fails loudly instead of having its
    values bound to the wrong columns.
"""
from __future__ import annotations

from typing import Any, Mapping, Sequence

from pipeline.database import Connection
from pipeline.errors import PipelineError


class HeterogeneousRecordShape(PipelineError):
    """Raised when a table's records do not all share the same columns."""

    def __init__(self, table_name: str, row_index: int, expected: list[str], actual: list[str]) -> None:
        self.table_name = table_name
        self.row_index = row_index
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Record {row_index} of '{table_name}' has columns {actual}, "
            f"expected {expected}"
        )


def table_exists(conn: Connection, table_name: str) -> bool:
    """
    Return True if *table_name* exists in *conn*'s catalog.

    The match is exact and case-sensitive.  A missing table is a plain
    ``False``; only a failing catalog query raises.
    """
    return conn.table_exists(table_name)


def column_names(records: Sequence[Mapping[str, Any]]) -> list[str]:
    """Column names in order, taken from the first record; [] when empty."""
    if not records:
        return []
    return list(records[0].keys())


def ensure_uniform_shape(table_name: str, records: Sequence[Mapping[str, Any]]) -> list[str]:
    """
    Return the table's column list after checking every record matches it.

    Raises:
        HeterogeneousRecordShape: On the first record whose keys (or key
                                  order) differ from the first record's.
    """
    columns = column_names(records)
    for index, record in enumerate(records):
        keys = list(record.keys())
        if keys != columns:
            raise HeterogeneousRecordShape(table_name, index, columns, keys)
    return columns
