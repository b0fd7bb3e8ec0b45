"""
pipeline/extractor.py
---------------------
Reads a whole source table into memory as an ordered list of records.

The table is materialised in one ``SELECT *``; there is no pagination.
This suits bounded administrative datasets, not arbitrarily large tables.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from logger import get_logger
from pipeline.codec import decode_from_driver
from pipeline.database import Connection, Record
from pipeline.schema_probe import table_exists

log = get_logger(__name__)


@dataclass
class Extraction:
    """Rows pulled from one source table; ``found`` is False for a missing table."""
    table_name: str
    found: bool
    records: list[Record] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.records)


def extract(conn: Connection, table_name: str) -> Extraction:
    """
    Pull every row of *table_name* from *conn*.

    Returns:
        An :class:`Extraction`.  A table missing from the source yields
        ``found=False`` and no records rather than an exception.

    Raises:
        DatabaseError: If the catalog probe or the read itself fails.
        UnsupportedValueKind: If the driver returned a value of unknown type.
    """
    if not table_exists(conn, table_name):
        log.warning("Table '%s' not found in source, skipping.", table_name)
        return Extraction(table_name=table_name, found=False)

    rows = conn.execute(f"SELECT * FROM {conn.dialect.quote_identifier(table_name)}")
    records = [
        {column: decode_from_driver(value) for column, value in row.items()}
        for row in rows
    ]
    log.info("Found %d record(s) in '%s'.", len(records), table_name)
    return Extraction(table_name=table_name, found=True, records=records)
