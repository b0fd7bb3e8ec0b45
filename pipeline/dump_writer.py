"""
pipeline/dump_writer.py
-----------------------
Renders extracted tables as a plain-text SQL replay script.

Each non-empty table becomes::

    -- Table: widgets
    DELETE FROM widgets;
    INSERT INTO widgets (id, name) VALUES (1, 'O''Brien'), (2, 'Lee');

Design Decisions:
    * A table's block is rendered completely in memory before anything is
      written, so a value that cannot be rendered drops that table from the
      script instead of leaving a half-written INSERT behind.
    * Empty tables produce no statements at all.
"""
from __future__ import annotations

from pathlib import Path
from typing import IO, Any, Mapping, Sequence

from logger import get_logger
from pipeline.codec import UnsupportedValueKind, encode_literal
from pipeline.dialect import ANSI, Dialect
from pipeline.schema_probe import HeterogeneousRecordShape, ensure_uniform_shape

log = get_logger(__name__)


def render_table(
    table_name: str,
    records: Sequence[Mapping[str, Any]],
    dialect: Dialect = ANSI,
) -> str:
    """
    Return the DELETE + multi-row INSERT block for one table ("" when empty).

    Raises:
        HeterogeneousRecordShape: If records do not share one column list.
        UnsupportedValueKind: If a value has no literal form.
    """
    if not records:
        return ""
    columns = ensure_uniform_shape(table_name, records)
    table = dialect.quote_identifier(table_name)
    column_list = ", ".join(dialect.quote_identifier(c) for c in columns)
    tuples = ", ".join(
        "(" + ", ".join(encode_literal(record[c], dialect) for c in columns) + ")"
        for record in records
    )
    return (
        f"DELETE FROM {table};\n"
        f"INSERT INTO {table} ({column_list}) VALUES {tuples};\n"
    )


def render_dump(
    tables: Mapping[str, Sequence[Mapping[str, Any]]],
    dialect: Dialect = ANSI,
) -> tuple[str, dict[str, str]]:
    """
    Render every table in iteration order.

    Returns:
        ``(script, failures)`` where *failures* maps the name of each table
        that could not be rendered to the reason.
    """
    blocks: list[str] = []
    failures: dict[str, str] = {}
    for name, records in tables.items():
        try:
            block = render_table(name, records, dialect)
        except (UnsupportedValueKind, HeterogeneousRecordShape) as exc:
            log.error("Cannot render table '%s' for the dump: %s", name, exc)
            failures[name] = str(exc)
            continue
        if block:
            blocks.append(f"-- Table: {name}\n{block}")
    return "\n".join(blocks), failures


def write_dump(
    sink: Path | str | IO[str],
    tables: Mapping[str, Sequence[Mapping[str, Any]]],
    dialect: Dialect = ANSI,
) -> dict[str, str]:
    """
    Write the replay script for *tables* to *sink* (a path or a text stream).

    Returns:
        Tables omitted from the script, mapped to the reason.
    """
    script, failures = render_dump(tables, dialect)
    if isinstance(sink, (str, Path)):
        path = Path(sink)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            fh.write(script)
        log.info("SQL dump written to '%s'.", path)
    else:
        sink.write(script)
    return failures
