"""
pipeline/loader.py
------------------
Applies a table's records to a destination with full-replace semantics.

Design Decisions:
    * The destination table is cleared with ``DELETE FROM`` and then
      refilled row by row, so afterwards it holds exactly the source rows.
      Running the same load twice leaves the same content.
    * An empty record list leaves the destination untouched.
    * Each INSERT is its own statement.  A failing row is recorded in the
      report and the loop moves on; one bad row never aborts the table.
    * A failing ``DELETE`` aborts the table: without a clean slate the
      full-replace guarantee cannot hold.
"""
from __future__ import annotations

import time
from typing import Any, Mapping, Sequence

from logger import get_logger
from models.report import SKIP_NO_DATA, RowError, TableReport
from pipeline.database import Connection, DatabaseError
from pipeline.errors import PipelineError
from pipeline.schema_probe import ensure_uniform_shape

log = get_logger(__name__)


class TableClearFailed(PipelineError):
    """Raised when the pre-load DELETE on a destination table fails."""

    def __init__(self, table_name: str, cause: Exception) -> None:
        self.table_name = table_name
        super().__init__(f"Could not clear destination table '{table_name}': {cause}")


class RowWriteFailed(PipelineError):
    """Raised (and caught by the row loop) when a single INSERT fails."""

    def __init__(self, table_name: str, row_index: int, cause: Exception) -> None:
        self.table_name = table_name
        self.row_index = row_index
        super().__init__(str(cause))


def build_insert_sql(conn: Connection, table_name: str, columns: Sequence[str]) -> str:
    """Parameterised single-row INSERT for *columns*, in their given order."""
    quote = conn.dialect.quote_identifier
    column_list = ", ".join(quote(c) for c in columns)
    placeholders = ", ".join([conn.placeholder] * len(columns))
    return f"INSERT INTO {quote(table_name)} ({column_list}) VALUES ({placeholders})"


def clear_table(conn: Connection, table_name: str) -> None:
    """
    Delete every row of *table_name*.

    Raises:
        TableClearFailed: If the DELETE fails.
    """
    try:
        conn.execute(f"DELETE FROM {conn.dialect.quote_identifier(table_name)}")
    except DatabaseError as exc:
        raise TableClearFailed(table_name, exc) from exc
    log.info("Cleared existing data in '%s'.", table_name)


def _insert_row(
    conn: Connection, sql: str, table_name: str, row_index: int, values: list[Any]
) -> None:
    try:
        conn.execute(sql, values)
    except DatabaseError as exc:
        raise RowWriteFailed(table_name, row_index, exc) from exc


def load(
    conn: Connection,
    table_name: str,
    records: Sequence[Mapping[str, Any]],
    max_error_rate: float | None = None,
) -> TableReport:
    """
    Replace the contents of *table_name* on *conn* with *records*.

    Args:
        conn:           Destination connection.
        table_name:     Destination table.
        records:        Records in replay order.
        max_error_rate: Fraction of failed rows (0.0–1.0) above which the
                        table is reported as failed.  ``None`` never
                        escalates row failures.

    Returns:
        :class:`TableReport` for the table.

    Raises:
        HeterogeneousRecordShape: If records do not share one column list.
        TableClearFailed: If the destination table cannot be cleared.
    """
    start = time.monotonic()
    report = TableReport(table_name=table_name, source_row_count=len(records))

    if not records:
        log.info("No data to import for '%s'.", table_name)
        return report.mark_skipped(SKIP_NO_DATA)

    columns = ensure_uniform_shape(table_name, records)
    clear_table(conn, table_name)

    sql = build_insert_sql(conn, table_name, columns)
    for index, record in enumerate(records):
        report.attempted_row_count += 1
        try:
            _insert_row(conn, sql, table_name, index, [record[c] for c in columns])
        except RowWriteFailed as exc:
            log.warning("Error importing record %d of '%s': %s", index, table_name, exc)
            report.row_errors.append(RowError(row_index=exc.row_index, message=str(exc)))
            continue
        report.succeeded_row_count += 1

    if max_error_rate is not None and report.row_errors:
        rate = report.failed_row_count / report.attempted_row_count
        if rate > max_error_rate:
            report.error = (
                f"row error rate {rate:.1%} exceeds the allowed {max_error_rate:.1%}"
            )
            log.error("Table '%s' failed: %s", table_name, report.error)

    report.elapsed_seconds = time.monotonic() - start
    log.info(
        "Imported %d/%d record(s) to '%s' in %.2fs.",
        report.succeeded_row_count, len(records), table_name, report.elapsed_seconds,
    )
    return report
