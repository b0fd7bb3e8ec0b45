"""
pipeline/orchestrator.py
------------------------
Drives extraction, snapshot/dump output and loading across a list of tables.

Three modes::

    direct  source connection ──extract──▶ load ──▶ destination connection
    export  source connection ──extract──▶ snapshot file (+ SQL dump)
    import  snapshot file ──read──▶ load ──▶ destination connection

Design Decisions:
    * Tables are processed one at a time in the declared order, so callers
      can list parent tables before their children.  Rows within a table
      are written in their original order.
    * A table-level failure is logged and recorded in that table's report;
      the run moves on to the next table.  Only a corrupt snapshot (nothing
      to load) stops an import run.
    * The orchestrator never opens or closes connections.  Callers own them
      and release them with ``with`` blocks on every exit path.
    * Progress is reported via a callback (``progress_cb``) so any front end
      can display updates.
"""
from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Sequence

from logger import get_logger
from models.report import (
    SKIP_CANCELLED,
    SKIP_NO_DATA,
    SKIP_NOT_IN_SNAPSHOT,
    SKIP_TABLE_NOT_FOUND,
    RunReport,
    TableReport,
)
from pipeline.codec import to_structured
from pipeline.database import Connection, DatabaseError, Record
from pipeline.dialect import ANSI, Dialect
from pipeline.dump_writer import write_dump
from pipeline.errors import PipelineError
from pipeline.extractor import extract
from pipeline.loader import load
from pipeline.snapshot import read_snapshot, write_snapshot

log = get_logger(__name__)

ProgressCallback = Callable[[str, int, int], None]  # message, current, total


class MigrationOrchestrator:
    """
    Runs a transfer over an ordered list of tables and reports per table.

    Args:
        tables:         Table names in processing order.  For imports an
                        empty list means "every table in the snapshot".
        source:         Source connection (direct and export modes).
        destination:    Destination connection (direct and import modes).
        snapshot_path:  Snapshot file (export and import modes).
        dump_path:      Optional SQL dump written alongside an export.
        dialect:        Literal rules for the dump file.
        verify:         Re-count destination rows after loading.
        max_error_rate: Passed to the loader; see :func:`pipeline.loader.load`.
        progress_cb:    Optional callback ``(message, current, total)``.

    Example::

        with open_connection(CONFIG.source) as src, open_connection(CONFIG.destination) as dst:
            report = MigrationOrchestrator(["users"], source=src, destination=dst).run_direct()
    """

    def __init__(
        self,
        tables: Sequence[str],
        source: Connection | None = None,
        destination: Connection | None = None,
        snapshot_path: Path | str | None = None,
        dump_path: Path | str | None = None,
        dialect: Dialect = ANSI,
        verify: bool = False,
        max_error_rate: float | None = None,
        progress_cb: ProgressCallback | None = None,
    ) -> None:
        self._tables = list(tables)
        self._source = source
        self._destination = destination
        self._snapshot_path = Path(snapshot_path) if snapshot_path else None
        self._dump_path = Path(dump_path) if dump_path else None
        self._dialect = dialect
        self._verify = verify
        self._max_error_rate = max_error_rate
        self._progress_cb = progress_cb or self._default_progress
        self._stop_requested = False

    @staticmethod
    def _default_progress(msg: str, current: int, total: int) -> None:
        log.info("%s (%d/%d)", msg, current, total)

    def request_stop(self) -> None:
        """Stop before the next table starts; the current table finishes."""
        self._stop_requested = True

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def run_direct(self) -> RunReport:
        """Copy every table from the source connection to the destination."""
        source = self._require(self._source, "source connection")
        destination = self._require(self._destination, "destination connection")
        run = RunReport(mode="direct")

        for index, name in enumerate(self._tables, start=1):
            if self._cancelled(run, name):
                continue
            self._progress_cb(f"Migrating table '{name}'", index, len(self._tables))
            start = time.monotonic()
            report = TableReport(table_name=name)
            try:
                extraction = extract(source, name)
                if not extraction.found:
                    report.mark_skipped(SKIP_TABLE_NOT_FOUND)
                else:
                    report.source_row_count = extraction.row_count
                    report = load(
                        destination, name, extraction.records, self._max_error_rate
                    )
            except PipelineError as exc:
                self._fail(report, exc)
            report.elapsed_seconds = time.monotonic() - start
            run.tables.append(report)

        if self._verify:
            self.verify(run, destination)
        self._log_run(run)
        return run

    def run_export(self) -> RunReport:
        """
        Extract every table into the snapshot file (and the SQL dump, if set).

        Empty tables are written to the snapshot as empty lists and reported
        as skipped with "no data"; missing tables are left out.
        """
        source = self._require(self._source, "source connection")
        snapshot_path = self._require(self._snapshot_path, "snapshot path")
        run = RunReport(mode="export")
        exported: dict[str, list[Record]] = {}

        for index, name in enumerate(self._tables, start=1):
            if self._cancelled(run, name):
                continue
            self._progress_cb(f"Exporting table '{name}'", index, len(self._tables))
            start = time.monotonic()
            report = TableReport(table_name=name)
            try:
                extraction = extract(source, name)
                if not extraction.found:
                    report.mark_skipped(SKIP_TABLE_NOT_FOUND)
                else:
                    report.source_row_count = extraction.row_count
                    for record in extraction.records:
                        for value in record.values():
                            to_structured(value)  # fail this table, not the file
                    exported[name] = extraction.records
                    report.attempted_row_count = report.succeeded_row_count = extraction.row_count
                    if not extraction.records:
                        report.mark_skipped(SKIP_NO_DATA)
            except PipelineError as exc:
                self._fail(report, exc)
            report.elapsed_seconds = time.monotonic() - start
            run.tables.append(report)

        try:
            write_snapshot(snapshot_path, exported)
            failures = (
                write_dump(self._dump_path, exported, self._dialect)
                if self._dump_path is not None else {}
            )
        except (OSError, PipelineError):
            log.error("Export output could not be written; tables read so far:")
            self._log_run(run)
            raise

        for name, reason in failures.items():
            report = run.get(name)
            if report is not None:
                report.error = f"not written to SQL dump: {reason}"

        self._log_run(run)
        return run

    def run_import(self) -> RunReport:
        """
        Load the snapshot file into the destination connection.

        Raises:
            CorruptSnapshot: If the snapshot cannot be read.
        """
        destination = self._require(self._destination, "destination connection")
        snapshot_path = self._require(self._snapshot_path, "snapshot path")
        snapshot = read_snapshot(snapshot_path)
        names = self._tables or list(snapshot)
        run = RunReport(mode="import")

        for index, name in enumerate(names, start=1):
            if self._cancelled(run, name):
                continue
            self._progress_cb(f"Importing table '{name}'", index, len(names))
            start = time.monotonic()
            report = TableReport(table_name=name)
            if name not in snapshot:
                log.warning("Table '%s' is not in the snapshot, skipping.", name)
                report.mark_skipped(SKIP_NOT_IN_SNAPSHOT)
            else:
                try:
                    report = load(destination, name, snapshot[name], self._max_error_rate)
                except PipelineError as exc:
                    report.source_row_count = len(snapshot[name])
                    self._fail(report, exc)
            report.elapsed_seconds = time.monotonic() - start
            run.tables.append(report)

        if self._verify:
            self.verify(run, destination)
        self._log_run(run)
        return run

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    @staticmethod
    def verify(run: RunReport, destination: Connection) -> None:
        """
        Compare ``COUNT(*)`` on the destination with each loaded table's
        ``succeeded_row_count``.  Mismatches are reported, never corrected.
        """
        for report in run.tables:
            if report.skipped or report.error is not None:
                continue
            try:
                count = destination.count_rows(report.table_name)
            except DatabaseError as exc:
                report.verification_error = f"could not count destination rows: {exc}"
                log.warning("Verification of '%s' failed: %s", report.table_name, exc)
                continue
            report.destination_row_count = count
            if count != report.succeeded_row_count:
                report.verification_error = (
                    f"destination has {count} row(s), expected {report.succeeded_row_count}"
                )
                log.warning("Verification mismatch for '%s': %s",
                            report.table_name, report.verification_error)
            else:
                log.info("Verified '%s': %d record(s).", report.table_name, count)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require(value, what: str):
        if value is None:
            raise ValueError(f"This run mode needs a {what}.")
        return value

    def _cancelled(self, run: RunReport, name: str) -> bool:
        if not self._stop_requested:
            return False
        run.tables.append(TableReport(table_name=name).mark_skipped(SKIP_CANCELLED))
        return True

    @staticmethod
    def _fail(report: TableReport, exc: Exception) -> None:
        report.error = f"{type(exc).__name__}: {exc}"
        log.error("Error migrating table '%s': %s", report.table_name, report.error)

    @staticmethod
    def _log_run(run: RunReport) -> None:
        for report in run.tables:
            log.info("%s", report)
        log.info("%s", run.summary())
