"""
models/report.py
----------------
Result types for one transfer run.

Design Decision:
    Reports are plain dataclasses built fresh per table per run.  They are
    never persisted; ``to_dict`` exists so callers can emit them as JSON for
    machine consumption, and ``__str__`` gives the console rendering.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

SKIP_NO_DATA = "no data"
SKIP_TABLE_NOT_FOUND = "table not found"
SKIP_NOT_IN_SNAPSHOT = "not in snapshot"
SKIP_CANCELLED = "cancelled"


@dataclass(frozen=True)
class RowError:
    """One failed row: its position in the table's record sequence and why."""
    row_index: int
    message: str


@dataclass
class TableReport:
    """Outcome of one table's transfer attempt."""
    table_name: str
    source_row_count: int = 0
    attempted_row_count: int = 0
    succeeded_row_count: int = 0
    skipped: bool = False
    skip_reason: str | None = None
    row_errors: list[RowError] = field(default_factory=list)
    error: str | None = None
    destination_row_count: int | None = None
    verification_error: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def failed_row_count(self) -> int:
        return len(self.row_errors)

    @property
    def ok(self) -> bool:
        """True when nothing about this table needs attention."""
        return (
            self.error is None
            and not self.row_errors
            and self.verification_error is None
        )

    def mark_skipped(self, reason: str) -> "TableReport":
        self.skipped = True
        self.skip_reason = reason
        return self

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        if self.skipped and self.error is None:
            return f"[SKIPPED] {self.table_name}: {self.skip_reason}"
        status = "OK" if self.ok else ("FAILED" if self.error else "PARTIAL")
        parts = [
            f"[{status}] {self.table_name}: "
            f"{self.succeeded_row_count}/{self.attempted_row_count} rows written "
            f"({self.source_row_count} in source)"
        ]
        if self.destination_row_count is not None:
            parts.append(f"  Destination count: {self.destination_row_count}")
        if self.error:
            parts.append(f"  Error: {self.error}")
        for row_error in self.row_errors:
            parts.append(f"  Row {row_error.row_index}: {row_error.message}")
        if self.verification_error:
            parts.append(f"  Verification: {self.verification_error}")
        return "\n".join(parts)


@dataclass
class RunReport:
    """Ordered TableReports for one run, in table-iteration order."""
    mode: str
    tables: list[TableReport] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(t.ok for t in self.tables)

    def get(self, table_name: str) -> TableReport | None:
        return next((t for t in self.tables if t.table_name == table_name), None)

    def summary(self) -> str:
        skipped = sum(1 for t in self.tables if t.skipped)
        failed = sum(1 for t in self.tables if not t.ok)
        rows = sum(t.succeeded_row_count for t in self.tables)
        return (
            f"{self.mode}: {len(self.tables)} table(s), {rows} row(s) written, "
            f"{skipped} skipped, {failed} with problems"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "ok": self.ok,
            "tables": [t.to_dict() for t in self.tables],
        }

    def __str__(self) -> str:
        return "\n".join([*(str(t) for t in self.tables), self.summary()])
