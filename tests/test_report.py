"""
tests/test_report.py
--------------------
Unit tests for models/report.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import json

from models.report import SKIP_NO_DATA, RowError, RunReport, TableReport


class TestTableReport:
    def test_clean_table_is_ok(self) -> None:
        report = TableReport("users", source_row_count=3, attempted_row_count=3, succeeded_row_count=3)
        assert report.ok
        assert str(report).startswith("[OK] users: 3/3 rows written")

    def test_row_errors_make_it_partial(self) -> None:
        report = TableReport("users", attempted_row_count=2, succeeded_row_count=1,
                             row_errors=[RowError(1, "duplicate key")])
        assert not report.ok
        assert report.failed_row_count == 1
        text = str(report)
        assert text.startswith("[PARTIAL]")
        assert "Row 1: duplicate key" in text

    def test_table_error_is_failed(self) -> None:
        report = TableReport("users", error="TableClearFailed: boom")
        assert str(report).startswith("[FAILED]")

    def test_skipped_rendering(self) -> None:
        report = TableReport("users").mark_skipped(SKIP_NO_DATA)
        assert report.skipped
        assert report.ok
        assert str(report) == "[SKIPPED] users: no data"

    def test_verification_error_shown(self) -> None:
        report = TableReport("users", succeeded_row_count=2, destination_row_count=3,
                             verification_error="destination has 3 row(s), expected 2")
        assert not report.ok
        assert "Destination count: 3" in str(report)
        assert "Verification: destination has 3" in str(report)


class TestRunReport:
    def test_summary_and_ok(self) -> None:
        run = RunReport(mode="direct", tables=[
            TableReport("a", attempted_row_count=2, succeeded_row_count=2),
            TableReport("b").mark_skipped(SKIP_NO_DATA),
            TableReport("c", error="boom"),
        ])
        assert not run.ok
        assert run.summary() == "direct: 3 table(s), 2 row(s) written, 1 skipped, 1 with problems"
        assert str(run).splitlines()[-1] == run.summary()

    def test_get_by_name(self) -> None:
        run = RunReport(mode="export", tables=[TableReport("a")])
        assert run.get("a") is run.tables[0]
        assert run.get("missing") is None

    def test_to_dict_is_json_serialisable(self) -> None:
        run = RunReport(mode="import", tables=[
            TableReport("a", row_errors=[RowError(0, "bad")]),
        ])
        data = json.loads(json.dumps(run.to_dict()))
        assert data["ok"] is False
        assert data["tables"][0]["row_errors"] == [{"row_index": 0, "message": "bad"}]
