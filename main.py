#!/usr/bin/env python3
"""
main.py
-------
Command-line entry point for the table data transfer tool.

Usage::

    python main.py migrate --tables users,orders --verify
    python main.py export  --tables users,orders --snapshot data.json --dump data.sql
    python main.py import  --snapshot data.json --verify
    python main.py check

Connection settings come from the environment (see ``config.py``):
``SOURCE_DB_*`` for the source, ``DEST_DB_*`` (falling back to ``MYSQL_*``)
for the destination.

Exit codes: 0 every table ok, 1 some table failed or was partially loaded,
2 the run could not start or was aborted.
"""
from __future__ import annotations

import argparse
import json
import sys
from contextlib import ExitStack
from pathlib import Path

from config import CONFIG, parse_table_list
from logger import get_logger, set_level
from models.report import RunReport
from pipeline.connections import open_connection
from pipeline.database import DatabaseError, DatabaseManager
from pipeline.dialect import get_dialect
from pipeline.orchestrator import MigrationOrchestrator
from pipeline.snapshot import CorruptSnapshot

log = get_logger(__name__)

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_FATAL = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="datatransfer",
        description=f"{CONFIG.app_name} v{CONFIG.app_version}",
    )
    parser.add_argument("--log-level", default=None, help="Console log level (DEBUG, INFO, ...)")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser, snapshot: bool, load: bool) -> None:
        p.add_argument(
            "--tables",
            type=parse_table_list,
            default=CONFIG.migration.tables,
            help="Comma separated table names, in processing order (MIGRATION_TABLES)",
        )
        if snapshot:
            p.add_argument(
                "--snapshot",
                type=Path,
                default=CONFIG.migration.snapshot_file,
                help="Snapshot JSON file (SNAPSHOT_FILE)",
            )
        if load:
            p.add_argument(
                "--verify",
                action="store_true",
                default=CONFIG.migration.verify,
                help="Re-count destination rows after loading",
            )
            p.add_argument(
                "--max-error-rate",
                type=float,
                default=CONFIG.migration.max_row_error_rate,
                help="Fail a table when more than this fraction of its rows fail",
            )
        p.add_argument("--json-report", type=Path, default=None,
                       help="Also write the run report as JSON to this file")

    migrate = sub.add_parser("migrate", help="Copy tables from source to destination")
    add_common(migrate, snapshot=False, load=True)

    export = sub.add_parser("export", help="Export source tables to a snapshot file")
    add_common(export, snapshot=True, load=False)
    export.add_argument("--dump", type=Path, default=CONFIG.migration.dump_file,
                        help="Also write a SQL replay script (DUMP_FILE)")
    export.add_argument("--dialect", default=CONFIG.migration.dialect,
                        choices=["ansi", "mysql", "sqlite"], help="Literal rules for the SQL dump")

    imp = sub.add_parser("import", help="Load a snapshot file into the destination")
    add_common(imp, snapshot=True, load=True)

    sub.add_parser("check", help="List databases and tables on the source server")
    return parser


def _emit_report(run: RunReport, json_path: Path | None) -> int:
    print(run)
    if json_path is not None:
        json_path.write_text(json.dumps(run.to_dict(), indent=2), encoding="utf-8")
        log.info("Run report written to '%s'.", json_path)
    return EXIT_OK if run.ok else EXIT_PARTIAL


def cmd_migrate(args: argparse.Namespace) -> int:
    log.info("Source: %s", CONFIG.source.describe())
    log.info("Destination: %s", CONFIG.destination.describe())
    with ExitStack() as stack:
        source = stack.enter_context(open_connection(CONFIG.source))
        destination = stack.enter_context(open_connection(CONFIG.destination))
        run = MigrationOrchestrator(
            args.tables,
            source=source,
            destination=destination,
            verify=args.verify,
            max_error_rate=args.max_error_rate,
        ).run_direct()
    return _emit_report(run, args.json_report)


def cmd_export(args: argparse.Namespace) -> int:
    log.info("Source: %s", CONFIG.source.describe())
    with open_connection(CONFIG.source) as source:
        run = MigrationOrchestrator(
            args.tables,
            source=source,
            snapshot_path=args.snapshot,
            dump_path=args.dump,
            dialect=get_dialect(args.dialect),
        ).run_export()
    return _emit_report(run, args.json_report)


def cmd_import(args: argparse.Namespace) -> int:
    log.info("Destination: %s", CONFIG.destination.describe())
    with open_connection(CONFIG.destination) as destination:
        run = MigrationOrchestrator(
            args.tables,
            destination=destination,
            snapshot_path=args.snapshot,
            verify=args.verify,
            max_error_rate=args.max_error_rate,
        ).run_import()
    return _emit_report(run, args.json_report)


def cmd_check(args: argparse.Namespace) -> int:
    """Print every user database on the source server and its tables."""
    cfg = CONFIG.source
    if cfg.engine != "mysql":
        with open_connection(cfg) as conn:
            for index, table in enumerate(conn.list_tables(), start=1):
                print(f"  {index}. {table}")
        return EXIT_OK

    with DatabaseManager.from_config(cfg) as db:
        databases = db.list_databases()
        for index, name in enumerate(databases, start=1):
            print(f"{index}. {name}")
        for name in databases:
            try:
                db.select_database(name)
                tables = db.list_tables()
            except DatabaseError as exc:
                log.warning("Cannot access database '%s': %s", name, exc)
                continue
            if tables:
                print(f"\nDatabase: {name}")
                for index, table in enumerate(tables, start=1):
                    print(f"  {index}. {table}")
    return EXIT_OK


_COMMANDS = {
    "migrate": cmd_migrate,
    "export": cmd_export,
    "import": cmd_import,
    "check": cmd_check,
}


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.log_level:
        set_level(args.log_level)

    if args.command in ("migrate", "export") and not args.tables:
        log.error("No tables given. Use --tables or set MIGRATION_TABLES.")
        return EXIT_FATAL

    try:
        return _COMMANDS[args.command](args)
    except CorruptSnapshot as exc:
        log.error("Import failed: %s", exc)
    except DatabaseError as exc:
        log.error("Database failure: %s", exc)
    except (OSError, ValueError) as exc:
        log.error("%s failed: %s", args.command.capitalize(), exc)
    return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
