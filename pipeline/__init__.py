"""pipeline/__init__.py"""
from pipeline.errors import PipelineError
from pipeline.database import DatabaseManager, DatabaseError, ConnectionLostError, Connection
from pipeline.sqlite_store import SQLiteConnection
from pipeline.connections import open_connection
from pipeline.dialect import Dialect, MySQLDialect, get_dialect
from pipeline.codec import ValueKind, UnsupportedValueKind, classify, encode_literal
from pipeline.schema_probe import HeterogeneousRecordShape, table_exists, column_names
from pipeline.extractor import Extraction, extract
from pipeline.snapshot import CorruptSnapshot, read_snapshot, write_snapshot
from pipeline.dump_writer import render_table, write_dump
from pipeline.loader import TableClearFailed, RowWriteFailed, load
from pipeline.orchestrator import MigrationOrchestrator

__all__ = [
    "PipelineError",
    "DatabaseManager",
    "DatabaseError",
    "ConnectionLostError",
    "Connection",
    "SQLiteConnection",
    "open_connection",
    "Dialect",
    "MySQLDialect",
    "get_dialect",
    "ValueKind",
    "UnsupportedValueKind",
    "classify",
    "encode_literal",
    "HeterogeneousRecordShape",
    "table_exists",
    "column_names",
    "Extraction",
    "extract",
    "CorruptSnapshot",
    "read_snapshot",
    "write_snapshot",
    "render_table",
    "write_dump",
    "TableClearFailed",
    "RowWriteFailed",
    "load",
    "MigrationOrchestrator",
]
