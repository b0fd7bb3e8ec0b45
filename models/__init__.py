"""models/__init__.py"""
from models.report import (
    RowError,
    TableReport,
    RunReport,
    SKIP_NO_DATA,
    SKIP_TABLE_NOT_FOUND,
    SKIP_NOT_IN_SNAPSHOT,
    SKIP_CANCELLED,
)

__all__ = [
    "RowError",
    "TableReport",
    "RunReport",
    "SKIP_NO_DATA",
    "SKIP_TABLE_NOT_FOUND",
    "SKIP_NOT_IN_SNAPSHOT",
    "SKIP_CANCELLED",
]
