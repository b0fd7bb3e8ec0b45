"""
pipeline/snapshot.py
--------------------
Structured snapshot files: ``{table_name: [record, ...]}`` as JSON.

Design Decisions:
    * Values are stored in the codec's structured form, so numbers stay
      numbers, text stays text and NULL stays null.  Kinds JSON cannot carry
      exactly (dates, decimals, bytes) are stored as tagged objects.
    * Files are written atomically (write-then-rename) so an interrupted
      export never leaves a half-written snapshot behind.
    * The reader validates the whole document before returning anything;
      there is no partial snapshot.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping, Sequence

from logger import get_logger
from pipeline.codec import UnsupportedValueKind, from_structured, to_structured
from pipeline.database import Record
from pipeline.errors import PipelineError

log = get_logger(__name__)

Snapshot = dict[str, list[Record]]


class CorruptSnapshot(PipelineError):
    """Raised when a snapshot file cannot be read or has the wrong shape."""


def write_snapshot(path: Path | str, tables: Mapping[str, Sequence[Mapping[str, Any]]]) -> Path:
    """
    Serialise *tables* to *path*.

    Args:
        path:   Destination file.  Parent directories are created.
        tables: Table name → record sequence, in the order to be written.

    Returns:
        The path written.

    Raises:
        UnsupportedValueKind: If a value has no structured form.
    """
    path = Path(path)
    document = {
        name: [
            {column: to_structured(value) for column, value in record.items()}
            for record in records
        ]
        for name, records in tables.items()
    }
    try:
        text = json.dumps(document, indent=2, ensure_ascii=False, allow_nan=False)
    except ValueError as exc:
        raise UnsupportedValueKind(exc, "not representable in a snapshot") from exc

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)  # Atomic rename avoids partial writes corrupting the file
    log.info("Snapshot of %d table(s) written to '%s'.", len(document), path)
    return path


def read_snapshot(path: Path | str) -> Snapshot:
    """
    Load a snapshot written by :func:`write_snapshot`.

    Raises:
        CorruptSnapshot: If the file is missing or unreadable, is not valid
                         JSON, or is not a mapping of table name to a list
                         of records.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CorruptSnapshot(f"Cannot read snapshot '{path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CorruptSnapshot(f"Invalid JSON in snapshot '{path}': {exc}") from exc

    if not isinstance(raw, dict):
        raise CorruptSnapshot(
            f"Snapshot '{path}' must map table names to record lists, "
            f"got {type(raw).__name__}."
        )

    snapshot: Snapshot = {}
    for name, records in raw.items():
        if not isinstance(records, list):
            raise CorruptSnapshot(f"Table '{name}' in '{path}' is not a list of records.")
        decoded: list[Record] = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise CorruptSnapshot(
                    f"Record {index} of table '{name}' in '{path}' is not an object."
                )
            try:
                decoded.append(
                    {column: from_structured(value) for column, value in record.items()}
                )
            except ValueError as exc:
                raise CorruptSnapshot(
                    f"Record {index} of table '{name}' in '{path}': {exc}"
                ) from exc
        snapshot[name] = decoded

    log.info("Loaded snapshot '%s' with %d table(s).", path, len(snapshot))
    return snapshot
