"""
pipeline/codec.py
-----------------
Conversion of single column values between their in-memory form, the
structured (snapshot) form and the SQL literal (dump) form.

Value kinds::

    NULL      None
    BOOLEAN   bool
    INTEGER   int
    FLOAT     float, decimal.Decimal
    TEXT      str
    DATETIME  datetime.datetime, datetime.date, datetime.time, datetime.timedelta
    BINARY    bytes (bytearray / memoryview are normalised to bytes)

Design Decisions:
    * Pure functions with no side effects make this module trivially
      testable.
    * A value keeps the kind the driver gave it.  ``"42"`` stays TEXT even
      though it parses as an integer.
    * The structured form keeps JSON-native scalars as they are and wraps the
      kinds JSON cannot carry exactly in a one-key tagged object
      (``{"$datetime": "..."}``), so a snapshot round trip is lossless.
"""
from __future__ import annotations

import base64
import datetime
import decimal
import math
from enum import Enum
from typing import Any

from pipeline.dialect import ANSI, Dialect
from pipeline.errors import PipelineError


class UnsupportedValueKind(PipelineError):
    """Raised when a value has a type the codec cannot render or store."""

    def __init__(self, value: Any, reason: str = "") -> None:
        self.value = value
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Unsupported value {value!r} of type {type(value).__name__}{detail}"
        )


class ValueKind(str, Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    DATETIME = "datetime"
    BINARY = "binary"


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def classify(value: Any) -> ValueKind:
    """
    Return the :class:`ValueKind` of an in-memory value.

    Raises:
        UnsupportedValueKind: If the type is not one of the known kinds.
    """
    if value is None:
        return ValueKind.NULL
    # bool is a subclass of int; test it first
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, (float, decimal.Decimal)):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, (datetime.date, datetime.time, datetime.timedelta)):
        return ValueKind.DATETIME
    if isinstance(value, bytes):
        return ValueKind.BINARY
    raise UnsupportedValueKind(value)


def decode_from_driver(raw: Any) -> Any:
    """
    Normalise a value as returned by a database driver.

    ``bytearray`` / ``memoryview`` become ``bytes``; a MySQL ``SET`` column
    (returned as a Python ``set``) becomes its comma separated text form.
    Every other supported value is returned unchanged.

    Raises:
        UnsupportedValueKind: If the driver returned an unknown type.
    """
    if isinstance(raw, (bytearray, memoryview)):
        raw = bytes(raw)
    elif isinstance(raw, (set, frozenset)):
        raw = ",".join(sorted(str(member) for member in raw))
    classify(raw)
    return raw


# ---------------------------------------------------------------------------
# Literal form
# ---------------------------------------------------------------------------

def format_timedelta(delta: datetime.timedelta) -> str:
    """Render a timedelta the way MySQL renders a TIME value: [-]H:MM:SS[.ffffff]."""
    sign = "-" if delta < datetime.timedelta(0) else ""
    delta = abs(delta)
    total_seconds = delta.days * 86400 + delta.seconds
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    text = f"{sign}{hours}:{minutes:02d}:{seconds:02d}"
    if delta.microseconds:
        text += f".{delta.microseconds:06d}"
    return text


def format_datetime(value: datetime.datetime) -> str:
    """
    Render a datetime as 'YYYY-MM-DD HH:MM:SS[.ffffff]'.

    DATETIME columns carry no offset, so an aware value is converted to UTC
    and written without one.
    """
    if value.utcoffset() is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value.isoformat(sep=" ")


def _format_number(value: float | decimal.Decimal) -> str:
    if isinstance(value, decimal.Decimal):
        if not value.is_finite():
            raise UnsupportedValueKind(value, "non-finite numbers have no SQL literal")
        return format(value, "f")
    if not math.isfinite(value):
        raise UnsupportedValueKind(value, "non-finite numbers have no SQL literal")
    return repr(value)


def encode_literal(value: Any, dialect: Dialect = ANSI) -> str:
    """
    Render *value* as a SQL literal suitable for a replay script.

    Examples::

        encode_literal(None)          →  NULL
        encode_literal("O'Brien")     →  'O''Brien'
        encode_literal(3)             →  3
        encode_literal(0.1)           →  0.1
        encode_literal(True)          →  1
        encode_literal(b"\\x0a\\xff")   →  X'0aff'

    Raises:
        UnsupportedValueKind: If the value cannot be rendered.
    """
    kind = classify(value)
    if kind is ValueKind.NULL:
        return "NULL"
    if kind is ValueKind.BOOLEAN:
        return "1" if value else "0"
    if kind is ValueKind.INTEGER:
        return str(value)
    if kind is ValueKind.FLOAT:
        return _format_number(value)
    if kind is ValueKind.TEXT:
        return "'" + dialect.escape_text(value) + "'"
    if kind is ValueKind.DATETIME:
        if isinstance(value, datetime.timedelta):
            text = format_timedelta(value)
        elif isinstance(value, datetime.datetime):
            text = format_datetime(value)
        else:
            text = value.isoformat()
        return "'" + text + "'"
    if kind is ValueKind.BINARY:
        return "X'" + value.hex() + "'"
    raise UnsupportedValueKind(value)


# ---------------------------------------------------------------------------
# Structured form
# ---------------------------------------------------------------------------

_TAG_DATETIME = "$datetime"
_TAG_DATE = "$date"
_TAG_TIME = "$time"
_TAG_TIMEDELTA = "$timedelta"
_TAG_DECIMAL = "$decimal"
_TAG_BYTES = "$bytes"


def to_structured(value: Any) -> Any:
    """
    Convert *value* into a JSON-serialisable object that keeps its kind.

    Raises:
        UnsupportedValueKind: For unknown types and non-finite floats.
    """
    kind = classify(value)
    if kind in (ValueKind.NULL, ValueKind.BOOLEAN, ValueKind.INTEGER, ValueKind.TEXT):
        return value
    if kind is ValueKind.FLOAT:
        if isinstance(value, decimal.Decimal):
            _format_number(value)  # rejects NaN / Infinity
            return {_TAG_DECIMAL: str(value)}
        if not math.isfinite(value):
            raise UnsupportedValueKind(value, "non-finite numbers cannot be stored")
        return value
    if kind is ValueKind.BINARY:
        return {_TAG_BYTES: base64.b64encode(value).decode("ascii")}
    # DATETIME; datetime must be tested before its parent class date
    if isinstance(value, datetime.datetime):
        return {_TAG_DATETIME: value.isoformat()}
    if isinstance(value, datetime.date):
        return {_TAG_DATE: value.isoformat()}
    if isinstance(value, datetime.time):
        return {_TAG_TIME: value.isoformat()}
    return {_TAG_TIMEDELTA: value // datetime.timedelta(microseconds=1)}


def from_structured(obj: Any) -> Any:
    """
    Inverse of :func:`to_structured`.

    Raises:
        ValueError: If *obj* is neither a JSON scalar nor a known tagged object.
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if not isinstance(obj, dict) or len(obj) != 1:
        raise ValueError(f"Not a structured value: {obj!r}")

    (tag, payload), = obj.items()
    try:
        if tag == _TAG_DATETIME:
            return datetime.datetime.fromisoformat(payload)
        if tag == _TAG_DATE:
            return datetime.date.fromisoformat(payload)
        if tag == _TAG_TIME:
            return datetime.time.fromisoformat(payload)
        if tag == _TAG_TIMEDELTA:
            return datetime.timedelta(microseconds=payload)
        if tag == _TAG_DECIMAL:
            return decimal.Decimal(payload)
        if tag == _TAG_BYTES:
            return base64.b64decode(payload.encode("ascii"), validate=True)
    except (AttributeError, TypeError, ValueError, decimal.InvalidOperation) as exc:
        raise ValueError(f"Malformed {tag} value {payload!r}: {exc}") from exc
    raise ValueError(f"Unknown value tag '{tag}'")
