"""Conversion between engine JSON cells and Python values.

``decode`` maps a raw JSON cell plus the column's engine type name to a
Python scalar. ``literalize`` goes the other way and renders a Python value
as SQL text for client-side parameter substitution.
"""

from __future__ import annotations

import base64
import binascii
import json
import math
import re
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import DecodeError


class _SqlNull:
    """Marker for a SQL NULL cell, distinct from ``None`` (no value at all)."""

    _instance: _SqlNull | None = None

    def __new__(cls) -> _SqlNull:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "SQL_NULL"

    def __reduce__(self) -> str:
        return "SQL_NULL"


SQL_NULL = _SqlNull()

INT32_RANGE = (-(2**31), 2**31 - 1)
INT64_RANGE = (-(2**63), 2**63 - 1)

STRING_TYPES = frozenset({"char", "varchar", "text"})
INT32_TYPES = frozenset({"tinyint", "smallint", "integer", "int"})

_TIMESTAMP_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[ T](\d{2}):(\d{2})(?::(\d{2})(?:\.(\d+))?)?(?:\s*(\S.*))?$"
)
_TIME_RE = re.compile(r"^(\d{2}):(\d{2})(?::(\d{2})(?:\.(\d+))?)?\s*(\S.*)?$")
_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


def normalize_type_name(engine_type: str) -> str:
    """Lower-case an engine type name and drop its parameters.

    ``varchar(10)`` becomes ``varchar`` and ``timestamp(3) with time zone``
    becomes ``timestamp with time zone``.
    """
    depth = 0
    out = []
    for ch in engine_type.strip().lower():
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(depth - 1, 0)
        elif depth == 0:
            out.append(ch)
    return " ".join("".join(out).split())


def decode(cell: Any, engine_type: str) -> Any:
    """Convert one JSON cell to the Python value implied by ``engine_type``.

    Raises:
        DecodeError: If the cell does not fit the claimed type.
    """
    if cell is None:
        return SQL_NULL

    type_name = normalize_type_name(engine_type)
    decoder = _DECODERS.get(type_name)
    if decoder is None:
        return _decode_text(cell, engine_type)
    return decoder(cell, engine_type)


def _decode_text(cell: Any, engine_type: str) -> str:
    if isinstance(cell, str):
        return cell
    # Structured types (array, map, row) still come back as text.
    return json.dumps(cell, separators=(",", ":"), ensure_ascii=False)


def _ranged_int(bounds: tuple[int, int]) -> Callable[[Any, str], int]:
    def _decode(cell: Any, engine_type: str) -> int:
        if isinstance(cell, bool) or not isinstance(cell, int):
            raise DecodeError(cell, engine_type, "expected an integer")
        low, high = bounds
        if not low <= cell <= high:
            raise DecodeError(cell, engine_type, "out of range")
        return cell

    return _decode


def _decode_float(cell: Any, engine_type: str) -> float:
    if isinstance(cell, bool):
        raise DecodeError(cell, engine_type, "expected a number")
    if isinstance(cell, (int, float)):
        return float(cell)
    if isinstance(cell, str) and cell in ("NaN", "Infinity", "-Infinity"):
        return float(cell.replace("Infinity", "inf"))
    raise DecodeError(cell, engine_type, "expected a number")


def _decode_boolean(cell: Any, engine_type: str) -> bool:
    if not isinstance(cell, bool):
        raise DecodeError(cell, engine_type, "expected a boolean")
    return cell


def _decode_decimal(cell: Any, engine_type: str) -> Decimal:
    if isinstance(cell, bool) or not isinstance(cell, (str, int, float)):
        raise DecodeError(cell, engine_type, "expected a decimal string")
    try:
        return Decimal(str(cell))
    except InvalidOperation:
        raise DecodeError(cell, engine_type) from None


def _decode_date(cell: Any, engine_type: str) -> date:
    if not isinstance(cell, str):
        raise DecodeError(cell, engine_type, "expected a date string")
    try:
        return date.fromisoformat(cell)
    except ValueError:
        raise DecodeError(cell, engine_type) from None


def _fraction_to_micros(fraction: str | None) -> int:
    if not fraction:
        return 0
    # The engine allows up to picosecond precision; Python stops at micros.
    return int(fraction[:6].ljust(6, "0"))


def _parse_zone(zone: str, cell: Any, engine_type: str) -> timezone | ZoneInfo:
    if zone in ("UTC", "Z"):
        return timezone.utc
    match = _OFFSET_RE.match(zone)
    if match:
        sign, hours, minutes = match.groups()
        offset = timedelta(hours=int(hours), minutes=int(minutes))
        return timezone(-offset if sign == "-" else offset)
    try:
        return ZoneInfo(zone)
    except (ZoneInfoNotFoundError, ValueError):
        raise DecodeError(cell, engine_type, f"unknown time zone {zone!r}") from None


def _decode_timestamp(cell: Any, engine_type: str) -> datetime:
    if not isinstance(cell, str):
        raise DecodeError(cell, engine_type, "expected a timestamp string")
    match = _TIMESTAMP_RE.match(cell.strip())
    if not match:
        raise DecodeError(cell, engine_type)
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    tzinfo = _parse_zone(zone, cell, engine_type) if zone else None
    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour),
            int(minute),
            int(second or 0),
            _fraction_to_micros(fraction),
            tzinfo=tzinfo,
        )
    except ValueError:
        raise DecodeError(cell, engine_type) from None


def _decode_time(cell: Any, engine_type: str) -> time:
    if not isinstance(cell, str):
        raise DecodeError(cell, engine_type, "expected a time string")
    match = _TIME_RE.match(cell.strip())
    if not match:
        raise DecodeError(cell, engine_type)
    hour, minute, second, fraction, zone = match.groups()
    tzinfo = _parse_zone(zone, cell, engine_type) if zone else None
    try:
        return time(
            int(hour),
            int(minute),
            int(second or 0),
            _fraction_to_micros(fraction),
            tzinfo=tzinfo,
        )
    except ValueError:
        raise DecodeError(cell, engine_type) from None


def _decode_varbinary(cell: Any, engine_type: str) -> bytes:
    if not isinstance(cell, str):
        raise DecodeError(cell, engine_type, "expected base64 text")
    try:
        return base64.b64decode(cell, validate=True)
    except binascii.Error:
        raise DecodeError(cell, engine_type, "invalid base64") from None


def _decode_string(cell: Any, engine_type: str) -> str:
    if not isinstance(cell, str):
        raise DecodeError(cell, engine_type, "expected a string")
    return cell


_DECODERS: dict[str, Callable[[Any, str], Any]] = {
    **{name: _decode_string for name in STRING_TYPES},
    **{name: _ranged_int(INT32_RANGE) for name in INT32_TYPES},
    "bigint": _ranged_int(INT64_RANGE),
    "double": _decode_float,
    "real": _decode_float,
    "boolean": _decode_boolean,
    "decimal": _decode_decimal,
    "date": _decode_date,
    "timestamp": _decode_timestamp,
    "timestamp with time zone": _decode_timestamp,
    "time": _decode_time,
    "time with time zone": _decode_time,
    "varbinary": _decode_varbinary,
}

HOST_TYPES: dict[str, type] = {
    **{name: str for name in STRING_TYPES},
    **{name: int for name in INT32_TYPES},
    "bigint": int,
    "double": float,
    "real": float,
    "boolean": bool,
    "decimal": Decimal,
    "date": date,
    "timestamp": datetime,
    "timestamp with time zone": datetime,
    "time": time,
    "time with time zone": time,
    "varbinary": bytes,
}


def host_type(engine_type: str) -> type:
    """Return the Python type cells of ``engine_type`` decode to."""
    return HOST_TYPES.get(normalize_type_name(engine_type), str)


def literalize(value: Any) -> str:
    """Render a Python value as SQL literal text.

    This is plain text substitution, not a bound parameter: callers must not
    feed it untrusted identifiers.
    """
    if value is None or value is SQL_NULL:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str):
        return "'{}'".format(value.replace("'", "''"))
    if isinstance(value, datetime):
        text = f"{value:%Y-%m-%d %H:%M:%S}"
        if value.tzinfo is not None:
            return f"CAST('{text}{_zone_suffix(value)}' AS TIMESTAMP WITH TIME ZONE)"
        return f"TIMESTAMP '{text}'"
    if isinstance(value, date):
        return f"DATE '{value.isoformat()}'"
    if isinstance(value, time):
        text = f"{value:%H:%M:%S}"
        if value.tzinfo is not None:
            return f"CAST('{text}{_zone_suffix(value)}' AS TIME WITH TIME ZONE)"
        return f"TIME '{text}'"
    if isinstance(value, (bytes, bytearray)):
        return f"X'{bytes(value).hex().upper()}'"
    if isinstance(value, float):
        return _double_literal(value)
    if isinstance(value, Decimal):
        return _decimal_literal(value)
    return str(value)


def _zone_suffix(value: datetime | time) -> str:
    offset = value.utcoffset()
    if offset is None:
        # A time bound to a region zone has no offset without a date.
        return f" {value.tzinfo}"
    total = int(offset.total_seconds()) // 60
    sign = "-" if total < 0 else "+"
    hours, minutes = divmod(abs(total), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def _decimal_literal(value: Decimal) -> str:
    if not value.is_finite():
        raise ValueError(f"Cannot render {value} as a decimal literal")
    # Exponent notation reads as a double and an integral literal as an integer.
    text = format(value, "f")
    if "." not in text:
        text = f"{text}.0"
    return text


def _double_literal(value: float) -> str:
    if math.isnan(value):
        return "nan()"
    if math.isinf(value):
        return "infinity()" if value > 0 else "-infinity()"
    text = repr(value)
    # Without an exponent the engine reads the literal as a decimal.
    if "e" not in text and "E" not in text:
        text = f"{text}E0"
    return text.upper()
