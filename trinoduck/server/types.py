"""Type conversion utilities for the emulated coordinator.

Maps DuckDB column types to the engine's type names and serialises values
the way the engine puts them on the wire, so that clients decode them
exactly as they would against a real coordinator.
"""

from __future__ import annotations

import base64
import math
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

# Mapping from DuckDB scalar types to engine types
TYPE_MAP = {
    "BOOLEAN": "boolean",
    "TINYINT": "tinyint",
    "SMALLINT": "smallint",
    "INTEGER": "integer",
    "BIGINT": "bigint",
    "HUGEINT": "decimal(38,0)",
    "UTINYINT": "smallint",
    "USMALLINT": "integer",
    "UINTEGER": "bigint",
    "UBIGINT": "decimal(20,0)",
    "FLOAT": "real",
    "DOUBLE": "double",
    "VARCHAR": "varchar",
    "BLOB": "varbinary",
    "DATE": "date",
    "TIME": "time(6)",
    "TIME WITH TIME ZONE": "time(6) with time zone",
    "TIMESTAMP": "timestamp(6)",
    "TIMESTAMP_S": "timestamp(0)",
    "TIMESTAMP_MS": "timestamp(3)",
    "TIMESTAMP_NS": "timestamp(9)",
    "TIMESTAMP WITH TIME ZONE": "timestamp(6) with time zone",
    "UUID": "uuid",
    "JSON": "json",
    "INTERVAL": "varchar",
}


def duckdb_type_to_engine_type(duck_type: str) -> str:
    """Convert a DuckDB type name to an engine type name.

    Args:
        duck_type: DuckDB type as printed by DuckDB, e.g. ``DECIMAL(10,2)``,
            ``INTEGER[]`` or ``STRUCT(a INTEGER, b VARCHAR)``.

    Returns:
        Engine type name, e.g. ``decimal(10,2)``, ``array(integer)`` or
        ``row(a integer, b varchar)``. Unknown types map to ``varchar``.
    """
    type_str = duck_type.strip()
    upper = type_str.upper()

    if upper.endswith("]"):
        element = type_str[: type_str.rindex("[")]
        return f"array({duckdb_type_to_engine_type(element)})"

    if upper.startswith("DECIMAL"):
        return type_str.lower().replace(" ", "")

    if upper.startswith("MAP(") and upper.endswith(")"):
        key, value = _split_top_level(type_str[4:-1])
        return f"map({duckdb_type_to_engine_type(key)}, {duckdb_type_to_engine_type(value)})"

    if upper.startswith("STRUCT(") and upper.endswith(")"):
        fields = []
        for part in _split_top_level(type_str[7:-1]):
            name, field_type = _split_field(part.strip())
            if " " in name:
                name = f'"{name}"'
            fields.append(f"{name} {duckdb_type_to_engine_type(field_type)}")
        return f"row({', '.join(fields)})"

    if upper.startswith("VARCHAR"):
        return "varchar"

    return TYPE_MAP.get(upper, "varchar")


def _split_field(text: str) -> tuple[str, str]:
    # Field names may be quoted and contain spaces, e.g. "order id" INTEGER
    if text.startswith('"'):
        end = text.index('"', 1)
        return text[1:end], text[end + 1 :].strip()
    name, _, field_type = text.partition(" ")
    return name, field_type.strip()


def _split_top_level(text: str) -> list[str]:
    parts = []
    depth = 0
    current = []
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    if current:
        parts.append("".join(current).strip())
    return parts


def format_value(value: Any, engine_type: str) -> Any:
    """Format a value for a JSON response.

    Args:
        value: Python value as returned by DuckDB
        engine_type: Engine type name of the column

    Returns:
        A JSON-safe value in the engine's wire format
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if engine_type.startswith("decimal"):
        return str(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        text = f"{value:%Y-%m-%d %H:%M:%S.%f}"
        if value.tzinfo is not None:
            text = f"{text} {_format_offset(value.utcoffset())}"
        return text
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        text = f"{value:%H:%M:%S.%f}"
        if value.tzinfo is not None:
            text = f"{text}{_format_offset(value.utcoffset())}"
        return text
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [format_value(v, _element_type(engine_type)) for v in value]
    if isinstance(value, dict):
        return {str(k): format_value(v, "") for k, v in value.items()}
    return str(value)


def _element_type(engine_type: str) -> str:
    if engine_type.startswith("array(") and engine_type.endswith(")"):
        return engine_type[6:-1]
    return ""


def _format_offset(offset: timedelta | None) -> str:
    if not offset:
        return "UTC"
    total = int(offset.total_seconds())
    sign = "-" if total < 0 else "+"
    hours, minutes = divmod(abs(total) // 60, 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def format_row(row: tuple[Any, ...] | list[Any], engine_types: list[str]) -> list[Any]:
    """Format a row's values for a JSON response."""
    return [format_value(v, t) for v, t in zip(row, engine_types)]
