import re
from typing import Optional, TypedDict

from ..client.envelope import Column
from ..codec import host_type, normalize_type_name

_PARAMS_RE = re.compile(r"\(([^()]*)\)")


class ColumnInfo(TypedDict):
    """Represents one row of a result's schema table."""

    name: str
    ordinal: int
    type: str
    data_type: type
    size: Optional[int]
    precision: Optional[int]
    scale: Optional[int]
    is_long: bool
    is_read_only: bool
    is_unique: bool
    is_key: bool
    is_auto_increment: bool
    is_nullable: bool


def type_parameters(engine_type: str) -> list[int]:
    """Return the numeric parameters of an engine type, e.g. ``[10, 2]`` for ``decimal(10,2)``."""
    match = _PARAMS_RE.search(engine_type)
    if not match:
        return []
    params = []
    for part in match.group(1).split(","):
        part = part.strip()
        if part.isdigit():
            params.append(int(part))
    return params


def size_and_scale(engine_type: str) -> tuple[Optional[int], Optional[int], Optional[int]]:
    """Return ``(size, precision, scale)`` as far as the type name states them."""
    base = normalize_type_name(engine_type)
    params = type_parameters(engine_type)
    if base in ("varchar", "char") and params:
        return params[0], None, None
    if base == "decimal":
        precision = params[0] if params else 38
        scale = params[1] if len(params) > 1 else 0
        return None, precision, scale
    if base.startswith(("timestamp", "time")) and params:
        return None, params[0], None
    return None, None, None


def describe_as_schema_table(columns: list[Column]) -> list[ColumnInfo]:
    """
    Describe result columns the way generic tabular-data consumers expect.

    Args:
        columns (list[Column]): Column descriptors of a result.

    Returns:
        list[ColumnInfo]: One entry per column, in result order.
    """

    def as_column_info(ordinal: int, column: Column) -> ColumnInfo:
        size, precision, scale = size_and_scale(column.type)
        base = normalize_type_name(column.type)
        return {
            "name": column.name,
            "ordinal": ordinal,
            "type": column.type,
            "data_type": host_type(column.type),
            "size": size,
            "precision": precision,
            "scale": scale,
            # Unbounded varchar and varbinary may hold arbitrarily long values.
            "is_long": base in ("varchar", "varbinary", "json") and size is None,
            "is_read_only": True,
            "is_unique": False,
            "is_key": False,
            "is_auto_increment": False,
            "is_nullable": True,
        }

    return [as_column_info(i, c) for i, c in enumerate(columns)]


def describe_as_description(
    columns: list[Column],
) -> list[tuple[str, str, None, Optional[int], Optional[int], Optional[int], bool]]:
    """
    Convert column descriptors to PEP 249 ``cursor.description`` tuples.

    The type code is the engine type name, as sent by the coordinator.
    """
    description = []
    for column in columns:
        size, precision, scale = size_and_scale(column.type)
        description.append((column.name, column.type, None, size, precision, scale, True))
    return description
