"""Tests for DuckDB to engine type mapping and wire formatting."""

import math
import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from trinoduck.codec import decode
from trinoduck.server.types import duckdb_type_to_engine_type, format_row, format_value


@pytest.mark.parametrize(
    "duck_type, engine_type",
    [
        ("INTEGER", "integer"),
        ("BIGINT", "bigint"),
        ("HUGEINT", "decimal(38,0)"),
        ("DOUBLE", "double"),
        ("VARCHAR", "varchar"),
        ("DECIMAL(10,2)", "decimal(10,2)"),
        ("DECIMAL(18, 3)", "decimal(18,3)"),
        ("TIMESTAMP", "timestamp(6)"),
        ("TIMESTAMP WITH TIME ZONE", "timestamp(6) with time zone"),
        ("BLOB", "varbinary"),
        ("INTERVAL", "varchar"),
        ("INTEGER[]", "array(integer)"),
        ("VARCHAR[][]", "array(array(varchar))"),
        ("MAP(VARCHAR, INTEGER)", "map(varchar, integer)"),
        ("STRUCT(a INTEGER, b VARCHAR)", "row(a integer, b varchar)"),
        ('STRUCT("x y" DECIMAL(4,1))', 'row("x y" decimal(4,1))'),
        ("SOMETHING_NEW", "varchar"),
    ],
)
def test_duckdb_type_to_engine_type(duck_type, engine_type):
    assert duckdb_type_to_engine_type(duck_type) == engine_type


class TestFormatValue:
    """Values are written the way the client decodes them."""

    def test_scalars(self) -> None:
        assert format_value(None, "integer") is None
        assert format_value(True, "boolean") is True
        assert format_value(7, "integer") == 7
        assert format_value(1.25, "double") == 1.25

    def test_special_floats(self) -> None:
        assert format_value(float("nan"), "double") == "NaN"
        assert format_value(float("inf"), "double") == "Infinity"
        assert format_value(float("-inf"), "real") == "-Infinity"

    def test_decimals_are_strings(self) -> None:
        assert format_value(Decimal("12.50"), "decimal(10,2)") == "12.50"
        assert format_value(10**30, "decimal(38,0)") == str(10**30)

    def test_temporal_values(self) -> None:
        assert format_value(date(2024, 1, 2), "date") == "2024-01-02"
        assert format_value(datetime(2024, 1, 2, 3, 4, 5, 6), "timestamp(6)") == (
            "2024-01-02 03:04:05.000006"
        )
        assert format_value(time(3, 4, 5), "time(6)") == "03:04:05.000000"

    def test_zoned_timestamps(self) -> None:
        utc = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert format_value(utc, "timestamp(6) with time zone") == "2024-01-02 03:04:05.000000 UTC"

        india = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=5, minutes=30)))
        assert format_value(india, "timestamp(6) with time zone").endswith(" +05:30")

        west = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=-3)))
        assert format_value(west, "timestamp(6) with time zone").endswith(" -03:00")

    def test_binary_and_uuid(self) -> None:
        assert format_value(b"hello", "varbinary") == "aGVsbG8="
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert format_value(value, "uuid") == "12345678-1234-5678-1234-567812345678"

    def test_nested_values(self) -> None:
        assert format_value([Decimal("1.5"), None], "array(decimal(2,1))") == ["1.5", None]
        assert format_value({"k": date(2024, 1, 2)}, "map(varchar, date)") == {"k": "2024-01-02"}

    def test_other_values_become_text(self) -> None:
        assert format_value(timedelta(days=2), "varchar") == "2 days, 0:00:00"


def test_formatted_values_decode_back():
    engine_types = ["bigint", "decimal(10,2)", "double", "timestamp(6)", "varbinary"]
    row = (5, Decimal("3.25"), float("nan"), datetime(2024, 5, 6, 7, 8, 9), b"\x00\x01")

    wire = format_row(row, engine_types)
    decoded = [decode(cell, t) for cell, t in zip(wire, engine_types)]

    assert decoded[0] == 5
    assert decoded[1] == Decimal("3.25")
    assert math.isnan(decoded[2])
    assert decoded[3] == datetime(2024, 5, 6, 7, 8, 9)
    assert decoded[4] == b"\x00\x01"
