from datetime import date
from decimal import Decimal

import pytest

from conftest import envelope, page_uri
from trinoduck.client import QueryRequest
from trinoduck.codec import SQL_NULL
from trinoduck.connector import ResultCursor, TabularReader
from trinoduck.errors import ColumnNotFound, DecodeError, NoCurrentRow, StateError

COLUMNS = [("Id", "bigint"), ("amount", "decimal(10,2)"), ("day", "date")]


@pytest.fixture
def result(coordinator, make_session) -> ResultCursor:
    coordinator.reply(
        envelope(next_uri=page_uri("q1", 1), columns=COLUMNS, data=[[1, "9.50", "2024-01-02"]])
    )
    coordinator.reply(envelope(columns=COLUMNS, data=[[2, None, None]], state="FINISHED"))
    session = make_session()
    session.submit(QueryRequest("SELECT * FROM payments"))
    return ResultCursor(session)


def test_is_a_tabular_reader(result):
    assert isinstance(result, TabularReader)


def test_metadata_is_available_before_the_first_row(result):
    assert result.column_count == 3
    assert result.column_name(1) == "amount"
    assert result.column_type(2) == "date"
    assert result.field_type(1) is Decimal
    assert [row["name"] for row in result.schema_table()] == ["Id", "amount", "day"]


def test_no_current_row_before_advance(result):
    with pytest.raises(NoCurrentRow):
        result.cell_value(0)


def test_advance_and_read_cells(result):
    assert result.advance()
    assert result.cell_value(0) == 1
    assert result.cell_value(1) == Decimal("9.50")
    assert result["day"] == date(2024, 1, 2)
    assert not result.cell_is_null(1)

    assert result.advance()
    assert result.cell_is_null(1)
    assert result.cell_value(1) is SQL_NULL
    assert result.raw_value(2) is None

    assert not result.advance()
    assert result.is_exhausted
    assert result.rows_read == 2
    with pytest.raises(NoCurrentRow):
        result.cell_value(0)
    assert not result.advance()


def test_column_lookup_is_case_insensitive(result):
    assert result.column_ordinal("id") == 0
    assert result.column_ordinal("AMOUNT") == 1
    with pytest.raises(ColumnNotFound):
        result.column_ordinal("missing")


def test_ordinal_out_of_range(result):
    result.advance()
    with pytest.raises(ColumnNotFound):
        result.cell_value(3)
    with pytest.raises(ColumnNotFound):
        result.column_name(-1)


def test_iteration_yields_decoded_tuples(result):
    assert list(result) == [
        (1, Decimal("9.50"), date(2024, 1, 2)),
        (2, SQL_NULL, SQL_NULL),
    ]


def test_bad_cell_does_not_end_the_stream(coordinator, make_session):
    coordinator.reply(envelope(columns=[("n", "integer")], data=[["x"], [2]], state="FINISHED"))
    session = make_session()
    session.submit(QueryRequest("SELECT n FROM t"))
    result = ResultCursor(session)

    assert result.advance()
    with pytest.raises(DecodeError):
        result.cell_value(0)
    assert result.advance()
    assert result.cell_value(0) == 2


def test_close_cancels_the_running_query(result, coordinator):
    with result:
        result.advance()

    assert result.is_closed()
    assert coordinator.count("DELETE") == 1
    with pytest.raises(NoCurrentRow):
        result.cell_value(0)
    with pytest.raises(StateError):
        result.advance()
