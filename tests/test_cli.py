import argparse
import io

import pytest
import structlog

from trinoduck.cli import format_cell, main, parse_param, print_result
from trinoduck.codec import SQL_NULL


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    structlog.reset_defaults()


@pytest.mark.parametrize(
    "text, expected",
    [
        ("n=5", ("n", 5)),
        ("ratio=0.5", ("ratio", 0.5)),
        ("flag=TRUE", ("flag", True)),
        ("flag=false", ("flag", False)),
        ("missing=null", ("missing", None)),
        ("name=alice", ("name", "alice")),
        (" padded =x=y", ("padded", "x=y")),
        ("empty=", ("empty", "")),
    ],
)
def test_parse_param(text, expected):
    assert parse_param(text) == expected


@pytest.mark.parametrize("text", ["novalue", "=5"])
def test_parse_param_rejects_malformed_input(text):
    with pytest.raises(argparse.ArgumentTypeError):
        parse_param(text)


def test_format_cell():
    assert format_cell(SQL_NULL) == "NULL"
    assert format_cell(3) == "3"
    assert format_cell("") == ""


def test_print_result(connection):
    out = io.StringIO()

    rows = print_result(connection, "SELECT 1 AS a, CAST(NULL AS VARCHAR) AS b", {}, None, out)

    assert rows == 1
    assert out.getvalue() == "a\tb\n--------\t--------\n1\tNULL\n"


def test_print_result_stops_at_max_rows(connection):
    connection.execute_non_query("CREATE TABLE letters (c VARCHAR)")
    connection.execute_non_query("INSERT INTO letters VALUES ('x'), ('y'), ('z')")
    out = io.StringIO()

    sql = "SELECT c FROM letters WHERE c <> @skip ORDER BY c"

    rows = print_result(connection, sql, {"skip": "y"}, 1, out)

    assert rows == 1
    assert out.getvalue().splitlines()[2:] == ["x"]


def test_main_prints_rows(server, capsys):
    connection_string = f"Host={server['host']};Port={server['port']};User=cli"

    code = main([connection_string, "SELECT @n * 2 AS doubled", "--param", "n=21"])

    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.splitlines() == ["doubled", "--------", "42"]
    assert "(1 rows)" in captured.err


def test_main_reports_errors(capsys, unused_tcp_port):
    code = main([f"Host=127.0.0.1;Port={unused_tcp_port}", "SELECT 1"])

    captured = capsys.readouterr()
    assert code == 1
    assert captured.out == ""
    last_line = captured.err.strip().splitlines()[-1]
    assert last_line.startswith("Error: Failed to open connection")
