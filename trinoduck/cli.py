import argparse
import logging
import sys
from typing import Any, Sequence, TextIO

import structlog

from .codec import SQL_NULL
from .connector import Connection, connect
from .errors import Error


def parse_param(text: str) -> tuple[str, Any]:
    """Parse ``name=value``; values that look like numbers or booleans are typed."""
    name, sep, raw = text.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected name=value, got {text!r}")

    value: Any = raw
    lowered = raw.lower()
    if lowered in ("true", "false"):
        value = lowered == "true"
    elif lowered == "null":
        value = None
    else:
        for convert in (int, float):
            try:
                value = convert(raw)
                break
            except ValueError:
                continue
    return name.strip(), value


def format_cell(value: Any) -> str:
    if value is SQL_NULL:
        return "NULL"
    return str(value)


def print_result(
    conn: Connection,
    sql: str,
    params: dict[str, Any],
    max_rows: int | None,
    out: TextIO,
) -> int:
    with conn.execute(sql, params) as result:
        names = [result.column_name(i) for i in range(result.column_count)]
        out.write("\t".join(names) + "\n")
        out.write("\t".join("--------" for _ in names) + "\n")
        while (max_rows is None or result.rows_read < max_rows) and result.advance():
            out.write("\t".join(format_cell(v) for v in result.values()) + "\n")
        return result.rows_read


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    return structlog.PrintLogger(sys.stderr)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run a query and print the rows tab-separated.")

    parser.add_argument(
        "connection_string",
        help='Connection string, e.g. "Host=localhost;Port=8080;User=trino"',
    )

    parser.add_argument("sql", help="SQL text; may use @name or :name placeholders")

    parser.add_argument(
        "--param",
        action="append",
        type=parse_param,
        default=[],
        metavar="NAME=VALUE",
        help="Placeholder value (repeatable)",
    )

    parser.add_argument(
        "--max-rows", type=int, default=None, help="Stop after this many rows (default: all)"
    )

    parser.add_argument(
        "--verbose", action="store_true", help="Log protocol events to stderr (default: warnings only)"
    )

    args = parser.parse_args(argv)

    # Rows go to stdout, so logs must not.
    level = logging.DEBUG if args.verbose else logging.WARNING
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=_stderr_logger,
    )

    try:
        with connect(args.connection_string) as conn:
            rows = print_result(conn, args.sql, dict(args.param), args.max_rows, sys.stdout)
    except Error as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"({rows} rows)", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
