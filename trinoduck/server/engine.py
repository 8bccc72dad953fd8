"""DuckDB execution backend for the emulated coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any

import duckdb
import sqlglot
import structlog
from sqlglot import exp

from .types import duckdb_type_to_engine_type, format_row

logger = structlog.get_logger(__name__)

DML_COMMANDS = frozenset({"INSERT", "UPDATE", "DELETE", "MERGE"})
RESULT_COMMANDS = frozenset({"SHOW", "DESCRIBE", "EXPLAIN"})


@dataclass
class ExecutionResult:
    columns: list[dict[str, Any]]
    rows: list[list[Any]]
    update_type: str | None = None
    update_count: int | None = None


@dataclass
class ExecutionFailure(Exception):
    """A statement failed; carries the engine's error descriptor fields."""

    message: str
    error_name: str = "GENERIC_USER_ERROR"
    error_code: int = 0
    error_type: str = "USER_ERROR"
    details: dict[str, Any] = field(default_factory=dict)

    def descriptor(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errorCode": self.error_code,
            "errorName": self.error_name,
            "errorType": self.error_type,
            **self.details,
        }


def extract_sql_command(expression: exp.Expression) -> str:
    """Return the statement kind reported as ``updateType``, e.g. ``CREATE TABLE``."""
    kind = expression.args.get("kind")

    if isinstance(kind, str):
        return f"{expression.key.upper()} {kind.upper()}"

    if isinstance(kind, exp.Var):
        return f"{expression.key.upper()} {kind.name.upper()}"

    if isinstance(expression, exp.Command):
        return str(expression.this).upper()

    return expression.key.upper()


class DuckDBEngine:
    """Executes engine-dialect SQL on a shared DuckDB database.

    Statements are transpiled from the ``trino`` dialect to ``duckdb`` with
    sqlglot. One lock serialises access to the DuckDB connection.

    Args:
        db_file: DuckDB database file, ``:memory:`` for a transient database.
    """

    def __init__(self, db_file: str = ":memory:") -> None:
        self._db_file = db_file
        self._duck_conn = duckdb.connect(database=db_file)
        self._duck_conn.execute("SET TimeZone = 'UTC'")
        self._lock = Lock()

    @property
    def db_file(self) -> str:
        return self._db_file

    def execute(self, sql: str) -> ExecutionResult:
        """Run one statement to completion.

        Raises:
            ExecutionFailure: If the statement cannot be parsed or executed.
        """
        try:
            expressions = [e for e in sqlglot.parse(sql, read="trino") if e is not None]
        except sqlglot.errors.ParseError as e:
            # Remove ANSI formatting
            msg = str(e).replace("\x1b[4m", "").replace("\x1b[0m", "")
            raise ExecutionFailure(msg, "SYNTAX_ERROR", 1) from None

        if len(expressions) != 1:
            raise ExecutionFailure(
                f"Expected exactly one statement, got {len(expressions)}", "SYNTAX_ERROR", 1
            )

        expression = expressions[0]
        duck_sql = expression.sql(dialect="duckdb")
        logger.debug("executing_statement", sql=sql, duck_sql=duck_sql)

        with self._lock:
            try:
                command = extract_sql_command(expression)
                if isinstance(expression, (exp.Query, exp.Values, exp.Describe)) or (
                    command.split(" ")[0] in RESULT_COMMANDS
                ):
                    return self._run_query(duck_sql)
                return self._run_statement(duck_sql, command)
            except duckdb.ParserException as e:
                raise ExecutionFailure(e.args[0], "SYNTAX_ERROR", 1) from None
            except duckdb.CatalogException as e:
                msg = str(e.args[0]).split("\n")[0]
                raise ExecutionFailure(msg, "TABLE_NOT_FOUND", 46) from None
            except duckdb.BinderException as e:
                raise ExecutionFailure(e.args[0], "COLUMN_NOT_FOUND", 47) from None
            except duckdb.ConstraintException as e:
                raise ExecutionFailure(e.args[0], "CONSTRAINT_VIOLATION", 69) from None
            except duckdb.Error as e:
                raise ExecutionFailure(str(e)) from None

    def _run_query(self, duck_sql: str) -> ExecutionResult:
        relation = self._duck_conn.sql(duck_sql)
        if relation is None:
            return ExecutionResult(columns=[], rows=[])
        engine_types = [duckdb_type_to_engine_type(str(t)) for t in relation.types]
        columns = [{"name": n, "type": t} for n, t in zip(relation.columns, engine_types)]
        rows = [format_row(row, engine_types) for row in relation.fetchall()]
        return ExecutionResult(columns=columns, rows=rows)

    def _run_statement(self, duck_sql: str, command: str) -> ExecutionResult:
        cursor = self._duck_conn.execute(duck_sql)
        fetched = cursor.fetchall() if cursor.description else []

        if command in DML_COMMANDS:
            count = int(fetched[0][0]) if fetched else 0
            return ExecutionResult(
                columns=[{"name": "rows", "type": "bigint"}],
                rows=[[count]],
                update_type=command,
                update_count=count,
            )

        return ExecutionResult(
            columns=[{"name": "result", "type": "boolean"}],
            rows=[[True]],
            update_type=command,
        )

    def close(self) -> None:
        with self._lock:
            self._duck_conn.close()
