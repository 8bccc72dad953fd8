"""Capability protocols for generic tabular-data consumers.

Consumer code can depend on these protocols instead of the concrete
:class:`~trinoduck.connector.connection.Connection` and
:class:`~trinoduck.connector.result.ResultCursor` classes.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from .rowtype import ColumnInfo


@runtime_checkable
class TabularReader(Protocol):
    """Forward-only reader over a result with a current row."""

    @property
    def column_count(self) -> int: ...

    def advance(self) -> bool:
        """Move to the next row; False once the result is exhausted."""
        ...

    def column_name(self, ordinal: int) -> str: ...

    def column_ordinal(self, name: str) -> int: ...

    def field_type(self, ordinal: int) -> type: ...

    def schema_table(self) -> list[ColumnInfo]: ...

    def cell_is_null(self, ordinal: int) -> bool: ...

    def cell_value(self, ordinal: int) -> Any: ...

    def close(self) -> None: ...


@runtime_checkable
class DataConnection(Protocol):
    """A connection that can open, run commands and close."""

    def open(self) -> None:
        """Verify connectivity and become ready to execute commands."""
        ...

    def close(self) -> None: ...

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> TabularReader:
        """Run a query and return a reader positioned before the first row."""
        ...

    def execute_scalar(self, sql: str, params: Mapping[str, Any] | None = None) -> Any: ...

    def execute_non_query(self, sql: str, params: Mapping[str, Any] | None = None) -> int: ...

    def begin(self) -> Any: ...
