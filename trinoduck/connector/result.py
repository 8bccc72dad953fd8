"""Forward-only result cursor over a statement session."""

from __future__ import annotations

from collections.abc import Iterator
from types import TracebackType
from typing import Any, Self

from ..client.envelope import Column
from ..client.session import SessionState, StatementSession
from ..codec import decode, host_type
from ..errors import ColumnNotFound, NoCurrentRow, StateError
from .rowtype import ColumnInfo, describe_as_schema_table


class ResultCursor:
    """Positions a current row over a session's row stream.

    Only :meth:`advance` may trigger network I/O. Every other method works
    on what has already been received. Cells are decoded on access, so a bad
    cell raises :class:`~trinoduck.errors.DecodeError` without ending the
    stream.
    """

    def __init__(self, session: StatementSession) -> None:
        self._session = session
        self._current: list[Any] | None = None
        self._rows_read = 0
        self._is_closed = False
        self._ordinals: dict[str, int] | None = None

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __iter__(self) -> Iterator[tuple[Any, ...]]:
        while self.advance():
            yield self.values()

    @property
    def session(self) -> StatementSession:
        return self._session

    @property
    def query_id(self) -> str | None:
        return self._session.query_id

    @property
    def rows_read(self) -> int:
        return self._rows_read

    @property
    def columns(self) -> list[Column]:
        return self._session.columns or []

    def advance(self) -> bool:
        """Move to the next row.

        Returns:
            True if a row is now current, False once the result is exhausted.

        Raises:
            StateError: If the cursor was closed.
            Error: The session's failure, if it failed.
        """
        if self._is_closed:
            raise StateError("Cursor is closed")
        row = self._session.next_row()
        if row is None:
            self._current = None
            return False
        self._current = row
        self._rows_read += 1
        return True

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def column_name(self, ordinal: int) -> str:
        return self._column(ordinal).name

    def column_type(self, ordinal: int) -> str:
        return self._column(ordinal).type

    def field_type(self, ordinal: int) -> type:
        return host_type(self._column(ordinal).type)

    def column_ordinal(self, name: str) -> int:
        """Return the position of a column, matching the name case-insensitively.

        Raises:
            ColumnNotFound: If no column has that name.
        """
        if self._ordinals is None or len(self._ordinals) == 0:
            ordinals: dict[str, int] = {}
            for i, column in enumerate(self.columns):
                ordinals.setdefault(column.name.lower(), i)
            self._ordinals = ordinals
        try:
            return self._ordinals[name.lower()]
        except KeyError:
            raise ColumnNotFound(f"Column '{name}' not found") from None

    def schema_table(self) -> list[ColumnInfo]:
        return describe_as_schema_table(self.columns)

    def cell_is_null(self, ordinal: int) -> bool:
        row = self._require_row()
        self._column(ordinal)
        return row[ordinal] is None

    def cell_value(self, ordinal: int) -> Any:
        """Return the decoded cell, or ``SQL_NULL`` for a NULL cell."""
        row = self._require_row()
        column = self._column(ordinal)
        return decode(row[ordinal], column.type)

    def raw_value(self, ordinal: int) -> Any:
        row = self._require_row()
        self._column(ordinal)
        return row[ordinal]

    def values(self) -> tuple[Any, ...]:
        return tuple(self.cell_value(i) for i in range(self.column_count))

    def __getitem__(self, key: int | str) -> Any:
        ordinal = self.column_ordinal(key) if isinstance(key, str) else key
        return self.cell_value(ordinal)

    def close(self) -> None:
        """Close the cursor, abandoning the query if it is still running."""
        if self._is_closed:
            return
        self._is_closed = True
        self._current = None
        self._session.close()

    def is_closed(self) -> bool:
        return self._is_closed

    @property
    def is_exhausted(self) -> bool:
        return self._session.state is SessionState.EXHAUSTED

    def _column(self, ordinal: int) -> Column:
        columns = self.columns
        if isinstance(ordinal, bool) or not 0 <= ordinal < len(columns):
            raise ColumnNotFound(f"Column index {ordinal} is out of range")
        return columns[ordinal]

    def _require_row(self) -> list[Any]:
        if self._is_closed or self._current is None:
            raise NoCurrentRow("No current row")
        return self._current

