from collections.abc import Iterator
from types import TracebackType
from typing import TYPE_CHECKING, Any, Mapping, Optional, Self

from ..codec import SQL_NULL
from ..errors import InterfaceError, ProgrammingError
from .result import ResultCursor
from .rowtype import describe_as_description

if TYPE_CHECKING:
    import pandas as pd

    from .connection import Connection


class Cursor:
    def __init__(self, connection: "Connection") -> None:
        self._connection = connection
        self._result: ResultCursor | None = None
        self._is_closed = False
        self._rowcount = -1
        self.arraysize: int = 1

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
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    @property
    def connection(self) -> "Connection":
        return self._connection

    @property
    def description(self) -> Optional[list[tuple]]:
        if self._result is None or not self._result.columns:
            return None
        return describe_as_description(self._result.columns)

    @property
    def rowcount(self) -> int:
        return self._rowcount

    @property
    def query_id(self) -> str | None:
        return self._result.query_id if self._result is not None else None

    @property
    def update_type(self) -> str | None:
        return self._result.session.update_type if self._result is not None else None

    def execute(self, command: str, params: Mapping[str, Any] | None = None) -> Self:
        """
        Execute a statement with ``@name`` / ``:name`` placeholders.

        Engine errors that are already known when the first envelopes arrive
        are raised here rather than on the first fetch.
        """
        if self._is_closed:
            raise InterfaceError("Cursor is closed")
        if self._result is not None:
            self._result.close()
            self._result = None
        self._rowcount = -1

        result = self._connection.execute(command, params)
        self._result = result
        result.session.raise_for_error()
        return self

    def executemany(self, command: str, seq_of_params: list[Mapping[str, Any]]) -> Self:
        for params in seq_of_params:
            self.execute(command, params)
        return self

    def fetchone(self) -> tuple[Any, ...] | None:
        result = self._require_result()
        if not result.advance():
            self._finish(result)
            return None
        return tuple(None if value is SQL_NULL else value for value in result.values())

    def fetchmany(self, size: int | None = None) -> list[tuple[Any, ...]]:
        if size is None:
            size = self.arraysize
        rows = []
        for _ in range(size):
            row = self.fetchone()
            if row is None:
                break
            rows.append(row)
        return rows

    def fetchall(self) -> list[tuple[Any, ...]]:
        return list(self)

    def fetch_pandas_all(self, **kwargs: Any) -> "pd.DataFrame":
        """
        Fetch all remaining rows as a pandas DataFrame.

        Returns:
            pandas.DataFrame: Remaining rows, with the result's column names.
        """
        import pandas as pd

        result = self._require_result()
        columns = [column.name for column in result.columns]
        return pd.DataFrame.from_records(self.fetchall(), columns=columns, **kwargs)

    def setinputsizes(self, sizes: Any) -> None:
        pass

    def setoutputsize(self, size: Any, column: Any = None) -> None:
        pass

    def close(self) -> bool:
        if self._is_closed:
            return False
        self._is_closed = True
        if self._result is not None:
            self._result.close()
        return True

    def is_closed(self) -> bool:
        return self._is_closed

    def _require_result(self) -> ResultCursor:
        if self._is_closed:
            raise InterfaceError("Cursor is closed")
        if self._result is None:
            raise ProgrammingError("No open result set")
        return self._result

    def _finish(self, result: ResultCursor) -> None:
        update_count = result.session.update_count
        self._rowcount = update_count if update_count is not None else result.rows_read
