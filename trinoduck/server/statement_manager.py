"""Statement management for the emulated coordinator.

This module provides storage and lifecycle management for executed
statements, with LRU eviction for memory management. Results are split
into pages that clients walk through ``nextUri`` tokens.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from threading import Lock
from typing import Any


@dataclass
class StatementResult:
    """Stores the result of a statement execution.

    Attributes:
        query_id: Unique identifier for the statement
        state: Engine state (QUEUED, FINISHED, FAILED, CANCELED)
        sql: The SQL statement text
        user: Value of the user header
        catalog: Catalog context (informational)
        schema: Schema context (informational)
        created_on: Timestamp when statement was created (ms since epoch)
        columns: Column descriptors as ``{"name", "type"}`` dicts
        rows: Result rows, already in wire format
        page_size: Rows per page
        last_token: Highest continuation token served so far
        update_type: Statement kind for DDL/DML
        update_count: Affected rows for DML
        error: Error descriptor (on failure)
    """

    query_id: str
    sql: str
    user: str
    state: str = "QUEUED"
    catalog: str | None = None
    schema: str | None = None
    created_on: int = field(default_factory=lambda: int(time.time() * 1000))

    columns: list[dict[str, Any]] = field(default_factory=list)
    rows: list[list[Any]] = field(default_factory=list)
    page_size: int = 1000
    last_token: int = 0

    update_type: str | None = None
    update_count: int | None = None

    error: dict[str, Any] | None = None

    def get_page_count(self) -> int:
        """Get the number of pages; an empty result still has one page."""
        if not self.rows:
            return 1
        return (len(self.rows) + self.page_size - 1) // self.page_size

    def get_page(self, page: int) -> list[list[Any]]:
        """Get data for a specific page.

        Args:
            page: Zero-indexed page number

        Returns:
            List of rows in the page
        """
        start = page * self.page_size
        end = start + self.page_size
        return self.rows[start:end]

    def accepts_token(self, token: int) -> bool:
        """Whether a continuation token is current.

        The last served token may be fetched again, so that a client can
        retry a request whose reply it never received.
        """
        if token < 1 or token > self.get_page_count():
            return False
        return token in (self.last_token, self.last_token + 1)


class StatementManager:
    """Manages executed statements and their paged results.

    Provides thread-safe storage for statement results with LRU eviction
    to prevent unbounded memory growth.

    Attributes:
        max_statements: Maximum number of statements to retain
    """

    def __init__(self, max_statements: int = 1000) -> None:
        self._statements: dict[str, StatementResult] = {}
        self._order: list[str] = []
        self._max_statements = max_statements
        self._lock = Lock()

    @property
    def max_statements(self) -> int:
        return self._max_statements

    def create_statement(
        self,
        sql: str,
        user: str,
        catalog: str | None = None,
        schema: str | None = None,
        page_size: int = 1000,
    ) -> StatementResult:
        """Create a new queued statement.

        Args:
            sql: The SQL statement text
            user: Submitting user
            catalog: Catalog context
            schema: Schema context
            page_size: Rows per result page

        Returns:
            New StatementResult in QUEUED state
        """
        query_id = f"{time.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:12]}"
        stmt = StatementResult(
            query_id=query_id,
            sql=sql,
            user=user,
            catalog=catalog,
            schema=schema,
            page_size=max(1, page_size),
        )

        with self._lock:
            # Evict oldest if at capacity
            while len(self._statements) >= self._max_statements and self._order:
                oldest = self._order.pop(0)
                self._statements.pop(oldest, None)

            self._statements[query_id] = stmt
            self._order.append(query_id)

        return stmt

    def get_statement(self, query_id: str) -> StatementResult | None:
        with self._lock:
            return self._statements.get(query_id)

    def update_statement(self, stmt: StatementResult) -> None:
        with self._lock:
            self._statements[stmt.query_id] = stmt

    def advance(self, query_id: str, token: int) -> StatementResult | None:
        """Record that a continuation token is being served.

        Returns:
            The statement if the token is current, None if the statement is
            unknown or the token is stale.
        """
        with self._lock:
            stmt = self._statements.get(query_id)
            if stmt is None or not stmt.accepts_token(token):
                return None
            stmt.last_token = token
            return stmt

    def cancel_statement(self, query_id: str) -> bool:
        """Cancel a statement.

        Returns:
            True if the statement was found
        """
        with self._lock:
            stmt = self._statements.get(query_id)
            if stmt is None:
                return False
            if stmt.state in ("QUEUED", "RUNNING", "FINISHED"):
                stmt.state = "CANCELED"
                stmt.rows = []
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._statements)
