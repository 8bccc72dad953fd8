"""Statement session: drives one query from submission to completion.

A session owns the protocol state for exactly one statement. It submits the
SQL, parses every reply into an :class:`Envelope`, hands out the rows of the
current batch one at a time and follows ``nextUri`` links until the
coordinator stops issuing them. Failures are captured once and re-raised on
every later pull.

State transitions::

    IDLE --submit--> AWAITING_FIRST_ENVELOPE --parsed--> STREAMING
    STREAMING --batch empty, link present--> STREAMING (one GET)
    STREAMING --batch empty, no link--> EXHAUSTED
    any --error descriptor / retries spent / cancel--> FAILED
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any

import structlog

from ..errors import (
    EngineError,
    Error,
    ProtocolError,
    QueryCancelled,
    StateError,
    TransportError,
    TransportTimeout,
)
from . import events
from .envelope import Column, Envelope, QueryRequest
from .events import EventEmitter, EventListener
from .retry import RetryPolicy
from .transport import HttpTransport

logger = structlog.get_logger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    AWAITING_FIRST_ENVELOPE = "awaiting_first_envelope"
    STREAMING = "streaming"
    EXHAUSTED = "exhausted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.EXHAUSTED, SessionState.FAILED)


class StatementSession:
    """Protocol state machine for a single statement.

    Not safe for concurrent pulls; only :meth:`cancel` may be called from
    another thread.

    Args:
        transport: Transport used for every HTTP call of this query.
        retry_policy: Backoff policy for continuation fetches.
        listeners: Callables receiving every :class:`~.events.SessionEvent`.
    """

    def __init__(
        self,
        transport: HttpTransport,
        retry_policy: RetryPolicy | None = None,
        listeners: list[EventListener] | None = None,
    ) -> None:
        self._transport = transport
        self._retry_policy = retry_policy or RetryPolicy()
        self._events = EventEmitter(listeners)
        self._lock = threading.Lock()
        self._cancelled = threading.Event()

        self._state = SessionState.IDLE
        self._request: QueryRequest | None = None
        self._headers: dict[str, str] = {}
        self._error: Error | None = None

        self._query_id: str | None = None
        self._columns: list[Column] | None = None
        self._stats: dict[str, Any] = {}
        self._update_type: str | None = None
        self._update_count: int | None = None

        self._batch: list[list[Any]] = []
        self._row_index = 0
        self._next_uri: str | None = None
        self._inflight_uri: str | None = None

        self._envelopes_received = 0
        self._rows_delivered = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def request(self) -> QueryRequest | None:
        return self._request

    @property
    def query_id(self) -> str | None:
        return self._query_id

    @property
    def columns(self) -> list[Column] | None:
        return self._columns

    @property
    def stats(self) -> dict[str, Any]:
        return self._stats

    @property
    def update_type(self) -> str | None:
        return self._update_type

    @property
    def update_count(self) -> int | None:
        return self._update_count

    @property
    def error(self) -> Error | None:
        return self._error

    @property
    def envelopes_received(self) -> int:
        return self._envelopes_received

    @property
    def rows_delivered(self) -> int:
        return self._rows_delivered

    def subscribe(self, listener: EventListener) -> None:
        self._events.subscribe(listener)

    def submit(self, request: QueryRequest) -> None:
        """Send the statement and parse the first reply.

        Submission is never retried. A failure is recorded and the session
        moves to FAILED; it surfaces on the next :meth:`next_row`.

        Raises:
            StateError: If the session was already submitted.
        """
        with self._lock:
            if self._state is not SessionState.IDLE:
                raise StateError(f"Cannot submit a statement in state {self._state.value}")
            self._state = SessionState.AWAITING_FIRST_ENVELOPE

        self._request = request
        self._headers = request.http_headers()
        self._events.emit(events.SUBMITTED, sql_length=len(request.sql), user=request.user)

        try:
            raw = self._transport.submit(request.sql, headers=self._headers, timeout=request.timeout)
            envelope = Envelope.parse(raw)
        except TransportTimeout as e:
            self._fail(QueryCancelled(f"Submission abandoned after timeout: {e.message}"))
            return
        except (TransportError, ProtocolError, StateError) as e:
            self._fail(e)
            return

        if self._cancelled.is_set():
            return
        self._accept(envelope)

    def next_row(self) -> list[Any] | None:
        """Return the next raw row, or None once the result is exhausted.

        Follows continuation links as needed. Empty interim pages are skipped
        in a loop, so any number of them is handled without recursion.

        Raises:
            StateError: If the statement was never submitted.
            Error: The captured failure, every time, once the session FAILED.
        """
        while True:
            state = self._state
            if state is SessionState.FAILED:
                assert self._error is not None
                raise self._error
            if state is SessionState.EXHAUSTED:
                return None
            if state is not SessionState.STREAMING:
                raise StateError(f"No statement is streaming (state {state.value})")

            if self._row_index < len(self._batch):
                row = self._batch[self._row_index]
                self._row_index += 1
                if self._columns is not None and len(row) != len(self._columns):
                    self._fail(
                        ProtocolError(
                            f"Row has {len(row)} cells but the result has "
                            f"{len(self._columns)} columns"
                        )
                    )
                    continue
                self._rows_delivered += 1
                return row

            if self._next_uri is None:
                self._finish()
                return None

            self._fetch_next()

    def wait_for_columns(self) -> list[Column] | None:
        """Pull interim envelopes until column descriptors are known.

        Stops early when the session ends or rows are already buffered. No
        row is consumed.
        """
        while (
            self._columns is None
            and self._state is SessionState.STREAMING
            and self._row_index >= len(self._batch)
            and self._next_uri is not None
        ):
            self._fetch_next()
        return self._columns

    def raise_for_error(self) -> None:
        if self._state is SessionState.FAILED and self._error is not None:
            raise self._error

    def cancel(self) -> None:
        """Abandon the query.

        Asks the coordinator to stop via the pending continuation link, then
        moves to FAILED with :class:`QueryCancelled`. Safe to call from
        another thread and in any state; a no-op once terminal.
        """
        with self._lock:
            if self._state.is_terminal:
                return
            link = self._next_uri or self._inflight_uri
            self._cancelled.set()

        if link is not None:
            try:
                self._transport.cancel(link, headers=self._headers)
            except (TransportError, StateError) as e:
                logger.warning("cancel_request_failed", query_id=self._query_id, error=str(e))

        self._events.emit(events.CANCELLED, self._query_id)
        self._fail(QueryCancelled("Query was cancelled"))

    def close(self) -> None:
        """Release the session, cancelling a query that is still running."""
        if self._state.is_terminal:
            return
        if self._state is SessionState.IDLE:
            with self._lock:
                self._state = SessionState.EXHAUSTED
            return
        pending = self._next_uri is not None or self._inflight_uri is not None
        if self._state is SessionState.STREAMING and not pending:
            # Every envelope was received; nothing is left running on the coordinator.
            self._finish()
            return
        self.cancel()

    def abandon(self, error: Error) -> None:
        """Fail the session with ``error`` without contacting the coordinator."""
        with self._lock:
            if self._state.is_terminal:
                return
            self._cancelled.set()
        self._fail(error)

    def _fetch_next(self) -> None:
        link = self._next_uri
        assert link is not None
        self._next_uri = None
        self._inflight_uri = link
        try:
            raw = self._fetch_with_retry(link)
            envelope = Envelope.parse(raw)
        except (TransportError, ProtocolError, QueryCancelled, StateError) as e:
            self._fail(e)
            return
        finally:
            self._inflight_uri = None

        if self._cancelled.is_set():
            # Reply to an abandoned fetch; the session is already FAILED.
            return
        self._accept(envelope)

    def _fetch_with_retry(self, link: str) -> bytes:
        assert self._request is not None
        delays = self._retry_policy.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._transport.fetch(link, headers=self._headers, timeout=self._request.timeout)
            except TransportTimeout as e:
                raise QueryCancelled(f"Fetch abandoned after timeout: {e.message}") from e
            except TransportError as e:
                if not self._retry_policy.is_retryable(e):
                    raise
                delay = next(delays, None)
                if delay is None:
                    raise TransportError(
                        f"Giving up after {attempt} attempts: {e.message}",
                        status_code=e.status_code,
                        body=e.body,
                    ) from e
                self._events.emit(
                    events.RETRY_ATTEMPTED,
                    self._query_id,
                    attempt=attempt,
                    max_attempts=self._retry_policy.max_attempts,
                    delay=delay,
                    status_code=e.status_code,
                    error=e.message,
                )
                if self._cancelled.wait(delay):
                    raise QueryCancelled("Query was cancelled while waiting to retry") from e

    def _accept(self, envelope: Envelope) -> None:
        self._envelopes_received += 1
        if envelope.query_id:
            self._query_id = envelope.query_id
        if envelope.stats:
            self._stats = envelope.stats
        if envelope.update_type is not None:
            self._update_type = envelope.update_type
        if envelope.update_count is not None:
            self._update_count = envelope.update_count

        self._events.emit(
            events.ENVELOPE_RECEIVED,
            self._query_id,
            sequence=self._envelopes_received,
            rows=len(envelope.data),
            has_next=envelope.next_uri is not None,
            engine_state=envelope.state,
        )

        # An error descriptor wins over any rows or columns in the same reply.
        if envelope.error is not None:
            self._fail(EngineError.from_descriptor(envelope.error, self._query_id))
            return

        if self._columns is None and envelope.columns is not None:
            self._columns = list(envelope.columns)

        if envelope.data and self._columns is None:
            self._fail(ProtocolError("Received rows before any column descriptors"))
            return

        with self._lock:
            if self._state.is_terminal:
                return
            self._batch = envelope.data
            self._row_index = 0
            self._next_uri = envelope.next_uri
            self._state = SessionState.STREAMING

    def _finish(self) -> None:
        with self._lock:
            if self._state.is_terminal:
                return
            self._state = SessionState.EXHAUSTED
            self._batch = []
            self._row_index = 0
        self._events.emit(events.EXHAUSTED, self._query_id, rows=self._rows_delivered)

    def _fail(self, error: Error) -> None:
        with self._lock:
            if self._state.is_terminal:
                return
            self._state = SessionState.FAILED
            self._error = error
            self._batch = []
            self._row_index = 0
            self._next_uri = None
        self._events.emit(
            events.ERROR_ENCOUNTERED,
            self._query_id,
            error_kind=type(error).__name__,
            message=str(error),
        )
