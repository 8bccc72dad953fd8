"""Structured events emitted by a statement session."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)

SUBMITTED = "submitted"
ENVELOPE_RECEIVED = "envelope_received"
RETRY_ATTEMPTED = "retry_attempted"
ERROR_ENCOUNTERED = "error_encountered"
EXHAUSTED = "exhausted"
CANCELLED = "cancelled"

_WARNING_EVENTS = frozenset({RETRY_ATTEMPTED, ERROR_ENCOUNTERED})


@dataclass(frozen=True)
class SessionEvent:
    kind: str
    query_id: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


EventListener = Callable[[SessionEvent], None]


class EventEmitter:
    """Fans session events out to the log and to registered listeners."""

    def __init__(self, listeners: list[EventListener] | None = None) -> None:
        self._listeners: list[EventListener] = list(listeners or [])

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def emit(self, kind: str, query_id: str | None = None, **attributes: Any) -> SessionEvent:
        event = SessionEvent(kind=kind, query_id=query_id, attributes=attributes)
        log = logger.warning if kind in _WARNING_EVENTS else logger.debug
        log(kind, query_id=query_id, **attributes)
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                # Listener failures are logged, never raised into the session.
                logger.exception("event_listener_failed", kind=kind, query_id=query_id)
        return event
