from .envelope import Column, Envelope, QueryRequest
from .events import EventEmitter, SessionEvent
from .retry import NO_RETRY, RetryPolicy
from .session import SessionState, StatementSession
from .transport import HttpTransport

__all__ = [
    "Column",
    "Envelope",
    "EventEmitter",
    "HttpTransport",
    "NO_RETRY",
    "QueryRequest",
    "RetryPolicy",
    "SessionEvent",
    "SessionState",
    "StatementSession",
]
