"""Exception hierarchy for trinoduck.

The base classes follow PEP 249 so the connector can be used wherever a
DB-API driver is expected. The protocol-specific kinds sit on top of them.
"""

from __future__ import annotations

from typing import Any


class Warning(Exception):  # noqa: A001
    pass


class Error(Exception):
    pass


class InterfaceError(Error):
    pass


class DatabaseError(Error):
    pass


class DataError(DatabaseError):
    pass


class OperationalError(DatabaseError):
    pass


class IntegrityError(DatabaseError):
    pass


class InternalError(DatabaseError):
    pass


class ProgrammingError(DatabaseError):
    pass


class NotSupportedError(DatabaseError):
    pass


class TransportError(OperationalError):
    """A single HTTP call failed, either at the network level or with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and 500 <= self.status_code < 600


class TransportTimeout(TransportError):
    pass


class ProtocolError(InterfaceError):
    """The coordinator replied with something that is not a valid envelope."""


class EngineError(DatabaseError):
    """The coordinator reported an error descriptor for the query."""

    def __init__(
        self,
        error_type: str,
        message: str,
        error_name: str | None = None,
        error_code: int | None = None,
        query_id: str | None = None,
    ) -> None:
        super().__init__(f"{error_type}: {message}")
        self.error_type = error_type
        self.message = message
        self.error_name = error_name
        self.error_code = error_code
        self.query_id = query_id

    @classmethod
    def from_descriptor(
        cls, descriptor: dict[str, Any], query_id: str | None = None
    ) -> EngineError:
        return cls(
            error_type=str(descriptor.get("errorType") or "Unknown"),
            message=str(descriptor.get("message") or "Unknown error"),
            error_name=descriptor.get("errorName"),
            error_code=descriptor.get("errorCode"),
            query_id=query_id,
        )


class DecodeError(DataError):
    """A cell could not be converted to the type its column claims."""

    def __init__(self, value: Any, type_name: str, reason: str | None = None) -> None:
        message = f"Cannot decode {value!r} as {type_name}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.value = value
        self.type_name = type_name


class ColumnNotFound(ProgrammingError, LookupError):
    pass


class NoCurrentRow(ProgrammingError):
    pass


class StateError(InterfaceError):
    """An operation was invoked in a state that does not allow it."""


class QueryCancelled(OperationalError):
    """The query was abandoned by the caller, explicitly or by timeout."""
