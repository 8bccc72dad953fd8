__version__ = "0.1.0"

from .codec import SQL_NULL  # noqa: E402
from .connector import Connection, ConnectionConfig, Cursor, ResultCursor, connect  # noqa: E402
from .errors import (  # noqa: E402
    ColumnNotFound,
    DatabaseError,
    DataError,
    DecodeError,
    EngineError,
    Error,
    IntegrityError,
    InterfaceError,
    InternalError,
    NoCurrentRow,
    NotSupportedError,
    OperationalError,
    ProgrammingError,
    ProtocolError,
    QueryCancelled,
    StateError,
    TransportError,
    TransportTimeout,
    Warning,
)

apilevel = "2.0"
threadsafety = 1
paramstyle = "named"

__all__ = [
    "SQL_NULL",
    "ColumnNotFound",
    "Connection",
    "ConnectionConfig",
    "Cursor",
    "DataError",
    "DatabaseError",
    "DecodeError",
    "EngineError",
    "Error",
    "IntegrityError",
    "InterfaceError",
    "InternalError",
    "NoCurrentRow",
    "NotSupportedError",
    "OperationalError",
    "ProgrammingError",
    "ProtocolError",
    "QueryCancelled",
    "ResultCursor",
    "StateError",
    "TransportError",
    "TransportTimeout",
    "Warning",
    "connect",
]
