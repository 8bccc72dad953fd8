from .config import ConnectionConfig
from .connection import Connection, ConnectionState, Transaction, connect
from .cursor import Cursor
from .interfaces import DataConnection, TabularReader
from .params import substitute_parameters
from .result import ResultCursor
from .rowtype import ColumnInfo, describe_as_schema_table

__all__ = [
    "ColumnInfo",
    "Connection",
    "ConnectionConfig",
    "ConnectionState",
    "Cursor",
    "DataConnection",
    "ResultCursor",
    "TabularReader",
    "Transaction",
    "connect",
    "describe_as_schema_table",
    "substitute_parameters",
]
