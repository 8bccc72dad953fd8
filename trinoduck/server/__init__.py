"""Emulated coordinator - the statement protocol backed by DuckDB.

Modules:
    server: Application factory and CLI entry point
    routes: Statement protocol route definitions
    handlers: HTTP request handlers
    engine: DuckDB execution with SQL transpiled by sqlglot
    statement_manager: Statement storage and result paging
    types: Engine type names and wire formatting of values
    middleware: HTTP middleware (error handling, user validation)
    shared: Shared utilities (ServerError, environment defaults)
"""

from .engine import DuckDBEngine, ExecutionFailure, ExecutionResult
from .middleware import ErrorHandlingMiddleware, UserValidationMiddleware
from .routes import get_statement_routes
from .server import app, create_app
from .shared import ServerError
from .statement_manager import StatementManager, StatementResult

__all__ = [
    # Application
    "app",
    "create_app",
    # Routes
    "get_statement_routes",
    # Middleware
    "ErrorHandlingMiddleware",
    "UserValidationMiddleware",
    # Execution and state
    "DuckDBEngine",
    "ExecutionFailure",
    "ExecutionResult",
    "StatementManager",
    "StatementResult",
    # Shared
    "ServerError",
]
