"""Shared state and utilities for the emulated coordinator.

This module contains:
- ServerError exception class
- Environment-driven defaults for the database file and page size
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_PAGE_SIZE = 1000


@dataclass
class ServerError(Exception):
    """Exception raised for request errors with an HTTP status code and error name."""

    status_code: int
    error_name: str
    message: str


def db_path_from_env() -> str:
    # Use TRINODUCK_DB_PATH for persistence, or in-memory by default
    return os.getenv("TRINODUCK_DB_PATH", ":memory:")


def page_size_from_env() -> int:
    try:
        page_size = int(os.getenv("TRINODUCK_PAGE_SIZE", str(DEFAULT_PAGE_SIZE)))
    except ValueError:
        return DEFAULT_PAGE_SIZE
    return page_size if page_size > 0 else DEFAULT_PAGE_SIZE
