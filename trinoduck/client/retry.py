"""Backoff policy for continuation fetches."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from ..errors import TransportError, TransportTimeout


@dataclass(frozen=True)
class RetryPolicy:
    """Tuneable parameters for retrying a continuation fetch.

    Attributes:
        max_attempts: Total attempts per fetch, the first one included
        initial_delay: Seconds to wait before the first retry
        multiplier: Factor applied to the delay after each retry
    """

    max_attempts: int = 3
    initial_delay: float = 0.1
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must not be negative")

    def delays(self) -> Iterator[float]:
        """Yield the wait before each retry, ``max_attempts - 1`` values."""
        delay = self.initial_delay
        for _ in range(self.max_attempts - 1):
            yield delay
            delay *= self.multiplier

    @staticmethod
    def is_retryable(error: TransportError) -> bool:
        # Timeouts abandon the query instead; 4xx never succeeds on retry.
        if isinstance(error, TransportTimeout):
            return False
        return error.status_code is None or error.is_server_error


NO_RETRY = RetryPolicy(max_attempts=1)
