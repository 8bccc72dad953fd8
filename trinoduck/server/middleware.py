"""Middleware classes for the emulated coordinator.

This module contains HTTP middleware for:
- Error handling: Converts ServerError exceptions to JSON responses
- User validation: Requires the user header on statement routes
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..client.envelope import HEADER_USER
from .shared import ServerError

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

logger = structlog.get_logger(__name__)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware to handle ServerError exceptions globally.

    Catches ServerError exceptions and converts them to JSON responses
    with the appropriate HTTP status code.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except ServerError as e:
            logger.info(
                "request_rejected",
                method=request.method,
                path=request.url.path,
                status_code=e.status_code,
                error_name=e.error_name,
            )
            return JSONResponse(
                {"errorName": e.error_name, "message": e.message},
                status_code=e.status_code,
            )


class UserValidationMiddleware(BaseHTTPMiddleware):
    """Middleware to require the user header on statement routes.

    The coordinator rejects statement requests that do not name a user.
    """

    PREFIX = "/v1/statement"

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path.startswith(self.PREFIX):
            user = request.headers.get(HEADER_USER, "").strip()
            if not user:
                raise ServerError(
                    status_code=400,
                    error_name="MISSING_USER",
                    message=f"{HEADER_USER} must be set",
                )
            request.state.user = user

        return await call_next(request)
