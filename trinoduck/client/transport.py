"""HTTP transport for the statement protocol.

The transport only moves bytes: it knows the submission path and turns
failed HTTP calls into :class:`TransportError`, but never looks inside a
response body.
"""

from __future__ import annotations

from types import TracebackType
from typing import Mapping, Self

import httpx
import structlog

from ..errors import StateError, TransportError, TransportTimeout

logger = structlog.get_logger(__name__)

STATEMENT_PATH = "/v1/statement"


class HttpTransport:
    """Issues the submit, continuation and cancel calls for queries.

    Args:
        server_url: Coordinator base URL, e.g. ``http://localhost:8080``.
        headers: Headers sent on every request (user, auth, catalog, ...).
        timeout: Per-request timeout in seconds.
        verify: Whether to verify TLS certificates.
        client: An existing ``httpx.Client`` to use. The transport does not
            close clients it did not create.
    """

    def __init__(
        self,
        server_url: str,
        headers: Mapping[str, str] | None = None,
        timeout: float = 30.0,
        verify: bool = True,
        client: httpx.Client | None = None,
    ) -> None:
        self._server_url = server_url.rstrip("/")
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(verify=verify)
        self._is_closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def server_url(self) -> str:
        return self._server_url

    @property
    def statement_url(self) -> str:
        return f"{self._server_url}{STATEMENT_PATH}"

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    @property
    def timeout(self) -> float:
        return self._timeout

    def submit(
        self,
        sql: str,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> bytes:
        """POST a statement and return the raw response body."""
        return self._send(
            "POST",
            self.statement_url,
            content=sql.encode("utf-8"),
            headers=headers,
            timeout=timeout,
        )

    def fetch(
        self,
        link: str,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> bytes:
        """GET a continuation link and return the raw response body."""
        return self._send("GET", link, headers=headers, timeout=timeout)

    def cancel(self, link: str, headers: Mapping[str, str] | None = None) -> None:
        """DELETE a continuation link, asking the coordinator to stop the query."""
        self._send("DELETE", link, headers=headers)

    def _send(
        self,
        method: str,
        url: str,
        content: bytes | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> bytes:
        if self._is_closed:
            raise StateError("Transport is closed")

        request_headers = {**self._headers, **(headers or {})}
        try:
            response = self._client.request(
                method,
                url,
                content=content,
                headers=request_headers,
                timeout=self._timeout if timeout is None else timeout,
            )
        except httpx.TimeoutException as e:
            raise TransportTimeout(f"{method} {url} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if not response.is_success:
            body = response.text
            logger.debug("http_error", method=method, url=url, status_code=response.status_code)
            raise TransportError(
                f"{method} {url} returned {response.status_code}"
                + (f": {body}" if body else ""),
                status_code=response.status_code,
                body=body,
            )
        return response.content

    def close(self) -> None:
        if self._is_closed:
            return
        self._is_closed = True
        if self._owns_client:
            self._client.close()

    def is_closed(self) -> bool:
        return self._is_closed
