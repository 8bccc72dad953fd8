import threading
from time import sleep
from typing import Any, Callable, Iterator

import httpx
import pytest
import uvicorn
from starlette.applications import Starlette
from starlette.testclient import TestClient

from trinoduck.client import HttpTransport, RetryPolicy, StatementSession
from trinoduck.connector import Connection, ConnectionConfig
from trinoduck.server import create_app

BASE_URL = "http://coordinator:8080"

FAST_RETRY = RetryPolicy(initial_delay=0)


def page_uri(query_id: str, token: int) -> str:
    return f"{BASE_URL}/v1/statement/executing/{query_id}/{token}"


def envelope(
    query_id: str = "q1",
    next_uri: str | None = None,
    columns: list[tuple[str, str]] | None = None,
    data: list[list[Any]] | None = None,
    error: dict[str, Any] | None = None,
    state: str = "RUNNING",
    **extra: Any,
) -> dict[str, Any]:
    """Build a statement reply the way a coordinator sends it."""
    doc: dict[str, Any] = {"id": query_id, "stats": {"state": state}}
    if next_uri is not None:
        doc["nextUri"] = next_uri
    if columns is not None:
        doc["columns"] = [{"name": n, "type": t} for n, t in columns]
    if data is not None:
        doc["data"] = data
    if error is not None:
        doc["error"] = error
    doc.update(extra)
    return doc


class ScriptedCoordinator:
    """Answers statement requests from a fixed script of replies.

    DELETE requests are always answered with 204 and do not consume the
    script. Requests beyond the end of the script get a 500.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._replies: list[Callable[[httpx.Request], httpx.Response]] = []

    def reply(
        self,
        doc: dict[str, Any] | None = None,
        status_code: int = 200,
        text: str | None = None,
    ) -> "ScriptedCoordinator":
        if text is not None:
            self._replies.append(lambda request: httpx.Response(status_code, text=text))
        else:
            self._replies.append(lambda request: httpx.Response(status_code, json=doc))
        return self

    def fail_with(
        self, error_class: type[httpx.TransportError], message: str = "boom"
    ) -> "ScriptedCoordinator":
        def _raise(request: httpx.Request) -> httpx.Response:
            raise error_class(message, request=request)

        self._replies.append(_raise)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "DELETE":
            return httpx.Response(204)
        if not self._replies:
            return httpx.Response(500, text="script exhausted")
        return self._replies.pop(0)(request)

    def methods(self) -> list[str]:
        return [r.method for r in self.requests]

    def count(self, method: str) -> int:
        return sum(1 for r in self.requests if r.method == method)

    @property
    def remaining(self) -> int:
        return len(self._replies)


@pytest.fixture
def coordinator() -> ScriptedCoordinator:
    return ScriptedCoordinator()


@pytest.fixture
def http_client(coordinator: ScriptedCoordinator) -> Iterator[httpx.Client]:
    with httpx.Client(transport=httpx.MockTransport(coordinator.handler)) as client:
        yield client


@pytest.fixture
def transport(http_client: httpx.Client) -> Iterator[HttpTransport]:
    with HttpTransport(BASE_URL, client=http_client) as transport:
        yield transport


@pytest.fixture
def make_session(transport: HttpTransport) -> Callable[..., StatementSession]:
    def _make(**kwargs: Any) -> StatementSession:
        kwargs.setdefault("retry_policy", FAST_RETRY)
        return StatementSession(transport, **kwargs)

    return _make


@pytest.fixture
def scripted_connection(http_client: httpx.Client) -> Callable[..., Connection]:
    """Build an unopened connection that talks to the scripted coordinator."""

    def _make(**fields: Any) -> Connection:
        config = ConnectionConfig(host="coordinator", port=8080).replace(**fields)
        return Connection(config, retry_policy=FAST_RETRY, client=http_client)

    return _make


@pytest.fixture
def app() -> Starlette:
    """An emulated coordinator with small pages and a private database."""
    return create_app(page_size=2, db_file=":memory:")


@pytest.fixture
def test_client(app: Starlette) -> Iterator[TestClient]:
    with TestClient(app) as client:
        yield client


@pytest.fixture
def connection(test_client: TestClient) -> Iterator[Connection]:
    """An open connection to the in-process emulated coordinator."""
    config = ConnectionConfig(host="testserver", port=80, user="tester")
    conn = Connection(config, retry_policy=FAST_RETRY, client=test_client)
    conn.open()
    yield conn
    conn.close()


@pytest.fixture(scope="session")
def server(unused_tcp_port_factory: Callable[[], int]) -> Iterator[dict]:
    """Start an emulated coordinator for the session and provide connection details."""
    port = unused_tcp_port_factory()
    app = create_app(page_size=3, db_file=":memory:")
    config = uvicorn.Config(app, port=port, log_level="error")
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, name="Server", daemon=True)

    thread.start()

    # Wait until the server is fully started
    while not server.started:
        sleep(0.1)

    # Provide connection details
    yield {
        "host": "127.0.0.1",
        "port": port,
        "user": "smoke",
    }

    # Graceful shutdown
    server.should_exit = True
    thread.join()
