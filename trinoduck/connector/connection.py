from __future__ import annotations

import weakref
from enum import Enum
from types import TracebackType
from typing import TYPE_CHECKING, Any, Mapping, Self

import httpx
import structlog

from ..client.envelope import QueryRequest
from ..client.events import EventListener
from ..client.retry import RetryPolicy
from ..client.session import StatementSession
from ..client.transport import HttpTransport
from ..errors import EngineError, Error, OperationalError, StateError, TransportError
from .config import ConnectionConfig
from .params import substitute_parameters
from .result import ResultCursor

if TYPE_CHECKING:
    from .cursor import Cursor

logger = structlog.get_logger(__name__)

USER_AGENT = "trinoduck"
PROBE_SQL = "SELECT 1"


class ConnectionState(Enum):
    CLOSED = "closed"
    OPEN = "open"


class Transaction:
    """Transaction handle for engines without transactional semantics.

    Commit and rollback are accepted and do nothing.
    """

    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @property
    def connection(self) -> Connection:
        return self._connection

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass


class Connection:
    """A connection to a coordinator.

    Holds an immutable :class:`ConnectionConfig` and one HTTP transport. Each
    executed statement gets its own :class:`StatementSession`, so several
    results can be read from the same connection.

    Args:
        config: Connection settings.
        retry_policy: Backoff policy for continuation fetches.
        client: An ``httpx.Client`` to send requests through instead of a
            private one, e.g. a Starlette ``TestClient``.
        listeners: Callables receiving the session events of every query.
    """

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        retry_policy: RetryPolicy | None = None,
        client: httpx.Client | None = None,
        listeners: list[EventListener] | None = None,
    ) -> None:
        self._config = config or ConnectionConfig()
        self._retry_policy = retry_policy or RetryPolicy()
        self._client = client
        self._listeners = list(listeners or [])
        self._transport: HttpTransport | None = None
        self._state = ConnectionState.CLOSED
        self._session_token: str | None = None
        self._sessions: weakref.WeakSet[StatementSession] = weakref.WeakSet()

    def __enter__(self) -> Self:
        if self._state is ConnectionState.CLOSED:
            self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def session_token(self) -> str | None:
        return self._session_token

    @property
    def database(self) -> str:
        return self._config.catalog

    @property
    def schema(self) -> str:
        return self._config.schema

    @property
    def data_source(self) -> str:
        return self._config.server_url

    @property
    def server_version(self) -> str:
        from .. import __version__

        return f"{USER_AGENT} {__version__}"

    def open(self) -> None:
        """Open the connection by running a probe query.

        Raises:
            StateError: If the connection is already open.
            TransportError: If the coordinator could not be reached.
            EngineError: If the coordinator rejected the probe query.
        """
        if self._state is ConnectionState.OPEN:
            raise StateError("Connection is already open")

        transport = HttpTransport(
            self._config.server_url,
            headers={"User-Agent": USER_AGENT},
            timeout=float(self._config.timeout),
            client=self._client,
        )
        session = self._new_session(transport)
        try:
            session.submit(self._request(PROBE_SQL))
            while session.next_row() is not None:
                pass
        except TransportError as e:
            transport.close()
            raise TransportError(
                f"Failed to open connection to {self._config.server_url}: {e.message}",
                status_code=e.status_code,
                body=e.body,
            ) from e
        except EngineError as e:
            transport.close()
            raise EngineError(
                e.error_type,
                f"Failed to open connection to {self._config.server_url}: {e.message}",
                error_name=e.error_name,
                error_code=e.error_code,
                query_id=e.query_id,
            ) from e
        except Error as e:
            transport.close()
            raise OperationalError(
                f"Failed to open connection to {self._config.server_url}: {e}"
            ) from e

        self._transport = transport
        self._session_token = session.query_id
        self._state = ConnectionState.OPEN
        logger.debug(
            "connection_opened",
            server_url=self._config.server_url,
            user=self._config.user,
            session_token=self._session_token,
        )

    def close(self) -> None:
        """Close the connection. Never touches the network; safe to call twice.

        Results still being read fail with :class:`StateError` on their next
        advance.
        """
        if self._state is ConnectionState.CLOSED:
            return
        for session in list(self._sessions):
            session.abandon(StateError("Connection was closed"))
        self._sessions.clear()
        self._session_token = None
        self._state = ConnectionState.CLOSED
        if self._transport is not None:
            self._transport.close()
            self._transport = None
        logger.debug("connection_closed", server_url=self._config.server_url)

    def is_closed(self) -> bool:
        return self._state is ConnectionState.CLOSED

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> ResultCursor:
        """Submit a query and return a cursor positioned before the first row.

        Column metadata is available on return. Engine errors surface on the
        first :meth:`ResultCursor.advance`.
        """
        transport = self._require_open()
        session = self._new_session(transport)
        session.submit(self._request(substitute_parameters(sql, params)))
        session.wait_for_columns()
        return ResultCursor(session)

    def execute_scalar(self, sql: str, params: Mapping[str, Any] | None = None) -> Any:
        """Return the first cell of the first row, or None if there is no row."""
        with self.execute(sql, params) as result:
            if result.advance() and result.column_count > 0:
                return result.cell_value(0)
            return None

    def execute_non_query(self, sql: str, params: Mapping[str, Any] | None = None) -> int:
        """Run a statement to completion and return the number of rows it produced."""
        rows = 0
        with self.execute(sql, params) as result:
            while result.advance():
                rows += 1
        return rows

    def cursor(self) -> Cursor:
        from .cursor import Cursor

        self._require_open()
        return Cursor(self)

    def begin(self) -> Transaction:
        self._require_open()
        return Transaction(self)

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass

    def use_catalog(self, catalog: str) -> None:
        """Set the catalog used by later queries."""
        self._require_open()
        self._config = self._config.replace(catalog=catalog or "")

    def use_schema(self, schema: str) -> None:
        """Set the schema used by later queries."""
        self._require_open()
        self._config = self._config.replace(schema=schema or "")

    def _request(self, sql: str) -> QueryRequest:
        config = self._config
        return QueryRequest(
            sql=sql,
            user=config.user,
            catalog=config.catalog or None,
            schema=config.schema or None,
            password=config.password or None,
            timeout=float(config.timeout),
        )

    def _new_session(self, transport: HttpTransport) -> StatementSession:
        session = StatementSession(transport, retry_policy=self._retry_policy, listeners=self._listeners)
        self._sessions.add(session)
        return session

    def _require_open(self) -> HttpTransport:
        if self._state is not ConnectionState.OPEN or self._transport is None:
            raise StateError("Connection is not open")
        return self._transport


def connect(
    connection_string: str | None = None,
    *,
    retry_policy: RetryPolicy | None = None,
    client: httpx.Client | None = None,
    listeners: list[EventListener] | None = None,
    **fields: Any,
) -> Connection:
    """Create and open a connection.

    Settings come from a ``Host=...;Port=...;`` connection string, then from
    keyword fields, which win over the string.

    Example::

        with connect("Host=localhost;Port=8080;User=alice") as conn:
            print(conn.execute_scalar("SELECT 1"))
    """
    config = ConnectionConfig.parse(connection_string or "")
    server = fields.pop("server", None)
    if server:
        config = config.with_server(server)
    if fields:
        config = config.with_values(fields)
    conn = Connection(config, retry_policy=retry_policy, client=client, listeners=listeners)
    conn.open()
    return conn
