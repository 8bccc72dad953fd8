"""HTTP request handlers for the statement protocol.

Handlers:
    submit_statement: POST /v1/statement
    get_statement_page: GET /v1/statement/executing/{queryId}/{token}
    cancel_statement: DELETE /v1/statement/executing/{queryId}/{token}
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse, Response

from ..client.envelope import HEADER_CATALOG, HEADER_SCHEMA
from .engine import DuckDBEngine, ExecutionFailure
from .shared import ServerError
from .statement_manager import StatementManager, StatementResult

if TYPE_CHECKING:
    from starlette.requests import Request

logger = structlog.get_logger(__name__)

USER_CANCELED = ExecutionFailure("Query was canceled", "USER_CANCELED", 3)


def _build_stats(stmt: StatementResult, state: str, processed_rows: int) -> dict[str, Any]:
    return {
        "state": state,
        "queued": state == "QUEUED",
        "scheduled": state != "QUEUED",
        "nodes": 1,
        "totalSplits": stmt.get_page_count(),
        "completedSplits": stmt.last_token,
        "processedRows": processed_rows,
        "elapsedTimeMillis": 0,
    }


def _page_uri(request: Request, stmt: StatementResult, token: int) -> str:
    return str(
        request.url_for("statement_page", queryId=stmt.query_id, token=token)
    )


def _info_uri(request: Request, stmt: StatementResult) -> str:
    return f"{str(request.base_url).rstrip('/')}/ui/query.html?{stmt.query_id}"


async def submit_statement(request: Request) -> JSONResponse:
    """Submit a SQL statement for execution.

    POST /v1/statement

    The body is the SQL text. The statement runs to completion before the
    reply, which is always a QUEUED envelope pointing at the first page.
    """
    engine: DuckDBEngine = request.app.state.engine
    statement_manager: StatementManager = request.app.state.statement_manager

    body = await request.body()
    sql = body.decode("utf-8").strip()
    if not sql:
        raise ServerError(status_code=400, error_name="EMPTY_QUERY", message="SQL statement is empty")

    stmt = statement_manager.create_statement(
        sql=sql,
        user=request.state.user,
        catalog=request.headers.get(HEADER_CATALOG),
        schema=request.headers.get(HEADER_SCHEMA),
        page_size=request.app.state.page_size,
    )
    logger.info("statement_submitted", query_id=stmt.query_id, user=stmt.user)

    try:
        result = await run_in_threadpool(engine.execute, sql)
    except ExecutionFailure as e:
        stmt.state = "FAILED"
        stmt.error = e.descriptor()
        logger.info("statement_failed", query_id=stmt.query_id, error_name=e.error_name)
    else:
        stmt.state = "FINISHED"
        stmt.columns = result.columns
        stmt.rows = result.rows
        stmt.update_type = result.update_type
        stmt.update_count = result.update_count
    statement_manager.update_statement(stmt)

    return JSONResponse(
        {
            "id": stmt.query_id,
            "infoUri": _info_uri(request, stmt),
            "nextUri": _page_uri(request, stmt, 1),
            "stats": _build_stats(stmt, "QUEUED", 0),
        }
    )


async def get_statement_page(request: Request) -> JSONResponse:
    """Get one page of a statement's results.

    GET /v1/statement/executing/{queryId}/{token}

    Token ``n`` serves page ``n - 1``. The last page carries no ``nextUri``.
    """
    statement_manager: StatementManager = request.app.state.statement_manager
    query_id = request.path_params["queryId"]
    token = request.path_params["token"]

    stmt = statement_manager.get_statement(query_id)
    if stmt is not None and stmt.state == "CANCELED":
        return _error_envelope(request, stmt, USER_CANCELED.descriptor())

    stmt = statement_manager.advance(query_id, token)
    if stmt is None:
        raise ServerError(
            status_code=404,
            error_name="NOT_FOUND",
            message=f"Query {query_id} has no page {token}",
        )

    if stmt.error is not None:
        return _error_envelope(request, stmt, stmt.error)

    page = token - 1
    data = stmt.get_page(page)
    is_last = token >= stmt.get_page_count()
    processed = min(len(stmt.rows), token * stmt.page_size)

    envelope: dict[str, Any] = {
        "id": stmt.query_id,
        "infoUri": _info_uri(request, stmt),
        "columns": stmt.columns,
        "data": data,
        "stats": _build_stats(stmt, "FINISHED" if is_last else "RUNNING", processed),
    }
    if not is_last:
        envelope["nextUri"] = _page_uri(request, stmt, token + 1)
    if stmt.update_type is not None:
        envelope["updateType"] = stmt.update_type
    if stmt.update_count is not None:
        envelope["updateCount"] = stmt.update_count

    return JSONResponse(envelope)


def _error_envelope(
    request: Request, stmt: StatementResult, error: dict[str, Any]
) -> JSONResponse:
    return JSONResponse(
        {
            "id": stmt.query_id,
            "infoUri": _info_uri(request, stmt),
            "error": error,
            "stats": _build_stats(stmt, "FAILED", 0),
        }
    )


async def cancel_statement(request: Request) -> Response:
    """Cancel a statement.

    DELETE /v1/statement/executing/{queryId}/{token}
    """
    statement_manager: StatementManager = request.app.state.statement_manager
    query_id = request.path_params["queryId"]

    if not statement_manager.cancel_statement(query_id):
        raise ServerError(
            status_code=404,
            error_name="NOT_FOUND",
            message=f"Query {query_id} not found",
        )
    logger.info("statement_canceled", query_id=query_id)
    return Response(status_code=204)
