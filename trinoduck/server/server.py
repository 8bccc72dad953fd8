import argparse
import logging

import structlog
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from uvicorn import run

from .engine import DuckDBEngine
from .middleware import ErrorHandlingMiddleware, UserValidationMiddleware
from .routes import get_statement_routes
from .shared import db_path_from_env, page_size_from_env
from .statement_manager import StatementManager

logger = structlog.get_logger(__name__)


async def info(request: Request) -> JSONResponse:
    """Report coordinator information, as ``GET /v1/info`` does."""
    return JSONResponse(
        {
            "nodeVersion": {"version": "trinoduck"},
            "environment": "trinoduck",
            "coordinator": True,
            "starting": False,
        }
    )


async def fallback_route(request: Request) -> JSONResponse:
    """Fallback route to log unmatched requests."""
    logger.info("unmatched_request", method=request.method, url=str(request.url))
    return JSONResponse({"message": "Route not found."}, status_code=404)


def create_app(
    page_size: int | None = None,
    db_file: str | None = None,
    debug: bool = False,
) -> Starlette:
    """Create an emulated coordinator application.

    Args:
        page_size: Rows per result page. Defaults to ``TRINODUCK_PAGE_SIZE``.
        db_file: DuckDB database file. Defaults to ``TRINODUCK_DB_PATH``.
        debug: Starlette debug mode.
    """
    routes = [
        *get_statement_routes(),
        Route("/v1/info", info, methods=["GET"]),
        Route("/{path:path}", fallback_route),
    ]
    # Outermost first.
    middleware = [
        Middleware(ErrorHandlingMiddleware),
        Middleware(UserValidationMiddleware),
    ]
    app = Starlette(debug=debug, routes=routes, middleware=middleware)
    app.state.engine = DuckDBEngine(db_file or db_path_from_env())
    app.state.statement_manager = StatementManager()
    app.state.page_size = page_size or page_size_from_env()
    return app


app = create_app()


# CLI Entry Point
def main() -> None:
    parser = argparse.ArgumentParser(description="Run the emulated coordinator.")

    parser.add_argument(
        "--host", type=str, default="127.0.0.1", help="Host to run the server on (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", type=int, default=8080, help="Port to run the server on (default: 8080)"
    )

    parser.add_argument(
        "--page-size",
        type=int,
        default=None,
        help="Rows per result page (default: TRINODUCK_PAGE_SIZE or 1000)",
    )

    parser.add_argument(
        "--debug", action="store_true", help="Enable debug mode (default: False)"
    )

    args = parser.parse_args()

    level = logging.DEBUG if args.debug else logging.INFO
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))

    server_app = create_app(page_size=args.page_size, debug=args.debug)

    # Run the server with the provided arguments
    run(server_app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
