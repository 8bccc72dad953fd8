"""Route definitions for the statement protocol.

    POST   /v1/statement - Statement submission
    GET    /v1/statement/executing/{queryId}/{token} - Result pages
    DELETE /v1/statement/executing/{queryId}/{token} - Cancellation
"""

from starlette.routing import Route

from . import handlers


def get_statement_routes() -> list[Route]:
    """Get all statement protocol routes.

    Returns:
        List of Starlette Route objects
    """
    return [
        Route("/v1/statement", handlers.submit_statement, methods=["POST"]),
        Route(
            "/v1/statement/executing/{queryId}/{token:int}",
            handlers.get_statement_page,
            methods=["GET"],
            name="statement_page",
        ),
        Route(
            "/v1/statement/executing/{queryId}/{token:int}",
            handlers.cancel_statement,
            methods=["DELETE"],
        ),
    ]
