"""HTTP middleware for request-scoped logging context."""

import time
import uuid

from fastapi import FastAPI, Request

from attic_import.observability.logging import correlation_scope, get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def setup_observability(app: FastAPI) -> None:
    """Add the correlation ID middleware to a FastAPI application.

    Every log event emitted while serving a request carries the request's
    correlation ID, taken from ``X-Request-ID`` or generated.

    Args:
        app: FastAPI application
    """

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        """Middleware to handle correlation IDs."""
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        start_time = time.time()

        with correlation_scope(correlation_id):
            response = await call_next(request)
            logger.debug(
                "http_request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.time() - start_time) * 1000, 2),
            )

        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response
