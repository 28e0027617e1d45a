"""Middleware for observability: request/response logging."""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from mushee.infrastructure.observability.logging import (
    get_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Never dump more than this much of a request body into the logs
_MAX_LOGGED_BODY_CHARS = 1000


# Hey future me - this runs around EVERY request. It sets the correlation ID first so
# that every log line of the upload pipeline carries it, and echoes it back in the
# response header so a user can quote it in a bug report.
# log_request_body only ever logs JSON bodies - score uploads are multipart/binary.
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses."""

    def __init__(self, app: ASGIApp, log_request_body: bool = False) -> None:
        """Initialize middleware.

        Args:
            app: ASGI application
            log_request_body: Whether to log JSON request bodies (debugging only)
        """
        super().__init__(app)
        self.log_request_body = log_request_body

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request and log details.

        Args:
            request: Incoming request
            call_next: Next middleware/handler in chain

        Returns:
            Response from application
        """
        set_correlation_id(request.headers.get(CORRELATION_ID_HEADER))

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        extra = {
            "method": method,
            "path": path,
            "query_params": str(request.query_params),
            "client_ip": client_ip,
        }
        if self.log_request_body and request.headers.get("content-type", "").startswith(
            "application/json"
        ):
            body = await request.body()
            extra["body"] = body.decode("utf-8", errors="replace")[:_MAX_LOGGED_BODY_CHARS]
        logger.info(f"-> {method} {path}", extra=extra)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.exception(
                f"Request failed: {method} {path}",
                extra={
                    "method": method,
                    "path": path,
                    "duration_seconds": duration,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            raise

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            f"<- {method} {path} {response.status_code} ({duration_ms}ms)",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers[CORRELATION_ID_HEADER] = get_correlation_id()
        return response
