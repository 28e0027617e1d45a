"""Custom exception handlers for FastAPI application.

Registers global handlers that turn domain exceptions into JSON responses of
the shape {"detail": <human message>, "code": <machine-readable kind>}. The
frontend switches on "code" to pick its own wording, so keep codes stable.

Starlette picks the handler by walking the exception's MRO, so the specific
FileTooLargeError handler wins over the generic ValidationError one.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from mushee.domain.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DomainException,
    DuplicateEntityException,
    EntityNotFoundException,
    FileTooLargeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Starlette renamed these constants; the numeric codes are stable
HTTP_413_CONTENT_TOO_LARGE = 413
HTTP_422_UNPROCESSABLE = 422


def _error_response(
    status_code: int, exc: DomainException, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.error_code},
        headers=headers,
    )


# Hey future me - pydantic's exc.errors() can contain raw bytes (e.g. a multipart body),
# which JSONResponse can't serialize. Decode them before building the response.
def _sanitize_validation_errors(
    errors: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Sanitize validation errors by converting bytes to strings."""

    def _sanitize_value(value: Any) -> Any:
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        if isinstance(value, dict):
            return {k: _sanitize_value(v) for k, v in value.items()}
        if isinstance(value, list | tuple):
            return [_sanitize_value(item) for item in value]
        return value

    return [_sanitize_value(error) for error in errors]


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers for domain and validation exceptions.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(FileTooLargeError)
    async def file_too_large_handler(
        request: Request, exc: FileTooLargeError
    ) -> JSONResponse:
        """Handle oversized uploads with 413 Content Too Large."""
        logger.warning(
            "Upload too large at %s: %d > %d bytes",
            request.url.path,
            exc.size_bytes,
            exc.limit_bytes,
            extra={"path": request.url.path, "size_bytes": exc.size_bytes},
        )
        return _error_response(HTTP_413_CONTENT_TOO_LARGE, exc)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Handle validation errors (incl. file format / MusicXML) with 422."""
        logger.warning(
            "Validation error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message, "code": exc.error_code},
        )
        return _error_response(HTTP_422_UNPROCESSABLE, exc)

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_exception_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        """Handle entity not found exceptions with 404 Not Found."""
        logger.info(
            "Entity not found at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
            extra={
                "path": request.url.path,
                "entity_type": exc.entity_type,
                "entity_id": str(exc.entity_id),
            },
        )
        return _error_response(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(DuplicateEntityException)
    async def duplicate_entity_exception_handler(
        request: Request, exc: DuplicateEntityException
    ) -> JSONResponse:
        """Handle duplicates (e.g. song already in library) with 409 Conflict."""
        logger.info(
            "Duplicate entity at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
            extra={
                "path": request.url.path,
                "entity_type": exc.entity_type,
                "entity_id": str(exc.entity_id),
            },
        )
        return _error_response(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        """Handle authentication errors with 401 Unauthorized."""
        logger.warning(
            "Authentication error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return _error_response(
            status.HTTP_401_UNAUTHORIZED, exc, headers={"WWW-Authenticate": "Bearer"}
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Handle configuration errors with 503 Service Unavailable."""
        logger.error(
            "Configuration error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors (bad query params, missing file) with 422."""
        sanitized_errors = _sanitize_validation_errors(list(exc.errors()))
        logger.warning(
            "Request validation error at %s: %s",
            request.url.path,
            sanitized_errors,
            extra={"path": request.url.path, "errors": sanitized_errors},
        )
        return JSONResponse(
            status_code=HTTP_422_UNPROCESSABLE,
            content={"detail": sanitized_errors, "code": "INVALID_PARAMETERS"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle HTTP exceptions with proper logging."""
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "HTTP error %d at %s: %s",
            exc.status_code,
            request.url.path,
            exc.detail,
            extra={"path": request.url.path, "status_code": exc.status_code},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers,
        )

    # Hey future me - SQLite under concurrent uploads can report "database is locked".
    # That's transient: answer 503 + Retry-After so the client can retry. Every other
    # OperationalError is a real failure and stays a 500.
    @app.exception_handler(OperationalError)
    async def database_operational_error_handler(
        request: Request, exc: OperationalError
    ) -> JSONResponse:
        """Handle SQLAlchemy OperationalError."""
        error_msg = str(exc).lower()
        if "locked" in error_msg or "busy" in error_msg:
            logger.warning(
                "Database busy at %s",
                request.url.path,
                extra={"path": request.url.path, "error": str(exc)[:200]},
            )
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"detail": "Database is busy, please retry", "code": "DATABASE_BUSY"},
                headers={"Retry-After": "3"},
            )

        logger.error(
            "Database error at %s: %s",
            request.url.path,
            exc,
            exc_info=exc,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "code": "INTERNAL_ERROR"},
        )
