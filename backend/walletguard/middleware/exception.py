"""
Global Exception Handlers

Maps policy service errors to HTTP responses. Expected denials never
reach these handlers: endpoints render denied verdicts as 403 bodies.
"""

import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from walletguard.core.config import settings
from walletguard.core.exceptions import (
    ConflictError,
    IntegrityError,
    MalformedOperationError,
    NotFoundError,
)
from walletguard.core.logging import get_logger

logger = get_logger(__name__)


def _error(status_code: int, error_code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_code,
            "message": message,
            "details": details or {},
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Set up global exception handlers for the application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        """Unknown principal or resource."""
        message = exc.args[0] if exc.args else "Not found"
        logger.warning("Lookup failed", error=message, path=request.url.path)
        return _error(status.HTTP_404_NOT_FOUND, "ERR_NOT_FOUND", message)

    @app.exception_handler(MalformedOperationError)
    async def handle_malformed_operation(request: Request, exc: MalformedOperationError) -> JSONResponse:
        """Operations that cannot be evaluated fail closed."""
        logger.warning("Malformed operation", error=str(exc), path=request.url.path)
        return _error(status.HTTP_400_BAD_REQUEST, "ERR_MALFORMED_OPERATION", str(exc))

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError) -> JSONResponse:
        """Optimistic concurrency failure; the caller may re-read and retry."""
        logger.warning("Write conflict", error=str(exc), path=request.url.path)
        return _error(status.HTTP_409_CONFLICT, "ERR_CONFLICT", str(exc))

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.error("Integrity check failed", error=str(exc), path=request.url.path)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "ERR_INTEGRITY", str(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle request validation errors."""
        logger.warning("Request validation error", path=request.url.path)

        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            })

        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "ERR_VALIDATION",
            "Request validation failed",
            {"errors": errors},
        )

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Handle database errors."""
        logger.error("Database error", error=str(exc), path=request.url.path)

        message = "Database error"
        if settings.is_development:
            message = str(exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "ERR_DATABASE", message)

    @app.exception_handler(Exception)
    async def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
        """Handle all unhandled exceptions."""
        logger.error(
            "Unhandled exception",
            error=str(exc),
            traceback=traceback.format_exc(),
            path=request.url.path,
        )

        message = "Internal server error"
        if settings.is_development:
            message = str(exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "ERR_INTERNAL", message)
