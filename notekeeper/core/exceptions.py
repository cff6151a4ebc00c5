"""
Application Exceptions

Error taxonomy shared by the services and the HTTP layer. Each class carries a
stable machine-readable ``code``; ``register_exception_handlers`` maps them to
HTTP status codes.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class ValidationError(ApplicationError):
    """Raised when caller-supplied input has the wrong shape."""

    def __init__(self, message: str = "Validation failed") -> None:
        super().__init__(message, code="VAL_VALIDATION_ERROR")


class AuthenticationError(ApplicationError):
    """Raised when the caller identity is missing or malformed."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, code="AUTH_UNAUTHORIZED")


class NotFoundError(ApplicationError):
    """Raised when a resource cannot be found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ExternalServiceError(ApplicationError):
    """Raised when a model endpoint fails and no degraded answer exists."""

    def __init__(self, message: str = "External service error") -> None:
        super().__init__(message, code="SYS_EXTERNAL_SERVICE_ERROR")


class SystemFailure(ApplicationError):
    """Raised when the system cannot complete an operation."""

    def __init__(self, message: str = "System error") -> None:
        super().__init__(message, code="SYS_INTERNAL_ERROR")


EXCEPTION_STATUS_MAP: dict[type[ApplicationError], int] = {
    ValidationError: 400,
    AuthenticationError: 401,
    NotFoundError: 404,
    ExternalServiceError: 502,
    SystemFailure: 500,
}


async def application_error_handler(
    request: Request,
    exc: ApplicationError,
) -> JSONResponse:
    """Convert an ApplicationError into a JSON error body."""
    status_code = EXCEPTION_STATUS_MAP.get(type(exc), 500)

    if status_code >= 500:
        logger.error(
            "%s %s failed: %s (%s)",
            request.method,
            request.url.path,
            exc.message,
            exc.code,
        )
    else:
        logger.info(
            "%s %s rejected: %s (%s)",
            request.method,
            request.url.path,
            exc.message,
            exc.code,
        )

    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "code": exc.code, "message": exc.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the application error handler to a FastAPI app."""
    app.add_exception_handler(
        ApplicationError,
        application_error_handler,  # type: ignore[arg-type]
    )
