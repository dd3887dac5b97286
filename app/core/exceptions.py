"""
Error kinds, application exceptions and HTTP error handlers.

Services raise ``MailPilotException`` subclasses tagged with an ``ErrorKind``;
the kind is translated to an HTTP status only in the handlers below.
"""
from enum import Enum
from typing import Any, Dict, Optional
from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .logging import get_logger

logger = get_logger(__name__)


class ErrorKind(str, Enum):
    """Closed set of error kinds surfaced by the API."""

    VALIDATION = "validation_error"
    AUTHENTICATION = "authentication_error"
    AUTHORIZATION = "authorization_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_STATE = "invalid_state"
    UPSTREAM = "upstream_error"
    INTERNAL = "internal_error"


ERROR_STATUS_CODES: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UPSTREAM: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class MailPilotException(Exception):
    """Base exception for MailPilot application."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        kind: Optional[ErrorKind] = None,
    ):
        self.message = message
        self.details = details or {}
        if kind is not None:
            self.kind = kind
        super().__init__(self.message)

    @property
    def error_code(self) -> str:
        return self.kind.value

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES[self.kind]


class ValidationException(MailPilotException):
    """Missing or malformed input."""

    kind = ErrorKind.VALIDATION


class AuthenticationException(MailPilotException):
    """Missing credential or failed password check."""

    kind = ErrorKind.AUTHENTICATION

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationException(MailPilotException):
    """Invalid or expired credential."""

    kind = ErrorKind.AUTHORIZATION

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class NotFoundException(MailPilotException):
    """Resource absent or not owned by the caller."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class ConflictException(MailPilotException):
    """Duplicate username or email."""

    kind = ErrorKind.CONFLICT


class InvalidStateException(MailPilotException):
    """Operation not allowed in the entity's current state."""

    kind = ErrorKind.INVALID_STATE


class UpstreamException(MailPilotException):
    """Email provider failure."""

    kind = ErrorKind.UPSTREAM


class InternalException(MailPilotException):
    """Unexpected failure."""

    kind = ErrorKind.INTERNAL


def error_response(
    kind: ErrorKind,
    message: str,
    details: Optional[Any] = None,
    status_code: Optional[int] = None,
) -> JSONResponse:
    error: Dict[str, Any] = {"error": kind.value, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(
        status_code=status_code or ERROR_STATUS_CODES[kind],
        content=jsonable_encoder({"success": False, "error": error}),
    )


async def mailpilot_exception_handler(request: Request, exc: MailPilotException) -> JSONResponse:
    """Handle application exceptions."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Application exception occurred",
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        path=request.url.path,
        method=request.method,
    )

    details = exc.details
    if exc.kind == ErrorKind.UPSTREAM and settings.is_production:
        details = None
    if exc.kind == ErrorKind.INTERNAL:
        return error_response(exc.kind, "An unexpected error occurred")

    return error_response(exc.kind, exc.message, details)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle FastAPI validation errors."""
    logger.warning(
        "Validation error occurred",
        errors=exc.errors(),
        path=request.url.path,
        method=request.method,
    )

    return error_response(
        ErrorKind.VALIDATION,
        "Invalid input data",
        {"errors": exc.errors()},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions."""
    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method,
    )

    # Map status codes to error kinds
    error_kind_map = {
        400: ErrorKind.VALIDATION,
        401: ErrorKind.AUTHENTICATION,
        403: ErrorKind.AUTHORIZATION,
        404: ErrorKind.NOT_FOUND,
    }
    kind = error_kind_map.get(exc.status_code, ErrorKind.INTERNAL)

    return error_response(kind, str(exc.detail), status_code=exc.status_code)


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle database failures."""
    logger.error(
        "Database error occurred",
        exception_type=type(exc).__name__,
        error=str(exc),
        path=request.url.path,
        method=request.method,
    )

    return error_response(ErrorKind.INTERNAL, "An unexpected error occurred")


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(
        "Unexpected exception occurred",
        exception_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )

    return error_response(ErrorKind.INTERNAL, "An unexpected error occurred")
