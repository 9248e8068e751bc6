"""
Standardized error responses for the Download Portal API.

Every failure a service can raise is an ``APIException`` subclass, so the
HTTP status and the machine-readable error code travel with the exception
and the handlers below render one consistent body.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from download_portal.core.middleware import redact_exception_args, redact_token_from_path

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication errors (1xxx)
    INVALID_CREDENTIALS = "AUTH_1001"
    NOT_AUTHENTICATED = "AUTH_1010"

    # Authorization errors (2xxx)
    PERMISSION_DENIED = "AUTHZ_2001"

    # Validation errors (3xxx)
    VALIDATION_ERROR = "VAL_3001"
    INVALID_INPUT = "VAL_3002"
    INVALID_FORMAT = "VAL_3004"
    DUPLICATE_ENTRY = "VAL_3006"

    # Resource errors (4xxx)
    RESOURCE_NOT_FOUND = "RES_4001"
    RESOURCE_CONFLICT = "RES_4005"
    TOKEN_NOT_FOUND = "RES_4006"
    TOKEN_ALREADY_USED = "RES_4007"

    # System errors (6xxx)
    INTERNAL_ERROR = "SYS_6001"
    DATABASE_ERROR = "SYS_6002"
    EXTERNAL_SERVICE_ERROR = "SYS_6003"
    RATE_LIMIT_EXCEEDED = "SYS_6004"
    SERVICE_UNAVAILABLE = "SYS_6005"


class APIException(HTTPException):
    """Extended HTTPException with standardized error codes."""

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        message: str,
        headers: dict[str, str] | None = None,
    ):
        self.code = code
        self.message = message
        super().__init__(status_code=status_code, detail=message, headers=headers)


# Identity errors. "No such user" and "wrong password" share one class and
# one message so usernames cannot be enumerated.
class InvalidCredentialsError(APIException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code=ErrorCode.INVALID_CREDENTIALS,
            message="Invalid username or password",
        )


class NotAuthenticatedError(APIException):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code=ErrorCode.NOT_AUTHENTICATED,
            message=message,
        )


class DuplicateUsernameError(APIException):
    def __init__(self, username: str):
        self.username = username
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            code=ErrorCode.DUPLICATE_ENTRY,
            message=f"User '{username}' already exists",
        )


# Catalog, token and path errors are deliberately distinguishable.
class DownloadFileNotFoundError(APIException):
    def __init__(self, message: str = "File not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code=ErrorCode.RESOURCE_NOT_FOUND,
            message=message,
        )


class TokenNotFoundError(APIException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code=ErrorCode.TOKEN_NOT_FOUND,
            message="Invalid download token",
        )


class TokenAlreadyUsedError(APIException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_410_GONE,
            code=ErrorCode.TOKEN_ALREADY_USED,
            message="Token has already been used",
        )


class AccessDeniedError(APIException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code=ErrorCode.PERMISSION_DENIED,
            message="Access denied",
        )


class MalformedPathError(APIException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code=ErrorCode.INVALID_FORMAT,
            message="Invalid file path",
        )


# Internal errors never carry their cause to the client; callers log it.
class StoreUnavailableError(APIException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=ErrorCode.DATABASE_ERROR,
            message="Internal error",
        )


class InternalFormatError(APIException):
    def __init__(self, message: str = "Internal error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=ErrorCode.INTERNAL_ERROR,
            message=message,
        )


class ServerMisconfiguredError(APIException):
    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=ErrorCode.INTERNAL_ERROR,
            message=message,
        )


class ServiceUnavailableError(APIException):
    """An optional external collaborator is not configured or not reachable."""

    def __init__(self, message: str = "Service unavailable"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code=ErrorCode.SERVICE_UNAVAILABLE,
            message=message,
        )


def create_error_response(
    code: ErrorCode,
    message: str,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Create a standardized error response dictionary."""
    response = {
        "error": code.name.lower().replace("_", " ").title(),
        "code": code.value,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if request_id:
        response["request_id"] = request_id

    return response


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle APIException and return standardized response."""
    request_id = getattr(request.state, "request_id", None)

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(
            code=exc.code,
            message=exc.message,
            request_id=request_id,
        ),
        headers=exc.headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle standard HTTPException and convert to standardized response."""
    request_id = getattr(request.state, "request_id", None)

    status_to_code = {
        400: ErrorCode.VALIDATION_ERROR,
        401: ErrorCode.NOT_AUTHENTICATED,
        403: ErrorCode.PERMISSION_DENIED,
        404: ErrorCode.RESOURCE_NOT_FOUND,
        409: ErrorCode.RESOURCE_CONFLICT,
        410: ErrorCode.TOKEN_ALREADY_USED,
        422: ErrorCode.INVALID_INPUT,
        429: ErrorCode.RATE_LIMIT_EXCEEDED,
        500: ErrorCode.INTERNAL_ERROR,
        503: ErrorCode.SERVICE_UNAVAILABLE,
    }

    code = status_to_code.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else "An error occurred"

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(
            code=code,
            message=message,
            request_id=request_id,
        ),
        headers=getattr(exc, "headers", None),
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Log the store failure in full and answer with a generic internal error."""
    logger.error(
        "Database error on %s %s: %s",
        request.method,
        redact_token_from_path(request.url.path),
        exc,
        exc_info=exc,
    )
    return await api_exception_handler(request, StoreUnavailableError())


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without echoing download tokens."""
    exc = redact_exception_args(exc)
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        redact_token_from_path(request.url.path),
        exc,
        exc_info=exc,
    )

    request_id = getattr(request.state, "request_id", None)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=create_error_response(
            code=ErrorCode.INTERNAL_ERROR,
            message="An unexpected error occurred",
            request_id=request_id,
        ),
    )
