"""Custom exceptions and exception handlers."""

from datetime import UTC, datetime
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tourhub.core.constants import (
    E_AUTHENTICATION_REQUIRED,
    E_CONCURRENT_MODIFICATION,
    E_FORBIDDEN,
    E_INTERNAL,
    E_INVALID_SORT_FIELD,
    E_NOT_FOUND,
    E_RESULT_SET_TOO_LARGE,
    E_VALIDATION,
)
from tourhub.core.logging import get_logger

logger = get_logger(__name__)


class AppException(Exception):
    """Base application exception."""

    code: str = E_INTERNAL

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception.

    ``code`` names the nesting level that failed (tour, review or reply).
    """

    def __init__(self, message: str = "Resource not found", code: str = E_NOT_FOUND):
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, code=code)


class ValidationException(AppException):
    """Validation error exception."""

    code = E_VALIDATION

    def __init__(self, message: str = "Validation error", field: str | None = None):
        details = {"field": field} if field else None
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class InvalidSortFieldError(AppException):
    """Requested sort field is not whitelisted for the resource."""

    code = E_INVALID_SORT_FIELD

    def __init__(self, field: str, allowed: list[str]):
        super().__init__(
            f"Invalid sort field: {field}",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"providedField": field, "allowedFields": allowed},
        )


class ResultSetTooLargeError(AppException):
    """Hybrid pagination would materialize more items than allowed."""

    code = E_RESULT_SET_TOO_LARGE

    def __init__(self, total_items: int, threshold: int):
        super().__init__(
            f"Query matches {total_items} items, above the in-memory limit of {threshold}; "
            "narrow the filter or use a numeric page size",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            details={"totalItems": total_items, "threshold": threshold},
        )


class AuthenticationRequiredException(AppException):
    """No caller identity was supplied for a protected operation."""

    code = E_AUTHENTICATION_REQUIRED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED)


class ForbiddenException(AppException):
    """Caller lacks the role or ownership needed for the operation."""

    code = E_FORBIDDEN

    def __init__(self, message: str = "You are not authorized to perform this action"):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class ConcurrentModificationError(AppException):
    """A compare-and-swap write kept losing against concurrent writers."""

    code = E_CONCURRENT_MODIFICATION

    def __init__(self, message: str = "Document was modified concurrently, retry the request"):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


def error_body(
    request: Request,
    code: str,
    message: str,
    details: Any = None,
) -> dict[str, Any]:
    """Build the failure envelope shared by every error response."""
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    error["timestamp"] = datetime.now(UTC).isoformat()
    error["path"] = request.url.path
    return {"error": error}


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle custom application exceptions.

    Args:
        request: The incoming request.
        exc: The exception that was raised.

    Returns:
        JSONResponse: Error response.
    """
    if exc.status_code >= 500:
        logger.error(f"Application error: {exc.message}", exc_info=True)
    else:
        logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.code, exc.message, exc.details),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed query/body parameters as ``VALIDATION_ERROR``.

    Args:
        request: The incoming request.
        exc: The validation error raised by FastAPI.

    Returns:
        JSONResponse: Error response naming the offending fields.
    """
    fields = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("query", "body", "path")),
         "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.warning(f"Request validation failed on {request.url.path}: {fields}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(request, E_VALIDATION, "Invalid request parameters", fields),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions.

    Args:
        request: The incoming request.
        exc: The HTTP exception that was raised.

    Returns:
        JSONResponse: Error response.
    """
    logger.warning(f"HTTP error {exc.status_code}: {exc.detail}")
    code = E_NOT_FOUND if exc.status_code == status.HTTP_404_NOT_FOUND else f"HTTP_{exc.status_code}"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, code, str(exc.detail)),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions.

    Args:
        request: The incoming request.
        exc: The unhandled exception.

    Returns:
        JSONResponse: Error response.
    """
    logger.error(f"Unhandled error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(request, E_INTERNAL, "Internal server error"),
    )
