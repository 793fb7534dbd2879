"""
Domain errors and the handlers that render them.

Every error leaves the API in the same envelope:

    {"error_code": "...", "message": "...", "details": {...}}

Services raise AppException subclasses; the handlers registered in main.py
translate them (and framework errors) into that shape.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("fleet_rental.errors")


class AppException(Exception):
    """Base application exception. Subclasses fix the error code and HTTP status."""

    error_code = "ERR_INTERNAL_SERVER"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InsufficientPermissionsError(AppException):
    """The caller's role or ownership does not allow the action."""

    error_code = "ERR_PERM_001"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ResourceNotFoundError(AppException):
    error_code = "ERR_NOT_FOUND_001"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found" if resource_id is None else f"{resource} with ID {resource_id} not found"
        super().__init__(message, {"resource": resource, "id": resource_id})


class InvalidArgumentError(AppException):
    """Well-formed input that breaks a domain rule (dates, allowed values)."""

    error_code = "ERR_INVALID_ARGUMENT"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(AppException):
    """A write would collide with existing data: duplicates, overlapping bookings."""

    error_code = "ERR_CONFLICT_001"
    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(AppException):
    """The resource's current status does not allow the operation."""

    error_code = "ERR_INVALID_STATE"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(message, {"current_status": current_status} if current_status else None)


class AuthenticationError(AppException):
    error_code = "ERR_AUTH_001"
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class RateLimitExceededError(AppException):
    error_code = "ERR_RATE_LIMITED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, retry_after: int):
        super().__init__("Too many attempts, please try again later", {"retry_after": retry_after})


HTTP_ERROR_CODES = {
    400: "ERR_BAD_REQUEST",
    401: "ERR_UNAUTHORIZED",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    405: "ERR_METHOD_NOT_ALLOWED",
    409: "ERR_CONFLICT",
    429: "ERR_RATE_LIMITED",
    500: "ERR_INTERNAL_SERVER",
}


def _envelope(status_code: int, error_code: str, message: str, details: Optional[dict] = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error_code": error_code, "message": message, "details": details or {}},
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return _envelope(exc.status_code, exc.error_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _envelope(
        exc.status_code,
        HTTP_ERROR_CODES.get(exc.status_code, "ERR_UNKNOWN"),
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return _envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY, "ERR_VALIDATION", "Validation error", {"errors": errors}
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unhandled, store failures included. Logged with traceback, never retried."""
    logger.exception("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "ERR_INTERNAL_SERVER", "An internal server error occurred"
    )
