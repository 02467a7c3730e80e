"""
Application errors and the handlers that render them.

Every error response has the shape {error_code, message, details}; the
driver client carries error_code through on RouteSessionApiError.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("shuttle")


class AppException(Exception):
    """Base application exception."""
    
    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""
    
    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class InvalidTransitionError(AppException):
    """Raised when a route session status change is not allowed from its current state."""
    
    def __init__(self, session_id: str, current: str, requested: str):
        super().__init__(
            message=f"Cannot move route session from {current} to {requested}",
            error_code="ERR_SESSION_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"session_id": session_id, "current": current, "requested": requested}
        )


class TransitionInProgressError(AppException):
    """Raised when another status change for the same session has not finished yet."""
    
    def __init__(self, session_id: str):
        super().__init__(
            message="Another status change for this route session is in progress",
            error_code="ERR_SESSION_002",
            status_code=status.HTTP_409_CONFLICT,
            details={"session_id": session_id}
        )


class SessionNotActiveError(AppException):
    """Raised when a location is written for a session that is not active."""
    
    def __init__(self, session_id: str, current: str):
        super().__init__(
            message=f"Route session is not active, current status: {current}",
            error_code="ERR_SESSION_003",
            status_code=status.HTTP_409_CONFLICT,
            details={"session_id": session_id, "current": current}
        )


class OpenSessionExistsError(AppException):
    """Raised when a driver already holds a pending or active session."""
    
    def __init__(self, session_id: str):
        super().__init__(
            message="You already have an open route session. End it before starting another.",
            error_code="ERR_SESSION_004",
            status_code=status.HTTP_409_CONFLICT,
            details={"session_id": session_id}
        )


# Global Exception Handlers

HTTP_ERROR_CODES = {
    400: "ERR_BAD_REQUEST",
    401: "ERR_UNAUTHORIZED",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    409: "ERR_CONFLICT",
    500: "ERR_INTERNAL_SERVER",
}


def _envelope(status_code: int, error_code: str, message: Any, details: Dict[str, Any] = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error_code": error_code, "message": message, "details": details or {}},
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.info("%s %s rejected: %s %s", request.method, request.url.path, exc.error_code, exc.message)
    return _envelope(exc.status_code, exc.error_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _envelope(
        exc.status_code,
        HTTP_ERROR_CODES.get(exc.status_code, "ERR_UNKNOWN"),
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances that JSONResponse cannot encode
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ERR_VALIDATION",
        "Validation error",
        {"errors": jsonable_errors(exc)},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "ERR_INTERNAL_SERVER",
        "An internal server error occurred",
    )
