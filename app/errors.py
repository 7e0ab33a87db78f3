"""
Error types and the terminal JSON error stage for the API.

Every error that reaches the client is a JSON object with at least an
"error" string. Stack traces and internal details only go to the logs.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal Server Error"


class ApiError(Exception):
    """Base class for errors whose message is safe to show to clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers
        self.extra = extra or {}


class ConfigurationError(ApiError):
    """Required configuration is missing; the reason is shown to clients."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, reason: str):
        super().__init__("Configuration error", extra={"message": reason})
        self.reason = reason


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class AuthenticationError(ApiError):
    """Missing, invalid or expired admin credentials."""
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ValidationFailed(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


def error_status(exc: BaseException) -> int:
    """
    Status code declared by an exception.

    Looks at `status_code`, then `status`; anything missing or outside the
    4xx/5xx range becomes 500.
    """
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and 400 <= value <= 599:
            return value
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_message(exc: BaseException) -> str:
    """Client-facing message for an exception."""
    if isinstance(exc, ApiError):
        return exc.message
    if isinstance(exc, StarletteHTTPException):
        return str(exc.detail)
    # Client errors raised by collaborators carry their own message
    if error_status(exc) < 500 and str(exc):
        return str(exc)
    return GENERIC_ERROR_MESSAGE


def error_response(
    error: str,
    status_code: int,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    content = {"error": error}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.message, exc.status_code, headers=exc.headers, **exc.extra)


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(error_message(exc), exc.status_code, headers=getattr(exc, "headers", None))


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return error_response(
        "Invalid request",
        422,
        details=details,
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    # Starlette only calls this while no response has started; once headers
    # are out it re-raises to the server instead.
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return error_response(error_message(exc), error_status(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the terminal error stage. Must run after all routes are added."""
    app.add_exception_handler(ApiError, _handle_api_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected)
