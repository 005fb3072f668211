"""
Unified error handling.

Provides:
- A small exception taxonomy mapped to HTTP status codes
- The JSON error envelope: {"error": {"code", "message", "field"?, "details"?}}
- FastAPI exception handlers that render every failure in that envelope
- Structured logging of unexpected errors with request context
- error_boundary() for best-effort side steps (emails, cache purge)

Usage:
    raise NotFoundError("Post not found")

    raise ValidationError("Invalid email", field="email")

    with error_boundary("send_verification_email", account_id=account.id):
        send_verification_email(account.email, token)
"""

from typing import Optional, Any, Dict
from datetime import datetime, timezone
from contextlib import contextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.context import get_request_id, generate_request_id, get_context_dict

logger = structlog.get_logger(__name__)

__all__ = [
    "ErrorCode",
    "AppError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "UploadError",
    "error_body",
    "capture_exception",
    "error_boundary",
    "register_exception_handlers",
]


class ErrorCode:
    """Stable machine-readable error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    TOKEN_INVALID = "TOKEN_INVALID"
    INSUFFICIENT_PRIVILEGES = "INSUFFICIENT_PRIVILEGES"
    SELF_PROTECTION = "SELF_PROTECTION"
    NOT_FOUND = "NOT_FOUND"
    EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"
    SLUG_ALREADY_EXISTS = "SLUG_ALREADY_EXISTS"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    """Base class for errors that map onto the JSON error envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        field: Optional[str] = None,
        details: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.field = field
        self.details = details
        self.headers = headers


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.VALIDATION_ERROR


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = ErrorCode.UNAUTHENTICATED


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = ErrorCode.INSUFFICIENT_PRIVILEGES


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.NOT_FOUND


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = ErrorCode.EMAIL_ALREADY_EXISTS


class RateLimitError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = ErrorCode.RATE_LIMITED


class UploadError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = ErrorCode.UPLOAD_FAILED


def error_body(
    code: str,
    message: str,
    field: Optional[str] = None,
    details: Any = None,
    correlation_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the error envelope, omitting empty optional keys."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if field is not None:
        error["field"] = field
    if details is not None:
        error["details"] = details
    if correlation_id is not None:
        error["correlationId"] = correlation_id
    return {"error": error}


def capture_exception(
    exc: BaseException,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error",
) -> None:
    """
    Log an exception with request context enrichment.

    Args:
        exc: Exception to capture
        context: Additional context dict (e.g., {"post_id": 123})
        level: Log level (warning, error)
    """
    enriched_context = {
        **get_context_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "error_type": type(exc).__name__,
        **(context or {}),
    }
    log_func = getattr(logger, level, logger.error)
    log_func("Exception captured", exc_info=exc, **enriched_context)


@contextmanager
def error_boundary(operation: str, **context):
    """
    Error boundary for best-effort steps.

    Captures and suppresses errors, logging with context. The primary
    operation's outcome is never affected by a failure inside the block.

    Usage:
        with error_boundary("purge_post_cache"):
            purge_post_cache()
    """
    try:
        yield
    except Exception as exc:
        capture_exception(exc, context={"operation": operation, **context}, level="warning")


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.field, exc.details),
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    field = None
    if errors:
        loc = [str(part) for part in errors[0].get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or None
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(
            ErrorCode.VALIDATION_ERROR,
            "Invalid request",
            field=field,
            details=[e.get("msg") for e in errors],
        ),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    correlation_id = getattr(request.state, "request_id", None) or get_request_id() or generate_request_id()
    capture_exception(exc, context={"path": request.url.path, "correlation_id": correlation_id})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            ErrorCode.INTERNAL_ERROR,
            "Internal server error",
            correlation_id=correlation_id,
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the envelope-rendering handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
