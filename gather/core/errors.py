"""
Error Handling
==============

Standardized error codes and exception handlers.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """Standardized error codes."""

    # Authentication (AUTH_001 - AUTH_010)
    AUTH_INVALID_TOKEN = "AUTH_001"
    AUTH_NOT_AUTHENTICATED = "AUTH_002"
    AUTH_DEMO_NOT_ALLOWED = "AUTH_003"

    # Tasks (TASK_001 - TASK_010)
    TASK_NOT_FOUND = "TASK_001"
    TASK_STEP_NOT_FOUND = "TASK_002"
    TASK_INVALID_DATA = "TASK_003"
    TASK_NOT_COMPLETABLE = "TASK_004"

    # Habits (HABIT_001 - HABIT_010)
    HABIT_NOT_FOUND = "HABIT_001"

    # Capture flow (CAPTURE_001 - CAPTURE_010)
    CAPTURE_SESSION_NOT_FOUND = "CAPTURE_001"
    CAPTURE_INVALID_TRANSITION = "CAPTURE_002"

    # Insights (INSIGHT_001 - INSIGHT_010)
    INSIGHT_NOT_FOUND = "INSIGHT_001"

    # Rewards (REWARD_001 - REWARD_010)
    REWARD_NOT_FOUND = "REWARD_001"
    REWARD_LOCKED = "REWARD_002"

    # AI / external services
    AI_NOT_CONFIGURED = "AI_001"
    AI_OVERLOADED = "AI_002"
    AI_REQUEST_FAILED = "AI_003"

    # Access
    FORBIDDEN = "FORBIDDEN"

    # Rate Limit
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT"

    # General
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"


# =============================================================================
# Custom Exceptions
# =============================================================================

class AppException(HTTPException):
    """Base application exception with structured error response."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        field: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        **extra,
    ):
        self.code = code
        self.field = field
        self.extra = extra

        detail = {
            "code": code,
            "message": message,
        }

        if field:
            detail["field"] = field

        detail.update(extra)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


class AuthenticationError(AppException):
    """Authentication-related errors."""

    def __init__(
        self,
        code: str = ErrorCodes.AUTH_INVALID_TOKEN,
        message: str = "Authentication failed",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code=code,
            message=message,
            headers={"WWW-Authenticate": "Bearer"},
            **extra,
        )


class NotFoundError(AppException):
    """Resource not found errors."""

    def __init__(
        self,
        code: str = ErrorCodes.NOT_FOUND,
        message: str = "Resource not found",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code=code,
            message=message,
            **extra,
        )


class ConflictError(AppException):
    """Resource conflict errors."""

    def __init__(
        self,
        code: str,
        message: str,
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            code=code,
            message=message,
            **extra,
        )


class ForbiddenError(AppException):
    """Permission errors."""

    def __init__(
        self,
        code: str = ErrorCodes.FORBIDDEN,
        message: str = "Access denied",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code=code,
            message=message,
            **extra,
        )


class ValidationError(AppException):
    """Validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code=ErrorCodes.VALIDATION_ERROR,
            message=message,
            field=field,
            **extra,
        )


class RateLimitError(AppException):
    """Too many requests for the caller's tier."""

    def __init__(
        self,
        reset_in: int,
        limit: int,
        message: Optional[str] = None,
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            code=ErrorCodes.RATE_LIMIT_EXCEEDED,
            message=message or f"Rate limit exceeded. Try again in {reset_in} seconds.",
            headers={
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(reset_in),
                "Retry-After": str(reset_in),
            },
            **extra,
        )


class ServiceUnavailableError(AppException):
    """External service unavailable errors."""

    def __init__(
        self,
        code: str,
        message: str = "Service temporarily unavailable",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code=code,
            message=message,
            **extra,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """Handler for AppException."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
        },
        headers=exc.headers,
    )


async def http_exception_handler(
    request: Request,
    exc: HTTPException,
) -> JSONResponse:
    """Handler for standard HTTPException."""
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        error = exc.detail
    else:
        error = {
            "code": "HTTP_ERROR",
            "message": str(exc.detail),
        }

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": error,
        },
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handler for request and Pydantic validation errors."""
    errors = exc.errors() if hasattr(exc, "errors") else []
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", []))
        message = first_error.get("msg", "Validation error")
    else:
        field = None
        message = str(exc) or "Validation error"

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": message,
                "field": field,
                "details": [
                    {"loc": list(e.get("loc", [])), "msg": e.get("msg"), "type": e.get("type")}
                    for e in errors
                ],
            },
        },
    )


async def global_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": {
                "code": ErrorCodes.INTERNAL_ERROR,
                "message": "An unexpected error occurred",
            },
        },
    )


def setup_exception_handlers(app):
    """
    Register exception handlers with FastAPI app.

    Usage:
        from gather.core.errors import setup_exception_handlers
        setup_exception_handlers(app)
    """
    from pydantic import ValidationError as PydanticValidationError
    from fastapi.exceptions import RequestValidationError

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
