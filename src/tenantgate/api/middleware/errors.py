"""Error handling middleware for mapping exceptions to HTTP responses.

Login failures share one message whatever their cause, and an unknown host
gets a generic not-found body that never echoes the host back.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from uuid import UUID

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from tenantgate.api.schemas.errors import APIError, ErrorCode
from tenantgate.core.exceptions import (
    GENERIC_LOGIN_FAILURE,
    ContextNotSetError,
    ImpersonationDisabledError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    PanelAccessDeniedError,
    TenantNotFoundError,
    TenantValidationError,
    TokenError,
    TooManyAttemptsError,
    UnknownDomainError,
)

logger = structlog.get_logger("tenantgate.api")


def _request_id(request: Request) -> str:
    rid = getattr(request.state, "request_id", None)
    if rid is None:
        return "unknown"
    return str(rid) if isinstance(rid, UUID) else rid


def _is_debug(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.DEBUG)


def map_exception(exc: Exception, debug: bool = False) -> tuple[int, str, str, dict | None]:
    """Map an exception to (status_code, error_code, message, details)."""
    if isinstance(exc, UnknownDomainError):
        return 404, ErrorCode.NOT_FOUND.value, "Not found", None

    if isinstance(exc, TenantNotFoundError):
        return 404, ErrorCode.TENANT_NOT_FOUND.value, str(exc), {"tenant_id": exc.tenant_id}

    if isinstance(exc, TenantValidationError):
        errors = {field: [str(code) for code in codes] for field, codes in exc.errors.items()}
        return 422, ErrorCode.VALIDATION_ERROR.value, "The given data was invalid", {"errors": errors}

    if isinstance(exc, ValidationError):
        return (
            422,
            ErrorCode.VALIDATION_ERROR.value,
            "Request validation failed",
            {"errors": exc.errors(include_url=False, include_context=False)},
        )

    if isinstance(exc, TooManyAttemptsError):
        return 429, ErrorCode.RATE_LIMITED.value, exc.args[0], {"retry_after": exc.retry_after}

    if isinstance(exc, InvalidCredentialsError):
        return 401, ErrorCode.UNAUTHORIZED.value, GENERIC_LOGIN_FAILURE, None

    if isinstance(exc, PanelAccessDeniedError):
        return 403, ErrorCode.FORBIDDEN.value, GENERIC_LOGIN_FAILURE, None

    if isinstance(exc, NotAuthenticatedError):
        return 401, ErrorCode.UNAUTHORIZED.value, exc.args[0], None

    if isinstance(exc, ImpersonationDisabledError):
        return 403, ErrorCode.IMPERSONATION_DISABLED.value, exc.reason, None

    # Token errors carry the code the login page shows
    if isinstance(exc, TokenError):
        return 400, exc.code, exc.args[0], None

    if isinstance(exc, ContextNotSetError):
        return 500, ErrorCode.INTERNAL_ERROR.value, "Internal server error: context not initialized", None

    return (
        500,
        ErrorCode.INTERNAL_ERROR.value,
        "Internal server error",
        {"type": type(exc).__name__} if debug else None,
    )


def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Render ``exc`` as an APIError JSON response."""
    request_id = _request_id(request)
    status_code, error_code, message, details = map_exception(exc, _is_debug(request))

    if status_code >= 500:
        logger.exception("unhandled_exception", error_type=type(exc).__name__, exc_info=exc)

    error = APIError(
        error_code=error_code,
        message=message,
        details=details,
        request_id=request_id,
        timestamp=datetime.now(UTC),
    )
    headers = {"X-Request-ID": request_id}
    if isinstance(exc, TooManyAttemptsError):
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"), headers=headers)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns standardized error responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return error_response(request, exc)
