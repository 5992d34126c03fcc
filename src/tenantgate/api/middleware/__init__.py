"""API middleware components."""

from .errors import ErrorHandlingMiddleware, error_response, map_exception
from .logging import RequestLoggingMiddleware
from .tenant import TenantResolutionMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "TenantResolutionMiddleware",
    "error_response",
    "map_exception",
]
