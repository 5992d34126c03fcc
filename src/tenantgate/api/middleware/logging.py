"""Request logging middleware."""

import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tenantgate.core.logging import get_logger

logger = get_logger("tenantgate.api.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request once the response is ready.

    Runs outside tenant resolution, so the tenant is read back from
    ``request.state`` rather than from the active context.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        fields = {"host": request.headers.get("host")}
        ctx = getattr(request.state, "tenant_context", None)
        if ctx is not None:
            fields.update(ctx.to_log_dict())

        logger.info(
            "request_completed",
            http_method=request.method,
            http_path=request.url.path,
            http_status=response.status_code,
            duration_ms=round(elapsed_ms, 2),
            **fields,
        )
        return response
