"""Domain resolution middleware.

Resolves the Host header of every request to a tenant context and keeps it
active while the request is handled. Requests for unknown hosts never reach
a router.
"""

from collections.abc import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tenantgate.api.middleware.errors import error_response
from tenantgate.core.context import tenant_context
from tenantgate.core.exceptions import UnknownDomainError

# Paths served on any host
SKIP_RESOLUTION_PATHS = {
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
}


class TenantResolutionMiddleware(BaseHTTPMiddleware):
    """Activates the tenant context matching the request host.

    Sets:
        request.state.tenant_context: The resolved TenantContext
        request.state.request_id: The context's request id
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in SKIP_RESOLUTION_PATHS:
            return await call_next(request)

        resolver = request.app.state.services.resolver
        host = request.headers.get("host", "")
        try:
            ctx = await resolver.resolve(host)
        except UnknownDomainError as exc:
            return error_response(request, exc)

        request.state.tenant_context = ctx
        request.state.request_id = ctx.request_id

        with tenant_context(ctx), structlog.contextvars.bound_contextvars(http_path=request.url.path):
            response = await call_next(request)

        response.headers["X-Request-ID"] = str(ctx.request_id)
        return response
