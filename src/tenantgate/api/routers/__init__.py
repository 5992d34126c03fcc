"""API routers."""

from .central import router as central_router
from .health import router as health_router
from .tenant import redeem_impersonation
from .tenant import router as tenant_router

__all__ = ["central_router", "health_router", "redeem_impersonation", "tenant_router"]
