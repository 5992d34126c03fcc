"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from tenantgate import __version__
from tenantgate.api.dependencies import Services
from tenantgate.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    TenantResolutionMiddleware,
)
from tenantgate.api.routers import (
    central_router,
    health_router,
    redeem_impersonation,
    tenant_router,
)
from tenantgate.config.settings import Settings, get_settings
from tenantgate.config.validation import validate_or_raise
from tenantgate.core.auth import AuthenticationGate
from tenantgate.core.impersonation import ImpersonationService
from tenantgate.core.logging import get_logger, setup_logging
from tenantgate.core.resolver import DomainResolver
from tenantgate.core.sessions import InMemorySessionStore, SessionManager, SessionStore
from tenantgate.core.store import TenancyStore
from tenantgate.core.tenant import TenantService
from tenantgate.security.config import create_default_security_config
from tenantgate.security.rate_limiter import InMemoryRateLimitStore, RateLimiter, RateLimitStore

logger = get_logger("tenantgate.api")


def create_app(
    settings: Settings | None = None,
    *,
    store: TenancyStore | None = None,
    session_store: SessionStore | None = None,
    rate_limit_store: RateLimitStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override (useful for testing)
        store: Persistence backend (SQLAlchemy store on DATABASE_URL if None)
        session_store: Session backend (Redis if REDIS_URL is set, else in-memory)
        rate_limit_store: Login throttle backend (Redis if REDIS_URL is set, else in-memory)

    Example:
        # Production
        uvicorn tenantgate.api.app:create_app --factory

        # Testing
        app = create_app(Settings(central_domain="example.com"), store=InMemoryTenancyStore())
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="tenantgate",
        description="Multi-tenant resolution, login and impersonation",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=_lifespan,
    )

    app.state.settings = settings
    app.state.engine = None
    app.state.services = _build_services(app, settings, store, session_store, rate_limit_store)

    _configure_middleware(app)
    _configure_routers(app, settings)
    return app


def _build_services(
    app: FastAPI,
    settings: Settings,
    store: TenancyStore | None,
    session_store: SessionStore | None,
    rate_limit_store: RateLimitStore | None,
) -> Services:
    if store is None:
        from tenantgate.db.config import build_engine, build_session_factory
        from tenantgate.db.store import SQLTenancyStore

        app.state.engine = build_engine(settings)
        store = SQLTenancyStore(build_session_factory(app.state.engine))

    if settings.REDIS_URL and (session_store is None or rate_limit_store is None):
        from tenantgate.core.redis import RedisRateLimitStore, RedisSessionStore

        session_store = session_store or RedisSessionStore(ttl=settings.session_ttl_seconds)
        rate_limit_store = rate_limit_store or RedisRateLimitStore()

    session_store = session_store or InMemorySessionStore(ttl=settings.session_ttl_seconds)
    rate_limit_store = rate_limit_store or InMemoryRateLimitStore()

    security = create_default_security_config(settings.ENVIRONMENT, settings)
    resolver = DomainResolver(store, settings)
    sessions = SessionManager(session_store, ttl=settings.session_ttl_seconds)

    return Services(
        settings=settings,
        security=security,
        store=store,
        resolver=resolver,
        sessions=sessions,
        gate=AuthenticationGate(store, sessions, RateLimiter(rate_limit_store, security.rate_limit), settings),
        impersonation=ImpersonationService(store, sessions, resolver, settings),
        tenants=TenantService(store, resolver, settings),
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Validates configuration and sets up logging on startup; releases database
    and Redis connections on shutdown.
    """
    settings: Settings = app.state.settings
    setup_logging(settings.log_level)
    validate_or_raise(settings)
    logger.info("startup", central_domain=settings.central_domain, environment=settings.ENVIRONMENT)

    yield

    logger.info("shutdown")
    if app.state.engine is not None:
        await app.state.engine.dispose()
    if settings.REDIS_URL:
        from tenantgate.core.redis import close_redis

        await close_redis()


def _configure_middleware(app: FastAPI) -> None:
    """Configure middleware stack.

    Middleware order (outermost to innermost execution):
    1. RequestLoggingMiddleware - Logs all requests
    2. ErrorHandlingMiddleware - Converts exceptions to HTTP responses
    3. TenantResolutionMiddleware - Resolves the host and activates its context

    Note: Starlette runs the last-added middleware first.
    """
    app.add_middleware(TenantResolutionMiddleware)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)


def _configure_routers(app: FastAPI, settings: Settings) -> None:
    app.include_router(health_router)
    app.include_router(central_router)
    app.include_router(tenant_router)
    app.add_api_route(
        f"/{settings.impersonation_login_path.strip('/')}",
        redeem_impersonation,
        methods=["GET"],
        response_class=RedirectResponse,
        tags=["tenant"],
        summary="Redeem impersonation token",
    )
