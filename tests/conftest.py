"""Pytest fixtures for tenantgate tests."""

from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tenantgate.config.settings import Settings
from tenantgate.core.auth import AuthenticationGate
from tenantgate.core.context import TenantContext
from tenantgate.core.impersonation import ImpersonationService
from tenantgate.core.passwords import hash_password
from tenantgate.core.resolver import DomainResolver
from tenantgate.core.sessions import InMemorySessionStore, SessionManager
from tenantgate.core.store import InMemoryTenancyStore
from tenantgate.core.tenant import TenantService
from tenantgate.core.types import (
    IMPERSONATE_CAPABILITY,
    MANAGE_TENANTS_CAPABILITY,
    CentralAdmin,
    TenantRecord,
)
from tenantgate.core.validation import TenantCreateData
from tenantgate.db.models import Base
from tenantgate.db.store import SQLTenancyStore
from tenantgate.security.config import RateLimitConfig
from tenantgate.security.rate_limiter import InMemoryRateLimitStore, RateLimiter

CENTRAL_DOMAIN = "example.com"
ADMIN_EMAIL = "root@example.com"
ADMIN_PASSWORD = "admin-secret-1"
OWNER_PASSWORD = "acme-secret-1"


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    Tests calling setup_logging() must not leak their configuration.
    """
    yield
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests: fast bcrypt, impersonation on, example.com as central."""
    return Settings(
        central_domain=CENTRAL_DOMAIN,
        allow_impersonate=True,
        bcrypt_rounds=4,
        ENVIRONMENT="test",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        REDIS_URL=None,
        log_level="DEBUG",
    )


@pytest.fixture
def store() -> InMemoryTenancyStore:
    return InMemoryTenancyStore()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def sessions(session_store: InMemorySessionStore, test_settings: Settings) -> SessionManager:
    return SessionManager(session_store, ttl=test_settings.session_ttl_seconds)


@pytest.fixture
def resolver(store: InMemoryTenancyStore, test_settings: Settings) -> DomainResolver:
    return DomainResolver(store, test_settings)


@pytest.fixture
def rate_limiter(test_settings: Settings) -> RateLimiter:
    return RateLimiter(InMemoryRateLimitStore(), RateLimitConfig.from_settings(test_settings))


@pytest.fixture
def gate(store, sessions, rate_limiter, test_settings) -> AuthenticationGate:
    return AuthenticationGate(store, sessions, rate_limiter, test_settings)


@pytest.fixture
def impersonation(store, sessions, resolver, test_settings) -> ImpersonationService:
    return ImpersonationService(store, sessions, resolver, test_settings)


@pytest.fixture
def tenant_service(store, resolver, test_settings) -> TenantService:
    return TenantService(store, resolver, test_settings)


def central() -> TenantContext:
    """A fresh central context for example.com."""
    return TenantContext.central(host=CENTRAL_DOMAIN)


def acme_context() -> TenantContext:
    return TenantContext.for_tenant("acme", host=f"acme.{CENTRAL_DOMAIN}")


@pytest.fixture
async def admin(store: InMemoryTenancyStore) -> CentralAdmin:
    """A central administrator allowed to manage and impersonate tenants."""
    account = CentralAdmin(
        email=ADMIN_EMAIL,
        name="Root",
        password_hash=hash_password(ADMIN_PASSWORD, rounds=4),
        allowed_panels=frozenset({"admin"}),
        capabilities=frozenset({IMPERSONATE_CAPABILITY, MANAGE_TENANTS_CAPABILITY}),
    )
    return await store.create_account(account)


@pytest.fixture
def make_tenant(tenant_service: TenantService) -> Callable:
    """Factory creating a tenant (with domain and owner account) through the service."""

    async def _make(name: str = "Acme", **overrides) -> TenantRecord:
        payload = {
            "name": name,
            "email": f"owner@{name.lower()}.com",
            "password": OWNER_PASSWORD,
            "password_confirmation": OWNER_PASSWORD,
            **overrides,
        }
        return await tenant_service.create_tenant(TenantCreateData(**payload))

    return _make


@pytest.fixture
async def acme(make_tenant) -> TenantRecord:
    """Tenant ``acme`` served at acme.example.com."""
    return await make_tenant("Acme")


# =============================================================================
# Database fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine():
    """Create an in-memory SQLite engine with all tables."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def sql_store(test_engine) -> SQLTenancyStore:
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    return SQLTenancyStore(factory)


# =============================================================================
# API fixtures
# =============================================================================


@pytest.fixture
def test_app(test_settings: Settings, store: InMemoryTenancyStore, session_store: InMemorySessionStore) -> FastAPI:
    """FastAPI application over the in-memory stores."""
    from tenantgate.api.app import create_app

    return create_app(
        settings=test_settings,
        store=store,
        session_store=session_store,
        rate_limit_store=InMemoryRateLimitStore(),
    )


@pytest_asyncio.fixture
async def client_for(test_app: FastAPI) -> AsyncGenerator[Callable[[str], AsyncClient], None]:
    """Factory of HTTP clients, one cookie jar per host like separate browser tabs.

    Usage:
        central = client_for("example.com")
        tenant = client_for("acme.example.com")
    """
    clients: list[AsyncClient] = []

    def _make(host: str) -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=test_app), base_url=f"https://{host}")
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
