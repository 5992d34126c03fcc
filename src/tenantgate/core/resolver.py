"""Domain-to-tenant resolution.

Maps the host of an inbound request to the context it must run in. The
central host (plus any configured aliases) yields the central context; a
registered domain yields its tenant; anything else is an unknown domain.

Stored domains come in two forms. A bare label such as ``acme`` lives under
the central domain (``acme.example.com``). A fully qualified host such as
``portal.acme.test`` is matched as-is.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

from tenantgate.config.settings import Settings, get_settings
from tenantgate.core.context import TenantContext, tenant_context
from tenantgate.core.exceptions import UnknownDomainError
from tenantgate.core.store import TenancyStore

logger = structlog.get_logger("tenantgate.resolver")


def normalize_host(host: str) -> str:
    """Lowercase a host and strip its port and trailing dot.

    Handles bracketed IPv6 literals (``[::1]:8000``).
    """
    host = host.strip().lower()
    if host.startswith("["):
        end = host.find("]")
        host = host[1:end] if end != -1 else host[1:]
    elif host.count(":") == 1:
        host = host.split(":", 1)[0]
    return host.rstrip(".")


def is_bare_label(domain: str) -> bool:
    """Whether a stored domain is a subdomain label rather than a full host."""
    return "." not in domain


class DomainResolver:
    """Resolves request hosts to tenant contexts.

    Example:
        resolver = DomainResolver(store, settings)
        async with resolver.activate("acme.example.com") as ctx:
            assert ctx.tenant_id == "acme"
    """

    def __init__(self, store: TenancyStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    def tenant_host(self, domain: str) -> str:
        """Turn a stored domain into the host a browser should visit."""
        domain = domain.lower()
        if is_bare_label(domain):
            return f"{domain}.{self.settings.central_domain}"
        return domain

    def build_url(self, domain: str, path: str = "") -> str:
        """Absolute URL on a tenant's host."""
        return f"{self.settings.url_scheme}://{self.tenant_host(domain)}/{path.lstrip('/')}"

    async def resolve(self, host: str) -> TenantContext:
        """Map ``host`` to a context.

        Raises:
            UnknownDomainError: If no active, non-deleted tenant owns the host
        """
        normalized = normalize_host(host)
        if not normalized:
            raise UnknownDomainError(host)

        if self.settings.is_central_host(normalized):
            return TenantContext.central(host=normalized)

        tenant_id = await self._match_tenant_id(normalized)
        if tenant_id is None:
            logger.info("domain_unresolved", host=normalized)
            raise UnknownDomainError(normalized)

        tenant = await self.store.find_tenant(tenant_id)
        if tenant is None or not tenant.is_resolvable:
            logger.info("domain_tenant_unavailable", host=normalized, tenant_id=tenant_id)
            raise UnknownDomainError(normalized)

        return TenantContext.for_tenant(tenant.id, host=normalized)

    async def _match_tenant_id(self, host: str) -> str | None:
        record = await self.store.find_domain_by_host(host)
        if record is not None:
            return record.tenant_id

        suffix = f".{self.settings.central_domain}"
        if host.endswith(suffix):
            label = host[: -len(suffix)]
            # Multi-label stored domains are full hosts and only match exactly
            if label and is_bare_label(label):
                record = await self.store.find_domain_by_host(label)
                if record is not None:
                    return record.tenant_id
        return None

    @asynccontextmanager
    async def activate(self, host: str) -> AsyncIterator[TenantContext]:
        """Resolve ``host`` and keep its context active for the block."""
        ctx = await self.resolve(host)
        with tenant_context(ctx):
            yield ctx
