"""Tenant context switching for async-safe multi-tenant operations.

The active context lives in a ContextVar, so every request task (or thread)
sees only the context it activated itself. Activations nest: leaving a block
restores exactly the context that was active before it, on every exit path.

Usage:
    from tenantgate.core.context import TenantContext, tenant_context, get_current_context

    ctx = TenantContext.for_tenant("acme", host="acme.example.com")

    with tenant_context(ctx):
        current = get_current_context()
        assert current.tenant_id == "acme"

    # Or run a unit of work inside a tenant
    result = with_tenant("acme", lambda: do_work())
    result = await with_tenant_async("acme", do_async_work)
"""

from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from tenantgate.core.exceptions import ContextNotSetError

T = TypeVar("T")


class TenantContext(BaseModel):
    """The execution context a request or unit of work runs in.

    A context with ``tenant_id=None`` is the central (administrative) context.
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: str | None = None
    host: str | None = None
    request_id: UUID = Field(default_factory=uuid4)
    activated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def central(cls, host: str | None = None) -> "TenantContext":
        """Create a central (non-tenant) context."""
        return cls(tenant_id=None, host=host)

    @classmethod
    def for_tenant(cls, tenant_id: str, host: str | None = None) -> "TenantContext":
        """Create a context bound to a tenant."""
        return cls(tenant_id=tenant_id, host=host)

    @property
    def is_central(self) -> bool:
        return self.tenant_id is None

    def same_namespace(self, tenant_id: str | None) -> bool:
        """Return True when data owned by ``tenant_id`` is visible in this context."""
        return self.tenant_id == tenant_id

    def to_log_dict(self) -> dict[str, Any]:
        """Fields attached to every log entry emitted inside this context."""
        return {
            "tenant_id": self.tenant_id or "central",
            "host": self.host,
            "request_id": str(self.request_id),
        }


# =============================================================================
# Context Variable Management
# =============================================================================

_active_context: ContextVar[TenantContext | None] = ContextVar("tenant_context", default=None)


def get_current_context() -> TenantContext:
    """Get the active tenant context.

    Raises:
        ContextNotSetError: If no context is active in the current execution unit
    """
    ctx = _active_context.get()
    if ctx is None:
        raise ContextNotSetError("No tenant context is active. Use tenant_context().")
    return ctx


def get_current_context_or_none() -> TenantContext | None:
    """Get the active tenant context, or None if not set."""
    return _active_context.get()


def set_context(ctx: TenantContext) -> Token[TenantContext | None]:
    """Set the active context and return a token for restoration.

    This is a low-level API. Prefer the tenant_context() context manager.
    """
    return _active_context.set(ctx)


def reset_context(token: Token[TenantContext | None]) -> None:
    """Restore the context that was active before the matching set_context()."""
    _active_context.reset(token)


@contextmanager
def tenant_context(ctx: TenantContext) -> Iterator[TenantContext]:
    """Activate ``ctx`` for the duration of the block.

    Works for sync and async code: contextvars are copied into tasks created
    inside the block, and the previous value is restored on exit even if the
    block raises.
    """
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        reset_context(token)


def _coerce(tenant: TenantContext | str | None) -> TenantContext:
    if isinstance(tenant, TenantContext):
        return tenant
    if tenant is None:
        return TenantContext.central()
    return TenantContext.for_tenant(tenant)


def with_tenant(tenant: TenantContext | str | None, fn: Callable[[], T]) -> T:
    """Run ``fn`` with ``tenant`` active and restore the prior context afterwards.

    Args:
        tenant: A context, a tenant id, or None for the central context
        fn: Unit of work to execute

    Returns:
        Whatever ``fn`` returns
    """
    with tenant_context(_coerce(tenant)):
        return fn()


async def with_tenant_async(
    tenant: TenantContext | str | None,
    fn: Callable[[], Awaitable[T]],
) -> T:
    """Async counterpart of with_tenant(); awaits ``fn()`` inside the context."""
    with tenant_context(_coerce(tenant)):
        return await fn()
