"""Tenant-bound session management.

A session belongs to exactly one context (a tenant or the central domain).
Every successful authentication mints a fresh session id and destroys the
one the client presented, so a fixated id never becomes authenticated.
"""

import secrets
import threading
import time
from typing import Any, Protocol
from uuid import UUID

import structlog

from tenantgate.core.context import TenantContext
from tenantgate.core.types import AuthSession, UserAccount

logger = structlog.get_logger("tenantgate.sessions")

SESSION_ID_BYTES = 32


class SessionStore(Protocol):
    """Protocol for session storage backends."""

    async def create(self, session_id: str, data: dict[str, Any], *, ttl: int | None = None) -> bool:
        """Store a new session. Returns False if the id is already taken."""
        ...

    async def get(self, session_id: str) -> dict[str, Any] | None: ...

    async def delete(self, session_id: str) -> bool:
        """Delete a session. Returns True if it existed."""
        ...


class InMemorySessionStore(SessionStore):
    """Process-local session storage with expiry.

    Suitable for tests and single-instance deployments. For multi-instance
    deployments use tenantgate.core.redis.RedisSessionStore.
    """

    def __init__(self, ttl: int = 28800, cleanup_interval: int = 300) -> None:
        """Initialize the store.

        Args:
            ttl: Default session lifetime in seconds
            cleanup_interval: Seconds between sweeps of expired sessions
        """
        self.ttl = ttl
        self._lock = threading.Lock()
        self._sessions: dict[str, tuple[float, dict[str, Any]]] = {}
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = time.monotonic()

    async def create(self, session_id: str, data: dict[str, Any], *, ttl: int | None = None) -> bool:
        now = time.monotonic()
        expires = now + (ttl if ttl is not None else self.ttl)
        with self._lock:
            if now - self._last_cleanup > self._cleanup_interval:
                self._cleanup(now)
            if session_id in self._sessions:
                return False
            self._sessions[session_id] = (expires, dict(data))
        return True

    async def get(self, session_id: str) -> dict[str, Any] | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        expires, data = entry
        if time.monotonic() >= expires:
            await self.delete(session_id)
            return None
        return dict(data)

    async def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)

    def _cleanup(self, now: float) -> None:
        """Drop expired sessions. Caller holds the lock."""
        self._last_cleanup = now
        expired = [sid for sid, (expires, _) in self._sessions.items() if now >= expires]
        for session_id in expired:
            del self._sessions[session_id]


class SessionManager:
    """Creates, looks up and destroys AuthSessions over a SessionStore."""

    def __init__(self, store: SessionStore, ttl: int | None = None):
        """Initialize the manager.

        Args:
            store: Backend holding session data
            ttl: Session lifetime in seconds (store default if None)
        """
        self.store = store
        self.ttl = ttl

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(SESSION_ID_BYTES)

    async def establish(
        self,
        context: TenantContext,
        account: UserAccount,
        panel: str,
        *,
        previous_session_id: str | None = None,
        impersonator_id: UUID | None = None,
    ) -> AuthSession:
        """Start a session for ``account`` in ``context`` under a fresh id.

        The previously presented session, if any, is destroyed first.
        """
        if previous_session_id:
            await self.destroy(previous_session_id)

        while True:
            session = AuthSession(
                session_id=self.new_session_id(),
                tenant_id=context.tenant_id,
                user_id=account.id,
                email=account.email,
                panel=panel,
                impersonator_id=impersonator_id,
            )
            if await self.store.create(session.session_id, session.model_dump(mode="json"), ttl=self.ttl):
                break

        logger.info(
            "session_established",
            user_id=str(account.id),
            panel=panel,
            impersonated=impersonator_id is not None,
        )
        return session

    async def get(self, session_id: str, context: TenantContext) -> AuthSession | None:
        """Return the session if it exists and belongs to ``context``.

        A session presented in a different context is destroyed: switching
        tenant ends the session.
        """
        data = await self.store.get(session_id)
        if data is None:
            return None

        session = AuthSession.model_validate(data)
        if not context.same_namespace(session.tenant_id):
            await self.destroy(session_id)
            logger.warning(
                "session_context_mismatch",
                session_tenant=session.tenant_id or "central",
            )
            return None
        return session

    async def destroy(self, session_id: str) -> bool:
        """Delete a session (logout). Returns True if it existed."""
        return await self.store.delete(session_id)
