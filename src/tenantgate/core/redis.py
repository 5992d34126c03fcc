"""Redis client and Redis-backed stores.

Provides connection management plus the session and login-throttle
backends used when several application instances share state.
"""

import asyncio
import json
import time
from typing import Any
from uuid import uuid4

from redis.asyncio import ConnectionPool, Redis

from tenantgate.config.settings import get_settings
from tenantgate.core.sessions import SessionStore
from tenantgate.security.rate_limiter import RateLimitResult, RateLimitStore

# Global connection pool
_pool: ConnectionPool | None = None
_client: Redis | None = None
_lock = asyncio.Lock()


async def get_redis_pool() -> ConnectionPool:
    """Get or create the Redis connection pool.

    Raises:
        RuntimeError: If REDIS_URL is not configured
    """
    global _pool
    if _pool is None:
        async with _lock:
            if _pool is None:
                settings = get_settings()
                if not settings.REDIS_URL:
                    raise RuntimeError("REDIS_URL is not configured")
                _pool = ConnectionPool.from_url(
                    settings.REDIS_URL,
                    max_connections=settings.REDIS_MAX_CONNECTIONS,
                    decode_responses=True,
                )
    return _pool


async def get_redis_client() -> Redis:
    """Get or create the shared Redis client."""
    global _client
    if _client is None:
        pool = await get_redis_pool()
        async with _lock:
            if _client is None:
                _client = Redis(connection_pool=pool)
    return _client


async def close_redis() -> None:
    """Close the Redis client and pool. Called during application shutdown."""
    global _pool, _client
    async with _lock:
        if _client is not None:
            await _client.aclose()
            _client = None
        if _pool is not None:
            await _pool.disconnect()
            _pool = None


class RedisSessionStore(SessionStore):
    """Session storage using Redis.

    Sessions are stored as JSON under ``{prefix}:{session_id}`` and expire
    through the Redis key TTL.
    """

    def __init__(
        self,
        client: Redis | None = None,
        prefix: str = "session",
        ttl: int = 28800,
    ):
        """Initialize session store.

        Args:
            client: Redis client (uses global if None)
            prefix: Key prefix for namespacing
            ttl: Default session TTL in seconds
        """
        self._client = client
        self.prefix = prefix
        self.ttl = ttl

    async def _get_client(self) -> Redis:
        if self._client is not None:
            return self._client
        return await get_redis_client()

    def _make_key(self, session_id: str) -> str:
        return f"{self.prefix}:{session_id}"

    async def create(self, session_id: str, data: dict[str, Any], *, ttl: int | None = None) -> bool:
        """Create a session. Returns False if the id is already taken."""
        client = await self._get_client()
        effective_ttl = ttl if ttl is not None else self.ttl
        value = json.dumps(data, default=str)
        result = await client.set(self._make_key(session_id), value, ex=effective_ttl, nx=True)
        return result is True

    async def get(self, session_id: str) -> dict[str, Any] | None:
        client = await self._get_client()
        value = await client.get(self._make_key(session_id))
        if value is None:
            return None
        return json.loads(value)

    async def delete(self, session_id: str) -> bool:
        client = await self._get_client()
        result = await client.delete(self._make_key(session_id))
        return result > 0


class RedisRateLimitStore(RateLimitStore):
    """Sliding window attempt counter using Redis sorted sets.

    Each attempt is a member scored by its timestamp. Members older than the
    window are trimmed before counting, so the count is exact across
    application instances.
    """

    def __init__(self, client: Redis | None = None, prefix: str = "ratelimit"):
        """Initialize rate limit store.

        Args:
            client: Redis client (uses global if None)
            prefix: Key prefix for namespacing
        """
        self._client = client
        self.prefix = prefix

    async def _get_client(self) -> Redis:
        if self._client is not None:
            return self._client
        return await get_redis_client()

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def check_and_increment(self, key: str, limit: int, window_size: int) -> RateLimitResult:
        client = await self._get_client()
        full_key = self._make_key(key)
        now = time.time()
        member = f"{now}:{uuid4().hex}"

        pipe = client.pipeline()
        pipe.zremrangebyscore(full_key, 0, now - window_size)
        pipe.zcard(full_key)
        pipe.zadd(full_key, {member: now})
        pipe.expire(full_key, window_size)
        results = await pipe.execute()
        current_count = results[1]

        reset_time = now + window_size

        if current_count >= limit:
            # Over limit, the rejected attempt does not count
            await client.zrem(full_key, member)

            oldest = await client.zrange(full_key, 0, 0, withscores=True)
            if oldest:
                retry_after = int(oldest[0][1] + window_size - now) + 1
            else:
                retry_after = window_size

            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_time=reset_time,
                retry_after=max(1, retry_after),
            )

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, limit - current_count - 1),
            reset_time=reset_time,
        )

    async def reset(self, key: str) -> bool:
        client = await self._get_client()
        result = await client.delete(self._make_key(key))
        return result > 0
