"""Login attempt throttling.

Implements sliding window rate limiting with:
- Per identity + client address keys
- In-memory and Redis storage backends (see tenantgate.core.redis)
- A retry-after hint instead of an unhandled error when throttled
"""

import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Protocol

from tenantgate.core.exceptions import TooManyAttemptsError
from tenantgate.security.config import RateLimitConfig


@dataclass
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the attempt is allowed
        limit: The attempt limit for this key
        remaining: Attempts remaining in the window
        reset_time: Unix timestamp when the window resets
        retry_after: Seconds until the client can retry (if not allowed)
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after: int = 0


@dataclass
class SlidingWindowCounter:
    """Sliding window counter for rate limiting.

    Tracks attempts in the current and previous window and weights the
    previous window by how much of it still overlaps the sliding window.

    Attributes:
        current_count: Attempts in the current window
        previous_count: Attempts in the previous window
        window_start: Start time of the current window
        window_size: Size of the window in seconds
    """

    current_count: int = 0
    previous_count: int = 0
    window_start: float = 0.0
    window_size: int = 60

    def roll(self, now: float) -> None:
        """Advance the window so that ``now`` falls inside the current one."""
        elapsed = now - self.window_start
        if elapsed < self.window_size:
            return

        if int(elapsed / self.window_size) == 1:
            self.previous_count = self.current_count
            self.window_start += self.window_size
        else:
            # Multiple windows passed, reset everything
            self.previous_count = 0
            self.window_start = now
        self.current_count = 0

    def get_weighted_count(self, now: float) -> float:
        """Get the weighted attempt count using the sliding window."""
        time_in_window = now - self.window_start
        if time_in_window >= self.window_size:
            return float(self.current_count)

        weight = 1.0 - (time_in_window / self.window_size)
        return self.current_count + (self.previous_count * weight)

    def seconds_until_allowed(self, now: float, limit: int) -> float:
        """Time until the weighted count drops below ``limit`` with no new attempts.

        Once the current window ends its attempts carry over as the previous
        window at full weight, so a full current window also has to decay.
        """
        window_end = self.window_start + self.window_size
        if self.current_count >= limit:
            decay = self.window_size * (1.0 - limit / self.current_count)
            return (window_end - now) + decay

        if self.previous_count == 0:
            return 0.0
        fraction = 1.0 - (limit - self.current_count) / self.previous_count
        return max(0.0, self.window_start + self.window_size * fraction - now)

    def increment(self, now: float) -> None:
        """Record one attempt, handling window transitions."""
        self.roll(now)
        self.current_count += 1


class RateLimitStore(Protocol):
    """Protocol for rate limit storage backends.

    Implementations must make check_and_increment atomic per key.
    """

    async def check_and_increment(self, key: str, limit: int, window_size: int) -> RateLimitResult:
        """Check the limit for ``key`` and count the attempt if allowed."""
        ...

    async def reset(self, key: str) -> bool:
        """Forget all attempts for ``key``. Returns True if the key existed."""
        ...


class InMemoryRateLimitStore(RateLimitStore):
    """In-memory rate limit storage using sliding window counters.

    Suitable for single-instance deployments. For multi-instance deployments
    use tenantgate.core.redis.RedisRateLimitStore.

    Example:
        store = InMemoryRateLimitStore()
        result = await store.check_and_increment("login:app:bob@acme.com|10.0.0.1", 5, 60)
        if not result.allowed:
            raise TooManyAttemptsError(retry_after=result.retry_after)
    """

    def __init__(self, cleanup_interval: int = 300) -> None:
        """Initialize the store.

        Args:
            cleanup_interval: Seconds between cleanup of expired entries
        """
        self._counters: dict[str, SlidingWindowCounter] = {}
        self._lock = threading.Lock()
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = time.time()

    async def check_and_increment(self, key: str, limit: int, window_size: int) -> RateLimitResult:
        """Check rate limit and increment counter if allowed."""
        now = time.time()

        with self._lock:
            if now - self._last_cleanup > self._cleanup_interval:
                self._cleanup(now, window_size)

            counter = self._counters.get(key)
            if counter is None:
                counter = self._counters[key] = SlidingWindowCounter(
                    window_start=now,
                    window_size=window_size,
                )

            counter.roll(now)
            weighted_count = counter.get_weighted_count(now)
            reset_time = counter.window_start + window_size

            if weighted_count >= limit:
                return RateLimitResult(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    reset_time=reset_time,
                    # Whole seconds past the threshold, where the count is strictly below the limit
                    retry_after=max(1, int(round(counter.seconds_until_allowed(now, limit), 6)) + 1),
                )

            counter.increment(now)

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, int(limit - weighted_count - 1)),
            reset_time=reset_time,
        )

    async def reset(self, key: str) -> bool:
        with self._lock:
            return self._counters.pop(key, None) is not None

    async def get_current_count(self, key: str) -> int:
        """Get the current weighted attempt count for a key."""
        counter = self._counters.get(key)
        if counter is None:
            return 0
        return int(counter.get_weighted_count(time.time()))

    def _cleanup(self, now: float, window_size: int) -> None:
        """Drop counters more than two windows old. Caller holds the lock."""
        self._last_cleanup = now
        expired = [k for k, c in self._counters.items() if now - c.window_start > window_size * 2]
        for key in expired:
            del self._counters[key]


class RateLimiter:
    """Login throttle over a pluggable storage backend.

    Example:
        limiter = RateLimiter(InMemoryRateLimitStore(), RateLimitConfig(max_attempts=5))
        await limiter.hit_or_raise("app", "bob@acme.com", "10.0.0.1")
    """

    def __init__(
        self,
        store: RateLimitStore,
        config: RateLimitConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or RateLimitConfig()

    @staticmethod
    def build_key(panel: str, identity: str, client_ip: str | None) -> str:
        """Build the throttle key for one identity at one address.

        The identity is hashed so raw emails never reach the counter backend.
        """
        digest = hashlib.sha256(f"{identity.strip().lower()}|{client_ip or 'unknown'}".encode()).hexdigest()
        return f"login:{panel}:{digest[:32]}"

    async def hit(self, panel: str, identity: str, client_ip: str | None) -> RateLimitResult:
        """Count one attempt and report whether it is allowed."""
        if not self.config.enabled:
            return RateLimitResult(
                allowed=True,
                limit=self.config.max_attempts,
                remaining=self.config.max_attempts,
                reset_time=time.time() + self.config.window_size_seconds,
            )

        return await self.store.check_and_increment(
            key=self.build_key(panel, identity, client_ip),
            limit=self.config.max_attempts,
            window_size=self.config.window_size_seconds,
        )

    async def hit_or_raise(self, panel: str, identity: str, client_ip: str | None) -> RateLimitResult:
        """Count one attempt and raise if throttled.

        Raises:
            TooManyAttemptsError: Carrying the seconds to wait before retrying
        """
        result = await self.hit(panel, identity, client_ip)
        if not result.allowed:
            raise TooManyAttemptsError(retry_after=result.retry_after)
        return result

    async def clear(self, panel: str, identity: str, client_ip: str | None) -> None:
        """Forget attempts after a successful login."""
        if self.config.enabled and self.config.reset_on_success:
            await self.store.reset(self.build_key(panel, identity, client_ip))
