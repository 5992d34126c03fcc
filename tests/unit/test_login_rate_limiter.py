"""Tests for login attempt throttling."""

import time

import pytest

from tenantgate.config.settings import Settings
from tenantgate.core.exceptions import TooManyAttemptsError
from tenantgate.security.config import (
    RateLimitConfig,
    SecurityConfig,
    create_default_security_config,
)
from tenantgate.security.rate_limiter import (
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitResult,
    SlidingWindowCounter,
)


class TestSlidingWindowCounter:
    """Tests for SlidingWindowCounter."""

    def test_initial_state(self) -> None:
        counter = SlidingWindowCounter(window_start=time.time(), window_size=60)
        assert counter.current_count == 0
        assert counter.previous_count == 0

    def test_increment(self) -> None:
        now = time.time()
        counter = SlidingWindowCounter(window_start=now, window_size=60)

        counter.increment(now)
        counter.increment(now + 1)

        assert counter.current_count == 2

    def test_window_rollover(self) -> None:
        """Test counter window rollover."""
        now = time.time()
        counter = SlidingWindowCounter(window_start=now, window_size=60, current_count=10, previous_count=5)

        counter.increment(now + 61)

        assert counter.previous_count == 10
        assert counter.current_count == 1

    def test_weighted_count(self) -> None:
        """Previous window counts in proportion to its overlap."""
        now = time.time()
        counter = SlidingWindowCounter(window_start=now, window_size=60, current_count=5, previous_count=10)

        assert counter.get_weighted_count(now) == 15
        assert counter.get_weighted_count(now + 30) == pytest.approx(10)
        assert counter.get_weighted_count(now + 59) < 6

    def test_seconds_until_allowed_full_window(self) -> None:
        counter = SlidingWindowCounter(window_start=1000.0, window_size=60, current_count=5)

        assert counter.seconds_until_allowed(1002.0, limit=5) == pytest.approx(58)
        assert counter.seconds_until_allowed(1002.0, limit=4) == pytest.approx(58 + 12)

    def test_seconds_until_allowed_previous_window(self) -> None:
        counter = SlidingWindowCounter(window_start=1060.0, window_size=60, current_count=1, previous_count=5)

        assert counter.seconds_until_allowed(1071.0, limit=5) == pytest.approx(1)
        assert counter.seconds_until_allowed(1071.0, limit=10) == 0.0

    def test_multiple_window_skip(self) -> None:
        now = time.time()
        counter = SlidingWindowCounter(window_start=now, window_size=60, current_count=10, previous_count=5)

        counter.increment(now + 180)

        assert counter.previous_count == 0
        assert counter.current_count == 1


class TestInMemoryRateLimitStore:
    """Tests for InMemoryRateLimitStore."""

    @pytest.fixture
    def store(self) -> InMemoryRateLimitStore:
        return InMemoryRateLimitStore()

    @pytest.mark.asyncio
    async def test_first_attempt_allowed(self, store: InMemoryRateLimitStore) -> None:
        result = await store.check_and_increment("k", limit=5, window_size=60)

        assert result.allowed is True
        assert result.remaining == 4
        assert result.limit == 5

    @pytest.mark.asyncio
    async def test_exceeds_limit(self, store: InMemoryRateLimitStore) -> None:
        for _ in range(5):
            assert (await store.check_and_increment("k", limit=5, window_size=60)).allowed

        result = await store.check_and_increment("k", limit=5, window_size=60)
        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after > 0

    @pytest.mark.asyncio
    async def test_rejected_attempt_not_counted(self, store: InMemoryRateLimitStore) -> None:
        for _ in range(8):
            await store.check_and_increment("k", limit=5, window_size=60)

        assert await store.get_current_count("k") == 5

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, store: InMemoryRateLimitStore) -> None:
        for _ in range(5):
            await store.check_and_increment("a", limit=5, window_size=60)

        assert (await store.check_and_increment("b", limit=5, window_size=60)).allowed

    @pytest.mark.asyncio
    async def test_reset(self, store: InMemoryRateLimitStore) -> None:
        for _ in range(5):
            await store.check_and_increment("k", limit=5, window_size=60)

        assert await store.reset("k") is True
        assert await store.reset("k") is False
        assert (await store.check_and_increment("k", limit=5, window_size=60)).allowed

    @pytest.mark.asyncio
    async def test_window_expiry_allows_again(self, store: InMemoryRateLimitStore, monkeypatch) -> None:
        now = time.time()
        monkeypatch.setattr(time, "time", lambda: now)
        for _ in range(5):
            await store.check_and_increment("k", limit=5, window_size=60)
        assert not (await store.check_and_increment("k", limit=5, window_size=60)).allowed

        monkeypatch.setattr(time, "time", lambda: now + 121)
        assert (await store.check_and_increment("k", limit=5, window_size=60)).allowed

    @pytest.mark.asyncio
    async def test_waiting_retry_after_is_enough(self, store: InMemoryRateLimitStore, monkeypatch) -> None:
        monkeypatch.setattr(time, "time", lambda: 1000.0)
        for _ in range(5):
            await store.check_and_increment("k", limit=5, window_size=60)

        monkeypatch.setattr(time, "time", lambda: 1002.0)
        throttled = await store.check_and_increment("k", limit=5, window_size=60)
        assert throttled.allowed is False

        monkeypatch.setattr(time, "time", lambda: 1002.0 + throttled.retry_after)
        assert (await store.check_and_increment("k", limit=5, window_size=60)).allowed

    @pytest.mark.asyncio
    async def test_retry_after_covers_carried_over_attempts(self, store: InMemoryRateLimitStore, monkeypatch) -> None:
        monkeypatch.setattr(time, "time", lambda: 1000.0)
        await store.check_and_increment("k", limit=5, window_size=60)
        monkeypatch.setattr(time, "time", lambda: 1050.0)
        for _ in range(4):
            await store.check_and_increment("k", limit=5, window_size=60)

        monkeypatch.setattr(time, "time", lambda: 1070.0)
        assert (await store.check_and_increment("k", limit=5, window_size=60)).allowed

        monkeypatch.setattr(time, "time", lambda: 1071.0)
        throttled = await store.check_and_increment("k", limit=5, window_size=60)
        assert throttled.allowed is False
        assert throttled.retry_after == 2

        monkeypatch.setattr(time, "time", lambda: 1071.0 + throttled.retry_after)
        assert (await store.check_and_increment("k", limit=5, window_size=60)).allowed


class TestRateLimiter:
    """Tests for RateLimiter."""

    @pytest.fixture
    def limiter(self) -> RateLimiter:
        return RateLimiter(InMemoryRateLimitStore(), RateLimitConfig(max_attempts=3, window_size_seconds=60))

    def test_key_hides_identity(self) -> None:
        key = RateLimiter.build_key("app", "bob@acme.com", "10.0.0.1")

        assert key.startswith("login:app:")
        assert "bob" not in key
        assert "10.0.0.1" not in key

    def test_key_normalizes_identity(self) -> None:
        assert RateLimiter.build_key("app", " Bob@Acme.com", "1.1.1.1") == RateLimiter.build_key(
            "app", "bob@acme.com", "1.1.1.1"
        )

    def test_key_varies_by_panel_and_address(self) -> None:
        base = RateLimiter.build_key("app", "bob@acme.com", "1.1.1.1")

        assert base != RateLimiter.build_key("admin", "bob@acme.com", "1.1.1.1")
        assert base != RateLimiter.build_key("app", "bob@acme.com", "2.2.2.2")

    @pytest.mark.asyncio
    async def test_hit_or_raise(self, limiter: RateLimiter) -> None:
        for _ in range(3):
            await limiter.hit_or_raise("app", "bob@acme.com", "10.0.0.1")

        with pytest.raises(TooManyAttemptsError) as exc_info:
            await limiter.hit_or_raise("app", "bob@acme.com", "10.0.0.1")

        assert exc_info.value.retry_after >= 1
        assert "Too many login attempts" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_clear(self, limiter: RateLimiter) -> None:
        for _ in range(3):
            await limiter.hit("app", "bob@acme.com", "10.0.0.1")

        await limiter.clear("app", "bob@acme.com", "10.0.0.1")

        assert (await limiter.hit("app", "bob@acme.com", "10.0.0.1")).allowed

    @pytest.mark.asyncio
    async def test_clear_respects_reset_on_success(self) -> None:
        limiter = RateLimiter(InMemoryRateLimitStore(), RateLimitConfig(max_attempts=2, reset_on_success=False))
        for _ in range(2):
            await limiter.hit("app", "bob@acme.com", None)

        await limiter.clear("app", "bob@acme.com", None)

        assert not (await limiter.hit("app", "bob@acme.com", None)).allowed

    @pytest.mark.asyncio
    async def test_disabled(self) -> None:
        limiter = RateLimiter(InMemoryRateLimitStore(), RateLimitConfig(enabled=False, max_attempts=1))

        for _ in range(5):
            result = await limiter.hit("app", "bob@acme.com", None)
            assert isinstance(result, RateLimitResult)
            assert result.allowed


class TestSecurityConfig:
    """Tests for security configuration defaults."""

    def test_from_settings(self) -> None:
        config = RateLimitConfig.from_settings(Settings(login_max_attempts=3, login_window_seconds=30))

        assert config.max_attempts == 3
        assert config.window_size_seconds == 30

    def test_development_does_not_trust_forwarded_for(self) -> None:
        config = create_default_security_config("development")

        assert isinstance(config, SecurityConfig)
        assert config.trust_forwarded_for is False

    def test_production_trusts_forwarded_for(self) -> None:
        assert create_default_security_config("production").trust_forwarded_for is True
