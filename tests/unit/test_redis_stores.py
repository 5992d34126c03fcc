"""Unit tests for the Redis-backed session and throttle stores."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tenantgate.core.redis import RedisRateLimitStore, RedisSessionStore, get_redis_pool


@pytest.fixture
def mock_client():
    """Create mock Redis client.

    Note: pipeline() is a sync method that returns a pipeline object,
    while most other methods are async.
    """
    client = MagicMock()
    client.get = AsyncMock()
    client.set = AsyncMock()
    client.delete = AsyncMock()
    client.zrem = AsyncMock()
    client.zrange = AsyncMock()
    return client


def make_pipeline(results):
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=results)
    return pipe


class TestRedisSessionStore:
    """Tests for RedisSessionStore."""

    @pytest.fixture
    def store(self, mock_client):
        return RedisSessionStore(client=mock_client, prefix="test_session", ttl=3600)

    @pytest.mark.asyncio
    async def test_create(self, store, mock_client):
        mock_client.set.return_value = True

        assert await store.create("sid", {"tenant_id": "acme"}) is True

        call_args = mock_client.set.call_args
        assert call_args[0][0] == "test_session:sid"
        assert json.loads(call_args[0][1]) == {"tenant_id": "acme"}
        assert call_args[1]["ex"] == 3600
        assert call_args[1]["nx"] is True

    @pytest.mark.asyncio
    async def test_create_custom_ttl(self, store, mock_client):
        mock_client.set.return_value = True

        await store.create("sid", {}, ttl=60)
        assert mock_client.set.call_args[1]["ex"] == 60

    @pytest.mark.asyncio
    async def test_create_existing_id(self, store, mock_client):
        mock_client.set.return_value = None

        assert await store.create("sid", {}) is False

    @pytest.mark.asyncio
    async def test_get(self, store, mock_client):
        mock_client.get.return_value = '{"tenant_id": "acme"}'

        assert await store.get("sid") == {"tenant_id": "acme"}
        mock_client.get.assert_called_once_with("test_session:sid")

    @pytest.mark.asyncio
    async def test_get_missing(self, store, mock_client):
        mock_client.get.return_value = None

        assert await store.get("sid") is None

    @pytest.mark.asyncio
    async def test_delete(self, store, mock_client):
        mock_client.delete.return_value = 1
        assert await store.delete("sid") is True

        mock_client.delete.return_value = 0
        assert await store.delete("sid") is False


class TestRedisRateLimitStore:
    """Tests for RedisRateLimitStore."""

    @pytest.fixture
    def store(self, mock_client):
        return RedisRateLimitStore(client=mock_client, prefix="test_rl")

    @pytest.mark.asyncio
    async def test_allowed(self, store, mock_client):
        pipe = make_pipeline([0, 2, 1, True])
        mock_client.pipeline.return_value = pipe

        result = await store.check_and_increment("login:app:abc", limit=5, window_size=60)

        assert result.allowed is True
        assert result.remaining == 2
        pipe.zremrangebyscore.assert_called_once()
        assert pipe.zadd.call_args[0][0] == "test_rl:login:app:abc"
        pipe.expire.assert_called_once_with("test_rl:login:app:abc", 60)
        mock_client.zrem.assert_not_called()

    @pytest.mark.asyncio
    async def test_over_limit_removes_attempt(self, store, mock_client):
        mock_client.pipeline.return_value = make_pipeline([0, 5, 1, True])
        with patch("tenantgate.core.redis.time.time", return_value=1000.0):
            mock_client.zrange.return_value = [("m", 970.0)]

            result = await store.check_and_increment("k", limit=5, window_size=60)

        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after == 31
        mock_client.zrem.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_over_limit_without_members(self, store, mock_client):
        mock_client.pipeline.return_value = make_pipeline([0, 5, 1, True])
        mock_client.zrange.return_value = []

        result = await store.check_and_increment("k", limit=5, window_size=60)

        assert result.retry_after == 60

    @pytest.mark.asyncio
    async def test_reset(self, store, mock_client):
        mock_client.delete.return_value = 1

        assert await store.reset("k") is True
        mock_client.delete.assert_called_once_with("test_rl:k")


class TestConnectionHelpers:
    @pytest.mark.asyncio
    async def test_pool_requires_url(self):
        settings = MagicMock(REDIS_URL=None)
        with (
            patch("tenantgate.core.redis._pool", None),
            patch("tenantgate.core.redis.get_settings", return_value=settings),
        ):
            with pytest.raises(RuntimeError, match="REDIS_URL"):
                await get_redis_pool()
