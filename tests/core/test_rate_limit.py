"""
Unit tests for rate limiting.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import Request
from redis.exceptions import ConnectionError as RedisConnectionError

from diploma_api.core import rate_limit as rate_limit_module
from diploma_api.core.rate_limit import RateLimitExceeded, check_rate_limit, rate_limit


@pytest.fixture(autouse=True)
def clear_memory_store():
    rate_limit_module._memory_store.clear()
    rate_limit_module._memory_expiry.clear()
    yield
    rate_limit_module._memory_store.clear()
    rate_limit_module._memory_expiry.clear()


@pytest.fixture
def no_redis():
    with patch.object(rate_limit_module.redis_module, "get_redis", AsyncMock(return_value=None)):
        yield


class TestCheckRateLimit:
    @pytest.mark.asyncio
    async def test_memory_fallback_enforces_limit(self, no_redis):
        results = [await check_rate_limit("k", limit=3, window_seconds=60) for _ in range(4)]
        assert results == [True, True, True, False]

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, no_redis):
        assert await check_rate_limit("a", limit=1, window_seconds=60)
        assert await check_rate_limit("b", limit=1, window_seconds=60)
        assert not await check_rate_limit("a", limit=1, window_seconds=60)

    @pytest.mark.asyncio
    async def test_stale_keys_are_evicted(self, no_redis):
        with patch.object(rate_limit_module.time, "time", return_value=1000.0):
            await check_rate_limit("old", limit=5, window_seconds=60)
            await check_rate_limit("slow", limit=5, window_seconds=600)

        with patch.object(rate_limit_module.time, "time", return_value=1100.0):
            await check_rate_limit("new", limit=5, window_seconds=60)

        assert "old" not in rate_limit_module._memory_store
        assert "old" not in rate_limit_module._memory_expiry
        assert set(rate_limit_module._memory_store) == {"slow", "new"}

    @pytest.mark.asyncio
    async def test_redis_count_used(self):
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[0, 5, 1, True])
        client = MagicMock()
        client.pipeline.return_value = pipe

        with patch.object(
            rate_limit_module.redis_module, "get_redis", AsyncMock(return_value=client)
        ):
            assert not await check_rate_limit("k", limit=5, window_seconds=60)

    @pytest.mark.asyncio
    async def test_redis_error_falls_back_to_memory(self):
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=RedisConnectionError("down"))
        client = MagicMock()
        client.pipeline.return_value = pipe

        with patch.object(
            rate_limit_module.redis_module, "get_redis", AsyncMock(return_value=client)
        ):
            assert await check_rate_limit("k", limit=1, window_seconds=60)
        assert "k" in rate_limit_module._memory_store


class TestRateLimitDecorator:
    @pytest.mark.asyncio
    async def test_raises_after_limit(self, no_redis):
        @rate_limit(limit=1, window_seconds=60)
        async def endpoint(request: Request):
            return "ok"

        request = MagicMock(spec=Request)
        request.client.host = "1.2.3.4"
        request.url.path = "/api/v1/degrees/bulk-upload"

        assert await endpoint(request=request) == "ok"
        with pytest.raises(RateLimitExceeded) as exc_info:
            await endpoint(request=request)
        assert exc_info.value.status_code == 429
