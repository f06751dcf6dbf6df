"""
Unit tests for the per-courier token cache
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from trackage.core.exceptions import CredentialFetchException, TransportException
from trackage.services.carriers.token_cache import TOKEN_SAFETY_MARGIN_SECONDS, TokenCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTokenCache:
    """Test TokenCache caching and refresh"""

    @pytest.mark.asyncio
    async def test_second_call_within_ttl_uses_cache(self):
        clock = FakeClock()
        fetch = AsyncMock(side_effect=[("token-1", 3600), ("token-2", 3600)])
        cache = TokenCache(fetch, clock=clock)

        assert await cache.get_token() == "token-1"
        clock.now += 3600 - TOKEN_SAFETY_MARGIN_SECONDS - 1
        assert await cache.get_token() == "token-1"
        assert fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_call_after_expiry_fetches_exactly_once(self):
        clock = FakeClock()
        fetch = AsyncMock(side_effect=[("token-1", 3600), ("token-2", 3600)])
        cache = TokenCache(fetch, clock=clock)

        await cache.get_token()
        clock.now += 3600 - TOKEN_SAFETY_MARGIN_SECONDS

        assert await cache.get_token() == "token-2"
        assert await cache.get_token() == "token-2"
        assert fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_lifetime_shorter_than_margin_is_never_reused(self):
        fetch = AsyncMock(side_effect=[("token-1", 30), ("token-2", 30)])
        cache = TokenCache(fetch, clock=FakeClock())

        assert await cache.get_token() == "token-1"
        assert await cache.get_token() == "token-2"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_fetch(self):
        release = asyncio.Event()
        calls = 0

        async def slow_fetch():
            nonlocal calls
            calls += 1
            await release.wait()
            return "shared-token", 3600

        cache = TokenCache(slow_fetch, clock=FakeClock())
        waiters = [asyncio.create_task(cache.get_token()) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()

        assert await asyncio.gather(*waiters) == ["shared-token"] * 5
        assert calls == 1

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates_as_credential_error(self):
        fetch = AsyncMock(side_effect=TransportException("connection refused"))
        cache = TokenCache(fetch, name="FedEx", clock=FakeClock())

        with pytest.raises(CredentialFetchException) as exc_info:
            await cache.get_token()
        assert "FedEx" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_failed_fetch_caches_nothing(self):
        fetch = AsyncMock(side_effect=[CredentialFetchException("denied"), ("token-1", 3600)])
        cache = TokenCache(fetch, clock=FakeClock())

        with pytest.raises(CredentialFetchException):
            await cache.get_token()
        assert await cache.get_token() == "token-1"

    @pytest.mark.asyncio
    async def test_invalidate_forces_refresh(self):
        fetch = AsyncMock(side_effect=[("token-1", 3600), ("token-2", 3600)])
        cache = TokenCache(fetch, clock=FakeClock())

        await cache.get_token()
        cache.invalidate()

        assert await cache.get_token() == "token-2"
