"""
Per-courier OAuth token cache
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple

from trackage.core.exceptions import CredentialFetchException, TransportException

logger = logging.getLogger(__name__)

# Tokens are considered expired this many seconds before the courier says so
TOKEN_SAFETY_MARGIN_SECONDS = 60

TokenFetcher = Callable[[], Awaitable[Tuple[str, int]]]


@dataclass(frozen=True)
class CachedToken:
    value: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class TokenCache:
    """
    Cache one bearer token and refresh it on expiry.

    The lock is held for the whole check-and-refresh, so concurrent callers
    wait for a single in-flight fetch instead of starting their own.
    """

    def __init__(
        self,
        fetch: TokenFetcher,
        name: str = "courier",
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch = fetch
        self._name = name
        self._clock = clock
        self._token: Optional[CachedToken] = None
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        """
        Return a valid token, fetching a new one if needed.

        Raises:
            CredentialFetchException: If the token endpoint fails
        """
        async with self._lock:
            token = self._token
            if token is not None and token.is_valid(self._clock()):
                return token.value

            logger.debug(f"Fetching new {self._name} access token")
            try:
                value, expires_in = await self._fetch()
            except CredentialFetchException:
                raise
            except TransportException as e:
                raise CredentialFetchException(
                    f"{self._name} token request failed: {e.message}",
                    details=e.details,
                ) from e

            ttl = max(int(expires_in) - TOKEN_SAFETY_MARGIN_SECONDS, 0)
            self._token = CachedToken(value=value, expires_at=self._clock() + ttl)
            logger.info(f"{self._name} access token obtained, cached for {ttl}s")
            return value

    def invalidate(self) -> None:
        """Drop the cached token, e.g. after the tracking endpoint answered 401"""
        self._token = None
