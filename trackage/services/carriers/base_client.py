import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from trackage.core.exceptions import ErrorCode, TransportException
from trackage.core.settings import CarrierIntegrationSettings, get_carrier_integration_settings
from trackage.services.carriers.token_cache import TokenCache

logger = logging.getLogger(__name__)


class BaseCarrierClient:
    """HTTP plumbing shared by the courier API clients"""

    carrier_name = "Courier"

    def __init__(
        self,
        settings: Optional[CarrierIntegrationSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_carrier_integration_settings()
        # Injected by tests (httpx.MockTransport); None means real network
        self._transport = transport
        self.timeout = self.settings.http_timeout_seconds
        self.max_retries = self.settings.http_max_retries
        self.base_delay = self.settings.http_retry_base_delay

    def _client(self, **kwargs) -> httpx.AsyncClient:
        kwargs.setdefault("timeout", self.timeout)
        return httpx.AsyncClient(transport=self._transport, **kwargs)

    async def _make_request_with_retry(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic for 429, 5xx and network errors

        Args:
            client: httpx client instance
            method: HTTP method
            url: Request URL
            **kwargs: Additional request parameters

        Returns:
            The last httpx Response; 4xx and exhausted 429/5xx are returned, not raised

        Raises:
            TransportException: If the request cannot be sent after all retries
        """
        for attempt in range(self.max_retries + 1):
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.TimeoutException as e:
                if attempt < self.max_retries:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(f"{self.carrier_name} API request timeout, retrying in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"{self.carrier_name} API request timeout after all retries")
                raise TransportException(
                    f"{self.carrier_name} API request timed out: {e}",
                    ErrorCode.NETWORK_ERROR,
                    {"url": url},
                ) from e
            except httpx.RequestError as e:
                if attempt < self.max_retries:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(f"{self.carrier_name} API request error: {e}, retrying in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"{self.carrier_name} API request error after all retries: {e}")
                raise TransportException(
                    f"{self.carrier_name} API request failed: {e}",
                    ErrorCode.NETWORK_ERROR,
                    {"url": url},
                ) from e

            # Rate limit (429) or server error (5xx) - retry
            if (response.status_code == 429 or response.status_code >= 500) and attempt < self.max_retries:
                delay = self.base_delay * (2 ** attempt)
                logger.warning(
                    f"{self.carrier_name} API request failed with status {response.status_code}, "
                    f"retrying in {delay}s (attempt {attempt + 1}/{self.max_retries + 1})"
                )
                await asyncio.sleep(delay)
                continue
            return response

        # This should never be reached
        raise RuntimeError("Unexpected retry loop exit")

    async def _authorized_request(
        self,
        token_cache: TokenCache,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> httpx.Response:
        """Send a bearer-authenticated request; a 401 drops the cached token and retries once"""
        async with self._client() as client:
            for attempt in range(2):
                token = await token_cache.get_token()
                request_headers = {**(headers or {}), "Authorization": f"Bearer {token}"}
                response = await self._make_request_with_retry(
                    client, method, url, headers=request_headers, **kwargs
                )
                if response.status_code != 401 or attempt == 1:
                    return response
                logger.warning(f"{self.carrier_name} rejected the cached token, refreshing")
                token_cache.invalidate()
        # This should never be reached
        raise RuntimeError("Unexpected retry loop exit")

    def _check_response(self, response: httpx.Response, allowed: Iterable[int] = ()) -> None:
        """Raise TransportException for any status >= 400 not listed in allowed"""
        if response.status_code < 400 or response.status_code in allowed:
            return
        raise TransportException(
            f"{self.carrier_name} API returned HTTP {response.status_code}",
            details={"status_code": response.status_code, "body": response.text[:500]},
        )

    def _parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportException(
                f"{self.carrier_name} API returned a non-JSON body",
                details={"status_code": response.status_code, "body": response.text[:500]},
            ) from e
