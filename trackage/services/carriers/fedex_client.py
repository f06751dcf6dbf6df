import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from trackage.core.exceptions import CredentialFetchException
from trackage.core.settings import CarrierIntegrationSettings
from trackage.services.carriers.base_client import BaseCarrierClient
from trackage.services.carriers.token_cache import TokenCache

logger = logging.getLogger(__name__)


class FedexClient(BaseCarrierClient):
    """FedEx Track API HTTP client with OAuth 2.0 client-credentials authentication"""

    carrier_name = "FedEx"

    def __init__(
        self,
        settings: Optional[CarrierIntegrationSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        token_cache: Optional[TokenCache] = None,
    ):
        super().__init__(settings, transport)
        self.token_cache = token_cache or TokenCache(self._fetch_token, name=self.carrier_name)

    @property
    def base_url(self) -> str:
        if self.settings.fedex_use_sandbox:
            return self.settings.fedex_base_url_sandbox.rstrip("/")
        return self.settings.fedex_base_url_prod.rstrip("/")

    async def _fetch_token(self) -> Tuple[str, int]:
        url = f"{self.base_url}/oauth/token"
        form_data = {
            "grant_type": "client_credentials",
            "client_id": self.settings.fedex_client_id or "",
            "client_secret": self.settings.fedex_client_secret or "",
        }
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        async with self._client() as client:
            response = await self._make_request_with_retry(client, "POST", url, headers=headers, data=form_data)

        if response.status_code >= 400:
            raise CredentialFetchException(
                f"FedEx OAuth Error ({response.status_code})",
                details={"status_code": response.status_code, "body": response.text[:500]},
            )
        response_data = self._parse_json(response)

        access_token = response_data.get("access_token") if isinstance(response_data, dict) else None
        expires_in = response_data.get("expires_in") if isinstance(response_data, dict) else None
        if not access_token:
            raise CredentialFetchException("FedEx OAuth response missing access_token")
        if not isinstance(expires_in, int) or isinstance(expires_in, bool):
            raise CredentialFetchException("FedEx OAuth response missing expires_in")
        return access_token, expires_in

    async def get_tracking(self, tracking_number: str) -> Dict[str, Any]:
        """
        Track one shipment

        Returns:
            Raw FedEx Track API response body

        Raises:
            TransportException: On network errors, HTTP errors or a non-JSON body
        """
        url = f"{self.base_url}/track/v1/trackingnumbers"
        payload = {
            "trackingInfo": [
                {"trackingNumberInfo": {"trackingNumber": tracking_number}}
            ],
            "includeDetailedScans": False,
        }

        headers = {"Content-Type": "application/json", "X-locale": "en_US"}
        response = await self._authorized_request(self.token_cache, "POST", url, headers=headers, json=payload)

        self._check_response(response)
        return self._parse_json(response)
