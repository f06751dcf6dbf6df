import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from trackage.core.exceptions import CredentialFetchException
from trackage.core.settings import CarrierIntegrationSettings
from trackage.services.carriers.base_client import BaseCarrierClient
from trackage.services.carriers.token_cache import TokenCache

logger = logging.getLogger(__name__)

# USPS reports unknown tracking numbers with an `error` envelope on these statuses
NOT_FOUND_STATUSES = (400, 404)


class UspsClient(BaseCarrierClient):
    """USPS Tracking 3.0 API client, OAuth 2.0 client credentials in a JSON body"""

    carrier_name = "USPS"

    def __init__(
        self,
        settings: Optional[CarrierIntegrationSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        token_cache: Optional[TokenCache] = None,
    ):
        super().__init__(settings, transport)
        self.base_url = self.settings.usps_base_url.rstrip("/")
        self.token_cache = token_cache or TokenCache(self._fetch_token, name=self.carrier_name)

    async def _fetch_token(self) -> Tuple[str, int]:
        url = f"{self.base_url}/oauth2/v3/token"
        payload = {
            "client_id": self.settings.usps_client_id or "",
            "client_secret": self.settings.usps_client_secret or "",
            "grant_type": "client_credentials",
        }

        async with self._client() as client:
            response = await self._make_request_with_retry(
                client, "POST", url, headers={"Accept": "application/json"}, json=payload
            )

        if response.status_code >= 400:
            raise CredentialFetchException(
                f"USPS OAuth Error ({response.status_code})",
                details={"status_code": response.status_code, "body": response.text[:500]},
            )
        response_data = self._parse_json(response)
        if not isinstance(response_data, dict) or not response_data.get("access_token"):
            raise CredentialFetchException("USPS OAuth response missing access_token")
        expires_in = response_data.get("expires_in")
        if not isinstance(expires_in, int) or isinstance(expires_in, bool):
            raise CredentialFetchException("USPS OAuth response missing expires_in")
        return response_data["access_token"], expires_in

    async def get_tracking(self, tracking_number: str) -> Dict[str, Any]:
        """
        Track one shipment with detailed events

        Returns:
            Raw USPS body; an `error` key means USPS has no record

        Raises:
            TransportException: On network errors, HTTP errors or a non-JSON body
        """
        url = f"{self.base_url}/tracking/v3/tracking/{tracking_number}"

        response = await self._authorized_request(
            self.token_cache, "GET", url, headers={"Accept": "application/json"}, params={"expand": "DETAIL"}
        )

        if response.status_code in NOT_FOUND_STATUSES:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                return body
        self._check_response(response)
        return self._parse_json(response)
