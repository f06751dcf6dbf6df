import base64
import logging
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from trackage.core.exceptions import CredentialFetchException
from trackage.core.settings import CarrierIntegrationSettings
from trackage.services.carriers.base_client import BaseCarrierClient
from trackage.services.carriers.token_cache import TokenCache
from trackage.services.core.tool import safe_int

logger = logging.getLogger(__name__)

TRANSACTION_SOURCE = "trackage"


class UpsClient(BaseCarrierClient):
    """UPS Track API client, OAuth 2.0 client credentials over HTTP Basic auth"""

    carrier_name = "UPS"

    def __init__(
        self,
        settings: Optional[CarrierIntegrationSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        token_cache: Optional[TokenCache] = None,
    ):
        super().__init__(settings, transport)
        self.base_url = self.settings.ups_base_url.rstrip("/")
        self.token_cache = token_cache or TokenCache(self._fetch_token, name=self.carrier_name)

    async def _fetch_token(self) -> Tuple[str, int]:
        url = f"{self.base_url}/security/v1/oauth/token"
        raw = f"{self.settings.ups_client_id or ''}:{self.settings.ups_client_secret or ''}"
        credentials = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        headers = {
            "Authorization": f"Basic {credentials}",
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        async with self._client() as client:
            response = await self._make_request_with_retry(
                client, "POST", url, headers=headers, data={"grant_type": "client_credentials"}
            )

        if response.status_code >= 400:
            raise CredentialFetchException(
                f"UPS OAuth Error ({response.status_code})",
                details={"status_code": response.status_code, "body": response.text[:500]},
            )
        response_data = self._parse_json(response)
        if not isinstance(response_data, dict) or not response_data.get("access_token"):
            raise CredentialFetchException("UPS OAuth response missing access_token")

        # UPS sends expires_in as a string
        expires_in = safe_int(response_data.get("expires_in"), default=-1)
        if expires_in < 0:
            raise CredentialFetchException(
                "UPS OAuth response has no usable expires_in",
                details={"expires_in": response_data.get("expires_in")},
            )
        return response_data["access_token"], expires_in

    async def get_tracking(self, tracking_number: str) -> Optional[Dict[str, Any]]:
        """
        Track one shipment

        Returns:
            Raw UPS trackResponse body, None when UPS answers 404

        Raises:
            TransportException: On network errors, HTTP errors or a non-JSON body
        """
        url = f"{self.base_url}/api/track/v1/details/{tracking_number}"

        headers = {
            "transId": f"{TRANSACTION_SOURCE}-{int(time.time())}",
            "transactionSrc": TRANSACTION_SOURCE,
            "Accept": "application/json",
        }
        response = await self._authorized_request(self.token_cache, "GET", url, headers=headers)

        if response.status_code == 404:
            logger.debug(f"UPS tracking number {tracking_number} not found")
            return None
        self._check_response(response)
        return self._parse_json(response)
