import logging
from typing import Any, Dict, Optional

import httpx

from trackage.core.exceptions import TransportException
from trackage.core.settings import CarrierIntegrationSettings
from trackage.services.carriers.base_client import BaseCarrierClient

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
# Anti-forgery cookie set by the tracking page, mirrored back as X-XSRF-TOKEN
XSRF_COOKIE_NAME = "X-XSRF-TOKEN-ST"
XSRF_HEADER_NAME = "X-XSRF-TOKEN"
LOCALE = "en_US"


class UpsWebClient(BaseCarrierClient):
    """
    ups.com tracking through the public web client.

    Two steps sharing one cookie jar: GET the tracking page to open a session
    and receive the anti-forgery cookie, then POST the status request with
    that token as a header.
    """

    carrier_name = "UPS web"

    def __init__(
        self,
        settings: Optional[CarrierIntegrationSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(settings, transport)
        self.base_url = self.settings.ups_web_base_url.rstrip("/")
        self.timeout = self.settings.ups_web_timeout_seconds

    async def get_status(self, tracking_number: str) -> Dict[str, Any]:
        """
        Raises:
            TransportException: On any failure of either step
        """
        page_url = f"{self.base_url}/track"
        status_url = f"{self.base_url}/track/api/Track/GetStatus"
        headers = {"User-Agent": BROWSER_USER_AGENT}

        async with self._client(headers=headers, follow_redirects=True) as client:
            page = await self._make_request_with_retry(
                client, "GET", page_url,
                params={"loc": LOCALE, "tracknum": tracking_number, "requester": "ST/trackdetails"},
            )
            self._check_response(page)

            try:
                xsrf_token = client.cookies.get(XSRF_COOKIE_NAME)
            except httpx.CookieConflict as e:
                raise TransportException(f"Ambiguous {XSRF_COOKIE_NAME} cookie from ups.com") from e
            if not xsrf_token:
                raise TransportException(f"ups.com did not set the {XSRF_COOKIE_NAME} cookie")

            response = await self._make_request_with_retry(
                client, "POST", status_url,
                params={"loc": LOCALE},
                headers={
                    XSRF_HEADER_NAME: xsrf_token,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                json={"Locale": LOCALE, "TrackingNumber": [tracking_number]},
            )

        self._check_response(response)
        body = self._parse_json(response)
        if not isinstance(body, dict):
            raise TransportException("ups.com status response is not a JSON object")
        return body
