import logging
from typing import Any, Dict, List, Optional

from trackage.core.exceptions import ParseException, TransportException
from trackage.schemas.package_schema import ActivePackage
from trackage.schemas.tracking_schema import StatusObservation
from trackage.services.carriers.fedex_client import FedexClient
from trackage.services.carriers.fedex_status_mapping import map_fedex_status
from trackage.services.core.date_utils import normalize_timestamp
from trackage.services.core.tool import dig, join_location, as_str
from trackage.services.interfaces.tracking_service_interface import ITrackingService

logger = logging.getLogger(__name__)


class FedexTrackingService(ITrackingService):
    """FedEx Track API backend"""

    def __init__(self, fedex_client: Optional[FedexClient] = None):
        self.fedex_client = fedex_client or FedexClient()

    async def check_status(self, package: ActivePackage) -> List[StatusObservation]:
        response = await self.fedex_client.get_tracking(package.tracking_number)
        if not isinstance(response, dict) or not isinstance(response.get("output"), dict):
            raise TransportException(
                "FedEx track response has no output envelope",
                details={"tracking_number": package.tracking_number},
            )

        try:
            return self._normalize(response, package.tracking_number)
        except ParseException as e:
            logger.warning(f"Unusable FedEx response for {package.tracking_number}: {e.message}")
            return []

    def _normalize(self, response: Dict[str, Any], tracking_number: str) -> List[StatusObservation]:
        track_result = dig(response, "output", "completeTrackResults", 0, "trackResults", 0)
        if not isinstance(track_result, dict):
            raise ParseException("missing completeTrackResults[0].trackResults[0]")

        error = track_result.get("error")
        if isinstance(error, dict):
            logger.info(f"FedEx has no record of {tracking_number}: {error.get('code', '')}")
            return []

        status_detail = track_result.get("latestStatusDetail")
        if not isinstance(status_detail, dict):
            raise ParseException("missing latestStatusDetail")
        code = as_str(status_detail.get("code"))
        if code is None:
            raise ParseException("missing or non-string latestStatusDetail.code")

        status = map_fedex_status(code)
        logger.debug(f"FedEx {tracking_number}: code {code} -> {status}")

        estimated_arrival = None
        date_entries = track_result.get("dateAndTimes")
        for entry in date_entries if isinstance(date_entries, list) else []:
            if isinstance(entry, dict) and entry.get("type") == "ESTIMATED_DELIVERY":
                estimated_arrival = normalize_timestamp(entry.get("dateTime"))
                break

        scan_location = status_detail.get("scanLocation")
        location = None
        if isinstance(scan_location, dict) and as_str(scan_location.get("city")):
            location = join_location(scan_location.get("city"), scan_location.get("stateOrProvinceCode"))

        return [StatusObservation(
            status=status,
            estimated_arrival_date=estimated_arrival,
            last_known_location=location,
            description=as_str(status_detail.get("description")),
        )]
