import logging
from typing import Any, Dict, List, Optional

from trackage.core.exceptions import ParseException, TransportException
from trackage.schemas.package_schema import ActivePackage
from trackage.schemas.tracking_schema import StatusObservation
from trackage.services.carriers.ups_client import UpsClient
from trackage.services.carriers.ups_status_mapping import map_ups_status
from trackage.services.core.date_utils import parse_date_yyyymmdd
from trackage.services.core.tool import dig, join_location, as_str
from trackage.services.interfaces.tracking_service_interface import ITrackingService

logger = logging.getLogger(__name__)

# deliveryDate types carrying the delivery / estimated delivery date
DELIVERY_DATE_TYPES = ("DEL", "EDL")


class UpsTrackingService(ITrackingService):
    """UPS Track API backend"""

    def __init__(self, ups_client: Optional[UpsClient] = None):
        self.ups_client = ups_client or UpsClient()

    async def check_status(self, package: ActivePackage) -> List[StatusObservation]:
        response = await self.ups_client.get_tracking(package.tracking_number)
        if response is None:
            return []
        if not isinstance(response, dict) or not isinstance(response.get("trackResponse"), dict):
            raise TransportException(
                "UPS track response has no trackResponse envelope",
                details={"tracking_number": package.tracking_number},
            )

        try:
            return self._normalize(response, package.tracking_number)
        except ParseException as e:
            logger.warning(f"Unusable UPS response for {package.tracking_number}: {e.message}")
            return []

    def _normalize(self, response: Dict[str, Any], tracking_number: str) -> List[StatusObservation]:
        ups_package = dig(response, "trackResponse", "shipment", 0, "package", 0)
        if not isinstance(ups_package, dict):
            raise ParseException("missing shipment[0].package[0]")

        current_status = ups_package.get("currentStatus")
        code = as_str(current_status.get("code")) if isinstance(current_status, dict) else None
        if code is None:
            raise ParseException("missing or non-string currentStatus.code")

        status = map_ups_status(code)
        logger.debug(f"UPS {tracking_number}: code {code} -> {status}")

        estimated_arrival = None
        delivery_dates = ups_package.get("deliveryDate")
        for entry in delivery_dates if isinstance(delivery_dates, list) else []:
            if isinstance(entry, dict) and entry.get("type") in DELIVERY_DATE_TYPES:
                estimated_arrival = parse_date_yyyymmdd(entry.get("date"))
                if estimated_arrival:
                    break

        address = dig(ups_package, "activity", 0, "location", "address")
        location = None
        if isinstance(address, dict) and as_str(address.get("city")):
            location = join_location(address.get("city"), address.get("stateProvince"))

        return [StatusObservation(
            status=status,
            estimated_arrival_date=estimated_arrival,
            last_known_location=location,
            description=as_str(current_status.get("description")),
        )]
