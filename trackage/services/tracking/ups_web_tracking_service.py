import logging
from typing import Any, Dict, List, Optional

from trackage.core.exceptions import ParseException, TransportException
from trackage.models.status import PackageStatusEnum
from trackage.schemas.package_schema import ActivePackage
from trackage.schemas.tracking_schema import StatusObservation
from trackage.services.carriers.ups_status_mapping import map_ups_status
from trackage.services.carriers.ups_web_client import UpsWebClient
from trackage.services.core.date_utils import normalize_timestamp, parse_us_date, parse_us_date_time
from trackage.services.core.tool import dig, as_str
from trackage.services.interfaces.tracking_service_interface import ITrackingService

logger = logging.getLogger(__name__)


def _trim_country(location: Optional[str]) -> Optional[str]:
    """'Memphis, TN, United States' -> 'Memphis, TN'"""
    location = as_str(location)
    if location is None:
        return None
    parts = [part.strip() for part in location.split(",") if part.strip()]
    if not parts:
        return None
    return ", ".join(parts[:2])


def _scheduled_date(value: Any) -> Optional[str]:
    value = as_str(value)
    if value is None:
        return None
    return parse_us_date(value) or normalize_timestamp(value)


class UpsWebTrackingService(ITrackingService):
    """
    UPS backend through the ups.com web session.

    The web client changes without notice, so every failure is logged and
    reported as "no data" instead of being raised.
    """

    def __init__(self, ups_web_client: Optional[UpsWebClient] = None):
        self.ups_web_client = ups_web_client or UpsWebClient()

    async def check_status(self, package: ActivePackage) -> List[StatusObservation]:
        try:
            response = await self.ups_web_client.get_status(package.tracking_number)
        except TransportException as e:
            logger.warning(f"UPS web tracking failed for {package.tracking_number}: {e.message}")
            return []

        try:
            return self._normalize(response, package.tracking_number)
        except (ParseException, TypeError, ValueError) as e:
            logger.warning(f"Unusable UPS web response for {package.tracking_number}: {e}")
            return []

    def _normalize(self, response: Dict[str, Any], tracking_number: str) -> List[StatusObservation]:
        details = dig(response, "trackDetails", 0)
        code = as_str(details.get("packageStatusType")) if isinstance(details, dict) else None
        if code is None:
            raise ParseException("missing or non-string packageStatusType")

        status = map_ups_status(code)
        logger.info(f"UPS web {tracking_number}: code {code} -> {status}")

        activities = details.get("shipmentProgressActivities")
        if isinstance(activities, list):
            observations = self._from_activities(details, activities, status)
            if observations:
                return observations

        return [StatusObservation(
            status=status,
            estimated_arrival_date=_scheduled_date(details.get("scheduledDeliveryDate")),
            last_known_location=_trim_country(details.get("lastLocation")),
            description=as_str(details.get("packageStatus")),
        )]

    def _from_activities(
        self,
        details: Dict[str, Any],
        activities: List[Any],
        current_status: PackageStatusEnum,
    ) -> List[StatusObservation]:
        """One observation per activity, oldest first; only the newest carries the current status"""
        usable = [activity for activity in activities if isinstance(activity, dict)]
        estimated_arrival = _scheduled_date(details.get("scheduledDeliveryDate"))

        observations = []
        # The feed lists the newest activity first
        for index, activity in enumerate(reversed(usable)):
            is_latest = index == len(usable) - 1
            observations.append(StatusObservation(
                status=current_status if is_latest else PackageStatusEnum.IN_TRANSIT,
                estimated_arrival_date=estimated_arrival if is_latest else None,
                last_known_location=_trim_country(activity.get("location")),
                description=as_str(activity.get("activityScan")) or as_str(activity.get("milestoneName")),
                checked_at=parse_us_date_time(activity.get("date"), activity.get("time")),
            ))
        return observations
