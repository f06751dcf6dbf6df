import logging
from typing import Any, Dict, List, Optional

from trackage.core.exceptions import ParseException, TransportException
from trackage.schemas.package_schema import ActivePackage
from trackage.schemas.tracking_schema import StatusObservation
from trackage.services.carriers.usps_client import UspsClient
from trackage.services.carriers.usps_event_parser import parse_date, parse_location, parse_status
from trackage.services.carriers.usps_status_mapping import map_usps_status
from trackage.services.core.date_utils import normalize_timestamp
from trackage.services.core.tool import dig, join_location, as_str
from trackage.services.interfaces.tracking_service_interface import ITrackingService

logger = logging.getLogger(__name__)


class UspsTrackingService(ITrackingService):
    """
    USPS Tracking 3.0 backend.

    Uses the structured statusCategory when USPS sends one; otherwise every
    free-text eventSummaries entry becomes an observation, oldest first.
    """

    def __init__(self, usps_client: Optional[UspsClient] = None):
        self.usps_client = usps_client or UspsClient()

    async def check_status(self, package: ActivePackage) -> List[StatusObservation]:
        response = await self.usps_client.get_tracking(package.tracking_number)
        if not isinstance(response, dict):
            raise TransportException(
                "USPS track response is not a JSON object",
                details={"tracking_number": package.tracking_number},
            )

        error = response.get("error")
        if isinstance(error, dict):
            logger.info(
                f"USPS has no record of {package.tracking_number}: "
                f"{error.get('code', '')} {error.get('message', '')}".rstrip()
            )
            return []

        try:
            if as_str(response.get("statusCategory")):
                return self._normalize_structured(response, package.tracking_number)
            return self._normalize_event_summaries(response, package.tracking_number)
        except ParseException as e:
            logger.warning(f"Unusable USPS response for {package.tracking_number}: {e.message}")
            return []

    def _normalize_structured(self, response: Dict[str, Any], tracking_number: str) -> List[StatusObservation]:
        category = response["statusCategory"]
        status = map_usps_status(category)
        logger.debug(f"USPS {tracking_number}: category {category} -> {status}")

        latest_event = dig(response, "trackingEvents", 0) or {}
        location = None
        if isinstance(latest_event, dict) and as_str(latest_event.get("eventCity")):
            location = join_location(latest_event.get("eventCity"), latest_event.get("eventState"))
        checked_at = None
        if isinstance(latest_event, dict):
            checked_at = normalize_timestamp(latest_event.get("eventTimestamp"))

        return [StatusObservation(
            status=status,
            estimated_arrival_date=normalize_timestamp(response.get("expectedDeliveryDate")),
            last_known_location=location,
            description=as_str(response.get("statusSummary")) or as_str(response.get("status")),
            checked_at=checked_at,
        )]

    def _normalize_event_summaries(self, response: Dict[str, Any], tracking_number: str) -> List[StatusObservation]:
        summaries = response.get("eventSummaries")
        if not isinstance(summaries, list):
            raise ParseException("neither statusCategory nor eventSummaries present")

        observations = []
        # USPS lists the newest event first
        for summary in reversed(summaries):
            text = as_str(summary)
            if text is None:
                continue
            observations.append(StatusObservation(
                status=parse_status(text),
                last_known_location=parse_location(text),
                description=text,
                checked_at=parse_date(text),
            ))
        logger.debug(f"USPS {tracking_number}: {len(observations)} events parsed from summaries")
        return observations
