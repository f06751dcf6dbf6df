import logging
from typing import Dict, List

from trackage.schemas.package_schema import ActivePackage
from trackage.schemas.tracking_schema import StatusObservation
from trackage.services.interfaces.tracking_service_interface import ITrackingService

logger = logging.getLogger(__name__)


class CourierRouter(ITrackingService):
    """Dispatch a package to the tracking service registered for its courier code"""

    def __init__(self):
        self._services: Dict[str, ITrackingService] = {}

    def register(self, courier_code: str, service: ITrackingService) -> None:
        """Register (or replace) the service for a courier code"""
        self._services[courier_code.lower()] = service
        logger.info(f"Registered {type(service).__name__} for courier '{courier_code.lower()}'")

    @property
    def registered_couriers(self) -> List[str]:
        return sorted(self._services)

    async def check_status(self, package: ActivePackage) -> List[StatusObservation]:
        service = self._services.get((package.courier or "").lower())
        if service is None:
            # An unconfigured courier yields no update this cycle
            logger.debug(
                f"No tracking service registered for courier '{package.courier}' "
                f"({package.tracking_number})"
            )
            return []
        return await service.check_status(package)
