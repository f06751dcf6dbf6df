"""
Factory building the courier router from the enabled carrier integrations
"""
from typing import Optional
import logging

import httpx

from trackage.core.settings import CarrierIntegrationSettings, get_carrier_integration_settings
from trackage.models.courier import CourierCodeEnum
from trackage.services.carriers.fedex_client import FedexClient
from trackage.services.carriers.ups_client import UpsClient
from trackage.services.carriers.ups_web_client import UpsWebClient
from trackage.services.carriers.usps_client import UspsClient
from trackage.services.tracking.courier_router import CourierRouter
from trackage.services.tracking.fedex_tracking_service import FedexTrackingService
from trackage.services.tracking.ups_tracking_service import UpsTrackingService
from trackage.services.tracking.ups_web_tracking_service import UpsWebTrackingService
from trackage.services.tracking.usps_tracking_service import UspsTrackingService

logger = logging.getLogger(__name__)


class CarrierServiceFactory:
    """Creates one tracking service per configured carrier"""

    def __init__(
        self,
        settings: Optional[CarrierIntegrationSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_carrier_integration_settings()
        self.transport = transport

    def build_router(self) -> CourierRouter:
        """
        Register a tracking service for every carrier with credentials.

        For UPS the Track API wins; the ups.com web session is used only when
        it is enabled and no UPS API credentials are configured.
        """
        router = CourierRouter()

        if self.settings.fedex_enabled:
            router.register(
                CourierCodeEnum.FEDEX.value,
                FedexTrackingService(FedexClient(self.settings, self.transport)),
            )

        if self.settings.ups_enabled:
            router.register(
                CourierCodeEnum.UPS.value,
                UpsTrackingService(UpsClient(self.settings, self.transport)),
            )
        elif self.settings.ups_web_enabled:
            router.register(
                CourierCodeEnum.UPS.value,
                UpsWebTrackingService(UpsWebClient(self.settings, self.transport)),
            )

        if self.settings.usps_enabled:
            router.register(
                CourierCodeEnum.USPS.value,
                UspsTrackingService(UspsClient(self.settings, self.transport)),
            )

        if not router.registered_couriers:
            logger.warning("No courier integration configured, status checks will yield nothing")
        return router


def build_courier_router(settings: Optional[CarrierIntegrationSettings] = None) -> CourierRouter:
    return CarrierServiceFactory(settings).build_router()
