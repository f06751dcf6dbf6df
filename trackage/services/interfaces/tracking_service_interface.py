from abc import ABC, abstractmethod
from typing import List

from trackage.schemas.package_schema import ActivePackage
from trackage.schemas.tracking_schema import StatusObservation


class ITrackingService(ABC):
    """Common interface for all courier tracking services (FedEx, UPS, USPS, UPS web)"""

    @abstractmethod
    async def check_status(self, package: ActivePackage) -> List[StatusObservation]:
        """
        Check the courier for one package

        Args:
            package: Active package to check

        Returns:
            Observations oldest first; empty when the courier has no record or no data yet

        Raises:
            TransportException: On network or HTTP failure, or a response without its envelope
            CredentialFetchException: If no token could be obtained
        """
        pass
