"""
Periodic courier status polling for every active package
"""
import logging
from dataclasses import dataclass
from typing import Optional

from trackage.core.exceptions import (
    BaseApplicationException,
    CredentialFetchException,
    InvalidStatusException,
    TransportException,
)
from trackage.core.shutdown import ShutdownToken
from trackage.models.status import PackageStatusEnum
from trackage.repository.interfaces.package_repository_interface import IPackageRepository
from trackage.schemas.package_schema import ActivePackage
from trackage.services.interfaces.tracking_service_interface import ITrackingService

logger = logging.getLogger(__name__)

DEFAULT_POLLING_INTERVAL = 3600  # 1 hour


@dataclass
class PollCycleResult:
    checked: int = 0
    appended: int = 0
    failed: int = 0


class StatusPollingService:
    """
    One poll cycle: read the active packages, ask the courier router about
    each of them in turn and append what comes back to the history.

    A failing package is logged and skipped; it is retried next cycle.
    """

    def __init__(
        self,
        package_repository: IPackageRepository,
        tracking_service: ITrackingService,
        interval_seconds: int = DEFAULT_POLLING_INTERVAL,
    ):
        self.package_repository = package_repository
        self.tracking_service = tracking_service
        self.interval_seconds = interval_seconds

    async def poll_once(self) -> PollCycleResult:
        result = PollCycleResult()
        try:
            packages = self.package_repository.get_active_packages()
        except BaseApplicationException as e:
            logger.error(f"Cannot load active packages: {e.message}")
            return result

        if not packages:
            logger.info("No active packages, skipping status check")
            return result

        logger.info(f"Checking status of {len(packages)} active packages")
        for package in packages:
            result.checked += 1
            try:
                result.appended += await self._check_package(package)
            except CredentialFetchException as e:
                result.failed += 1
                logger.error(f"Credential error checking {package.tracking_number} ({package.courier}): {e.to_dict()}")
            except TransportException as e:
                result.failed += 1
                logger.warning(f"Transport error checking {package.tracking_number} ({package.courier}): {e.to_dict()}")
            except BaseApplicationException as e:
                result.failed += 1
                logger.error(f"Error checking {package.tracking_number}: {e.to_dict()}")
            except Exception as e:
                result.failed += 1
                logger.error(f"Unexpected error checking {package.tracking_number}: {str(e)}", exc_info=True)

        logger.info(
            f"Status check completed: {result.checked} checked, "
            f"{result.appended} entries appended, {result.failed} failed"
        )
        return result

    async def _check_package(self, package: ActivePackage) -> int:
        observations = await self.tracking_service.check_status(package)
        if not observations:
            logger.debug(f"No news for {package.tracking_number}")
            return 0

        appended = 0
        previous: Optional[PackageStatusEnum] = package.status
        for observation in observations:
            try:
                status = PackageStatusEnum.parse(observation.status)
            except InvalidStatusException as e:
                logger.error(f"Dropping observation for {package.tracking_number}: {e.message}")
                continue

            inserted = self.package_repository.insert_package_status(
                package.id,
                status,
                estimated_arrival_date=observation.estimated_arrival_date,
                last_known_location=observation.last_known_location,
                description=observation.description,
                checked_at=observation.checked_at,
            )
            if not inserted:
                logger.debug(f"Duplicate observation for {package.tracking_number} skipped")
                continue

            appended += 1
            if status != previous:
                logger.info(f"{package.tracking_number} ({package.courier}): {previous} -> {status}")
                previous = status
        return appended

    async def run(self, shutdown: ShutdownToken) -> None:
        logger.info(f"Status poller started, interval {self.interval_seconds}s")
        while not shutdown.is_set:
            await self.poll_once()
            await shutdown.sleep(self.interval_seconds)
        logger.info("Status poller shutting down")
