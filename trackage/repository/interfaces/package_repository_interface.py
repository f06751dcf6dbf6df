"""
Storage contract shared by the ingestion worker and the status poller
"""
from abc import ABC, abstractmethod
from typing import Optional, List, Union

from trackage.models.status import PackageStatusEnum
from trackage.schemas.package_schema import ActivePackage, NewPackage, PackageWithStatus, StatusHistoryEntry


class IPackageRepository(ABC):
    """Interface for the package and status history store"""

    @abstractmethod
    def get_active_packages(self) -> List[ActivePackage]:
        """Packages whose latest status is not delivered and that are not deleted"""
        pass

    @abstractmethod
    def insert_package(self, new_package: NewPackage) -> bool:
        """Insert a package, True when a row was created, False when the tracking number already exists"""
        pass

    @abstractmethod
    def insert_package_status(
        self,
        package_id: int,
        status: Union[PackageStatusEnum, str],
        estimated_arrival_date: Optional[str] = None,
        last_known_location: Optional[str] = None,
        description: Optional[str] = None,
        checked_at: Optional[str] = None,
    ) -> bool:
        """Append a status history entry, False when it duplicates an existing one"""
        pass

    @abstractmethod
    def get_package_status_history(self, package_id: int) -> List[StatusHistoryEntry]:
        """Status history of a package, newest first"""
        pass

    @abstractmethod
    def get_all_packages_with_status(self) -> List[PackageWithStatus]:
        pass

    @abstractmethod
    def delete_package(self, package_id: int) -> bool:
        """Soft delete, True when a live package was marked deleted"""
        pass

    @abstractmethod
    def get_last_seen_uid(self) -> Optional[int]:
        pass

    @abstractmethod
    def set_last_seen_uid(self, uid: int) -> None:
        pass
