from trackage.models.package import Package
from trackage.models.package_status import PackageStatusHistory
from trackage.models.metadata import AppMetadata
from trackage.models.status import PackageStatusEnum, TERMINAL_STATUSES
from trackage.models.courier import CourierCodeEnum

__all__ = [
    "Package",
    "PackageStatusHistory",
    "AppMetadata",
    "PackageStatusEnum",
    "TERMINAL_STATUSES",
    "CourierCodeEnum",
]
