"""
UPS status type to canonical package status.

Shared by the UPS Track API (currentStatus.code) and the ups.com web
session (packageStatusType).
"""
from typing import Dict, Optional

from trackage.models.status import PackageStatusEnum

DEFAULT_STATUS: PackageStatusEnum = PackageStatusEnum.IN_TRANSIT

UPS_STATUS_MAPPING: Dict[str, PackageStatusEnum] = {
    "D": PackageStatusEnum.DELIVERED,
    # Manifest / billing information received
    "M": PackageStatusEnum.WAITING,
    # Pickup
    "P": PackageStatusEnum.WAITING,
}


def map_ups_status(code: Optional[str]) -> PackageStatusEnum:
    if not isinstance(code, str) or not code.strip():
        return DEFAULT_STATUS
    return UPS_STATUS_MAPPING.get(code.strip().upper(), DEFAULT_STATUS)
