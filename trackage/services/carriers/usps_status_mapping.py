"""
USPS statusCategory to canonical package status
"""
from typing import Dict, Optional

from trackage.models.status import PackageStatusEnum

DEFAULT_STATUS: PackageStatusEnum = PackageStatusEnum.IN_TRANSIT

USPS_STATUS_MAPPING: Dict[str, PackageStatusEnum] = {
    "delivered": PackageStatusEnum.DELIVERED,
    "pre-shipment": PackageStatusEnum.WAITING,
}


def map_usps_status(category: Optional[str]) -> PackageStatusEnum:
    """Case-insensitive; unknown or empty categories are in transit"""
    if not isinstance(category, str) or not category.strip():
        return DEFAULT_STATUS
    return USPS_STATUS_MAPPING.get(category.strip().lower(), DEFAULT_STATUS)
