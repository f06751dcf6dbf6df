"""
FedEx latestStatusDetail.code to canonical package status
"""
from typing import Dict, Optional

from trackage.models.status import PackageStatusEnum

# Any code not listed here means the package is moving
DEFAULT_STATUS: PackageStatusEnum = PackageStatusEnum.IN_TRANSIT

FEDEX_STATUS_MAPPING: Dict[str, PackageStatusEnum] = {
    "DL": PackageStatusEnum.DELIVERED,
    # Shipment information sent to FedEx
    "OC": PackageStatusEnum.WAITING,
    # Label created
    "LC": PackageStatusEnum.WAITING,
}


def map_fedex_status(code: Optional[str]) -> PackageStatusEnum:
    if not isinstance(code, str) or not code.strip():
        return DEFAULT_STATUS
    return FEDEX_STATUS_MAPPING.get(code.strip().upper(), DEFAULT_STATUS)
