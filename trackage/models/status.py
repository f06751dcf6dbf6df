import enum
from typing import Any

from trackage.core.exceptions import InvalidStatusException


class PackageStatusEnum(str, enum.Enum):
    """Canonical package state shared by every courier"""
    WAITING = "waiting"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"

    @classmethod
    def parse(cls, value: Any) -> "PackageStatusEnum":
        """
        Parse a status literal, rejecting anything outside the canonical set.

        Raises:
            InvalidStatusException: If value is not one of the three states
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value == value:
                    return member
        raise InvalidStatusException(
            f"Unknown package status: {value!r}",
            details={"status": value}
        )

    def __str__(self) -> str:
        return self.value


# Statuses after which a package is no longer polled
TERMINAL_STATUSES = (PackageStatusEnum.DELIVERED,)
