import enum


class CourierCodeEnum(str, enum.Enum):
    """Courier codes with a status integration (as reported by tracking-numbers)"""
    FEDEX = "fedex"
    UPS = "ups"
    USPS = "usps"

    @property
    def display_name(self) -> str:
        return {
            CourierCodeEnum.FEDEX: "FedEx",
            CourierCodeEnum.UPS: "UPS",
            CourierCodeEnum.USPS: "USPS",
        }[self]
