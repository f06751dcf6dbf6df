"""
Heuristics for USPS free-text event summaries, e.g.

    "Your item was delivered in or at the mailbox at 11:26 am on
     February 25, 2026 in MEMPHIS, TN 38116."

Each parser is a pure function that tries its patterns in order and
returns None when none matches.
"""
import re
from datetime import datetime
from typing import Optional

from trackage.models.status import PackageStatusEnum
from trackage.services.core.date_utils import format_rfc3339_utc

_OUT_FOR_DELIVERY = re.compile(r"\bout for delivery\b")
_DELIVERED = re.compile(r"^delivered\b|\b(?:was|been|item)\s+delivered\b")
_WAITING_KEYWORDS = (
    "label created",
    "shipping label",
    "pre-shipment",
    "awaiting item",
    "shipment information received",
)

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_NUMERIC_DATE = re.compile(
    r"\b(\d{1,2})/(\d{1,2})/(\d{4})(?:,?\s+(\d{1,2}):(\d{2})(?:\s*([ap])\.?m\.?)?)?",
    re.IGNORECASE,
)
_MONTH_DATE = re.compile(
    r"\b(january|february|march|april|may|june|july|august|september|october|november|december"
    r"|jan|feb|mar|apr|jun|jul|aug|sept|sep|oct|nov|dec)\.?\s+(\d{1,2}),\s*(\d{4})\b",
    re.IGNORECASE,
)
_CLOCK_TIME = re.compile(r"\b(\d{1,2}):(\d{2})\s*([ap])\.?m\.?(?![a-z])", re.IGNORECASE)

_CITY_STATE = re.compile(
    r"((?:[A-Z][A-Za-z.'\-]*\s)*[A-Z][A-Za-z.'\-]*),\s*([A-Z]{2})\b(?:\s+\d{5}(?:-\d{4})?)?"
)
_FACILITY = re.compile(
    r"\b([A-Z]{2})\s+(?:NETWORK\s+)?(?:DISTRIBUTION|PROCESSING|REGIONAL)\s+(?:CENTER|FACILITY)\b"
)
# Words that belong to the facility wording, never to the city name
_FACILITY_STOPWORDS = {
    "USPS", "REGIONAL", "FACILITY", "ORIGIN", "DESTINATION", "NETWORK", "DISTRIBUTION",
    "PROCESSING", "CENTER", "ARRIVED", "DEPARTED", "PROCESSED", "THROUGH", "AT", "IN",
    "TO", "FROM", "THE", "OF", "ON", "WAY",
}
_MAX_CITY_WORDS = 3


def parse_status(text: Optional[str]) -> PackageStatusEnum:
    """Delivered wording first, then pre-shipment wording, anything else is in transit"""
    lowered = (text or "").strip().lower()
    if _OUT_FOR_DELIVERY.search(lowered):
        return PackageStatusEnum.IN_TRANSIT
    if _DELIVERED.search(lowered):
        return PackageStatusEnum.DELIVERED
    if any(keyword in lowered for keyword in _WAITING_KEYWORDS):
        return PackageStatusEnum.WAITING
    return PackageStatusEnum.IN_TRANSIT


def _to_24h(hour: int, meridiem: Optional[str]) -> Optional[int]:
    if meridiem is None:
        return hour if 0 <= hour <= 23 else None
    if not 1 <= hour <= 12:
        return None
    return hour % 12 + (12 if meridiem.lower() == "p" else 0)


def _build(year: int, month: int, day: int, hour: Optional[int] = None, minute: Optional[int] = None) -> Optional[str]:
    try:
        if hour is None or minute is None or minute > 59:
            return datetime(year, month, day).date().isoformat()
        return format_rfc3339_utc(datetime(year, month, day, hour, minute))
    except ValueError:
        return None


def parse_date(text: Optional[str]) -> Optional[str]:
    """
    Observation time of an event summary.

    Pattern A: MM/DD/YYYY with an optional HH:MM [am|pm].
    Pattern B: "Month D, YYYY", with a clock time anywhere in the summary
    ("..., 2:30 pm" or "2:30 pm on Month D, YYYY").

    Returns an RFC 3339 timestamp when a time is known, else an ISO date.
    Times are courier-local and stored as UTC.
    """
    if not text:
        return None

    match = _NUMERIC_DATE.search(text)
    if match:
        month, day, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
        hour = minute = None
        if match.group(4) is not None:
            hour = _to_24h(int(match.group(4)), match.group(6))
            minute = int(match.group(5))
        return _build(year, month, day, hour, minute)

    match = _MONTH_DATE.search(text)
    if match:
        month = _MONTHS[match.group(1)[:3].lower()]
        day, year = int(match.group(2)), int(match.group(3))
        hour = minute = None
        clock = _CLOCK_TIME.search(text)
        if clock:
            hour = _to_24h(int(clock.group(1)), clock.group(3))
            minute = int(clock.group(2))
        return _build(year, month, day, hour, minute)

    return None


def parse_location(text: Optional[str]) -> Optional[str]:
    """
    Location of an event summary as "City, ST".

    Pattern A: capitalized words followed by ", ST" and an optional ZIP.
    Pattern B: facility names without a comma, "MEMPHIS TN DISTRIBUTION CENTER".
    """
    if not text:
        return None

    match = _CITY_STATE.search(text)
    if match:
        return f"{match.group(1).strip()}, {match.group(2)}"

    match = _FACILITY.search(text)
    if match:
        city_words = []
        for word in reversed(text[:match.start()].split()):
            if word.upper() != word or word in _FACILITY_STOPWORDS or not word[0].isalpha():
                break
            city_words.insert(0, word)
            if len(city_words) == _MAX_CITY_WORDS:
                break
        if city_words:
            return f"{' '.join(city_words)}, {match.group(1)}"

    return None
