"""
Date helpers. Everything handed to the store is either an RFC 3339 UTC
timestamp (2026-02-25T11:26:00Z) or an ISO date (2026-03-02).
"""
import re
from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as date_parser

RFC3339_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_YYYYMMDD = re.compile(r"^\d{8}$")
_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_US_TIME = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp])\.?\s*[Mm]\.?$")


def format_rfc3339_utc(value: datetime) -> str:
    """Naive datetimes are taken as UTC"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(RFC3339_FORMAT)


def utc_now_rfc3339() -> str:
    return format_rfc3339_utc(datetime.now(timezone.utc))


def parse_date_yyyymmdd(value: Optional[str]) -> Optional[str]:
    """'20260302' -> '2026-03-02', None for anything else"""
    if not isinstance(value, str) or not _YYYYMMDD.match(value.strip()):
        return None
    try:
        return datetime.strptime(value.strip(), "%Y%m%d").date().isoformat()
    except ValueError:
        return None


def parse_us_date(value: Optional[str]) -> Optional[str]:
    """'03/02/2026' -> '2026-03-02'"""
    if not isinstance(value, str):
        return None
    match = _US_DATE.match(value.strip())
    if not match:
        return None
    month, day, year = (int(g) for g in match.groups())
    try:
        return datetime(year, month, day).date().isoformat()
    except ValueError:
        return None


def parse_us_date_time(date_value: Optional[str], time_value: Optional[str]) -> Optional[str]:
    """
    Combine 'MM/DD/YYYY' and 'h:mm A.M.' into RFC 3339 UTC.

    Courier-local time is stored as if it were UTC; the offset is not known.
    Without a usable time the ISO date alone is returned.
    """
    iso_date = parse_us_date(date_value)
    if iso_date is None:
        return None
    if not isinstance(time_value, str) or not time_value.strip():
        return iso_date
    match = _US_TIME.match(time_value.strip())
    if not match:
        return iso_date
    hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).lower()
    if not 1 <= hour <= 12 or minute > 59:
        return iso_date
    hour = hour % 12 + (12 if meridiem == "p" else 0)
    day = datetime.strptime(iso_date, "%Y-%m-%d")
    return format_rfc3339_utc(day.replace(hour=hour, minute=minute))


def normalize_timestamp(value: Optional[str]) -> Optional[str]:
    """
    Normalize a courier timestamp.

    Values with a time component become RFC 3339 UTC (offsets are applied),
    bare dates become ISO dates. Unparseable input gives None.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if _YYYYMMDD.match(text):
        return parse_date_yyyymmdd(text)
    try:
        parsed = date_parser.isoparse(text)
    except ValueError:
        try:
            parsed = date_parser.parse(text)
        except (ValueError, OverflowError):
            return None
    if len(text) == 10 and "T" not in text:
        return parsed.date().isoformat()
    return format_rfc3339_utc(parsed)
