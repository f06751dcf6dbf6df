"""
Tracking number extraction: a permissive, courier-agnostic candidate scan
followed by validation against courier format and checksum rules.
"""
import logging
import re
from typing import Iterator, List, Optional

from tracking_numbers import get_tracking_number

from trackage.schemas.tracking_schema import ConfirmedTrackingNumber

logger = logging.getLogger(__name__)

# Grouped digits first ("9400 1000 0000 0000 0000 00", spaces or &nbsp;), then alphanumeric runs
_CANDIDATE_PATTERN = re.compile(
    r"\b\d{2,4}(?:[ \xa0]+\d{2,4}){3,}\b"
    r"|\b[A-Z0-9]{12,34}\b"
)
_HAS_DIGIT = re.compile(r"\d")
_WHITESPACE = re.compile(r"\s+")


def extract_candidates(text: str) -> Iterator[str]:
    """
    Yield tracking-number-shaped substrings of text, first seen first.

    Input is upper-cased before matching. Each candidate is yielded once per
    call. High recall: most candidates will not survive validation.
    """
    seen = set()
    for match in _CANDIDATE_PATTERN.finditer((text or "").upper()):
        candidate = match.group(0)
        if not _HAS_DIGIT.search(candidate) or candidate in seen:
            continue
        seen.add(candidate)
        yield candidate


def validate_candidate(candidate: str) -> Optional[ConfirmedTrackingNumber]:
    """Confirm a candidate against the known courier formats, None if no courier accepts it"""
    cleaned = _WHITESPACE.sub("", candidate or "")
    if not cleaned:
        return None

    match = get_tracking_number(cleaned)
    if match is None or not match.valid:
        return None

    return ConfirmedTrackingNumber(
        tracking_number=cleaned,
        courier=match.courier.code,
        service=match.product.name,
        tracking_url=match.tracking_url,
    )


def extract_tracking_numbers(text: str) -> List[ConfirmedTrackingNumber]:
    """Extract and validate, one entry per tracking number in first-seen order"""
    confirmed = []
    seen = set()
    for candidate in extract_candidates(text):
        result = validate_candidate(candidate)
        if result is None or result.tracking_number in seen:
            continue
        seen.add(result.tracking_number)
        logger.debug(f"Confirmed {result.courier} tracking number {result.tracking_number}")
        confirmed.append(result)
    return confirmed
