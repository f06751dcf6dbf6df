"""
Raw RFC 822 message to the fields the ingestion worker needs
"""
import email
import email.header
import email.utils
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import Message
from typing import List, Optional

from bs4 import BeautifulSoup

from trackage.core.exceptions import ParseException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedEmail:
    subject: Optional[str]
    sender: Optional[str]
    date: datetime
    body_text: str


def decode_header_value(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    parts = []
    for fragment, encoding in email.header.decode_header(value):
        if isinstance(fragment, bytes):
            parts.append(fragment.decode(encoding or "utf-8", errors="replace"))
        else:
            parts.append(fragment)
    decoded = "".join(parts).strip()
    return decoded or None


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text("\n", strip=True)


def _part_text(part: Message) -> Optional[str]:
    payload = part.get_payload(decode=True)
    if payload is None:
        return None
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def _message_date(message: Message) -> datetime:
    raw = message.get("Date")
    if raw:
        try:
            parsed = email.utils.parsedate_to_datetime(raw)
        except (TypeError, ValueError):
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
    logger.debug("Message has no usable Date header, using current time")
    return datetime.now(timezone.utc)


def parse_message(raw: bytes) -> ParsedEmail:
    """
    Parse a raw message. Plain text parts come first in body_text, followed
    by the text of HTML parts; attachments are skipped.

    Raises:
        ParseException: If the message has no readable text at all
    """
    message = email.message_from_bytes(raw)

    plain_parts: List[str] = []
    html_parts: List[str] = []
    for part in message.walk():
        if part.is_multipart() or part.get_content_disposition() == "attachment":
            continue
        content_type = part.get_content_type()
        if content_type not in ("text/plain", "text/html"):
            continue
        text = _part_text(part)
        if not text:
            continue
        if content_type == "text/html":
            html_parts.append(html_to_text(text))
        else:
            plain_parts.append(text)

    body_text = "\n".join(plain_parts + html_parts).strip()
    subject = decode_header_value(message.get("Subject"))
    if not body_text and not subject:
        raise ParseException("Message has no readable text")

    return ParsedEmail(
        subject=subject,
        sender=decode_header_value(message.get("From")),
        date=_message_date(message),
        body_text=body_text,
    )
