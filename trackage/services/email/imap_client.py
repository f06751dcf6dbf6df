"""
IMAP mailbox access over the standard library client
"""
import imaplib
import logging
import ssl
from typing import List, Optional

from trackage.core.exceptions import ErrorCode, TransportException
from trackage.core.settings import EmailSettings
from trackage.services.interfaces.mail_transport_interface import IMailTransport, MailMessage

logger = logging.getLogger(__name__)


def parse_uid_search_data(data: object) -> List[int]:
    if not isinstance(data, list) or not data or not data[0]:
        return []
    raw = data[0]
    if isinstance(raw, bytes):
        raw = raw.decode("ascii", errors="ignore")
    if not isinstance(raw, str):
        return []
    return [int(uid) for uid in raw.split() if uid.isdigit()]


def parse_fetch_message(fetch_data: object) -> Optional[bytes]:
    if not isinstance(fetch_data, list):
        return None
    for part in fetch_data:
        if isinstance(part, tuple) and len(part) >= 2 and isinstance(part[1], bytes):
            return part[1]
    return None


class ImapClient(IMailTransport):
    """
    Blocking IMAP client; one connection per fetch.

    Callers on the event loop run it through asyncio.to_thread.
    """

    def __init__(self, settings: EmailSettings):
        self.settings = settings

    def _connect(self) -> imaplib.IMAP4_SSL:
        try:
            imap = imaplib.IMAP4_SSL(
                self.settings.server,
                self.settings.port,
                ssl_context=ssl.create_default_context(),
            )
        except (OSError, imaplib.IMAP4.error) as e:
            raise TransportException(
                f"IMAP connection to {self.settings.server} failed: {e}",
                ErrorCode.NETWORK_ERROR,
            ) from e
        try:
            imap.login(self.settings.username, self.settings.password)
            status, _ = imap.select(self.settings.folder, readonly=True)
            if status != "OK":
                raise TransportException(f"IMAP folder {self.settings.folder} cannot be selected")
        except (OSError, imaplib.IMAP4.error) as e:
            self._logout(imap)
            raise TransportException(f"IMAP login failed: {e}") from e
        except TransportException:
            self._logout(imap)
            raise
        logger.info(f"IMAP folder {self.settings.folder} selected")
        return imap

    @staticmethod
    def _logout(imap: imaplib.IMAP4_SSL) -> None:
        try:
            imap.logout()
        except (OSError, imaplib.IMAP4.error) as e:
            logger.debug(f"IMAP logout failed: {e}")

    def fetch_messages_since_uid(self, last_seen_uid: Optional[int]) -> List[MailMessage]:
        floor = last_seen_uid or 0
        imap = self._connect()
        try:
            status, data = imap.uid("SEARCH", None, f"UID {floor + 1}:*")
            if status != "OK":
                raise TransportException(f"IMAP search failed: {status}")
            # "N:*" always matches the highest UID, even when it is <= N
            uids = sorted(uid for uid in parse_uid_search_data(data) if uid > floor)
            logger.info(f"{len(uids)} new messages since UID {floor}")

            messages = []
            for uid in uids:
                status, fetch_data = imap.uid("FETCH", str(uid), "(BODY.PEEK[])")
                raw = parse_fetch_message(fetch_data) if status == "OK" else None
                if raw is None:
                    logger.warning(f"IMAP fetch returned no body for UID {uid}")
                    continue
                messages.append(MailMessage(uid=uid, raw=raw))
            return messages
        except (OSError, imaplib.IMAP4.error) as e:
            raise TransportException(f"IMAP fetch failed: {e}", ErrorCode.NETWORK_ERROR) from e
        finally:
            self._logout(imap)
