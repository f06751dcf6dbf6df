from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class MailMessage:
    uid: int
    raw: bytes


class IMailTransport(ABC):
    """Mailbox access used by the ingestion worker"""

    @abstractmethod
    def fetch_messages_since_uid(self, last_seen_uid: Optional[int]) -> List[MailMessage]:
        """
        Messages with a UID greater than last_seen_uid, in ascending UID order.
        All messages when last_seen_uid is None.

        Raises:
            TransportException: If the mailbox cannot be reached
        """
        pass
