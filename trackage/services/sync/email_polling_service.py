"""
Mailbox ingestion: new messages -> tracking numbers -> new packages
"""
import asyncio
import logging

from trackage.core.exceptions import BaseApplicationException, ParseException
from trackage.core.shutdown import ShutdownToken
from trackage.repository.interfaces.package_repository_interface import IPackageRepository
from trackage.schemas.package_schema import NewPackage
from trackage.services.extraction.email_parser import parse_message
from trackage.services.extraction.tracking_extractor import extract_tracking_numbers
from trackage.services.interfaces.mail_transport_interface import IMailTransport, MailMessage

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL = 300  # 5 minutes


class EmailPollingService:
    """
    Reads messages past the last_seen_uid cursor and stores every confirmed
    tracking number as a package. The cursor moves past every fetched
    message, so each message is processed at most once.
    """

    def __init__(
        self,
        package_repository: IPackageRepository,
        mail_transport: IMailTransport,
        interval_seconds: int = DEFAULT_CHECK_INTERVAL,
    ):
        self.package_repository = package_repository
        self.mail_transport = mail_transport
        self.interval_seconds = interval_seconds

    async def poll_once(self) -> int:
        """Returns the number of packages created"""
        try:
            last_seen_uid = self.package_repository.get_last_seen_uid()
        except BaseApplicationException as e:
            logger.error(f"Failed to read last_seen_uid: {e.message}")
            return 0

        try:
            messages = await asyncio.to_thread(self.mail_transport.fetch_messages_since_uid, last_seen_uid)
        except BaseApplicationException as e:
            logger.error(f"Mailbox fetch failed: {e.message}")
            return 0

        logger.info(f"{len(messages)} new messages fetched")

        created = 0
        max_uid = last_seen_uid or 0
        for message in messages:
            max_uid = max(max_uid, message.uid)
            try:
                created += self._process_message(message)
            except Exception as e:
                logger.error(f"Unexpected error processing message UID {message.uid}: {str(e)}", exc_info=True)

        if max_uid > (last_seen_uid or 0):
            try:
                self.package_repository.set_last_seen_uid(max_uid)
            except BaseApplicationException as e:
                logger.error(f"Failed to save last_seen_uid: {e.message}")
        return created

    def _process_message(self, message: MailMessage) -> int:
        try:
            parsed = parse_message(message.raw)
        except ParseException as e:
            logger.error(f"Failed to parse message UID {message.uid}: {e.message}")
            return 0

        logger.info(f"Parsed message UID {message.uid}: {parsed.subject or '<no subject>'}")
        text = "\n".join(part for part in (parsed.subject, parsed.body_text) if part)

        created = 0
        for confirmed in extract_tracking_numbers(text):
            new_package = NewPackage(
                tracking_number=confirmed.tracking_number,
                courier=confirmed.courier,
                service=confirmed.service,
                tracking_url=confirmed.tracking_url,
                source_email_uid=message.uid,
                source_email_subject=parsed.subject,
                source_email_from=parsed.sender,
                source_email_date=parsed.date,
            )
            try:
                inserted = self.package_repository.insert_package(new_package)
            except BaseApplicationException as e:
                logger.error(f"Failed to save package {confirmed.tracking_number}: {e.message}")
                continue
            if inserted:
                created += 1
                logger.info(f"New {confirmed.courier} package {confirmed.tracking_number} saved")
            else:
                logger.debug(f"Package {confirmed.tracking_number} already exists")
        return created

    async def run(self, shutdown: ShutdownToken) -> None:
        logger.info(f"Email poller started, interval {self.interval_seconds}s")
        while not shutdown.is_set:
            await self.poll_once()
            await shutdown.sleep(self.interval_seconds)
        logger.info("Email poller shutting down")
