import asyncio
import logging
import signal
import sys

from trackage.core.exceptions import ConfigurationException
from trackage.core.settings import get_app_settings, get_carrier_integration_settings, get_email_settings
from trackage.core.shutdown import ShutdownToken
from trackage.database import create_db_engine, get_session_factory, init_db
from trackage.factories.services.carrier_service_factory import build_courier_router
from trackage.repository.package_repository import PackageRepository
from trackage.services.email.imap_client import ImapClient
from trackage.services.sync.email_polling_service import EmailPollingService
from trackage.services.sync.status_polling_service import StatusPollingService

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _install_signal_handlers(shutdown: ShutdownToken) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(shutdown.set))


async def run() -> int:
    app_settings = get_app_settings()
    email_settings = get_email_settings()
    carrier_settings = get_carrier_integration_settings()

    try:
        email_settings.validate_required()
    except ConfigurationException as e:
        logger.error(f"Invalid configuration: {e.message}")
        return 1

    logger.info(
        f"Starting trackage: database={app_settings.database_path}, "
        f"status_check_interval={app_settings.status_check_interval_seconds}s"
    )
    logger.info(f"Email configuration: {email_settings.sanitized()}")
    logger.info(f"Courier configuration: {carrier_settings.sanitized()}")

    engine = create_db_engine(app_settings.database_url)
    init_db(engine)
    session_factory = get_session_factory(engine)

    # Each worker owns its own session
    email_session = session_factory()
    status_session = session_factory()

    shutdown = ShutdownToken()
    _install_signal_handlers(shutdown)

    email_poller = EmailPollingService(
        PackageRepository(email_session),
        ImapClient(email_settings),
        interval_seconds=email_settings.check_interval_seconds,
    )
    status_poller = StatusPollingService(
        PackageRepository(status_session),
        build_courier_router(carrier_settings),
        interval_seconds=app_settings.status_check_interval_seconds,
    )

    try:
        await asyncio.gather(email_poller.run(shutdown), status_poller.run(shutdown))
    finally:
        email_session.close()
        status_session.close()
        engine.dispose()

    logger.info("trackage stopped")
    return 0


def main() -> None:
    configure_logging(get_app_settings().log_level)
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
