"""
SQLAlchemy implementation of the package / status history store
"""
import logging
import time
from datetime import datetime, timezone
from typing import Optional, List, Union, Callable, TypeVar

from sqlalchemy import func, desc, or_
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from trackage.core.exceptions import InfrastructureException, InvalidStatusException
from trackage.models.courier import CourierCodeEnum
from trackage.models.metadata import AppMetadata
from trackage.models.package import Package
from trackage.models.package_status import PackageStatusHistory
from trackage.models.status import PackageStatusEnum, TERMINAL_STATUSES
from trackage.repository.interfaces.package_repository_interface import IPackageRepository
from trackage.schemas.package_schema import ActivePackage, NewPackage, PackageWithStatus, StatusHistoryEntry
from trackage.services.core.date_utils import utc_now_rfc3339

logger = logging.getLogger(__name__)

T = TypeVar('T')

LAST_SEEN_UID_KEY = "last_seen_uid"


def _is_busy(error: OperationalError) -> bool:
    message = str(error.orig).lower() if error.orig is not None else str(error).lower()
    return "database is locked" in message or "database is busy" in message


def _matches(column, value):
    """NULL-safe equality"""
    if value is None:
        return column.is_(None)
    return column == value


class PackageRepository(IPackageRepository):
    """
    Package store over one SQLAlchemy session.

    Status history is append-only and ordered by id; the latest row by id is
    the package's current status regardless of checked_at. Writes retry with
    exponential backoff while SQLite reports the database as locked.
    """

    def __init__(self, session: Session, busy_retries: int = 5, busy_base_delay: float = 0.1):
        self._session = session
        self._busy_retries = busy_retries
        self._busy_base_delay = busy_base_delay

    def _write(self, operation: Callable[[], T], action: str) -> T:
        for attempt in range(self._busy_retries + 1):
            try:
                result = operation()
                self._session.commit()
                return result
            except OperationalError as e:
                self._session.rollback()
                if _is_busy(e) and attempt < self._busy_retries:
                    delay = self._busy_base_delay * (2 ** attempt)
                    logger.warning(f"Database busy while trying to {action}, retrying in {delay}s")
                    time.sleep(delay)
                    continue
                raise InfrastructureException(f"Database error trying to {action}: {str(e)}")
            except IntegrityError:
                self._session.rollback()
                raise
            except SQLAlchemyError as e:
                self._session.rollback()
                raise InfrastructureException(f"Database error trying to {action}: {str(e)}")
        # Unreachable: the last attempt either returns or raises
        raise InfrastructureException(f"Database error trying to {action}: retries exhausted")

    def _latest_status_subquery(self):
        return (
            self._session.query(
                PackageStatusHistory.package_id.label("package_id"),
                func.max(PackageStatusHistory.id).label("latest_id"),
            )
            .group_by(PackageStatusHistory.package_id)
            .subquery()
        )

    def get_active_packages(self) -> List[ActivePackage]:
        try:
            latest = self._latest_status_subquery()
            rows = (
                self._session.query(Package, PackageStatusHistory.status)
                .outerjoin(latest, latest.c.package_id == Package.id)
                .outerjoin(PackageStatusHistory, PackageStatusHistory.id == latest.c.latest_id)
                .filter(Package.deleted_at.is_(None))
                .filter(or_(
                    PackageStatusHistory.status.is_(None),
                    PackageStatusHistory.status.notin_([s.value for s in TERMINAL_STATUSES]),
                ))
                .order_by(Package.id)
                .all()
            )
        except SQLAlchemyError as e:
            raise InfrastructureException(f"Database error retrieving active packages: {str(e)}")

        active = []
        for package, raw_status in rows:
            try:
                status = PackageStatusEnum.parse(raw_status or PackageStatusEnum.WAITING.value)
            except InvalidStatusException as e:
                logger.error(f"Skipping package {package.tracking_number}: {e.message}")
                continue
            active.append(ActivePackage(
                id=package.id,
                tracking_number=package.tracking_number,
                courier=package.courier,
                service=package.service,
                status=status,
            ))
        return active

    def insert_package(self, new_package: NewPackage) -> bool:
        def _insert() -> bool:
            exists = self._session.query(Package.id).filter(
                Package.tracking_number == new_package.tracking_number
            ).first()
            if exists is not None:
                return False
            self._session.add(Package(**new_package.model_dump()))
            self._session.flush()
            return True

        try:
            return self._write(_insert, f"insert package {new_package.tracking_number}")
        except IntegrityError:
            # Inserted concurrently by another session
            return False

    def insert_package_status(
        self,
        package_id: int,
        status: Union[PackageStatusEnum, str],
        estimated_arrival_date: Optional[str] = None,
        last_known_location: Optional[str] = None,
        description: Optional[str] = None,
        checked_at: Optional[str] = None,
    ) -> bool:
        """
        Append a status history entry.

        Skipped (returns False) when:
          - checked_at is given and the package already has an entry with the
            same checked_at, description and location;
          - checked_at is absent and any entry of the package carries the same
            status, estimated arrival, location and description. Undated events
            re-reported in later cycles are therefore never re-appended.

        Raises:
            InvalidStatusException: If status is not a canonical value
            InfrastructureException: On storage errors
        """
        parsed = PackageStatusEnum.parse(status)

        def _insert() -> bool:
            if checked_at is not None:
                duplicate = self._session.query(PackageStatusHistory.id).filter(
                    PackageStatusHistory.package_id == package_id,
                    PackageStatusHistory.checked_at == checked_at,
                    _matches(PackageStatusHistory.description, description),
                    _matches(PackageStatusHistory.last_known_location, last_known_location),
                ).first() is not None
            else:
                duplicate = self._session.query(PackageStatusHistory.id).filter(
                    PackageStatusHistory.package_id == package_id,
                    PackageStatusHistory.status == parsed.value,
                    _matches(PackageStatusHistory.estimated_arrival_date, estimated_arrival_date),
                    _matches(PackageStatusHistory.description, description),
                    _matches(PackageStatusHistory.last_known_location, last_known_location),
                ).first() is not None
            if duplicate:
                return False

            self._session.add(PackageStatusHistory(
                package_id=package_id,
                status=parsed.value,
                estimated_arrival_date=estimated_arrival_date,
                last_known_location=last_known_location,
                description=description,
                checked_at=checked_at or utc_now_rfc3339(),
            ))
            self._session.flush()
            return True

        try:
            return self._write(_insert, f"insert status for package {package_id}")
        except IntegrityError as e:
            raise InfrastructureException(f"Database error inserting status for package {package_id}: {str(e)}")

    def get_package_status_history(self, package_id: int) -> List[StatusHistoryEntry]:
        try:
            rows = self._session.query(PackageStatusHistory).filter(
                PackageStatusHistory.package_id == package_id
            ).order_by(desc(PackageStatusHistory.id)).all()
        except SQLAlchemyError as e:
            raise InfrastructureException(f"Database error retrieving status history: {str(e)}")

        history = []
        for row in rows:
            try:
                PackageStatusEnum.parse(row.status)
            except InvalidStatusException as e:
                logger.error(f"Skipping status row {row.id}: {e.message}")
                continue
            history.append(StatusHistoryEntry.model_validate(row))
        return history

    def get_all_packages_with_status(self) -> List[PackageWithStatus]:
        try:
            latest = self._latest_status_subquery()
            rows = (
                self._session.query(Package, PackageStatusHistory)
                .outerjoin(latest, latest.c.package_id == Package.id)
                .outerjoin(PackageStatusHistory, PackageStatusHistory.id == latest.c.latest_id)
                .filter(Package.deleted_at.is_(None))
                .order_by(desc(Package.created_at), desc(Package.id))
                .all()
            )
        except SQLAlchemyError as e:
            raise InfrastructureException(f"Database error retrieving packages: {str(e)}")

        packages = []
        for package, status_row in rows:
            try:
                status = PackageStatusEnum.parse(
                    status_row.status if status_row is not None else PackageStatusEnum.WAITING.value
                )
            except InvalidStatusException as e:
                logger.error(f"Skipping package {package.tracking_number}: {e.message}")
                continue
            try:
                courier = CourierCodeEnum(package.courier).display_name
            except ValueError:
                courier = package.courier
            packages.append(PackageWithStatus(
                id=package.id,
                tracking_number=package.tracking_number,
                courier=courier,
                service=package.service,
                status=status,
                estimated_arrival_date=status_row.estimated_arrival_date if status_row is not None else None,
                last_known_location=status_row.last_known_location if status_row is not None else None,
                tracking_url=package.tracking_url,
                source_email_from=package.source_email_from,
                created_at=package.created_at,
            ))
        return packages

    def delete_package(self, package_id: int) -> bool:
        def _delete() -> bool:
            package = self._session.query(Package).filter(
                Package.id == package_id,
                Package.deleted_at.is_(None),
            ).first()
            if package is None:
                return False
            package.deleted_at = datetime.now(timezone.utc)
            return True

        return self._write(_delete, f"delete package {package_id}")

    def get_last_seen_uid(self) -> Optional[int]:
        try:
            row = self._session.query(AppMetadata).filter(AppMetadata.key == LAST_SEEN_UID_KEY).first()
        except SQLAlchemyError as e:
            raise InfrastructureException(f"Database error reading {LAST_SEEN_UID_KEY}: {str(e)}")
        if row is None:
            return None
        try:
            return int(row.value)
        except ValueError:
            logger.warning(f"Ignoring malformed {LAST_SEEN_UID_KEY}: {row.value!r}")
            return None

    def set_last_seen_uid(self, uid: int) -> None:
        def _set() -> None:
            row = self._session.query(AppMetadata).filter(AppMetadata.key == LAST_SEEN_UID_KEY).first()
            if row is None:
                self._session.add(AppMetadata(key=LAST_SEEN_UID_KEY, value=str(uid)))
            else:
                row.value = str(uid)

        self._write(_set, f"store {LAST_SEEN_UID_KEY}")
