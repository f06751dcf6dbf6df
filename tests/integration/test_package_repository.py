"""
PackageRepository against an in-memory SQLite database
"""
import re

import pytest

from trackage.core.exceptions import InvalidStatusException
from trackage.models.package_status import PackageStatusHistory
from trackage.models.status import PackageStatusEnum
from tests.factories.package_factory import create_new_package

RFC3339_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")


@pytest.mark.integration
class TestPackageInsert:
    """insert_package and the unique tracking number"""

    def test_insert_returns_true_then_false(self, package_repository):
        assert package_repository.insert_package(create_new_package()) is True
        assert package_repository.insert_package(create_new_package(source_email_uid=2)) is False

        assert len(package_repository.get_all_packages_with_status()) == 1

    def test_new_package_is_active_and_waiting(self, package_repository):
        package_repository.insert_package(create_new_package(tracking_number="123456789012", courier="fedex"))

        active = package_repository.get_active_packages()

        assert len(active) == 1
        assert active[0].tracking_number == "123456789012"
        assert active[0].courier == "fedex"
        assert active[0].status == PackageStatusEnum.WAITING


@pytest.mark.integration
class TestActivePackages:
    """get_active_packages follows the latest history row by id"""

    def test_delivered_packages_are_not_active(self, package_repository, make_package):
        moving = make_package("1Z999AA10123456784")
        delivered = make_package("123456789012", courier="fedex")
        package_repository.insert_package_status(moving, PackageStatusEnum.IN_TRANSIT)
        package_repository.insert_package_status(delivered, PackageStatusEnum.IN_TRANSIT)
        package_repository.insert_package_status(delivered, PackageStatusEnum.DELIVERED)

        active = package_repository.get_active_packages()

        assert [(p.id, p.status) for p in active] == [(moving, PackageStatusEnum.IN_TRANSIT)]

    def test_latest_row_by_id_wins_over_checked_at(self, package_repository, make_package):
        package_id = make_package("1Z999AA10123456784")
        package_repository.insert_package_status(
            package_id, PackageStatusEnum.DELIVERED, checked_at="2026-02-25T11:26:00Z"
        )
        # Appended later with an older observation time
        package_repository.insert_package_status(
            package_id, PackageStatusEnum.IN_TRANSIT, checked_at="2026-02-24T08:00:00Z"
        )

        active = package_repository.get_active_packages()

        assert [p.status for p in active] == [PackageStatusEnum.IN_TRANSIT]

    def test_deleted_packages_are_not_active(self, package_repository, make_package):
        package_id = make_package("1Z999AA10123456784")

        assert package_repository.delete_package(package_id) is True
        assert package_repository.delete_package(package_id) is False
        assert package_repository.get_active_packages() == []
        assert package_repository.get_all_packages_with_status() == []

    def test_unknown_stored_status_is_skipped(self, package_repository, make_package, db_session):
        broken = make_package("1Z999AA10123456784")
        healthy = make_package("123456789012", courier="fedex")
        db_session.add(PackageStatusHistory(package_id=broken, status="lost", checked_at="2026-02-24T08:00:00Z"))
        db_session.commit()

        assert [p.id for p in package_repository.get_active_packages()] == [healthy]
        assert package_repository.get_package_status_history(broken) == []


@pytest.mark.integration
class TestStatusHistory:
    """insert_package_status append and de-duplication rules"""

    def test_invalid_status_is_rejected(self, package_repository, make_package):
        package_id = make_package("1Z999AA10123456784")

        with pytest.raises(InvalidStatusException):
            package_repository.insert_package_status(package_id, "lost")
        assert package_repository.get_package_status_history(package_id) == []

    def test_checked_at_defaults_to_now(self, package_repository, make_package):
        package_id = make_package("1Z999AA10123456784")

        package_repository.insert_package_status(package_id, "in_transit")

        entry = package_repository.get_package_status_history(package_id)[0]
        assert RFC3339_PATTERN.match(entry.checked_at)

    def test_repeated_event_with_same_checked_at_is_skipped(self, package_repository, make_package):
        package_id = make_package("1Z999AA10123456784")
        event = dict(
            status=PackageStatusEnum.IN_TRANSIT,
            last_known_location="Memphis, TN",
            description="Arrived at Facility",
            checked_at="2026-02-24T21:15:00Z",
        )

        assert package_repository.insert_package_status(package_id, **event) is True
        assert package_repository.insert_package_status(package_id, **event) is False
        # Status is not part of the event identity
        assert package_repository.insert_package_status(
            package_id, **dict(event, status=PackageStatusEnum.DELIVERED)
        ) is False
        assert package_repository.insert_package_status(
            package_id, **dict(event, last_known_location=None)
        ) is True

        assert len(package_repository.get_package_status_history(package_id)) == 2

    def test_unchanged_snapshot_without_checked_at_is_skipped(self, package_repository, make_package):
        package_id = make_package("1Z999AA10123456784")
        snapshot = dict(
            status=PackageStatusEnum.IN_TRANSIT,
            estimated_arrival_date="2026-03-02",
            last_known_location="Memphis, TN",
            description="On the Way",
        )

        assert package_repository.insert_package_status(package_id, **snapshot) is True
        assert package_repository.insert_package_status(package_id, **snapshot) is False
        assert package_repository.insert_package_status(
            package_id, **dict(snapshot, estimated_arrival_date="2026-03-03")
        ) is True

    def test_earlier_undated_event_is_not_appended_again(self, package_repository, make_package):
        package_id = make_package("1Z999AA10123456784")
        first = dict(status=PackageStatusEnum.IN_TRANSIT, last_known_location="Memphis, TN")
        second = dict(status=PackageStatusEnum.IN_TRANSIT, last_known_location="Louisville, KY")

        assert package_repository.insert_package_status(package_id, **first) is True
        assert package_repository.insert_package_status(package_id, **second) is True
        assert package_repository.insert_package_status(package_id, **first) is False

        history = package_repository.get_package_status_history(package_id)
        assert [entry.last_known_location for entry in history] == ["Louisville, KY", "Memphis, TN"]

    def test_replayed_mixed_batch_keeps_status_and_history(self, package_repository, make_package):
        """
        Test: a backend reporting its whole event list every cycle

        Arrange: an undated label event followed by a dated departure event
        Act: store the same batch twice, oldest first
        Assert: no new rows on replay, current status stays in transit
        """
        package_id = make_package("9400111899223197428490", courier="usps", service="USPS Tracking")
        batch = [
            dict(status=PackageStatusEnum.WAITING, description="Shipping Label Created, USPS Awaiting Item"),
            dict(
                status=PackageStatusEnum.IN_TRANSIT,
                last_known_location="MEMPHIS, TN",
                description="Your item departed our MEMPHIS TN DISTRIBUTION CENTER",
                checked_at="2026-02-24T21:15:00Z",
            ),
        ]

        assert [package_repository.insert_package_status(package_id, **event) for event in batch] == [True, True]
        assert [package_repository.insert_package_status(package_id, **event) for event in batch] == [False, False]

        history = package_repository.get_package_status_history(package_id)
        assert [entry.status for entry in history] == [PackageStatusEnum.IN_TRANSIT, PackageStatusEnum.WAITING]
        assert [p.status for p in package_repository.get_active_packages()] == [PackageStatusEnum.IN_TRANSIT]

    def test_history_is_newest_first(self, package_repository, make_package):
        package_id = make_package("1Z999AA10123456784")
        package_repository.insert_package_status(package_id, "waiting", checked_at="2026-02-22")
        package_repository.insert_package_status(package_id, "in_transit", checked_at="2026-02-23T06:02:00Z")
        package_repository.insert_package_status(package_id, "delivered", checked_at="2026-02-25T11:26:00Z")

        history = package_repository.get_package_status_history(package_id)

        assert [entry.status for entry in history] == [
            PackageStatusEnum.DELIVERED,
            PackageStatusEnum.IN_TRANSIT,
            PackageStatusEnum.WAITING,
        ]
        assert history[0].checked_at == "2026-02-25T11:26:00Z"


@pytest.mark.integration
class TestPackagesWithStatus:
    """get_all_packages_with_status joins the latest history row"""

    def test_latest_status_fields_and_courier_display_name(self, package_repository, make_package):
        package_id = make_package("1Z999AA10123456784")
        make_package("RR123456785CH", courier="swiss_post", service="Registered")
        package_repository.insert_package_status(
            package_id, "in_transit", estimated_arrival_date="2026-03-02", last_known_location="Memphis, TN"
        )

        packages = {p.tracking_number: p for p in package_repository.get_all_packages_with_status()}

        ups = packages["1Z999AA10123456784"]
        assert ups.courier == "UPS"
        assert ups.status == PackageStatusEnum.IN_TRANSIT
        assert ups.estimated_arrival_date == "2026-03-02"
        assert ups.last_known_location == "Memphis, TN"
        assert ups.source_email_from == "shop@example.com"

        other = packages["RR123456785CH"]
        assert other.courier == "swiss_post"
        assert other.status == PackageStatusEnum.WAITING
        assert other.estimated_arrival_date is None


@pytest.mark.integration
class TestEmailCursor:
    """last_seen_uid metadata"""

    def test_cursor_round_trip(self, package_repository):
        assert package_repository.get_last_seen_uid() is None

        package_repository.set_last_seen_uid(41)
        package_repository.set_last_seen_uid(42)

        assert package_repository.get_last_seen_uid() == 42
