"""
ups.com web session backend against a fake ups.com
"""
import json

import httpx
import pytest

from trackage.models.status import PackageStatusEnum
from trackage.services.carriers.ups_web_client import UpsWebClient
from trackage.services.tracking.ups_web_tracking_service import UpsWebTrackingService
from tests.factories.package_factory import create_active_package

PAGE_PATH = "/track"
STATUS_PATH = "/track/api/Track/GetStatus"


def page_response(cookie: bool = True) -> httpx.Response:
    headers = [("Set-Cookie", "X-XSRF-TOKEN-ST=xsrf123; Path=/")] if cookie else []
    return httpx.Response(200, headers=headers, text="<html>tracking</html>")


def status_response(details: dict) -> httpx.Response:
    return httpx.Response(200, json={"statusCode": "200", "trackDetails": [details]})


ACTIVITY_DETAILS = {
    "trackingNumber": "1Z999AA10123456784",
    "packageStatusType": "I",
    "packageStatus": "On the Way",
    "scheduledDeliveryDate": "03/02/2026",
    "shipmentProgressActivities": [
        {"date": "02/24/2026", "time": "9:15 P.M.", "location": "Memphis, TN, United States", "activityScan": "Arrived at Facility"},
        {"date": "02/23/2026", "time": "6:02 A.M.", "location": "Atlanta, GA, United States", "activityScan": "Departed from Facility"},
        {"date": "02/22/2026", "time": "", "location": "", "milestoneName": "Label Created"},
    ],
}


@pytest.fixture
def ups_package():
    return create_active_package()


def build_service(carrier_settings, fake_api) -> UpsWebTrackingService:
    return UpsWebTrackingService(UpsWebClient(carrier_settings, fake_api.transport))


@pytest.mark.integration
class TestUpsWebTracking:
    """Two-step ups.com session: tracking page, then GetStatus"""

    @pytest.mark.asyncio
    async def test_activities_become_observations_oldest_first(self, carrier_settings, fake_api, ups_package):
        fake_api.add("GET", PAGE_PATH, page_response())
        fake_api.add("POST", STATUS_PATH, status_response(ACTIVITY_DETAILS))

        observations = await build_service(carrier_settings, fake_api).check_status(ups_package)

        assert [o.description for o in observations] == ["Label Created", "Departed from Facility", "Arrived at Facility"]
        assert [o.checked_at for o in observations] == ["2026-02-22", "2026-02-23T06:02:00Z", "2026-02-24T21:15:00Z"]
        assert [o.last_known_location for o in observations] == [None, "Atlanta, GA", "Memphis, TN"]
        # Only the newest activity carries the current status and the ETA
        assert [o.status for o in observations] == [PackageStatusEnum.IN_TRANSIT] * 3
        assert [o.estimated_arrival_date for o in observations] == [None, None, "2026-03-02"]

    @pytest.mark.asyncio
    async def test_delivered_applies_to_newest_activity_only(self, carrier_settings, fake_api, ups_package):
        details = dict(ACTIVITY_DETAILS, packageStatusType="D", packageStatus="Delivered")
        fake_api.add("GET", PAGE_PATH, page_response())
        fake_api.add("POST", STATUS_PATH, status_response(details))

        observations = await build_service(carrier_settings, fake_api).check_status(ups_package)

        assert [o.status for o in observations] == [
            PackageStatusEnum.IN_TRANSIT,
            PackageStatusEnum.IN_TRANSIT,
            PackageStatusEnum.DELIVERED,
        ]

    @pytest.mark.asyncio
    async def test_session_cookie_is_echoed_as_header(self, carrier_settings, fake_api, ups_package):
        fake_api.add("GET", PAGE_PATH, page_response())
        fake_api.add("POST", STATUS_PATH, status_response(ACTIVITY_DETAILS))

        await build_service(carrier_settings, fake_api).check_status(ups_package)

        page_request = fake_api.calls("GET", PAGE_PATH)[0]
        assert page_request.url.params["tracknum"] == "1Z999AA10123456784"
        assert page_request.url.params["loc"] == "en_US"
        assert "Mozilla" in page_request.headers["User-Agent"]

        status_request = fake_api.calls("POST", STATUS_PATH)[0]
        assert status_request.headers["X-XSRF-TOKEN"] == "xsrf123"
        assert "X-XSRF-TOKEN-ST=xsrf123" in status_request.headers["Cookie"]
        assert json.loads(status_request.content) == {"Locale": "en_US", "TrackingNumber": ["1Z999AA10123456784"]}

    @pytest.mark.asyncio
    async def test_summary_fallback_without_activities(self, carrier_settings, fake_api, ups_package):
        fake_api.add("GET", PAGE_PATH, page_response())
        fake_api.add("POST", STATUS_PATH, status_response({
            "packageStatusType": "M",
            "packageStatus": "Label Created",
            "lastLocation": "Atlanta, GA, United States",
            "scheduledDeliveryDate": "",
        }))

        observations = await build_service(carrier_settings, fake_api).check_status(ups_package)

        assert len(observations) == 1
        assert observations[0].status == PackageStatusEnum.WAITING
        assert observations[0].last_known_location == "Atlanta, GA"
        assert observations[0].estimated_arrival_date is None
        assert observations[0].checked_at is None

    @pytest.mark.asyncio
    async def test_missing_cookie_yields_nothing(self, carrier_settings, fake_api, ups_package):
        fake_api.add("GET", PAGE_PATH, page_response(cookie=False))

        assert await build_service(carrier_settings, fake_api).check_status(ups_package) == []
        assert fake_api.calls("POST", STATUS_PATH) == []

    @pytest.mark.asyncio
    async def test_non_json_status_yields_nothing(self, carrier_settings, fake_api, ups_package):
        fake_api.add("GET", PAGE_PATH, page_response())
        fake_api.add("POST", STATUS_PATH, httpx.Response(200, text="<html>blocked</html>"))

        assert await build_service(carrier_settings, fake_api).check_status(ups_package) == []

    @pytest.mark.asyncio
    async def test_missing_status_code_yields_nothing(self, carrier_settings, fake_api, ups_package):
        fake_api.add("GET", PAGE_PATH, page_response())
        fake_api.add("POST", STATUS_PATH, status_response({"packageStatus": "?"}))

        assert await build_service(carrier_settings, fake_api).check_status(ups_package) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("details", [
        {"packageStatusType": 5},
        {"packageStatusType": ["D"]},
        {"packageStatusType": "I", "lastLocation": 42},
        {"packageStatusType": "I", "shipmentProgressActivities": [{"location": ["Memphis"], "activityScan": 7}]},
        {"packageStatusType": "I", "scheduledDeliveryDate": {"date": "03/02/2026"}, "packageStatus": True},
    ])
    async def test_malformed_details_never_raise(self, carrier_settings, fake_api, ups_package, details):
        """
        Test: unexpected value types in trackDetails

        Arrange: GetStatus answering with non-string fields
        Act: check_status
        Assert: no exception; non-string fields are treated as missing
        """
        fake_api.add("GET", PAGE_PATH, page_response())
        fake_api.add("POST", STATUS_PATH, status_response(details))

        observations = await build_service(carrier_settings, fake_api).check_status(ups_package)

        if isinstance(details["packageStatusType"], str):
            assert [o.status for o in observations] == [PackageStatusEnum.IN_TRANSIT]
            assert observations[0].last_known_location is None
            assert observations[0].description is None
            assert observations[0].estimated_arrival_date is None
        else:
            assert observations == []
