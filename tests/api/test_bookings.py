from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from concierge.api.deps import get_booking_service
from concierge.core.exceptions import ConfigurationError

BOOKING_BODY = {
    "serviceRequestId": str(uuid4()),
    "providerId": str(uuid4()),
    "providerPhone": "+18645550100",
    "providerName": "Ace Plumbing",
    "preferredDate": "Tuesday",
}


@pytest.fixture
def booking_service(client):
    service = AsyncMock()
    client.app.dependency_overrides[get_booking_service] = lambda: service
    return service


def test_schedule(client, booking_service):
    booking_service.schedule.return_value = {
        "bookingInitiated": True,
        "executionId": "ex-1",
        "bookingStatus": "call_initiated",
        "method": "kestra",
    }

    response = client.post("/api/v1/bookings/schedule", json=BOOKING_BODY)

    assert response.status_code == 200
    assert response.json()["data"]["executionId"] == "ex-1"


def test_schedule_without_vapi_is_503(client, booking_service):
    booking_service.schedule.side_effect = ConfigurationError("vapi")

    response = client.post("/api/v1/bookings/schedule", json=BOOKING_BODY)

    assert response.status_code == 503


def test_schedule_async_returns_202(client, booking_service):
    booking_service.start_async_booking.return_value = {
        "serviceRequestId": BOOKING_BODY["serviceRequestId"],
        "providerId": BOOKING_BODY["providerId"],
        "mode": "simulated",
    }

    with patch("concierge.api.routers.bookings.run_booking_background", new=AsyncMock()) as background:
        response = client.post("/api/v1/bookings/schedule-async", json=BOOKING_BODY)

    assert response.status_code == 202
    assert response.json()["data"]["mode"] == "simulated"
    background.assert_awaited_once()


def test_save_booking_result(client, booking_service):
    booking_service.save_booking_result.return_value = {
        "success": True,
        "message": "Booking confirmed and saved",
    }

    response = client.post(
        "/api/v1/bookings/save-booking-result",
        json={
            "serviceRequestId": BOOKING_BODY["serviceRequestId"],
            "providerId": BOOKING_BODY["providerId"],
            "bookingResult": {"status": "completed", "bookingConfirmed": True},
        },
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Booking confirmed and saved"}
    payload = booking_service.save_booking_result.await_args.args[0]
    assert payload.booking_result.booking_confirmed is True


def test_save_booking_result_rejects_unknown_status(client, booking_service):
    response = client.post(
        "/api/v1/bookings/save-booking-result",
        json={
            "serviceRequestId": "sr-1",
            "providerId": "p-1",
            "bookingResult": {"status": "maybe"},
        },
    )

    assert response.status_code == 400
