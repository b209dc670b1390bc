"""Notification endpoints, exercised through the real NotificationService."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from concierge.api.deps import get_notification_service
from concierge.application.services import NotificationService
from concierge.configs.features import FeatureSettings
from concierge.models.notifications import SmsResult

SEND_BODY = {
    "userPhone": "+18645550100",
    "userName": "Sam",
    "serviceRequestId": "sr-1",
    "providers": [
        {"name": "Ace Plumbing", "earliestAvailability": "Tomorrow 9am"},
        {"name": "Bee Plumbing", "earliestAvailability": "Friday"},
    ],
}


@pytest.fixture
def twilio():
    client = MagicMock()
    client.is_configured.return_value = True
    client.send_notification = AsyncMock(
        return_value=SmsResult(success=True, message_sid="SM-notify", message_status="queued")
    )
    return client


@pytest.fixture
def kestra():
    client = MagicMock()
    client.url = "http://kestra.test"
    client.health_check = AsyncMock(return_value=True)
    client.trigger_notify_user_flow = AsyncMock(
        return_value={"success": True, "executionId": "ex-notify", "error": None}
    )
    return client


@pytest.fixture
def user_calls():
    service = MagicMock()
    service.is_available.return_value = False
    return service


def _override(client, *, kestra_enabled: bool, twilio, kestra, user_calls):
    features = FeatureSettings(
        kestra_enabled=kestra_enabled, call_simulation_enabled=True, admin_test_number=""
    )
    service = NotificationService(
        db=AsyncMock(),
        features=features,
        user_calls=user_calls,
        twilio=twilio,
        kestra=kestra,
    )
    client.app.dependency_overrides[get_notification_service] = lambda: service
    return service


def test_send_by_sms(client, twilio, kestra, user_calls):
    _override(client, kestra_enabled=False, twilio=twilio, kestra=kestra, user_calls=user_calls)

    response = client.post("/api/v1/notifications/send", json=SEND_BODY)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"notificationSent": True, "messageSid": "SM-notify", "method": "direct_twilio"},
    }
    sms = twilio.send_notification.await_args.args[0]
    assert sms.user_phone == "+18645550100"
    assert [provider.name for provider in sms.providers] == ["Ace Plumbing", "Bee Plumbing"]
    kestra.health_check.assert_not_awaited()


def test_send_through_kestra(client, twilio, kestra, user_calls):
    _override(client, kestra_enabled=True, twilio=twilio, kestra=kestra, user_calls=user_calls)

    response = client.post("/api/v1/notifications/send", json=SEND_BODY)

    assert response.status_code == 200
    assert response.json()["data"] == {
        "notificationSent": True,
        "executionId": "ex-notify",
        "method": "kestra",
    }
    assert kestra.trigger_notify_user_flow.await_args.args[0] == "+18645550100"
    twilio.send_notification.assert_not_awaited()


def test_send_skipped_without_channels(client, twilio, kestra, user_calls):
    twilio.is_configured.return_value = False
    _override(client, kestra_enabled=False, twilio=twilio, kestra=kestra, user_calls=user_calls)

    response = client.post("/api/v1/notifications/send", json=SEND_BODY)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["notificationSent"] is False
    assert data["method"] == "skipped"


def test_twilio_failure_is_500(client, twilio, kestra, user_calls):
    twilio.send_notification.return_value = SmsResult(success=False, error="invalid To number")
    _override(client, kestra_enabled=False, twilio=twilio, kestra=kestra, user_calls=user_calls)

    response = client.post("/api/v1/notifications/send", json=SEND_BODY)

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "invalid To number"


def test_kestra_down_is_503(client, twilio, kestra, user_calls):
    kestra.health_check.return_value = False
    _override(client, kestra_enabled=True, twilio=twilio, kestra=kestra, user_calls=user_calls)

    response = client.post("/api/v1/notifications/send", json=SEND_BODY)

    assert response.status_code == 503
    twilio.send_notification.assert_not_awaited()


def test_status(client, twilio, kestra, user_calls):
    _override(client, kestra_enabled=True, twilio=twilio, kestra=kestra, user_calls=user_calls)

    response = client.get("/api/v1/notifications/status")

    assert response.status_code == 200
    assert response.json()["data"] == {
        "kestraEnabled": True,
        "kestraHealthy": True,
        "twilioConfigured": True,
        "vapiConfigured": False,
    }
