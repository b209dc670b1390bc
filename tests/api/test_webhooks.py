"""Vapi and Twilio webhook endpoints."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from concierge.api.deps import get_sms_reply_service, get_twilio_client, get_vapi_client
from concierge.application.services.sms_reply_service import SmsReplyOutcome
from concierge.core.calling.webhook_cache import webhook_cache
from concierge.models.bookings import BookingCallRequest

END_OF_CALL = {
    "message": {
        "type": "end-of-call-report",
        "call": {
            "id": "call-wh-1",
            "status": "ended",
            "endedReason": "customer-ended-call",
            "startedAt": "2025-01-01T10:00:00Z",
            "endedAt": "2025-01-01T10:02:00Z",
            "transcript": "AI: Hi\nProvider: Hello",
            "customer": {"number": "+18645550100"},
            "metadata": {"providerName": "Ace Plumbing", "serviceNeeded": "plumber"},
        },
    }
}


@pytest.fixture(autouse=True)
def clear_webhook_cache():
    webhook_cache.clear()
    yield
    webhook_cache.clear()


@pytest.fixture
def unconfigured_vapi(client):
    vapi = MagicMock()
    vapi.is_configured.return_value = False
    client.app.dependency_overrides[get_vapi_client] = lambda: vapi
    return vapi


class TestVapiWebhook:
    def test_end_of_call_is_cached(self, client, unconfigured_vapi):
        response = client.post("/api/v1/vapi/webhook", json=END_OF_CALL)

        assert response.status_code == 200
        assert response.json()["callId"] == "call-wh-1"

        cached = client.get("/api/v1/vapi/calls/call-wh-1")
        assert cached.status_code == 200
        data = cached.json()["data"]
        assert data["provider"]["name"] == "Ace Plumbing"
        assert data["dataStatus"] == "complete"

    def test_other_events_are_acknowledged(self, client, unconfigured_vapi):
        response = client.post(
            "/api/v1/vapi/webhook", json={"message": {"type": "status-update", "call": {"id": "c-2"}}}
        )

        assert response.status_code == 200
        assert "not processed" in response.json()["message"]
        assert webhook_cache.get("c-2") is None

    def test_invalid_payload(self, client, unconfigured_vapi):
        response = client.post("/api/v1/vapi/webhook", json={"nothing": True})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid webhook payload"

    def test_missing_call_and_delete(self, client):
        assert client.get("/api/v1/vapi/calls/missing").status_code == 404
        assert "not found in cache" in client.delete("/api/v1/vapi/calls/missing").json()["message"]
        assert client.get("/api/v1/vapi/cache/stats").json()["success"] is True


class TestTwilioWebhook:
    FORM = {"MessageSid": "SM-in", "From": "+18645550100", "To": "+18645559999", "Body": "1"}

    def test_selection_schedules_booking(self, client):
        booking = BookingCallRequest(
            service_request_id="sr-1",
            provider_id="p-1",
            provider_phone="+18645550111",
            provider_name="Ace Plumbing",
        )
        service = AsyncMock()
        service.handle_reply.return_value = SmsReplyOutcome(reply="Great choice!", booking=booking)
        client.app.dependency_overrides[get_sms_reply_service] = lambda: service

        with patch(
            "concierge.api.routers.twilio_webhook.run_booking_background", new=AsyncMock()
        ) as background:
            response = client.post("/api/v1/twilio/webhook", data=self.FORM)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/xml")
        assert response.text == "<Response></Response>"
        service.handle_reply.assert_awaited_once_with("+18645550100", "1", "SM-in")
        background.assert_awaited_once_with(booking)

    def test_missing_fields(self, client):
        client.app.dependency_overrides[get_sms_reply_service] = lambda: AsyncMock()

        response = client.post("/api/v1/twilio/webhook", data={"Body": "1"})

        assert response.status_code == 400
        assert response.text == "<Response></Response>"

    def test_status(self, client):
        twilio = MagicMock()
        twilio.is_configured.return_value = True
        client.app.dependency_overrides[get_twilio_client] = lambda: twilio

        assert client.get("/api/v1/twilio/status").json() == {
            "twilioConfigured": True,
            "webhookReady": True,
        }
