"""
Tests for BookingService.

Covers transcript confirmation detection, simulated and live bookings, and
putting a request back to RECOMMENDED when the provider could not book.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.application.services.booking_service import (
    BookingService,
    detect_booking_in_transcript,
    outcome_from_call,
)
from concierge.boundary.db.CRUD import interaction_log_crud, provider_crud, service_request_crud
from concierge.boundary.db.models import RequestStatus
from concierge.core.exceptions import ConfigurationError, OrchestrationUnavailableError
from concierge.models.bookings import BookingCallRequest, BookingResultPayload, SaveBookingResultRequest
from concierge.models.notifications import SmsResult

CONFIRMED_TRANSCRIPT = "Provider: I can do Tuesday at 2pm.\nAI: Perfect, just to confirm Tuesday at 2pm."


@pytest.fixture
def twilio():
    client = MagicMock()
    client.is_configured.return_value = True
    client.send_confirmation = AsyncMock(
        return_value=SmsResult(success=True, message_sid="SM-confirm")
    )
    return client


@pytest.fixture
def vapi():
    client = MagicMock()
    client.is_configured.return_value = True
    client.create_call = AsyncMock(return_value={"id": "call-book-1"})
    client.wait_for_call_end = AsyncMock()
    return client


@pytest.fixture
def kestra():
    client = MagicMock()
    client.url = "http://kestra.test"
    client.health_check = AsyncMock(return_value=True)
    return client


@pytest.fixture
async def recommended_request(test_async_db: AsyncSession):
    service_request = await service_request_crud.create(
        test_async_db,
        title="Fix leaking water heater",
        location="Greenville, SC",
        status=RequestStatus.RECOMMENDED,
        user_phone="+18645550100",
        direct_contact_info={"user_name": "Sam"},
    )
    provider = await provider_crud.create(
        test_async_db, request_id=service_request.id, name="Ace Plumbing", phone="+18645550111"
    )
    await test_async_db.commit()
    return service_request, provider


def _booking_call(service_request, provider, **overrides) -> BookingCallRequest:
    fields = {
        "service_request_id": str(service_request.id),
        "provider_id": str(provider.id),
        "provider_phone": "+18645550111",
        "provider_name": "Ace Plumbing",
        "preferred_date": "Tuesday",
        "preferred_time": "2:00 PM",
    }
    fields.update(overrides)
    return BookingCallRequest(**fields)


class TestTranscriptDetection:
    def test_confirmed_booking(self):
        assert detect_booking_in_transcript(CONFIRMED_TRANSCRIPT) == (True, "Tuesday", "2PM")

    def test_rejection_overrides_confirmation(self):
        transcript = (
            "Provider: Sorry, we can't take it. Maybe Tuesday at 2pm is available.\n"
            "AI: Great, thanks anyway."
        )
        assert detect_booking_in_transcript(transcript) == (False, None, None)

    def test_outcome_from_call_falls_back_to_transcript(self):
        call = {
            "id": "call-7",
            "transcript": CONFIRMED_TRANSCRIPT,
            "analysis": {"summary": "Booked", "structuredData": {"booking_confirmed": False}},
        }

        outcome = outcome_from_call(call)

        assert outcome.booking_confirmed is True
        assert outcome.confirmed_date == "Tuesday"
        assert outcome.confirmed_time == "2PM"
        assert outcome.call_id == "call-7"


class TestBookingService:
    @pytest.mark.asyncio
    async def test_simulated_booking_completes_request(
        self,
        test_async_db: AsyncSession,
        simulated_features,
        vapi,
        twilio,
        kestra,
        recommended_request,
    ) -> None:
        """Simulated bookings complete the request and text the user a confirmation."""
        # Arrange
        service_request, provider = recommended_request
        service = BookingService(test_async_db, simulated_features, vapi, twilio, kestra)

        # Act
        outcome = await service.book(_booking_call(service_request, provider))

        # Assert
        assert outcome.booking_confirmed is True
        assert outcome.method == "simulated"
        assert outcome.call_id.startswith("sim-booking-")
        vapi.create_call.assert_not_called()

        stored = await service_request_crud.get_by_id(test_async_db, service_request.id)
        assert stored.status == RequestStatus.COMPLETED
        assert stored.selected_provider_id == provider.id
        assert stored.final_outcome == (
            "Appointment confirmed (SIMULATED) with Ace Plumbing for Tuesday at 2:00 PM"
        )
        assert stored.notification_method == "sms"
        assert stored.sms_message_sid == "SM-confirm"

        booked = await provider_crud.get_by_id(test_async_db, provider.id)
        assert booked.booking_confirmed is True
        assert booked.call_status == "booking_confirmed"

        steps = [log.step_name for log in await interaction_log_crud.get_by_request(test_async_db, service_request.id)]
        assert steps == ["Booking Confirmed (Simulated)", "Confirmation SMS Sent"]
        confirmation = twilio.send_confirmation.await_args.args[0]
        assert confirmation.user_name == "Sam"
        assert confirmation.booking_date == "Tuesday"

    @pytest.mark.asyncio
    async def test_live_booking_not_confirmed_returns_to_recommended(
        self,
        test_async_db: AsyncSession,
        live_features,
        vapi,
        twilio,
        kestra,
        recommended_request,
    ) -> None:
        service_request, provider = recommended_request
        vapi.wait_for_call_end.return_value = {
            "id": "call-book-1",
            "transcript": "Provider: We are not available this week.",
            "analysis": {
                "structuredData": {
                    "booking_confirmed": False,
                    "call_outcome": "no_availability",
                    "booking_failure_reason": "Fully booked",
                }
            },
        }
        service = BookingService(test_async_db, live_features, vapi, twilio, kestra)

        outcome = await service.book(_booking_call(service_request, provider))

        assert outcome.booking_confirmed is False
        assert vapi.create_call.await_args.args[0] == "+18645550111"
        stored = await service_request_crud.get_by_id(test_async_db, service_request.id)
        assert stored.status == RequestStatus.RECOMMENDED
        logs = await interaction_log_crud.get_by_request(test_async_db, service_request.id)
        assert logs[-1].step_name == "Booking Failed"
        assert "Fully booked" in logs[-1].detail
        twilio.send_confirmation.assert_not_called()

    @pytest.mark.asyncio
    async def test_test_mode_dials_admin_phone(
        self,
        test_async_db: AsyncSession,
        test_mode_features,
        vapi,
        twilio,
        kestra,
        recommended_request,
    ) -> None:
        service_request, provider = recommended_request
        vapi.wait_for_call_end.return_value = {
            "id": "call-book-1",
            "transcript": CONFIRMED_TRANSCRIPT,
            "analysis": {"structuredData": {"booking_confirmed": True, "confirmed_date": "Tuesday"}},
        }
        service = BookingService(test_async_db, test_mode_features, vapi, twilio, kestra)

        outcome = await service.book(_booking_call(service_request, provider))

        assert outcome.booking_confirmed is True
        assert vapi.create_call.await_args.args[0] == "+18645550001"

    @pytest.mark.asyncio
    async def test_live_booking_requires_vapi(
        self, test_async_db: AsyncSession, live_features, vapi, twilio, kestra, recommended_request
    ) -> None:
        service_request, provider = recommended_request
        vapi.is_configured.return_value = False
        service = BookingService(test_async_db, live_features, vapi, twilio, kestra)

        with pytest.raises(ConfigurationError):
            await service.book(_booking_call(service_request, provider))

    @pytest.mark.asyncio
    async def test_schedule_with_unhealthy_kestra_raises(
        self, test_async_db: AsyncSession, live_features, vapi, twilio, kestra, recommended_request
    ) -> None:
        service_request, provider = recommended_request
        live_features.kestra_enabled = True
        kestra.health_check.return_value = False
        service = BookingService(test_async_db, live_features, vapi, twilio, kestra)

        with pytest.raises(OrchestrationUnavailableError):
            await service.schedule(_booking_call(service_request, provider))

    @pytest.mark.asyncio
    async def test_save_booking_result_timeout(
        self, test_async_db: AsyncSession, live_features, vapi, twilio, kestra, recommended_request
    ) -> None:
        """A timed-out Kestra booking is logged and leaves the request selectable."""
        service_request, provider = recommended_request
        service = BookingService(test_async_db, live_features, vapi, twilio, kestra)

        response = await service.save_booking_result(
            SaveBookingResultRequest(
                service_request_id=str(service_request.id),
                provider_id=str(provider.id),
                booking_result=BookingResultPayload(status="timeout", provider={"name": "Ace Plumbing"}),
            )
        )

        assert response == {"success": True, "message": "Booking result saved (not confirmed)"}
        stored = await service_request_crud.get_by_id(test_async_db, service_request.id)
        assert stored.status == RequestStatus.RECOMMENDED
        steps = [log.step_name for log in await interaction_log_crud.get_by_request(test_async_db, service_request.id)]
        assert steps == ["Booking Failed", "Booking Call Timeout"]
