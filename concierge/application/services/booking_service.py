"""
Booking service.

Calls the provider the user picked to schedule the appointment, then writes
the outcome everywhere it belongs: provider booking columns, request status
(COMPLETED, or back to RECOMMENDED so the user can pick again), the request
timeline and, when confirmed, a confirmation SMS.

The same outcome logic handles three sources: a live Vapi call, a simulated
booking and a result posted back by the schedule_service Kestra flow.

Dependencies: concierge.boundary.vapi, concierge.boundary.twilio,
              concierge.boundary.kestra, concierge.boundary.db.CRUD
System role: Booking use cases (/providers/book and /bookings/*)
"""

import logging
import re
import time
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.application.services.call_result_service import parse_transcript, parse_uuid
from concierge.boundary.db.connection import session_scope
from concierge.boundary.db.CRUD.interaction_log_crud import interaction_log_crud
from concierge.boundary.db.CRUD.provider_crud import provider_crud
from concierge.boundary.db.CRUD.service_request_crud import service_request_crud
from concierge.boundary.db.models.interaction_log_model import LogStatus
from concierge.boundary.db.models.service_request_model import RequestStatus
from concierge.boundary.kestra import KestraClient
from concierge.boundary.twilio import TwilioClient
from concierge.boundary.vapi.direct_vapi_client import DirectVapiClient
from concierge.boundary.vapi.vapi_api_client import get_transcript
from concierge.configs.features import FeatureSettings
from concierge.core.calling.booking_assistant_config import create_booking_assistant_config
from concierge.core.calling.call_mode import CallModeResolver
from concierge.core.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    OrchestrationUnavailableError,
)
from concierge.models.bookings import (
    BookingCallRequest,
    BookingOutcome,
    SaveBookingResultRequest,
)
from concierge.models.notifications import SmsConfirmation

logger = logging.getLogger(__name__)

BOOKING_POLL_INTERVAL = 5.0
BOOKING_MAX_ATTEMPTS = 60

_DAY = r"(monday|tuesday|wednesday|thursday|friday|saturday|sunday|tomorrow|today|next week)"
_TIME = r"(\d{1,2}(?::\d{2})?\s*(?:am|pm)|morning|afternoon|evening|noon)"
_OFFER = re.compile(r"i can do|available|works for me|how about|let's do")
_CONFIRM = re.compile(
    r"just to confirm|perfect|excellent|great|sounds good|see you"
    r"|appointment.*(?:set|scheduled|confirmed)"
)
_REJECT = re.compile(r"not available|can't help|unavailable|no longer|sorry.*can't|decline")


def detect_booking_in_transcript(transcript: str) -> tuple[bool, str | None, str | None]:
    """
    Fallback confirmation check for calls the analysis marked unconfirmed.

    A booking counts when a day and a time were offered, the conversation
    closed with a confirmation phrase and nobody turned the job down.

    Returns:
        tuple: (confirmed, day mentioned, time mentioned)
    """
    text = transcript.lower()
    agreed = bool(_OFFER.search(text) and re.search(_DAY, text) and re.search(_TIME, text))
    if not agreed or not _CONFIRM.search(text) or _REJECT.search(text):
        return False, None, None

    day = re.search(r"(monday|tuesday|wednesday|thursday|friday|saturday|sunday|tomorrow|next\s+\w+)", text)
    clock = re.search(r"(\d{1,2}(?::\d{2})?\s*(?:am|pm))", text)
    return (
        True,
        day.group(0).capitalize() if day else None,
        clock.group(0).upper() if clock else None,
    )


def outcome_from_call(call: dict[str, Any]) -> BookingOutcome:
    """Read a finished Vapi booking call into a BookingOutcome."""
    structured = (call.get("analysis") or {}).get("structuredData") or {}
    transcript = get_transcript(call)
    confirmed = bool(structured.get("booking_confirmed"))
    confirmed_date = structured.get("confirmed_date") or ""
    confirmed_time = structured.get("confirmed_time") or ""

    if not confirmed and transcript:
        detected, day, clock = detect_booking_in_transcript(transcript)
        if detected:
            logger.info(
                f"{__name__}:outcome_from_call - Confirmation detected in transcript",
                extra={"call_id": call.get("id")},
            )
            confirmed = True
            confirmed_date = confirmed_date or day or ""
            confirmed_time = confirmed_time or clock or ""

    return BookingOutcome(
        booking_confirmed=confirmed,
        call_id=call.get("id", ""),
        confirmed_date=confirmed_date,
        confirmed_time=confirmed_time,
        confirmation_number=structured.get("confirmation_number") or "",
        call_outcome=structured.get("call_outcome") or "unknown",
        booking_failure_reason=structured.get("booking_failure_reason") or "",
        transcript=transcript,
        summary=(call.get("analysis") or {}).get("summary") or "",
        next_steps=structured.get("next_steps") or structured.get("special_instructions") or "",
        method="direct_vapi",
    )


class BookingService:
    """
    Booking use cases.

    Args:
        db: Async SQLAlchemy session
        features: Feature flags (call mode and Kestra routing)
        vapi: Direct Vapi client
        twilio: Twilio client for confirmation texts
        kestra: Kestra client (schedule_service flow)
        poll_interval: Seconds between booking call polls
        max_attempts: Poll limit for a booking call
    """

    def __init__(
        self,
        db: AsyncSession,
        features: FeatureSettings,
        vapi: DirectVapiClient,
        twilio: TwilioClient,
        kestra: KestraClient,
        poll_interval: float = BOOKING_POLL_INTERVAL,
        max_attempts: int = BOOKING_MAX_ATTEMPTS,
    ) -> None:
        self.db = db
        self.features = features
        self.call_mode = CallModeResolver(features)
        self.vapi = vapi
        self.twilio = twilio
        self.kestra = kestra
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    async def place_booking_call(
        self,
        request: BookingCallRequest,
        phone: str | None = None,
    ) -> BookingOutcome:
        """
        Dial the provider (or the given number) and wait for the call to end.

        Raises:
            ConfigurationError: Vapi is not configured
            ExternalServiceError: The call did not finish in time
        """
        if not self.vapi.is_configured():
            raise ConfigurationError("vapi")

        phone = phone or request.provider_phone
        logger.info(
            f"{__name__}:place_booking_call - START provider={request.provider_name}",
            extra={"phone": phone, "service_request_id": request.service_request_id},
        )
        call = await self.vapi.create_call(
            phone,
            request.provider_name,
            create_booking_assistant_config(request),
            metadata={
                "serviceRequestId": request.service_request_id,
                "providerId": request.provider_id,
                "kind": "booking",
            },
        )
        finished = await self.vapi.wait_for_call_end(
            call["id"],
            max_attempts=self.max_attempts,
            poll_interval=self.poll_interval,
        )
        if finished is None:
            raise ExternalServiceError(
                f"Booking call {call['id']} timed out after "
                f"{int(self.max_attempts * self.poll_interval)} seconds",
                service="vapi",
            )

        outcome = outcome_from_call(finished)
        logger.info(
            f"{__name__}:place_booking_call - END confirmed={outcome.booking_confirmed}",
            extra={"call_id": outcome.call_id, "call_outcome": outcome.call_outcome},
        )
        return outcome

    async def book_provider(
        self,
        request: BookingCallRequest,
        phone: str | None = None,
    ) -> BookingOutcome:
        """Place a booking call and record its outcome."""
        outcome = await self.place_booking_call(request, phone)
        await self.apply_outcome(request.service_request_id, request.provider_id, request.provider_name, outcome)
        return outcome

    async def simulate_booking(self, request: BookingCallRequest) -> BookingOutcome:
        """Record a confirmed booking without calling anyone."""
        outcome = BookingOutcome(
            booking_confirmed=True,
            call_id=f"sim-booking-{int(time.time() * 1000)}",
            confirmed_date=request.preferred_date or date.today().isoformat(),
            confirmed_time=request.preferred_time or "10:00 AM",
            confirmation_number=f"SIMULATED-{int(time.time() * 1000)}",
            call_outcome="booked",
            transcript="SIMULATED BOOKING - No actual call made",
            next_steps="You'll receive a confirmation text shortly.",
            method="simulated",
        )
        logger.info(
            f"{__name__}:simulate_booking - Simulated booking",
            extra={"provider_id": request.provider_id, "confirmation": outcome.confirmation_number},
        )
        await self.apply_outcome(
            request.service_request_id,
            request.provider_id,
            request.provider_name,
            outcome,
            simulated=True,
        )
        return outcome

    async def book(self, request: BookingCallRequest) -> BookingOutcome:
        """Book according to the call mode: simulated, redirected to a test phone, or live."""
        if self.call_mode.is_simulated:
            return await self.simulate_booking(request)
        return await self.book_provider(
            request, phone=self.call_mode.booking_phone(request.provider_phone)
        )

    async def apply_outcome(
        self,
        service_request_id: str,
        provider_id: str,
        provider_name: str,
        outcome: BookingOutcome,
        simulated: bool = False,
    ) -> None:
        """
        Persist a booking outcome.

        Confirmed bookings complete the request and text the user. Anything
        else puts the request back to RECOMMENDED.
        """
        request_id = parse_uuid(service_request_id)
        provider_uuid = parse_uuid(provider_id)
        confirmed_date = outcome.confirmed_date or "TBD"
        confirmed_time = outcome.confirmed_time or "TBD"

        if provider_uuid is not None:
            await provider_crud.update_by_id(
                self.db,
                provider_uuid,
                booking_confirmed=outcome.booking_confirmed,
                booking_date=outcome.confirmed_date or None,
                booking_time=outcome.confirmed_time or None,
                confirmation_number=outcome.confirmation_number or None,
                call_status="booking_confirmed" if outcome.booking_confirmed else "booking_failed",
                last_call_at=datetime.now(timezone.utc),
                call_transcript=outcome.transcript or None,
            )

        if request_id is None:
            await self.db.commit()
            return

        if outcome.booking_confirmed:
            label = " (SIMULATED)" if simulated else ""
            service_request = await service_request_crud.update_status(
                self.db,
                request_id,
                RequestStatus.COMPLETED,
                selected_provider_id=provider_uuid,
                final_outcome=(
                    f"Appointment confirmed{label} with {provider_name} "
                    f"for {confirmed_date} at {confirmed_time}"
                ),
            )
            await interaction_log_crud.add_log(
                self.db,
                request_id=request_id,
                step_name="Booking Confirmed (Simulated)" if simulated else "Booking Confirmed",
                detail=(
                    f"Successfully booked appointment with {provider_name}. "
                    f"Confirmation: {outcome.confirmation_number or 'N/A'}"
                ),
                status=LogStatus.SUCCESS,
                transcript=None if simulated else parse_transcript(outcome.transcript),
                call_id=None if simulated else outcome.call_id or None,
            )
            await self.db.commit()
            if service_request is not None:
                await self._send_confirmation(request_id, service_request, provider_name, outcome)
            return

        await service_request_crud.update_status(self.db, request_id, RequestStatus.RECOMMENDED)
        await interaction_log_crud.add_log(
            self.db,
            request_id=request_id,
            step_name="Booking Failed",
            detail=(
                f"Failed to confirm booking with {provider_name}. "
                f"Outcome: {outcome.booking_failure_reason or outcome.call_outcome}"
            ),
            status=LogStatus.WARNING,
            transcript=parse_transcript(outcome.transcript),
            call_id=outcome.call_id or None,
        )
        await self.db.commit()

    async def _send_confirmation(
        self,
        request_id: UUID,
        service_request,
        provider_name: str,
        outcome: BookingOutcome,
    ) -> None:
        if not service_request.user_phone or not self.twilio.is_configured():
            return

        contact = service_request.direct_contact_info or {}
        sms = await self.twilio.send_confirmation(
            SmsConfirmation(
                user_phone=service_request.user_phone,
                user_name=contact.get("user_name") or "Customer",
                provider_name=provider_name,
                booking_date=outcome.confirmed_date or None,
                booking_time=outcome.confirmed_time or None,
                confirmation_number=outcome.confirmation_number or None,
                service_description=service_request.title,
            )
        )
        if not sms.success:
            logger.warning(
                f"{__name__}:_send_confirmation - Confirmation SMS failed",
                extra={"service_request_id": str(request_id), "error": sms.error},
            )
            return

        await service_request_crud.update_by_id(
            self.db,
            request_id,
            notification_sent_at=datetime.now(timezone.utc),
            notification_method="sms",
            sms_message_sid=sms.message_sid,
        )
        await interaction_log_crud.add_log(
            self.db,
            request_id=request_id,
            step_name="Confirmation SMS Sent",
            detail=f"Booking confirmation sent via SMS to {service_request.user_phone}",
            status=LogStatus.SUCCESS,
        )
        await self.db.commit()

    async def save_booking_result(self, request: SaveBookingResultRequest) -> dict[str, Any]:
        """
        Record a booking result posted by the schedule_service flow.

        Returns:
            dict: {success, message}
        """
        result = request.booking_result
        provider_name = (result.provider or {}).get("name") or "provider"
        logger.info(
            f"{__name__}:save_booking_result - START status={result.status}",
            extra={
                "service_request_id": request.service_request_id,
                "booking_confirmed": result.booking_confirmed,
            },
        )

        await self.apply_outcome(
            request.service_request_id,
            request.provider_id,
            provider_name,
            result.to_outcome(),
        )

        request_id = parse_uuid(request.service_request_id)
        if request_id is not None and result.status in ("timeout", "error"):
            if result.status == "timeout":
                step, detail = "Booking Call Timeout", f"Booking call to {provider_name} timed out"
            else:
                step = "Booking Call Error"
                detail = f"Booking call failed with error: {result.error or 'Unknown error'}"
            await interaction_log_crud.add_log(
                self.db, request_id=request_id, step_name=step, detail=detail, status=LogStatus.ERROR
            )
            await self.db.commit()

        return {
            "success": True,
            "message": (
                "Booking confirmed and saved"
                if result.booking_confirmed
                else "Booking result saved (not confirmed)"
            ),
        }

    async def schedule(self, request: BookingCallRequest) -> dict[str, Any]:
        """
        POST /bookings/schedule.

        Raises:
            OrchestrationUnavailableError: Kestra enabled but unhealthy
            ConfigurationError: Direct path chosen but Vapi not configured
            ExternalServiceError: The schedule_service flow failed to start
        """
        if self.features.kestra_enabled:
            if not await self.kestra.health_check():
                logger.error(f"{__name__}:schedule - Kestra unavailable, not falling back")
                raise OrchestrationUnavailableError(self.kestra.url)
            return await self._schedule_with_kestra(request)

        outcome = await self.book(request)
        return {
            "bookingInitiated": True,
            "callId": outcome.call_id,
            "bookingStatus": "confirmed" if outcome.booking_confirmed else outcome.call_outcome,
            "bookingConfirmed": outcome.booking_confirmed,
            "confirmedDate": outcome.confirmed_date,
            "confirmedTime": outcome.confirmed_time,
            "confirmationNumber": outcome.confirmation_number,
            "method": outcome.method,
        }

    async def _schedule_with_kestra(self, request: BookingCallRequest) -> dict[str, Any]:
        flow = await self.kestra.trigger_schedule_service_flow(
            provider_phone=self.call_mode.booking_phone(request.provider_phone),
            provider_name=request.provider_name,
            service_request_id=request.service_request_id,
            provider_id=request.provider_id,
            service_description=request.service_description,
            preferred_date=request.preferred_date,
            preferred_time=request.preferred_time,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            location=request.location,
        )
        if not flow["success"]:
            raise ExternalServiceError(
                flow["error"] or "Failed to initiate booking call", service="kestra"
            )

        request_id = parse_uuid(request.service_request_id)
        provider_uuid = parse_uuid(request.provider_id)
        if request_id is not None:
            await service_request_crud.update_status(
                self.db, request_id, RequestStatus.BOOKING, selected_provider_id=provider_uuid
            )
            await interaction_log_crud.add_log(
                self.db,
                request_id=request_id,
                step_name="Booking Call Started",
                detail=(
                    f"Initiated booking call to {request.provider_name} via Kestra. "
                    f"Execution ID: {flow['executionId']}"
                ),
            )
        if provider_uuid is not None:
            await provider_crud.update_by_id(
                self.db,
                provider_uuid,
                call_status="booking_in_progress",
                last_call_at=datetime.now(timezone.utc),
            )
        await self.db.commit()

        return {
            "bookingInitiated": True,
            "executionId": flow["executionId"],
            "bookingStatus": "call_initiated",
            "method": "kestra",
        }

    async def start_async_booking(self, request: BookingCallRequest) -> dict[str, Any]:
        """Mark the request BOOKING ahead of a background booking."""
        request_id = parse_uuid(request.service_request_id)
        if request_id is not None:
            await service_request_crud.update_status(
                self.db,
                request_id,
                RequestStatus.BOOKING,
                selected_provider_id=parse_uuid(request.provider_id),
            )
            await self.db.commit()
        mode = self.call_mode.mode
        logger.info(
            f"{__name__}:start_async_booking - Queued mode={mode}",
            extra={"service_request_id": request.service_request_id},
        )
        return {
            "serviceRequestId": request.service_request_id,
            "providerId": request.provider_id,
            "mode": mode,
        }

    async def recover_failed_booking(self, service_request_id: str, error: Exception) -> None:
        """Put the request back to RECOMMENDED after a background booking failed."""
        request_id = parse_uuid(service_request_id)
        if request_id is None:
            return
        try:
            await self.db.rollback()
            await service_request_crud.update_status(self.db, request_id, RequestStatus.RECOMMENDED)
            await interaction_log_crud.add_log(
                self.db,
                request_id=request_id,
                step_name="Booking Error",
                detail=f"Background booking failed: {error}",
                status=LogStatus.ERROR,
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"{__name__}:recover_failed_booking - FAILED - {type(e).__name__}: {e}",
                extra={"service_request_id": service_request_id},
            )

    async def get_status(self) -> dict[str, Any]:
        kestra_enabled = self.features.kestra_enabled
        return {
            "kestraEnabled": kestra_enabled,
            "kestraHealthy": await self.kestra.health_check() if kestra_enabled else False,
            "vapiConfigured": self.vapi.is_configured(),
            "callMode": self.call_mode.mode,
        }


async def run_background_booking(
    features: FeatureSettings,
    vapi: DirectVapiClient,
    twilio: TwilioClient,
    kestra: KestraClient,
    request: BookingCallRequest,
) -> None:
    """Book in a fresh session after the HTTP response has gone out."""
    async with session_scope() as session:
        service = BookingService(session, features, vapi, twilio, kestra)
        try:
            await service.book(request)
        except Exception as e:
            logger.error(
                f"{__name__}:run_background_booking - FAILED - {type(e).__name__}: {e}",
                extra={"service_request_id": request.service_request_id},
                exc_info=True,
            )
            await service.recover_failed_booking(request.service_request_id, e)
