"""
Booking domain models and schemas.

Dependencies: pydantic, concierge.models.common
System role: Booking call and booking result contracts
"""

from typing import Any, Literal

from pydantic import Field

from concierge.core.phone import E164_US_PATTERN
from concierge.models.common import CamelModel

BookingMethod = Literal["direct_vapi", "simulated", "kestra"]


class BookingCallRequest(CamelModel):
    """Call a vetted provider back to schedule the appointment."""

    service_request_id: str
    provider_id: str
    provider_phone: str = Field(pattern=E164_US_PATTERN)
    provider_name: str = Field(min_length=1)
    service_description: str | None = None
    preferred_date: str | None = None
    preferred_time: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = Field(default=None, pattern=E164_US_PATTERN)
    location: str | None = None
    client_address: str | None = None
    additional_notes: str | None = None


class BookProviderRequest(CamelModel):
    """Body of POST /providers/book."""

    provider_id: str
    provider_name: str = Field(min_length=1)
    provider_phone: str = Field(pattern=E164_US_PATTERN)
    service_needed: str = Field(min_length=1)
    service_request_id: str
    client_name: str | None = None
    client_phone: str | None = None
    location: str = Field(min_length=1)
    preferred_date_time: str | None = None
    additional_notes: str | None = None

    def to_booking_call(self) -> BookingCallRequest:
        return BookingCallRequest(
            service_request_id=self.service_request_id,
            provider_id=self.provider_id,
            provider_phone=self.provider_phone,
            provider_name=self.provider_name,
            service_description=self.service_needed,
            preferred_date=self.preferred_date_time,
            customer_name=self.client_name,
            customer_phone=self.client_phone,
            location=self.location,
            additional_notes=self.additional_notes,
        )


class BookingOutcome(CamelModel):
    """Result of a booking call, real or simulated."""

    booking_confirmed: bool = False
    call_id: str = ""
    confirmed_date: str = ""
    confirmed_time: str = ""
    confirmation_number: str = ""
    call_outcome: str = "unknown"
    booking_failure_reason: str = ""
    transcript: str = ""
    summary: str = ""
    next_steps: str = ""
    method: BookingMethod = "direct_vapi"


class BookingResultPayload(CamelModel):
    """Booking result posted back by the schedule_service Kestra flow."""

    status: Literal["completed", "timeout", "error"]
    call_id: str | None = None
    booking_confirmed: bool = False
    confirmed_date: str | None = None
    confirmed_time: str | None = None
    confirmation_number: str | None = None
    call_outcome: str | None = None
    booking_failure_reason: str | None = None
    transcript: str | None = None
    provider: dict[str, Any] | None = None
    appointment: dict[str, Any] | None = None
    error: str | None = None

    def to_outcome(self) -> BookingOutcome:
        return BookingOutcome(
            booking_confirmed=self.booking_confirmed,
            call_id=self.call_id or "",
            confirmed_date=self.confirmed_date or "",
            confirmed_time=self.confirmed_time or "",
            confirmation_number=self.confirmation_number or "",
            call_outcome=self.call_outcome or self.status,
            booking_failure_reason=self.booking_failure_reason or "",
            transcript=self.transcript or "",
            method="kestra",
        )


class SaveBookingResultRequest(CamelModel):
    """Body of POST /bookings/save-booking-result."""

    service_request_id: str
    provider_id: str
    booking_result: BookingResultPayload


class ScheduleAsyncRequest(BookingCallRequest):
    """Body of POST /bookings/schedule-async."""
