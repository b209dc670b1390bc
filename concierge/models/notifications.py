"""
Notification domain models and schemas.

Dependencies: pydantic, concierge.models.common
System role: User notification (SMS and phone) contracts
"""

from typing import Literal

from pydantic import Field

from concierge.core.phone import E164_US_PATTERN
from concierge.models.common import CamelModel

UserCallOutcome = Literal["selected", "no_selection", "voicemail", "no_answer", "error"]


class NotificationProvider(CamelModel):
    """A recommended provider as presented to the user."""

    name: str
    earliest_availability: str = "Contact for availability"
    rating: float | None = None
    review_count: int | None = None
    estimated_rate: str | None = None
    reasoning: str | None = None
    score: float | None = None


class SmsNotification(CamelModel):
    """Recommendation SMS contents."""

    user_phone: str
    user_name: str | None = None
    request_url: str | None = None
    providers: list[NotificationProvider] = Field(default_factory=list)
    overall_recommendation: str | None = None


class SmsConfirmation(CamelModel):
    """Booking confirmation SMS contents."""

    user_phone: str
    user_name: str | None = None
    provider_name: str
    booking_date: str | None = None
    booking_time: str | None = None
    confirmation_number: str | None = None
    service_description: str | None = None


class SmsResult(CamelModel):
    """Outcome of a Twilio send."""

    success: bool
    message_sid: str | None = None
    message_status: str | None = None
    error: str | None = None
    method: str = "direct_twilio"


class RecommendationOption(CamelModel):
    """One ranked option read out on a notification call."""

    rank: int
    provider_name: str
    availability: str
    rating: float | None = None
    review_count: int | None = None
    estimated_rate: str | None = None
    score: float | None = None
    reasoning: str | None = None


class UserNotificationRequest(CamelModel):
    """Phone call presenting recommendations to the user."""

    user_phone: str
    user_name: str | None = None
    service_request_id: str
    service_needed: str
    location: str
    request_url: str | None = None
    recommendations: list[RecommendationOption]
    overall_recommendation: str | None = None


class UserCallResult(CamelModel):
    """Outcome of the user notification call."""

    success: bool
    call_id: str | None = None
    selected_provider: int | None = None
    call_outcome: UserCallOutcome
    transcript: str | None = None
    error: str | None = None


class SendNotificationRequest(CamelModel):
    """Body of POST /notifications/send."""

    user_phone: str = Field(pattern=E164_US_PATTERN)
    user_name: str | None = None
    request_url: str | None = None
    service_request_id: str
    preferred_contact: Literal["phone", "text"] = "text"
    service_needed: str | None = None
    location: str | None = None
    providers: list[NotificationProvider] = Field(min_length=1)
    overall_recommendation: str | None = None


class TriggerNotificationParams(CamelModel):
    """Automatic notification sent once recommendations are ready."""

    service_request_id: str
    user_phone: str
    user_name: str | None = None
    preferred_contact: Literal["phone", "text"] = "text"
    service_needed: str | None = None
    location: str | None = None
    providers: list[NotificationProvider] = Field(default_factory=list)
    overall_recommendation: str | None = None


class TriggerNotificationResult(CamelModel):
    """Outcome of the automatic post-recommendation notification."""

    success: bool
    method: Literal["sms", "vapi", "already_sent", "skipped"]
    message_sid: str | None = None
    call_id: str | None = None
    error: str | None = None
