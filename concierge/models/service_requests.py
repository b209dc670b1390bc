"""
Service request domain models and schemas.

Dependencies: pydantic
System role: Service request API contracts
"""

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from concierge.core.phone import E164_US_PATTERN
from concierge.models.common import CamelModel

RequestStatusName = Literal[
    "PENDING",
    "SEARCHING",
    "CALLING",
    "ANALYZING",
    "RECOMMENDED",
    "BOOKING",
    "COMPLETED",
    "FAILED",
]


class CreateServiceRequest(CamelModel):
    """Request schema for creating a service request."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    criteria: str = ""
    location: str | None = None
    type: Literal["RESEARCH_AND_BOOK", "DIRECT_TASK"] = "RESEARCH_AND_BOOK"
    user_id: uuid.UUID | None = None
    user_phone: str | None = Field(None, pattern=E164_US_PATTERN)
    preferred_contact: Literal["phone", "text"] = "text"
    direct_contact_info: dict[str, Any] | None = None


class UpdateServiceRequestStatus(CamelModel):
    """Request schema for PATCH /service-requests/{id}/status."""

    status: RequestStatusName
    final_outcome: str | None = None


class ProviderResponse(CamelModel):
    id: uuid.UUID
    name: str
    phone: str | None = None
    rating: float | None = None
    address: str | None = None
    source: str
    review_count: int | None = None
    distance: float | None = None
    distance_text: str | None = None
    is_open_now: bool | None = None
    call_status: str | None = None
    call_summary: str | None = None
    call_transcript: str | None = None
    call_result: dict[str, Any] | None = None
    call_method: str | None = None
    call_id: str | None = None
    booking_confirmed: bool = False
    booking_date: str | None = None
    booking_time: str | None = None
    confirmation_number: str | None = None


class InteractionLogResponse(CamelModel):
    id: uuid.UUID
    timestamp: datetime
    step_name: str
    detail: str
    status: str
    transcript: list[dict[str, Any]] | None = None
    call_id: str | None = None


class ServiceRequestResponse(CamelModel):
    """Response schema for service request operations."""

    id: uuid.UUID
    user_id: uuid.UUID | None = None
    type: str
    title: str
    description: str
    criteria: str
    location: str | None = None
    status: str
    selected_provider_id: uuid.UUID | None = None
    final_outcome: str | None = None
    preferred_contact: str
    user_phone: str | None = None
    notification_sent_at: datetime | None = None
    notification_method: str | None = None
    user_selection: int | None = None
    recommendations: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime


class ServiceRequestDetailResponse(ServiceRequestResponse):
    """Service request with its providers and timeline."""

    providers: list[ProviderResponse] = Field(default_factory=list)
    interaction_logs: list[InteractionLogResponse] = Field(default_factory=list)
