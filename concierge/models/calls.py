"""
Call domain models.

CallRequest describes who to phone and what to ask. CallResult is the
normalized outcome shared by every calling path (Kestra, direct Vapi,
simulated), including the structured data the assistant extracts.

Dependencies: pydantic, concierge.models.common
System role: Calling contracts shared by core services and API routes
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from concierge.core.phone import E164_US_PATTERN
from concierge.models.common import CamelModel

Urgency = Literal["immediate", "within_24_hours", "within_2_days", "flexible"]
CallStatus = Literal["completed", "timeout", "error", "no_answer", "voicemail"]
CallMethod = Literal["kestra", "direct_vapi", "simulated"]
DataStatus = Literal["partial", "complete", "fetching", "fetch_failed"]


class CustomPrompt(CamelModel):
    """Caller-supplied assistant script, typically from direct-task analysis."""

    system_prompt: str
    first_message: str
    closing_script: str = ""


class CallRequest(CamelModel):
    """A single outbound call to a provider."""

    provider_name: str = Field(min_length=1)
    provider_phone: str = Field(pattern=E164_US_PATTERN)
    service_needed: str = Field(min_length=1)
    user_criteria: str = ""
    problem_description: str | None = None
    client_name: str | None = None
    location: str = Field(min_length=1)
    client_address: str | None = None
    urgency: Urgency = "within_2_days"
    service_request_id: str | None = None
    provider_id: str | None = None
    custom_prompt: CustomPrompt | None = None

    @property
    def is_direct_task(self) -> bool:
        """Direct tasks call a user-supplied number with a custom objective."""
        return (
            self.service_needed == "Direct Task"
            or self.location == "User Direct Request"
        )

    def call_metadata(self) -> dict[str, Any]:
        """Metadata attached to the Vapi call so webhooks can find DB rows."""
        return {
            "serviceRequestId": self.service_request_id,
            "providerId": self.provider_id,
            "providerName": self.provider_name,
            "serviceNeeded": self.service_needed,
            "location": self.location,
            "userCriteria": self.user_criteria,
            "urgency": self.urgency,
        }


class SimulatedCallRequest(CallRequest):
    """CallRequest plus the Google data that makes a simulated call realistic."""

    rating: float | None = None
    review_count: int | None = None
    hours_of_operation: list[str] | str | dict[str, str] | None = None
    is_open_now: bool | None = None


class StructuredCallData(BaseModel):
    """
    Screening data the voice assistant extracts from a call.

    Keys stay snake_case on the wire. Unknown keys from the assistant are kept.
    """

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    availability: str = "unclear"
    earliest_availability: str = ""
    estimated_rate: str = ""
    single_person_found: bool = False
    technician_name: str = ""
    all_criteria_met: bool = False
    criteria_details: dict[str, Any] = Field(default_factory=dict)
    call_outcome: str = "neutral"
    recommended: bool = False
    disqualified: bool = False
    disqualification_reason: str = ""
    notes: str = ""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Assistants emit null for fields they could not fill
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class CallAnalysis(CamelModel):
    """Assistant-produced call analysis."""

    summary: str = ""
    structured_data: StructuredCallData = Field(default_factory=StructuredCallData)
    success_evaluation: str = ""


class CallProviderInfo(CamelModel):
    name: str
    phone: str
    service: str
    location: str


class CallRequestInfo(CamelModel):
    criteria: str = ""
    urgency: str = "within_2_days"


class CallResult(CamelModel):
    """Normalized outcome of a provider call."""

    status: CallStatus
    call_id: str = ""
    call_method: CallMethod = "direct_vapi"
    duration: float = 0
    ended_reason: str = ""
    transcript: str = ""
    analysis: CallAnalysis = Field(default_factory=CallAnalysis)
    provider: CallProviderInfo
    request: CallRequestInfo = Field(default_factory=CallRequestInfo)
    cost: float | None = None
    error: str | None = None
    data_status: DataStatus | None = None
    webhook_received_at: str | None = None
    fetched_at: str | None = None
    fetch_attempts: int | None = None
    fetch_error: str | None = None
    messages: list[dict[str, Any]] | None = None

    @property
    def structured_data(self) -> StructuredCallData:
        return self.analysis.structured_data


def create_error_result(
    request: CallRequest,
    message: str,
    method: CallMethod = "direct_vapi",
) -> CallResult:
    """
    Build the CallResult reported when a call could not be placed.

    Args:
        request: The call that failed
        message: Error description
        method: Calling path that failed

    Returns:
        CallResult: status "error", no call ID, provider disqualified
    """
    return CallResult(
        status="error",
        call_id="",
        call_method=method,
        duration=0,
        ended_reason="api_error",
        transcript="",
        analysis=CallAnalysis(
            summary="",
            structured_data=StructuredCallData(
                availability="unclear",
                call_outcome="negative",
                disqualified=True,
                disqualification_reason=message,
            ),
            success_evaluation="",
        ),
        provider=provider_info(request),
        request=request_info(request),
        error=message,
    )


def provider_info(request: CallRequest) -> CallProviderInfo:
    """Provider block of a CallResult for a request."""
    return CallProviderInfo(
        name=request.provider_name,
        phone=request.provider_phone,
        service=request.service_needed,
        location=request.location,
    )


def request_info(request: CallRequest) -> CallRequestInfo:
    """Request block of a CallResult for a request."""
    return CallRequestInfo(criteria=request.user_criteria, urgency=request.urgency)


class BatchProvider(CamelModel):
    name: str = Field(min_length=1)
    phone: str = Field(pattern=E164_US_PATTERN)
    id: str | None = None


class BatchCallRequest(CamelModel):
    """Call several providers about the same job."""

    providers: list[BatchProvider] = Field(min_length=1)
    service_needed: str = Field(min_length=1)
    user_criteria: str = ""
    problem_description: str | None = None
    client_name: str | None = None
    location: str = Field(min_length=1)
    client_address: str | None = None
    urgency: Urgency = "within_2_days"
    service_request_id: str | None = None
    max_concurrent: int = Field(default=5, ge=1, le=10)
    custom_prompt: CustomPrompt | None = None

    def to_call_requests(self) -> list[CallRequest]:
        return [
            CallRequest(
                provider_name=provider.name,
                provider_phone=provider.phone,
                provider_id=provider.id,
                service_needed=self.service_needed,
                user_criteria=self.user_criteria,
                problem_description=self.problem_description,
                client_name=self.client_name,
                location=self.location,
                client_address=self.client_address,
                urgency=self.urgency,
                service_request_id=self.service_request_id,
                custom_prompt=self.custom_prompt,
            )
            for provider in self.providers
        ]


def summarize_results(results: list[CallResult], started: float, finished: float) -> dict[str, Any]:
    """
    Batch stats over call results.

    Args:
        results: Calls that were placed
        started: Batch start (time.monotonic)
        finished: Batch end (time.monotonic)
    """
    durations = [r.duration for r in results if r.duration > 0]
    return {
        "total": len(results),
        "completed": sum(1 for r in results if r.status == "completed"),
        "failed": sum(1 for r in results if r.status == "error"),
        "timeout": sum(1 for r in results if r.status == "timeout"),
        "noAnswer": sum(1 for r in results if r.status == "no_answer"),
        "voicemail": sum(1 for r in results if r.status == "voicemail"),
        "duration": int((finished - started) * 1000),
        "averageCallDuration": round(sum(durations) / len(durations), 2) if durations else 0,
    }
