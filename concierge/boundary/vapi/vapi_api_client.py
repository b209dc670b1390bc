"""
Vapi REST API client.

Thin async wrapper over POST /call and GET /call/{id}, plus the pure helpers
that turn a raw Vapi call object into a CallResult.

Dependencies: httpx, concierge.boundary.http_retry, concierge.models.calls
System role: Vapi boundary for call creation, polling and enrichment
"""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from concierge.boundary.http_retry import CONNECT_ERRORS, http_retry
from concierge.configs.vapi import VapiSettings
from concierge.models.calls import (
    CallAnalysis,
    CallProviderInfo,
    CallRequestInfo,
    CallResult,
    StructuredCallData,
)

logger = logging.getLogger(__name__)

ACTIVE_CALL_STATES = ("queued", "ringing", "in-progress")
MIN_TRANSCRIPT_LENGTH = 50


class VapiApiClient:
    """
    Async client for the Vapi REST API.

    Args:
        settings: Vapi credentials and base URL
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        settings: VapiSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.base_url,
            headers={
                "Authorization": f"Bearer {self.settings.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.settings.request_timeout,
            transport=self._transport,
        )

    @http_retry("create_call", retry_on=CONNECT_ERRORS)
    async def create_call(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Create an outbound call.

        Args:
            payload: Body for POST /call (phoneNumberId, customer, assistant, ...)

        Returns:
            dict: Created call object with at least `id` and `status`
        """
        async with self._client() as client:
            response = await client.post("/call", json=payload)
            response.raise_for_status()
            call = response.json()
        logger.info(
            f"{__name__}:create_call - Call created",
            extra={"call_id": call.get("id"), "status": call.get("status")},
        )
        return call

    @http_retry("get_call")
    async def get_call(self, call_id: str) -> dict[str, Any]:
        """Fetch a call by ID."""
        async with self._client() as client:
            response = await client.get(f"/call/{call_id}")
            response.raise_for_status()
            return response.json()


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_transcript(call: dict[str, Any]) -> str:
    """Transcript from either the top level or the call artifact."""
    transcript = call.get("transcript") or (call.get("artifact") or {}).get("transcript") or ""
    return transcript if isinstance(transcript, str) else str(transcript)


def get_cost(call: dict[str, Any]) -> float | None:
    return call.get("cost") or (call.get("costBreakdown") or {}).get("total")


def is_data_complete(call: dict[str, Any]) -> bool:
    """
    True once Vapi has finished post-call processing.

    The call must have ended, carry a real transcript, and have analysis.
    """
    analysis = call.get("analysis") or {}
    has_analysis = bool(analysis.get("summary") or analysis.get("structuredData"))
    return (
        call.get("status") == "ended"
        and len(get_transcript(call)) > MIN_TRANSCRIPT_LENGTH
        and has_analysis
    )


def calculate_duration(call: dict[str, Any]) -> float:
    """Call duration in minutes from startedAt/endedAt; 0 if unknown."""
    started, ended = call.get("startedAt"), call.get("endedAt")
    if not started or not ended:
        return 0
    try:
        start = datetime.fromisoformat(started.replace("Z", "+00:00"))
        end = datetime.fromisoformat(ended.replace("Z", "+00:00"))
    except ValueError:
        return 0
    return (end - start).total_seconds() / 60


def status_from_ended_reason(ended_reason: str | None) -> str:
    """Map a Vapi endedReason to a CallResult status."""
    if not ended_reason:
        return "completed"
    reason = ended_reason.lower()
    if "no" in reason or "voicemail" in reason:
        return "voicemail"
    if "error" in reason or "failed" in reason:
        return "error"
    if "timeout" in reason:
        return "timeout"
    return "completed"


def transform_to_call_result(
    call: dict[str, Any],
    existing: CallResult | None = None,
) -> CallResult:
    """
    Convert a Vapi call object (webhook payload or API response) to a CallResult.

    Provider/request details come from the call metadata unless an existing
    cached result already has them.

    Args:
        call: Raw Vapi call
        existing: Cached result whose provider/request/method take precedence

    Returns:
        CallResult: dataStatus "complete"
    """
    status = status_from_ended_reason(call.get("endedReason"))
    analysis = call.get("analysis") or {}
    metadata = call.get("metadata") or {}

    structured = {
        "availability": "unclear",
        "estimated_rate": "unknown",
        "single_person_found": False,
        "all_criteria_met": False,
        "call_outcome": "positive" if status == "completed" else "no_answer",
        "recommended": False,
        **(analysis.get("structuredData") or {}),
    }

    provider = existing.provider if existing else CallProviderInfo(
        name=metadata.get("providerName") or "Unknown Provider",
        phone=(
            (call.get("customer") or {}).get("number")
            or (call.get("phoneNumber") or {}).get("number")
            or "unknown"
        ),
        service=metadata.get("serviceNeeded") or "unknown",
        location=metadata.get("location") or "unknown",
    )
    request = existing.request if existing else CallRequestInfo(
        criteria=metadata.get("userCriteria") or "",
        urgency=metadata.get("urgency") or "flexible",
    )

    return CallResult(
        status=status,
        call_id=call.get("id", ""),
        call_method=existing.call_method if existing else "direct_vapi",
        duration=calculate_duration(call),
        ended_reason=call.get("endedReason") or "unknown",
        transcript=get_transcript(call),
        analysis=CallAnalysis(
            summary=analysis.get("summary") or call.get("summary") or "No summary available",
            structured_data=StructuredCallData(**structured),
            success_evaluation=str(analysis.get("successEvaluation") or "unknown"),
        ),
        provider=provider,
        request=request,
        cost=get_cost(call) or 0,
        data_status="complete",
        fetched_at=_utcnow_iso(),
    )


def merge_call_data(existing: CallResult, call: dict[str, Any]) -> CallResult:
    """
    Merge fresh API data into a cached webhook result.

    The longer transcript wins; API analysis fields override cached ones.
    """
    api_transcript = get_transcript(call)
    api_analysis = call.get("analysis") or {}
    structured = {
        **existing.analysis.structured_data.model_dump(),
        **(api_analysis.get("structuredData") or {}),
    }
    return existing.model_copy(
        update={
            "transcript": (
                api_transcript
                if len(api_transcript) > len(existing.transcript)
                else existing.transcript
            ),
            "analysis": CallAnalysis(
                summary=api_analysis.get("summary") or existing.analysis.summary,
                structured_data=StructuredCallData(**structured),
                success_evaluation=str(
                    api_analysis.get("successEvaluation") or existing.analysis.success_evaluation
                ),
            ),
            "cost": get_cost(call) or existing.cost,
            "data_status": "complete",
            "fetched_at": _utcnow_iso(),
        }
    )
