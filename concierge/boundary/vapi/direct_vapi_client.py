"""
Direct Vapi calling client.

Places a provider call through the Vapi REST API and waits for the result:

    webhook mode   VAPI_WEBHOOK_URL set. Vapi posts the end-of-call report to
                   our webhook route, which caches it; we poll our own cache
                   (GET /api/v1/vapi/calls/{id}) every 2s for up to 5 minutes.
                   If the cache only ever answers 404 the webhook is assumed
                   unreachable and we fall back to API polling early.
    polling mode   GET /call/{id} every 5s until the call leaves the active
                   states, then re-fetch a few times while Vapi finishes the
                   post-call analysis.

Dependencies: httpx, concierge.boundary.vapi.vapi_api_client,
              concierge.core.calling.assistant_config
System role: Direct (non-Kestra) execution path for real phone calls
"""

import asyncio
import logging
import time
from typing import Any

import httpx

from concierge.boundary.vapi.vapi_api_client import (
    ACTIVE_CALL_STATES,
    MIN_TRANSCRIPT_LENGTH,
    VapiApiClient,
    get_transcript,
)
from concierge.configs.vapi import VapiSettings
from concierge.core.calling.assistant_config import create_assistant_config
from concierge.models.calls import (
    CallAnalysis,
    CallRequest,
    CallResult,
    CustomPrompt,
    StructuredCallData,
    create_error_result,
    provider_info,
    request_info,
)

logger = logging.getLogger(__name__)

ENRICHMENT_DELAYS = (3.0, 5.0, 8.0)
MAX_CONSECUTIVE_404S = 30


def _has_analysis(call: dict[str, Any]) -> bool:
    analysis = call.get("analysis") or {}
    return bool(analysis.get("structuredData") or analysis.get("summary"))


def _is_enriched(call: dict[str, Any]) -> bool:
    return _has_analysis(call) and len(get_transcript(call)) > MIN_TRANSCRIPT_LENGTH


def format_call_result(call: dict[str, Any], request: CallRequest) -> CallResult:
    """
    Convert a finished Vapi call into a CallResult for the given request.

    Args:
        call: Raw Vapi call from GET /call/{id}
        request: The request the call was placed for

    Returns:
        CallResult: status derived from call status and endedReason
    """
    ended_reason = call.get("endedReason") or ""
    if call.get("status") != "ended":
        status = "error"
    elif "no-answer" in ended_reason or "no_answer" in ended_reason:
        status = "no_answer"
    elif "voicemail" in ended_reason:
        status = "voicemail"
    else:
        status = "completed"

    artifact = call.get("artifact") or {}
    messages = artifact.get("messages") or []
    analysis = call.get("analysis") or {}

    return CallResult(
        status=status,
        call_id=call.get("id", ""),
        call_method="direct_vapi",
        duration=call.get("durationMinutes") or 0,
        ended_reason=ended_reason or "unknown",
        transcript=get_transcript(call),
        analysis=CallAnalysis(
            summary=analysis.get("summary") or "",
            structured_data=StructuredCallData(**(analysis.get("structuredData") or {})),
            success_evaluation=str(analysis.get("successEvaluation") or ""),
        ),
        provider=provider_info(request),
        request=request_info(request),
        cost=(call.get("costBreakdown") or {}).get("total"),
        messages=[
            {
                "role": message.get("role") or "unknown",
                "message": message.get("message") or message.get("content") or "",
                "time": message.get("time", message.get("secondsFromStart")),
            }
            for message in messages
            if isinstance(message, dict)
        ],
    )


class DirectVapiClient:
    """
    Direct Vapi client with hybrid webhook/polling result retrieval.

    Args:
        settings: Vapi configuration
        backend_url: This API's base URL, polled for webhook results
        transport: Optional httpx transport shared with the REST client
        poll_interval: Seconds between GET /call polls
        max_poll_attempts: Poll limit before reporting a timeout
        webhook_poll_interval: Seconds between webhook-cache polls
        webhook_timeout: Seconds to wait for a webhook result
        enrichment_delays: Waits between post-call analysis re-fetches
    """

    def __init__(
        self,
        settings: VapiSettings,
        backend_url: str = "http://localhost:8000",
        transport: httpx.AsyncBaseTransport | None = None,
        poll_interval: float = 5.0,
        max_poll_attempts: int = 60,
        webhook_poll_interval: float = 2.0,
        webhook_timeout: float = 300.0,
        enrichment_delays: tuple[float, ...] = ENRICHMENT_DELAYS,
    ) -> None:
        self.settings = settings
        self.backend_url = backend_url.rstrip("/")
        self.api = VapiApiClient(settings, transport=transport)
        self._transport = transport
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.webhook_poll_interval = webhook_poll_interval
        self.webhook_timeout = webhook_timeout
        self.enrichment_delays = enrichment_delays

    def is_configured(self) -> bool:
        return self.settings.is_configured

    @property
    def webhook_enabled(self) -> bool:
        return bool(self.settings.webhook_url)

    async def create_call(
        self,
        phone: str,
        name: str,
        assistant: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Create a call with a transient assistant.

        Args:
            phone: Destination number (E.164)
            name: Destination display name
            assistant: Assistant payload
            metadata: Call metadata echoed back in webhooks

        Returns:
            dict: Created Vapi call
        """
        payload: dict[str, Any] = {
            "phoneNumberId": self.settings.phone_number_id,
            "customer": {"number": phone, "name": name},
            "assistant": assistant,
        }
        if metadata:
            payload["metadata"] = metadata
        return await self.api.create_call(payload)

    async def wait_for_call_end(
        self,
        call_id: str,
        max_attempts: int | None = None,
        poll_interval: float | None = None,
    ) -> dict[str, Any] | None:
        """
        Poll until a call leaves the active states.

        Returns:
            dict | None: Final call object, or None when polling ran out
        """
        attempts = max_attempts or self.max_poll_attempts
        for attempt in range(attempts):
            call = await self.api.get_call(call_id)
            logger.debug(
                f"{__name__}:wait_for_call_end - status={call.get('status')} "
                f"attempt={attempt + 1}/{attempts}"
            )
            if call.get("status") not in ACTIVE_CALL_STATES:
                return call
            await asyncio.sleep(poll_interval or self.poll_interval)
        return None

    async def initiate_call(
        self,
        request: CallRequest,
        custom_prompt: CustomPrompt | None = None,
    ) -> CallResult:
        """
        Place a provider call and wait for its result.

        Never raises: failures come back as an error CallResult.

        Args:
            request: Provider call details
            custom_prompt: Direct-task prompt overriding the template

        Returns:
            CallResult: Completed, voicemail, no_answer, timeout or error
        """
        logger.info(
            f"{__name__}:initiate_call - START provider={request.provider_name} "
            f"webhook={self.webhook_enabled}"
        )
        try:
            assistant = create_assistant_config(request, custom_prompt)
            if self.webhook_enabled:
                assistant["serverUrl"] = self.settings.webhook_url
                assistant["serverMessages"] = ["end-of-call-report", "status-update"]

            call = await self.create_call(
                request.provider_phone,
                request.provider_name,
                assistant,
                metadata=request.call_metadata(),
            )
            call_id = call["id"]

            if self.webhook_enabled:
                webhook_result = await self._wait_for_webhook_result(call_id)
                if webhook_result is not None:
                    logger.info(f"{__name__}:initiate_call - END via webhook call_id={call_id}")
                    return webhook_result
                logger.info(
                    f"{__name__}:initiate_call - Webhook unavailable, polling Vapi call_id={call_id}"
                )

            completed = await self._poll_call_completion(call_id)
            if completed is None:
                timed_out = create_error_result(
                    request,
                    f"Call {call_id} timed out after {self.max_poll_attempts * self.poll_interval:.0f} seconds",
                )
                return timed_out.model_copy(
                    update={"status": "timeout", "call_id": call_id, "ended_reason": "timeout"}
                )

            result = format_call_result(completed, request)
            logger.info(
                f"{__name__}:initiate_call - END call_id={call_id} status={result.status}"
            )
            return result
        except Exception as e:
            logger.error(
                f"{__name__}:initiate_call - FAILED provider={request.provider_name} - "
                f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            return create_error_result(request, str(e) or type(e).__name__)

    async def _wait_for_webhook_result(self, call_id: str) -> CallResult | None:
        """Poll the webhook cache; None means fall back to API polling."""
        deadline = time.monotonic() + self.webhook_timeout
        consecutive_404s = 0
        received_data = False
        url = f"{self.backend_url}/api/v1/vapi/calls/{call_id}"

        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            while time.monotonic() < deadline:
                try:
                    response = await client.get(url)
                    if response.status_code == 200:
                        consecutive_404s = 0
                        received_data = True
                        data = response.json().get("data") or {}
                        if data.get("dataStatus") == "complete":
                            return CallResult.model_validate(data)
                    elif response.status_code == 404:
                        consecutive_404s += 1
                        if not received_data and consecutive_404s >= MAX_CONSECUTIVE_404S:
                            logger.warning(
                                f"{__name__}:_wait_for_webhook_result - {consecutive_404s} "
                                f"consecutive 404s for call_id={call_id}; webhook appears unreachable"
                            )
                            return None
                except httpx.HTTPError as e:
                    logger.debug(
                        f"{__name__}:_wait_for_webhook_result - cache poll failed: {e}"
                    )
                await asyncio.sleep(self.webhook_poll_interval)

        logger.warning(
            f"{__name__}:_wait_for_webhook_result - Timed out waiting for call_id={call_id}"
        )
        return None

    async def _poll_call_completion(self, call_id: str) -> dict[str, Any] | None:
        """Wait for the call to end, then give Vapi time to finish analysis."""
        call = await self.wait_for_call_end(call_id)
        if call is None:
            return None

        for attempt, delay in enumerate(self.enrichment_delays, start=1):
            if _is_enriched(call):
                return call
            logger.info(
                f"{__name__}:_poll_call_completion - Waiting {delay}s for analysis "
                f"call_id={call_id} attempt={attempt}"
            )
            await asyncio.sleep(delay)
            call = await self.api.get_call(call_id)

        if not _is_enriched(call):
            logger.warning(
                f"{__name__}:_poll_call_completion - Analysis incomplete, returning partial data "
                f"call_id={call_id}"
            )
        return call
