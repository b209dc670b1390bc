"""
Kestra orchestration client.

Triggers flows in the configured namespace and, for flows whose output we
need, polls the execution until it reaches a terminal state:

    contact_providers     one provider call, output `call_result`
    research_providers    provider research, output `json`
    recommend_providers   scoring, output `json`
    schedule_service      booking call (fire-and-forget)
    notify_user           recommendation SMS (fire-and-forget)

Dependencies: httpx, concierge.boundary.http_retry
System role: Orchestrated execution path when KESTRA_ENABLED=true
"""

import asyncio
import json
import logging
import time
from typing import Any

import httpx

from concierge.boundary.http_retry import CONNECT_ERRORS, http_retry
from concierge.configs.kestra import KestraSettings
from concierge.models.calls import CallRequest, CallResult, create_error_result
from concierge.models.research import Provider, ResearchRequest, ResearchResult

logger = logging.getLogger(__name__)

TERMINAL_STATES = ("SUCCESS", "FAILED", "KILLED")
CONTACT_FLOW_MAX_ATTEMPTS = 72
RESEARCH_FLOW_MAX_ATTEMPTS = 36
RECOMMEND_FLOW_MAX_ATTEMPTS = 36


def execution_state(execution: dict[str, Any]) -> str:
    """Kestra reports state either as a string or as {current: ...}."""
    state = execution.get("state")
    if isinstance(state, dict):
        return state.get("current") or "UNKNOWN"
    return state or "UNKNOWN"


def parse_output(raw: Any) -> Any:
    """Flow outputs arrive either as JSON strings or already decoded."""
    if isinstance(raw, str):
        return json.loads(raw)
    return raw


class KestraClient:
    """
    Async Kestra REST client.

    Args:
        settings: Kestra URL, namespace and token
        transport: Optional httpx transport (tests use httpx.MockTransport)
        poll_interval: Override for seconds between execution polls
    """

    def __init__(
        self,
        settings: KestraSettings,
        transport: httpx.AsyncBaseTransport | None = None,
        poll_interval: float | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self.poll_interval = settings.poll_interval if poll_interval is None else poll_interval

    @property
    def url(self) -> str:
        return self.settings.url

    def _client(self, timeout: float = 30.0) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.settings.api_token:
            headers["Authorization"] = f"Bearer {self.settings.api_token}"
        return httpx.AsyncClient(
            base_url=self.settings.url,
            headers=headers,
            timeout=timeout,
            transport=self._transport,
        )

    async def health_check(self) -> bool:
        """True when GET /api/v1/health answers 200; False on any error."""
        try:
            async with self._client(timeout=self.settings.health_check_timeout / 1000) as client:
                response = await client.get("/api/v1/health")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"{__name__}:health_check - Kestra unreachable at {self.url}: {e}")
            return False

    @http_retry("trigger_execution", retry_on=CONNECT_ERRORS)
    async def trigger_execution(self, flow_id: str, inputs: dict[str, Any]) -> str:
        """
        Start a flow execution.

        Returns:
            str: Execution ID
        """
        async with self._client() as client:
            response = await client.post(
                f"/api/v1/executions/{self.settings.namespace}/{flow_id}",
                json=inputs,
            )
            response.raise_for_status()
            execution_id = response.json()["id"]
        logger.info(
            f"{__name__}:trigger_execution - Execution triggered",
            extra={"flow_id": flow_id, "execution_id": execution_id},
        )
        return execution_id

    @http_retry("get_execution")
    async def get_execution(self, execution_id: str) -> dict[str, Any]:
        async with self._client() as client:
            response = await client.get(f"/api/v1/executions/{execution_id}")
            response.raise_for_status()
            return response.json()

    async def poll_execution(self, execution_id: str, max_attempts: int) -> dict[str, Any]:
        """
        Poll until the execution reaches SUCCESS, FAILED or KILLED.

        Raises:
            TimeoutError: If the execution is still running after max_attempts
        """
        for attempt in range(max_attempts):
            execution = await self.get_execution(execution_id)
            state = execution_state(execution)
            logger.debug(
                f"{__name__}:poll_execution - state={state} attempt={attempt + 1}/{max_attempts}",
                extra={"execution_id": execution_id},
            )
            if state in TERMINAL_STATES:
                return execution
            await asyncio.sleep(self.poll_interval)
        raise TimeoutError(
            f"Kestra execution {execution_id} timed out after "
            f"{max_attempts * self.poll_interval:.0f} seconds"
        )

    async def trigger_contact_flow(self, request: CallRequest) -> CallResult:
        """
        Run the contact_providers flow for one provider and wait for its result.

        Never raises: failures come back as an error CallResult.
        """
        logger.info(
            f"{__name__}:trigger_contact_flow - START provider={request.provider_name}"
        )
        inputs = {
            "provider_name": request.provider_name,
            "provider_phone": request.provider_phone,
            "service_needed": request.service_needed,
            "user_criteria": request.user_criteria,
            "problem_description": request.problem_description or "",
            "client_name": request.client_name or "",
            "location": request.location,
            "urgency": request.urgency,
            "service_request_id": request.service_request_id or "",
            "provider_id": request.provider_id or "",
        }
        try:
            execution_id = await self.trigger_execution("contact_providers", inputs)
            execution = await self.poll_execution(execution_id, CONTACT_FLOW_MAX_ATTEMPTS)
        except Exception as e:
            logger.error(
                f"{__name__}:trigger_contact_flow - FAILED provider={request.provider_name} - "
                f"{type(e).__name__}: {e}"
            )
            failed = create_error_result(request, str(e), method="kestra")
            return failed.model_copy(update={"ended_reason": "kestra_error"})

        state = execution_state(execution)
        raw_output = (execution.get("outputs") or {}).get("call_result")
        if state != "SUCCESS" or not raw_output:
            message = (
                "No output from Kestra execution"
                if state == "SUCCESS"
                else f"Kestra execution {state.lower()}"
            )
            failed = create_error_result(request, message, method="kestra")
            return failed.model_copy(
                update={
                    "call_id": execution.get("id", execution_id),
                    "ended_reason": "no_output" if state == "SUCCESS" else state.lower(),
                }
            )

        parsed = parse_output(raw_output)
        parsed["callMethod"] = "kestra"
        parsed.pop("call_method", None)
        result = CallResult.model_validate(parsed)
        logger.info(
            f"{__name__}:trigger_contact_flow - END provider={request.provider_name} "
            f"status={result.status}"
        )
        return result

    async def trigger_research_flow(self, request: ResearchRequest) -> ResearchResult:
        """Run research_providers and normalize its provider list."""
        inputs = {
            "service": request.service,
            "location": request.location,
            "days_needed": request.days_needed or 7,
            "min_rating": request.min_rating or 4.0,
        }
        if request.max_distance is not None:
            inputs["max_distance"] = request.max_distance
        if request.min_review_count is not None:
            inputs["min_review_count"] = request.min_review_count
        if request.coordinates is not None:
            inputs["latitude"] = request.coordinates.latitude
            inputs["longitude"] = request.coordinates.longitude

        try:
            execution_id = await self.trigger_execution("research_providers", inputs)
            execution = await self.poll_execution(execution_id, RESEARCH_FLOW_MAX_ATTEMPTS)
        except Exception as e:
            logger.error(f"{__name__}:trigger_research_flow - FAILED: {type(e).__name__}: {e}")
            return ResearchResult(status="error", method="kestra", error=str(e))

        state = execution_state(execution)
        raw_output = (execution.get("outputs") or {}).get("json")
        if state != "SUCCESS" or not raw_output:
            return ResearchResult(
                status="error",
                method="kestra",
                error=(
                    "No output from Kestra execution"
                    if state == "SUCCESS"
                    else f"Kestra execution {state.lower()}"
                ),
            )

        parsed = parse_output(raw_output)
        raw_providers = parsed if isinstance(parsed, list) else parsed.get("providers") or []
        stamp = int(time.time() * 1000)
        providers = [
            Provider(
                id=f"kestra-{stamp}-{index}",
                name=item.get("name", "Unknown"),
                phone=item.get("phone"),
                rating=item.get("rating"),
                review_count=item.get("reviewCount") or item.get("review_count"),
                address=item.get("address"),
                reason=item.get("reason"),
                hours_of_operation=item.get("hours"),
                source="kestra",
            )
            for index, item in enumerate(raw_providers)
        ]
        return ResearchResult(
            status="success",
            method="kestra",
            providers=providers,
            reasoning=f"Found {len(providers)} providers via Kestra research flow",
            total_found=None if isinstance(parsed, list) else parsed.get("totalFound"),
            filtered_count=None if isinstance(parsed, list) else parsed.get("filteredCount"),
        )

    async def _fire_and_forget(self, flow_id: str, inputs: dict[str, Any]) -> dict[str, Any]:
        try:
            execution_id = await self.trigger_execution(flow_id, inputs)
            return {"success": True, "executionId": execution_id, "error": None}
        except Exception as e:
            logger.error(f"{__name__}:{flow_id} - FAILED: {type(e).__name__}: {e}")
            return {"success": False, "executionId": None, "error": str(e)}

    async def trigger_schedule_service_flow(
        self,
        provider_phone: str,
        provider_name: str,
        service_request_id: str,
        provider_id: str,
        service_description: str | None = None,
        preferred_date: str | None = None,
        preferred_time: str | None = None,
        customer_name: str | None = None,
        customer_phone: str | None = None,
        location: str | None = None,
    ) -> dict[str, Any]:
        """Start the booking-call flow."""
        return await self._fire_and_forget(
            "schedule_service",
            {
                "provider_phone": provider_phone,
                "provider_name": provider_name,
                "service_description": service_description or "",
                "preferred_date": preferred_date or "",
                "preferred_time": preferred_time or "",
                "customer_name": customer_name or "",
                "customer_phone": customer_phone or "",
                "location": location or "",
                "service_request_id": service_request_id,
                "provider_id": provider_id,
            },
        )

    async def trigger_notify_user_flow(
        self,
        user_phone: str,
        providers: list[dict[str, Any]],
        user_name: str | None = None,
        request_url: str | None = None,
    ) -> dict[str, Any]:
        """Start the recommendation SMS flow."""
        return await self._fire_and_forget(
            "notify_user",
            {
                "user_phone": user_phone,
                "user_name": user_name or "",
                "request_url": request_url or "",
                "providers": json.dumps(providers),
            },
        )

    async def trigger_recommend_providers_flow(
        self,
        call_results: list[dict[str, Any]],
        original_criteria: str,
        service_request_id: str,
    ) -> dict[str, Any]:
        """
        Run recommend_providers and wait for its output.

        Returns:
            dict: {success, executionId, recommendations, error}
        """
        try:
            execution_id = await self.trigger_execution(
                "recommend_providers",
                {
                    "call_results": json.dumps(call_results),
                    "original_criteria": original_criteria,
                    "service_request_id": service_request_id,
                },
            )
            execution = await self.poll_execution(execution_id, RECOMMEND_FLOW_MAX_ATTEMPTS)
        except Exception as e:
            logger.error(
                f"{__name__}:trigger_recommend_providers_flow - FAILED: {type(e).__name__}: {e}"
            )
            return {"success": False, "executionId": None, "recommendations": None, "error": str(e)}

        state = execution_state(execution)
        raw_output = (execution.get("outputs") or {}).get("json")
        if state != "SUCCESS" or not raw_output:
            return {
                "success": False,
                "executionId": execution_id,
                "recommendations": None,
                "error": f"Kestra execution {state.lower()}" if state != "SUCCESS" else "No output",
            }
        return {
            "success": True,
            "executionId": execution_id,
            "recommendations": parse_output(raw_output),
            "error": None,
        }
