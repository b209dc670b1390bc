"""
Simulated provider calls.

Demo mode stand-in for Vapi: each call gets a scenario drawn with the
distribution real outbound calls show (60% answered, 20% voicemail,
20% no answer). Answered calls get a Gemini-written conversation; the other
two are canned. Results use the same CallResult shape as real calls so the
recommendation engine cannot tell them apart.

Dependencies: concierge.boundary.google.gemini_client
System role: Call execution when NEXT_PUBLIC_LIVE_CALL_ENABLED=true
"""

import asyncio
import json
import logging
import random
import time
import uuid
from typing import Any, Literal

from concierge.boundary.google.gemini_client import GeminiClient
from concierge.models.calls import (
    CallAnalysis,
    CallResult,
    SimulatedCallRequest,
    StructuredCallData,
    provider_info,
    request_info,
)

logger = logging.getLogger(__name__)

Scenario = Literal["completed", "voicemail", "no_answer"]

SIMULATION_TEMPERATURE = 0.7

URGENCY_CONTEXT = {
    "immediate": "URGENT - Same day service needed",
    "within_24_hours": "High priority - Within 24 hours",
    "within_2_days": "Moderate priority - Within 2 days",
    "flexible": "Flexible timing - Schedule at provider convenience",
}

# (keywords, industry hint); first match wins
INDUSTRY_RATES = (
    (("plumb",), "Plumbing services - typically $75-200/hour"),
    (("electr",), "Electrical services - typically $75-150/hour"),
    (("hvac", "heat", "air"), "HVAC services - typically $100-200/hour"),
    (("paint",), "Painting services - typically $25-50/hour or project-based"),
    (("clean",), "Cleaning services - typically $25-75/hour"),
    (("lawn", "landscap"), "Landscaping services - typically $50-100/hour"),
)

VOICEMAIL_GREETINGS = (
    "You've reached {name}. We're unable to take your call right now. "
    "Please leave a message after the tone.",
    "Hi, you've reached {name}. We're currently helping other customers. "
    "Leave your name and number and we'll get back to you.",
    "Thank you for calling {name}. Our office is currently closed. "
    "Please leave a detailed message.",
    "This is {name}. Sorry we missed your call. "
    "Leave a message and we'll return your call as soon as possible.",
)

SYSTEM_INSTRUCTION = """You write realistic phone conversations between an AI assistant calling on behalf of a client and a local service provider.

The call only gathers information. The assistant asks about availability, pricing and the client's criteria. It never books or confirms an appointment. If the provider offers to schedule, the assistant replies: "Not just yet - I need to share this with {client} first. If they'd like to move forward, we'll call you back to book."

PROVIDER
{provider_context}

CLIENT NEEDS
Service: {service}
Location: {location}{address}
Urgency: {urgency}
Criteria: {criteria}{problem}

Vary the provider's personality. Use realistic prices for the trade and area and specific availability times. Roughly 60% of answered calls go well, 25% are mixed (callback needed or partial fit), 15% go badly (unavailable, too expensive, cannot meet criteria).

Return ONLY valid JSON."""

SIMULATION_PROMPT = """Generate the conversation for this {service} provider as JSON:
{{
  "call_outcome": "positive" | "negative" | "neutral",
  "availability": "available" | "unavailable" | "callback_requested" | "unclear",
  "earliest_availability": "e.g. 'Tomorrow at 2pm'",
  "estimated_rate": "e.g. '$150/hour'",
  "single_person_found": true | false,
  "technician_name": "name or empty string",
  "all_criteria_met": true | false,
  "criteria_details": {{"criterion": true}},
  "recommended": true | false,
  "disqualified": true | false,
  "disqualification_reason": "reason or empty string",
  "notes": "anything else relevant",
  "summary": "one sentence",
  "transcript": [{{"speaker": "AI", "text": "..."}}, {{"speaker": "Provider", "text": "..."}}],
  "duration_minutes": 3.5
}}"""


def new_call_id() -> str:
    return f"sim-{uuid.uuid4().hex[:8]}"


def urgency_context(urgency: str) -> str:
    return URGENCY_CONTEXT.get(urgency, URGENCY_CONTEXT["flexible"])


def industry_hint(service: str) -> str | None:
    service = service.lower()
    for keywords, hint in INDUSTRY_RATES:
        if any(keyword in service for keyword in keywords):
            return hint
    return None


def format_transcript(turns: list[dict[str, Any]]) -> str:
    return "\n\n".join(f"{turn.get('speaker', 'unknown')}: {turn.get('text', '')}" for turn in turns)


def build_provider_context(request: SimulatedCallRequest) -> str:
    lines = [f"Provider Name: {request.provider_name}"]
    if request.rating:
        reviews = f" ({request.review_count} reviews)" if request.review_count else ""
        lines.append(f"Google Rating: {request.rating:.1f} stars{reviews}")
    if request.hours_of_operation:
        lines.append(f"Business Hours: {json.dumps(request.hours_of_operation)}")
    if request.is_open_now is not None:
        lines.append(f"Currently Open: {'Yes' if request.is_open_now else 'No'}")
    hint = industry_hint(request.service_needed)
    if hint:
        lines.append(f"Industry: {hint}")
    return "\n".join(lines)


def _fallback_simulation(request: SimulatedCallRequest, client: str) -> dict[str, Any]:
    return {
        "call_outcome": "neutral",
        "availability": "callback_requested",
        "earliest_availability": "Call back for availability",
        "estimated_rate": "Quote upon request",
        "single_person_found": False,
        "technician_name": "",
        "all_criteria_met": False,
        "criteria_details": {},
        "recommended": False,
        "disqualified": False,
        "disqualification_reason": "",
        "notes": "Simulation parsing error - neutral result returned",
        "summary": f"{request.provider_name} requested a callback for scheduling",
        "transcript": [
            {
                "speaker": "AI",
                "text": f"Hi, I'm calling on behalf of {client} who needs "
                f"{request.service_needed} services in {request.location}.",
            },
            {
                "speaker": "Provider",
                "text": f"Thanks for calling {request.provider_name}. We're a bit busy "
                "right now - can we call you back to discuss?",
            },
            {
                "speaker": "AI",
                "text": f"Of course! I'll let {client} know and we'll follow up. "
                "Thank you for your time!",
            },
        ],
        "duration_minutes": 1.5,
    }


def _with_defaults(parsed: dict[str, Any]) -> dict[str, Any]:
    outcome = parsed.get("call_outcome") or "neutral"
    recommended = parsed.get("recommended")
    return {
        "call_outcome": outcome,
        "availability": parsed.get("availability") or "unclear",
        "earliest_availability": parsed.get("earliest_availability") or "",
        "estimated_rate": parsed.get("estimated_rate") or "Quote upon request",
        "single_person_found": parsed.get("single_person_found", True),
        "technician_name": parsed.get("technician_name") or "",
        "all_criteria_met": parsed.get("all_criteria_met", False),
        "criteria_details": parsed.get("criteria_details") or {},
        "recommended": outcome == "positive" if recommended is None else recommended,
        "disqualified": parsed.get("disqualified", False),
        "disqualification_reason": parsed.get("disqualification_reason") or "",
        "notes": parsed.get("notes") or "",
        "summary": parsed.get("summary") or "Call completed",
        "transcript": parsed.get("transcript") or [],
        "duration_minutes": parsed.get("duration_minutes") or 3,
    }


class SimulatedCallService:
    """
    Generates simulated provider calls.

    Args:
        gemini: Gemini client used for answered-call conversations
        rng: Random source, seedable for tests
        batch_pause: Seconds between simulation chunks
    """

    def __init__(
        self,
        gemini: GeminiClient,
        rng: random.Random | None = None,
        batch_pause: float = 0.2,
    ) -> None:
        self.gemini = gemini
        self.rng = rng or random.Random()
        self.batch_pause = batch_pause

    def pick_scenario(self) -> Scenario:
        roll = self.rng.random()
        if roll < 0.6:
            return "completed"
        if roll < 0.8:
            return "voicemail"
        return "no_answer"

    async def simulate_call(self, request: SimulatedCallRequest) -> CallResult:
        """
        Simulate one provider call.

        Never raises: a Gemini failure comes back as an error result.
        """
        call_id = new_call_id()
        scenario = self.pick_scenario()
        logger.info(
            f"{__name__}:simulate_call - START provider={request.provider_name} scenario={scenario}",
            extra={"call_id": call_id, "provider_id": request.provider_id},
        )

        if scenario == "voicemail":
            return self._voicemail_result(request, call_id)
        if scenario == "no_answer":
            return self._no_answer_result(request, call_id)

        try:
            simulation = await self._generate_simulation(request)
        except Exception as e:
            logger.error(
                f"{__name__}:simulate_call - FAILED provider={request.provider_name} - "
                f"{type(e).__name__}: {e}"
            )
            return self._error_result(request, call_id, str(e))

        outcome = simulation["call_outcome"]
        structured = {
            key: simulation[key]
            for key in simulation
            if key not in ("summary", "transcript", "duration_minutes")
        }
        result = CallResult(
            status="completed",
            call_id=call_id,
            call_method="simulated",
            duration=simulation["duration_minutes"],
            ended_reason="assistant-ended-call",
            transcript=format_transcript(simulation["transcript"]),
            analysis=CallAnalysis(
                summary=simulation["summary"],
                structured_data=StructuredCallData(**structured),
                success_evaluation="true" if outcome == "positive" else "false",
            ),
            provider=provider_info(request),
            request=request_info(request),
            cost=0,
            data_status="complete",
        )
        logger.info(
            f"{__name__}:simulate_call - END provider={request.provider_name} outcome={outcome}",
            extra={"call_id": call_id},
        )
        return result

    async def simulate_batch(
        self,
        requests: list[SimulatedCallRequest],
        max_concurrent: int = 5,
    ) -> dict[str, Any]:
        """
        Simulate a batch in chunks of max_concurrent.

        Returns:
            dict: {results, stats{total, completed, voicemail, noAnswer, failed, duration}}
        """
        started = time.monotonic()
        results: list[CallResult] = []
        for start in range(0, len(requests), max_concurrent):
            chunk = requests[start:start + max_concurrent]
            results.extend(await asyncio.gather(*(self.simulate_call(r) for r in chunk)))
            if start + max_concurrent < len(requests):
                await asyncio.sleep(self.batch_pause)

        stats = {
            "total": len(requests),
            "completed": sum(1 for r in results if r.status == "completed"),
            "voicemail": sum(1 for r in results if r.status == "voicemail"),
            "noAnswer": sum(1 for r in results if r.status == "no_answer"),
            "failed": sum(1 for r in results if r.status == "error"),
            "duration": int((time.monotonic() - started) * 1000),
        }
        logger.info(f"{__name__}:simulate_batch - END", extra=stats)
        return {"results": results, "stats": stats}

    async def _generate_simulation(self, request: SimulatedCallRequest) -> dict[str, Any]:
        client = request.client_name or "my client"
        system_instruction = SYSTEM_INSTRUCTION.format(
            client=client,
            provider_context=build_provider_context(request),
            service=request.service_needed,
            location=request.location,
            address=f"\nService Address: {request.client_address}" if request.client_address else "",
            urgency=urgency_context(request.urgency),
            criteria=request.user_criteria or "None specified",
            problem=(
                f"\nProblem: {request.problem_description}" if request.problem_description else ""
            ),
        )
        try:
            parsed = await self.gemini.generate_json(
                SIMULATION_PROMPT.format(service=request.service_needed),
                system_instruction=system_instruction,
                temperature=SIMULATION_TEMPERATURE,
            )
        except ValueError as e:
            logger.warning(
                f"{__name__}:_generate_simulation - Unparseable simulation, using fallback: {e}"
            )
            return _fallback_simulation(request, client)
        if not isinstance(parsed, dict):
            return _fallback_simulation(request, client)
        return _with_defaults(parsed)

    def _canned_result(
        self,
        request: SimulatedCallRequest,
        call_id: str,
        status: Literal["voicemail", "no_answer"],
        duration: float,
        ended_reason: str,
        transcript: str,
        summary: str,
        notes: str,
    ) -> CallResult:
        return CallResult(
            status=status,
            call_id=call_id,
            call_method="simulated",
            duration=duration,
            ended_reason=ended_reason,
            transcript=transcript,
            analysis=CallAnalysis(
                summary=summary,
                structured_data=StructuredCallData(call_outcome=status, notes=notes),
                success_evaluation="false",
            ),
            provider=provider_info(request),
            request=request_info(request),
            cost=0,
            data_status="complete",
        )

    def _voicemail_result(self, request: SimulatedCallRequest, call_id: str) -> CallResult:
        greeting = self.rng.choice(VOICEMAIL_GREETINGS).format(name=request.provider_name)
        return self._canned_result(
            request,
            call_id,
            status="voicemail",
            duration=0.3,
            ended_reason="voicemail",
            transcript=f"[Voicemail greeting]: {greeting}\n\n[Call ended - voicemail detected]",
            summary=f"Reached voicemail for {request.provider_name}",
            notes="Call went to voicemail - no live person reached",
        )

    def _no_answer_result(self, request: SimulatedCallRequest, call_id: str) -> CallResult:
        return self._canned_result(
            request,
            call_id,
            status="no_answer",
            duration=0.5,
            ended_reason="no-answer",
            transcript="[Phone rang with no answer - call ended after timeout]",
            summary=f"No answer from {request.provider_name}",
            notes="Phone rang but no one answered",
        )

    def _error_result(self, request: SimulatedCallRequest, call_id: str, message: str) -> CallResult:
        return CallResult(
            status="error",
            call_id=call_id,
            call_method="simulated",
            duration=0,
            ended_reason=message,
            analysis=CallAnalysis(
                summary="Simulation failed",
                structured_data=StructuredCallData(
                    call_outcome="negative",
                    disqualified=True,
                    disqualification_reason="Simulation error",
                    notes=message,
                ),
                success_evaluation="false",
            ),
            provider=provider_info(request),
            request=request_info(request),
            cost=0,
            error=message,
        )
