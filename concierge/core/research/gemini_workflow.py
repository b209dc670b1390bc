"""
Gemini quick workflow.

The four-step flow behind /gemini: find a few providers with Maps
grounding, simulate a vetting call, let the model pick a winner and log a
(simulated) booking. Every step degrades to an error log entry instead of
raising, so the web app can always render the timeline.

Dependencies: concierge.boundary.google
System role: Backing logic for the /gemini demo routes
"""

import asyncio
import json
import logging
import time

from concierge.boundary.google.gemini_client import GeminiClient, clean_json
from concierge.core.research.direct_research import DEFAULT_COORDINATES
from concierge.models.gemini import (
    InteractionLogEntry,
    QuickProvider,
    SearchProvidersRequest,
    SearchProvidersResult,
    SelectBestProviderResult,
    TranscriptLine,
)

logger = logging.getLogger(__name__)

MAX_QUICK_PROVIDERS = 3
SCHEDULING_DELAY_SECONDS = 1.5

SEARCH_PROMPT = (
    "Find 3-4 top-rated {query} near {location}. Return a pure JSON array of objects "
    "with these exact fields: name, address, rating (number). "
    "Do not include any markdown formatting."
)

CALL_SYSTEM_INSTRUCTION = """You are a simulator that generates a realistic phone conversation transcript between an AI Receptionist (calling on behalf of a client) and a Service Provider ({provider_name}).

Client Needs: {user_criteria}

Rules:
1. The Provider should answer professionally but might be busy.
2. The AI Receptionist must ask about availability, rates, and the specific criteria.
3. The Provider's answers should be realistic (sometimes they are available, sometimes booked, sometimes expensive).
4. Return ONLY the JSON object."""

CALL_PROMPT = """Generate a transcript.
Output JSON format:
{
  "outcome": "positive" | "negative" | "neutral",
  "summary": "Short summary of findings (e.g., Available Tuesday, $150/hr).",
  "transcript": [
    {"speaker": "AI", "text": "..."},
    {"speaker": "Provider", "text": "..."}
  ]
}"""

SELECT_PROMPT = """I have researched providers for: "{title}".
Here are the logs from my calls:
{interactions}

Here is the list of providers mapped to those calls (by name):
{providers}

Select the best provider ID based on the positive outcomes and criteria match.
If none are good, return null.

Return JSON:
{{
  "selectedProviderId": "string or null",
  "reasoning": "Explanation of why this provider was chosen over others."
}}"""

_OUTCOME_STATUS = {"positive": "success", "negative": "error"}


def unique_by_name(providers: list[QuickProvider]) -> list[QuickProvider]:
    seen: set[str] = set()
    unique = []
    for provider in providers:
        if provider.name in seen:
            continue
        seen.add(provider.name)
        unique.append(provider)
    return unique


def parse_provider_list(text: str, stamp: int) -> list[QuickProvider]:
    """Providers from a plain JSON array answer; [] if the text is not one."""
    try:
        parsed = json.loads(clean_json(text))
    except ValueError:
        logger.warning(f"{__name__}:parse_provider_list - Unparseable JSON fallback")
        return []
    if not isinstance(parsed, list):
        return []
    return [
        QuickProvider(
            id=f"prov-{stamp}-{index}",
            name=item.get("name") or "Unknown Provider",
            address=item.get("address"),
            rating=item.get("rating"),
            source="Google Maps",
        )
        for index, item in enumerate(parsed)
        if isinstance(item, dict)
    ]


class GeminiWorkflowService:
    """
    Quick search/vet/select/schedule steps backed by Gemini.

    Args:
        gemini: Gemini client
        scheduling_delay: Pause before the simulated booking is confirmed
    """

    def __init__(self, gemini: GeminiClient, scheduling_delay: float = SCHEDULING_DELAY_SECONDS) -> None:
        self.gemini = gemini
        self.scheduling_delay = scheduling_delay

    async def search_providers(self, request: SearchProvidersRequest) -> SearchProvidersResult:
        """Up to three Maps-grounded providers plus a "Market Research" log entry."""
        coordinates = request.coordinates or DEFAULT_COORDINATES
        try:
            places, text = await self.gemini.search_with_maps(
                SEARCH_PROMPT.format(query=request.query, location=request.location),
                coordinates.latitude,
                coordinates.longitude,
            )
        except Exception as e:
            logger.error(
                f"{__name__}:search_providers - FAILED - {type(e).__name__}: {e}",
                exc_info=True,
            )
            return SearchProvidersResult(
                providers=[],
                logs=InteractionLogEntry(
                    step_name="Market Research",
                    detail=f"Failed to find providers: {e}",
                    status="error",
                ),
            )

        stamp = int(time.time() * 1000)
        providers = [
            QuickProvider(
                id=f"prov-{stamp}-{index}",
                name=place.get("title") or "Unknown Provider",
                address=place.get("address") or "Address not available",
                rating=4.5,
                source="Google Maps",
            )
            for index, place in enumerate(places)
        ]
        if not providers and text:
            providers = parse_provider_list(text, stamp)

        providers = unique_by_name(providers)[:MAX_QUICK_PROVIDERS]
        return SearchProvidersResult(
            providers=providers,
            logs=InteractionLogEntry(
                step_name="Market Research",
                detail=f"Identified {len(providers)} potential candidates in {request.location}.",
                status="success" if providers else "warning",
            ),
        )

    async def simulate_call(
        self,
        provider_name: str,
        user_criteria: str,
        is_direct: bool = False,
    ) -> InteractionLogEntry:
        """Generate a vetting call transcript as a timeline entry."""
        try:
            data = await self.gemini.generate_json(
                CALL_PROMPT,
                system_instruction=CALL_SYSTEM_INSTRUCTION.format(
                    provider_name=provider_name,
                    user_criteria=user_criteria,
                ),
            )
            transcript = [
                TranscriptLine(speaker=str(line.get("speaker", "")), text=str(line.get("text", "")))
                for line in data.get("transcript") or []
                if isinstance(line, dict)
            ]
            return InteractionLogEntry(
                step_name=f"Calling {provider_name}" if is_direct else f"Vetting {provider_name}",
                detail=data.get("summary") or "No summary available",
                transcript=transcript,
                status=_OUTCOME_STATUS.get(data.get("outcome"), "warning"),
            )
        except Exception as e:
            logger.error(
                f"{__name__}:simulate_call - FAILED - {type(e).__name__}: {e}",
                extra={"provider": provider_name},
            )
            return InteractionLogEntry(
                step_name=f"Calling {provider_name}",
                detail="Call failed to connect or dropped.",
                status="error",
            )

    async def select_best_provider(
        self,
        request_title: str,
        interactions: list[InteractionLogEntry],
        providers: list[QuickProvider],
    ) -> SelectBestProviderResult:
        prompt = SELECT_PROMPT.format(
            title=request_title,
            interactions=json.dumps([i.to_api() for i in interactions]),
            providers=json.dumps([p.to_api() for p in providers]),
        )
        try:
            data = await self.gemini.generate_json(prompt)
            return SelectBestProviderResult(
                selected_id=data.get("selectedProviderId"),
                reasoning=data.get("reasoning") or "",
            )
        except Exception as e:
            logger.error(f"{__name__}:select_best_provider - FAILED - {type(e).__name__}: {e}")
            return SelectBestProviderResult(selected_id=None, reasoning="AI Analysis failed.")

    async def schedule_appointment(self, provider_name: str, details: str) -> InteractionLogEntry:
        """Simulated booking confirmation."""
        await asyncio.sleep(self.scheduling_delay)
        logger.info(
            f"{__name__}:schedule_appointment - Simulated booking",
            extra={"provider": provider_name, "details": details[:100]},
        )
        return InteractionLogEntry(
            step_name="Booking Appointment",
            detail=f"Appointment confirmed with {provider_name}. Confirmation email sent to user.",
            status="success",
        )
