"""
Provider recommendation service.

Filters call results down to qualified providers, scores them, keeps the
top three and writes the overall recommendation. Gemini adds a short
analysis note; a fixed note is used when it is unavailable.

Dependencies: concierge.boundary.google.gemini_client
System role: Produces the top-3 list the user picks from
"""

import logging

from concierge.boundary.google.gemini_client import GeminiClient
from concierge.core.recommendation.scoring import (
    build_reasoning,
    calculate_score,
    criteria_matched,
    is_qualified,
)
from concierge.models.recommendations import (
    DEFAULT_SCORING_WEIGHTS,
    ProviderRecommendation,
    RecommendationRequest,
    RecommendationResponse,
    RecommendationStats,
    ScoredCallResult,
    ScoringWeights,
)

logger = logging.getLogger(__name__)

TOP_N = 3
STRONG_LEAD_POINTS = 15
FALLBACK_ANALYSIS_NOTES = (
    "Recommendations generated using multi-objective scoring based on call quality, "
    "service fit, and provider reputation."
)
EMPTY_ANALYSIS_NOTES = "Consider expanding your search criteria or trying additional providers."

ANALYSIS_PROMPT = """Given these provider recommendations for a service request, provide 1-2 brief analysis notes (max 100 words total) with additional insights:

ORIGINAL CRITERIA: {criteria}

PRIORITIES (most important first): {priorities}

TOP PROVIDERS:
{providers}

Focus on: pricing comparison, timing considerations, or any notable differences. Be concise."""


def build_stats(call_results: list[ScoredCallResult], qualified: int) -> RecommendationStats:
    return RecommendationStats(
        total_calls=len(call_results),
        qualified_providers=qualified,
        disqualified_providers=sum(
            1 for r in call_results if r.analysis.structured_data.disqualified
        ),
        failed_calls=sum(1 for r in call_results if r.status in ("error", "timeout")),
    )


def empty_recommendation_message(call_results: list[ScoredCallResult]) -> str:
    unanswered = sum(
        1
        for r in call_results
        if r.analysis.structured_data.call_outcome in ("no_answer", "voicemail")
        or r.status in ("no_answer", "voicemail")
    )
    message = "Unfortunately, we couldn't find a qualified provider. "
    if unanswered:
        message += f"{unanswered} provider{'s' if unanswered > 1 else ''} didn't answer our calls. "
    return message + "Please review the call logs for details, or try expanding your search criteria."


def overall_recommendation(recommendations: list[ProviderRecommendation]) -> str:
    top = recommendations[0]
    lead = "Based on our research and phone calls, we"
    if len(recommendations) == 1:
        return (
            f"{lead} recommend **{top.provider_name}** (Score: {top.score}/100). "
            "They were the only provider who answered and could meet your needs."
        )
    if top.score - recommendations[1].score >= STRONG_LEAD_POINTS:
        return (
            f"{lead} strongly recommend **{top.provider_name}** (Score: {top.score}/100). "
            "They significantly outperformed other options in availability, service fit, "
            "and reputation."
        )
    alternatives = len(recommendations) - 1
    return (
        f"{lead} recommend **{top.provider_name}** (Score: {top.score}/100) as your top choice. "
        f"We've included {alternatives} alternative{'s' if alternatives > 1 else ''} for comparison."
    )


def to_recommendation(result: ScoredCallResult) -> ProviderRecommendation:
    data = result.analysis.structured_data
    return ProviderRecommendation(
        provider_id=result.provider_id,
        provider_name=result.provider.name,
        phone=result.provider.phone,
        rating=result.rating,
        review_count=result.review_count,
        score=calculate_score(result),
        reasoning=build_reasoning(result),
        criteria_matched=criteria_matched(data),
        earliest_availability=data.earliest_availability or "Contact for availability",
        estimated_rate=data.estimated_rate or "Quote upon request",
    )


WEIGHT_LABELS = {
    "availability_urgency": "availability and urgency",
    "rate_competitiveness": "competitive rate",
    "all_criteria_met": "meets all criteria",
    "call_quality": "call quality",
    "professionalism": "professionalism",
}


def describe_priorities(weights: ScoringWeights) -> str:
    """Weight labels ordered from heaviest to lightest, e.g. "availability and urgency (30%)"."""
    ranked = sorted(weights.model_dump().items(), key=lambda item: item[1], reverse=True)
    return ", ".join(f"{WEIGHT_LABELS[name]} ({weight:.0%})" for name, weight in ranked)


class RecommendationService:
    """
    Score call results and pick the top providers.

    Args:
        gemini: Gemini client for analysis notes
    """

    def __init__(self, gemini: GeminiClient) -> None:
        self.gemini = gemini

    async def generate_recommendations(
        self,
        request: RecommendationRequest,
        weights: ScoringWeights | None = None,
    ) -> RecommendationResponse:
        """
        Rank qualified providers and keep the top three.

        Args:
            request: Call results plus the user's original criteria
            weights: Priorities the analysis note should stress; scores are unaffected
        """
        weights = weights or request.scoring_weights or DEFAULT_SCORING_WEIGHTS
        qualified = [r for r in request.call_results if is_qualified(r)]
        stats = build_stats(request.call_results, len(qualified))
        logger.info(
            f"{__name__}:generate_recommendations - START",
            extra={**stats.model_dump(), "service_request_id": request.service_request_id},
        )

        if not qualified:
            return RecommendationResponse(
                recommendations=[],
                overall_recommendation=empty_recommendation_message(request.call_results),
                analysis_notes=EMPTY_ANALYSIS_NOTES,
                stats=stats,
            )

        ranked = sorted(
            (to_recommendation(result) for result in qualified),
            key=lambda r: r.score,
            reverse=True,
        )
        recommendations = ranked[:TOP_N]
        response = RecommendationResponse(
            recommendations=recommendations,
            overall_recommendation=overall_recommendation(recommendations),
            analysis_notes=await self.generate_analysis_notes(
                recommendations, request.original_criteria, weights
            ),
            stats=stats,
        )
        logger.info(
            f"{__name__}:generate_recommendations - END top={recommendations[0].provider_name} "
            f"score={recommendations[0].score}"
        )
        return response

    async def generate_analysis_notes(
        self,
        recommendations: list[ProviderRecommendation],
        original_criteria: str,
        weights: ScoringWeights = DEFAULT_SCORING_WEIGHTS,
    ) -> str:
        if not recommendations:
            return "No qualified providers to analyze."
        if not self.gemini.is_configured():
            return FALLBACK_ANALYSIS_NOTES

        prompt = ANALYSIS_PROMPT.format(
            criteria=original_criteria,
            priorities=describe_priorities(weights),
            providers="\n".join(
                f"{i}. {r.provider_name} - Score: {r.score}/100, {r.reasoning}"
                for i, r in enumerate(recommendations, start=1)
            ),
        )
        try:
            notes = await self.gemini.generate_text(prompt, max_output_tokens=150)
        except Exception as e:
            logger.warning(
                f"{__name__}:generate_analysis_notes - Gemini failed, using fixed notes - "
                f"{type(e).__name__}: {e}"
            )
            return FALLBACK_ANALYSIS_NOTES
        return notes.strip() or "Analysis complete."
