"""
Recommendation models.

Dependencies: pydantic, concierge.models.calls
System role: Scoring input/output contracts for the recommendation engine
"""

from pydantic import Field

from concierge.models.calls import CallResult
from concierge.models.common import CamelModel


class ScoredCallResult(CallResult):
    """A call result carrying the provider's DB ID and Google reputation."""

    provider_id: str | None = None
    rating: float | None = None
    review_count: int | None = None


class ScoringWeights(CamelModel):
    """Relative priorities used when explaining recommendations."""

    availability_urgency: float = 0.3
    rate_competitiveness: float = 0.2
    all_criteria_met: float = 0.25
    call_quality: float = 0.15
    professionalism: float = 0.1


DEFAULT_SCORING_WEIGHTS = ScoringWeights()


class RecommendationRequest(CamelModel):
    """Body of POST /providers/recommend."""

    call_results: list[ScoredCallResult]
    original_criteria: str = ""
    service_request_id: str
    scoring_weights: ScoringWeights | None = None


class ProviderRecommendation(CamelModel):
    provider_id: str | None = None
    provider_name: str
    phone: str
    rating: float | None = None
    review_count: int | None = None
    score: int = Field(ge=0, le=100)
    reasoning: str
    criteria_matched: list[str] = Field(default_factory=list)
    earliest_availability: str = "Contact for availability"
    estimated_rate: str = "Quote upon request"


class RecommendationStats(CamelModel):
    total_calls: int = 0
    qualified_providers: int = 0
    disqualified_providers: int = 0
    failed_calls: int = 0


class RecommendationResponse(CamelModel):
    recommendations: list[ProviderRecommendation] = Field(default_factory=list)
    overall_recommendation: str
    analysis_notes: str
    stats: RecommendationStats

