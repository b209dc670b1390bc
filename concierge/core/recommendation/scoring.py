"""
Deterministic provider scoring.

Points (capped at 100):

    conversation quality   outcome 20/10, availability date 8, quoted rate 7
    service fit            all criteria met 20, available 7 / callback 3,
                           single technician 3
    reputation             rating up to 20, review volume up to 5
    trust                  assistant recommended the provider 10

Dependencies: concierge.models
System role: Scoring half of the recommendation engine
"""

from concierge.models.calls import StructuredCallData
from concierge.models.recommendations import ScoredCallResult

UNQUOTED_RATES = ("", "unknown", "Quote upon request")
USER_FOCUSED_PHRASES = ("information gathered for", "looking for", "here's the summary")

_RATING_POINTS = ((4.5, 20), (4.0, 16), (3.5, 12), (3.0, 8))
_REVIEW_POINTS = ((100, 5), (50, 4), (20, 3), (10, 2))


def is_qualified(result: ScoredCallResult) -> bool:
    """Completed calls that reached a person and did not disqualify the provider."""
    data = result.analysis.structured_data
    if not data.call_outcome:
        return False
    if result.status != "completed":
        return False
    if data.call_outcome in ("no_answer", "voicemail"):
        return False
    return not data.disqualified


def _has_availability(data: StructuredCallData) -> bool:
    return bool(data.earliest_availability) and data.earliest_availability != "unknown"


def _has_rate(data: StructuredCallData) -> bool:
    return data.estimated_rate not in UNQUOTED_RATES


def rating_points(rating: float | None) -> int:
    rating = rating or 0
    for threshold, points in _RATING_POINTS:
        if rating >= threshold:
            return points
    return 4 if rating > 0 else 0


def review_points(review_count: int | None) -> int:
    reviews = review_count or 0
    for threshold, points in _REVIEW_POINTS:
        if reviews >= threshold:
            return points
    return 1 if reviews > 0 else 0


def calculate_score(result: ScoredCallResult) -> int:
    data = result.analysis.structured_data
    score = 0

    if data.call_outcome == "positive":
        score += 20
    elif data.call_outcome == "neutral":
        score += 10
    if _has_availability(data):
        score += 8
    if _has_rate(data):
        score += 7

    if data.all_criteria_met:
        score += 20
    if data.availability == "available":
        score += 7
    elif data.availability == "callback_requested":
        score += 3
    if data.single_person_found:
        score += 3

    score += rating_points(result.rating)
    score += review_points(result.review_count)

    if data.recommended:
        score += 10

    return min(score, 100)


def _summary_insight(summary: str) -> str | None:
    if len(summary) <= 10:
        return None
    lowered = summary.lower()
    if any(phrase in lowered for phrase in USER_FOCUSED_PHRASES):
        return None

    sentences = [
        sentence.strip()
        for sentence in summary.replace("!", ".").replace("?", ".").split(".")
        if len(sentence.strip()) > 10
    ]
    if not sentences:
        return None
    insight = sentences[0]
    if "available" in insight.lower() or "rating" in insight.lower():
        return None
    return insight


def build_reasoning(result: ScoredCallResult) -> str:
    """Short " • "-joined explanation built from what the call actually found."""
    data = result.analysis.structured_data
    parts = []

    if data.all_criteria_met:
        parts.append("✓ Meets all your requirements")
    elif data.call_outcome == "positive":
        parts.append("Positive conversation")

    if _has_availability(data):
        parts.append(f"Available: {data.earliest_availability}")
    elif data.availability == "available":
        parts.append("Available now")

    if result.rating and result.rating >= 3.5:
        reviews = f" ({result.review_count} reviews)" if result.review_count else ""
        parts.append(f"{result.rating:g}★{reviews}")

    if _has_rate(data):
        parts.append(f"Quoted: {data.estimated_rate}")

    insight = _summary_insight(result.analysis.summary)
    if insight:
        parts.append(insight)

    return " • ".join(parts) if parts else "Provider contacted successfully"


def criteria_matched(data: StructuredCallData) -> list[str]:
    if data.all_criteria_met:
        return ["All criteria met"]
    if data.call_outcome == "positive":
        return ["Positive response"]
    return []
