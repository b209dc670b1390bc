"""
Provider research models.

Dependencies: pydantic, concierge.models.common
System role: Research request/result contracts shared by Kestra and direct paths
"""

from typing import Literal

from pydantic import Field

from concierge.models.common import CamelModel

ResearchStatus = Literal["success", "partial", "error"]
ResearchMethod = Literal["kestra", "direct_gemini", "google_places", "hybrid"]


class Coordinates(CamelModel):
    latitude: float
    longitude: float


class ResearchRequest(CamelModel):
    """Find providers for a service near a location."""

    service: str = Field(min_length=1)
    location: str = Field(min_length=1)
    days_needed: int = 2
    min_rating: float = 4.5
    service_request_id: str | None = None
    coordinates: Coordinates | None = None
    max_distance: float | None = Field(default=None, description="Miles from the user")
    require_phone: bool = True
    min_review_count: int | None = None
    max_results: int = 10
    min_enriched_results: int = 3
    enrich: bool = True


class Provider(CamelModel):
    """A discovered service provider."""

    id: str
    name: str
    phone: str | None = None
    rating: float | None = None
    address: str | None = None
    reason: str | None = None
    source: str | None = None
    review_count: int | None = None
    distance: float | None = None
    distance_text: str | None = None
    hours_of_operation: list[str] | str | None = None
    is_open_now: bool | None = None
    place_id: str | None = None
    google_maps_uri: str | None = None
    website: str | None = None
    international_phone: str | None = None


class ResearchResult(CamelModel):
    status: ResearchStatus
    method: ResearchMethod
    providers: list[Provider] = Field(default_factory=list)
    reasoning: str | None = None
    error: str | None = None
    total_found: int | None = None
    filtered_count: int | None = None


class EnrichmentOptions(CamelModel):
    """Controls how many providers get a Place Details lookup."""

    max_to_enrich: int = 10
    require_phone: bool = True
    min_enriched_results: int = 3
    coordinates: Coordinates | None = None


class EnrichmentStats(CamelModel):
    total_input: int = 0
    enriched_count: int = 0
    with_phone_count: int = 0
    skipped_no_place_id: int = 0
    duration_ms: int = 0


class EnrichmentResult(CamelModel):
    providers: list[Provider]
    stats: EnrichmentStats
