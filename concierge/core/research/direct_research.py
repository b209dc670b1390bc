"""
Direct provider research.

Used when Kestra is disabled. Sources are tried in order until one yields
providers:

    1. Google Places text search (needs GOOGLE_PLACES_API_KEY)
    2. Gemini with Google Maps grounding
    3. Gemini plain JSON answer

Dependencies: concierge.boundary.google
System role: Direct research path of ResearchService
"""

import logging
import time

from concierge.boundary.google.gemini_client import GeminiClient
from concierge.boundary.google.places_client import PlacesClient
from concierge.core.phone import normalize_phone_to_e164
from concierge.models.research import Coordinates, Provider, ResearchRequest, ResearchResult

logger = logging.getLogger(__name__)

DEFAULT_COORDINATES = Coordinates(latitude=34.8526, longitude=-82.394)
KNOWN_CITIES = {
    "greenville sc": DEFAULT_COORDINATES,
    "greenville": DEFAULT_COORDINATES,
    "atlanta ga": Coordinates(latitude=33.749, longitude=-84.388),
    "atlanta": Coordinates(latitude=33.749, longitude=-84.388),
    "charlotte nc": Coordinates(latitude=35.2271, longitude=-80.8431),
    "charlotte": Coordinates(latitude=35.2271, longitude=-80.8431),
}
SEARCH_RADIUS_METERS = 50000
MAX_GEMINI_PROVIDERS = 10

MAPS_PROMPT = """Find the top 10 highly rated {service} near {location}.
Only include providers with ratings of {min_rating} or higher.
For each provider, include: name, address, phone number (if available), rating.
Return a pure JSON array with these fields: name, address, phone, rating."""

JSON_PROMPT = """Find the top 10 {service} near {location} with ratings of {min_rating}+.
Return ONLY a JSON array with this exact structure (no markdown):
[
  {{
    "name": "Provider Name",
    "address": "Full Address",
    "phone": "Phone Number",
    "rating": 4.5,
    "reason": "Why this provider is recommended"
  }}
]"""


def coordinates_for(location: str) -> Coordinates:
    """Rough coordinates for a location name; Greenville SC when unknown."""
    lowered = location.lower()
    for key, coordinates in KNOWN_CITIES.items():
        if key in lowered:
            return coordinates
    return DEFAULT_COORDINATES


def deduplicate(providers: list[Provider]) -> list[Provider]:
    """Drop providers whose name repeats, ignoring case and surrounding space."""
    seen = set()
    unique = []
    for provider in providers:
        key = provider.name.lower().strip()
        if key in seen:
            continue
        seen.add(key)
        unique.append(provider)
    return unique


def normalize_phones(providers: list[Provider]) -> list[Provider]:
    return [
        provider.model_copy(
            update={"phone": normalize_phone_to_e164(provider.phone) or provider.phone}
        )
        if provider.phone
        else provider
        for provider in providers
    ]


def filter_providers(
    providers: list[Provider],
    min_rating: float | None = None,
    max_distance: float | None = None,
    min_review_count: int | None = None,
) -> list[Provider]:
    """
    Apply research filters. Phone filtering happens during enrichment.

    Providers with unknown distance pass the distance filter.
    """
    filtered = providers
    if min_rating is not None:
        filtered = [p for p in filtered if p.rating is not None and p.rating >= min_rating]
    if max_distance is not None:
        filtered = [p for p in filtered if p.distance is None or p.distance <= max_distance]
    if min_review_count is not None:
        filtered = [
            p for p in filtered
            if p.review_count is not None and p.review_count >= min_review_count
        ]
    return filtered


class DirectResearchClient:
    """
    Research providers without Kestra.

    Args:
        gemini: Gemini client (Maps grounding and JSON fallback)
        places: Google Places client
    """

    def __init__(self, gemini: GeminiClient, places: PlacesClient) -> None:
        self.gemini = gemini
        self.places = places

    async def search(self, request: ResearchRequest) -> ResearchResult:
        """
        Find providers, falling through the three sources.

        Never raises: failures come back as an error ResearchResult.
        """
        logger.info(
            f"{__name__}:search - START service={request.service!r} location={request.location!r}",
            extra={"places_configured": self.places.is_configured()},
        )
        try:
            if self.places.is_configured():
                try:
                    result = await self.search_places(request)
                    if result.providers:
                        return result
                    logger.warning(
                        f"{__name__}:search - Places API returned no results, trying Maps grounding"
                    )
                except Exception as e:
                    logger.error(
                        f"{__name__}:search - Places API failed, trying Maps grounding - "
                        f"{type(e).__name__}: {e}"
                    )

            providers = await self.search_with_maps_grounding(request)
            if providers:
                return ResearchResult(
                    status="success",
                    method="direct_gemini",
                    providers=providers,
                    reasoning=f"Found {len(providers)} providers via Gemini Maps grounding",
                    total_found=len(providers),
                    filtered_count=len(providers),
                )

            logger.warning(f"{__name__}:search - No Maps grounding results, trying JSON fallback")
            providers = await self.search_with_json_fallback(request)
            return ResearchResult(
                status="success" if providers else "error",
                method="direct_gemini",
                providers=providers,
                reasoning=(
                    f"Found {len(providers)} providers via Gemini (JSON fallback)"
                    if providers
                    else "No providers found"
                ),
                error=None if providers else "No providers found in search area",
                total_found=len(providers),
                filtered_count=len(providers),
            )
        except Exception as e:
            logger.error(
                f"{__name__}:search - FAILED - {type(e).__name__}: {e}",
                exc_info=True,
            )
            return ResearchResult(status="error", method="direct_gemini", error=str(e))

    async def search_places(self, request: ResearchRequest) -> ResearchResult:
        """
        Google Places text search, filtered and sorted by distance.

        Raises:
            ExternalServiceError: The Places API request failed
        """
        coordinates = request.coordinates or coordinates_for(request.location)
        places = await self.places.text_search(
            f"{request.service} near {request.location}",
            latitude=coordinates.latitude,
            longitude=coordinates.longitude,
            radius_m=SEARCH_RADIUS_METERS,
        )
        stamp = int(time.time() * 1000)
        providers = [
            Provider(
                id=place.place_id or f"places-{stamp}-{index}",
                name=place.name,
                rating=place.rating,
                review_count=place.user_ratings_total,
                address=place.formatted_address,
                distance=place.distance,
                distance_text=place.distance_text,
                place_id=place.place_id or None,
                google_maps_uri=place.google_maps_uri,
                source="google_places",
                reason=(
                    f"Highly rated {request.service} in {request.location}"
                    + (f" ({place.distance_text})" if place.distance_text else "")
                ),
            )
            for index, place in enumerate(places)
        ]

        filtered = filter_providers(
            providers,
            min_rating=request.min_rating,
            max_distance=request.max_distance,
            min_review_count=request.min_review_count,
        )
        ranked = sorted(
            filtered,
            key=lambda p: p.distance if p.distance is not None else float("inf"),
        )[:request.max_results]

        logger.info(
            f"{__name__}:search_places - {len(providers)} found, "
            f"{len(filtered)} after filters, {len(ranked)} returned"
        )
        return ResearchResult(
            status="success" if ranked else "error",
            method="google_places",
            providers=ranked,
            reasoning=(
                f"Found {len(ranked)} providers via Google Places API "
                f"({len(providers)} total, {len(filtered)} after filtering)"
            ),
            total_found=len(providers),
            filtered_count=len(ranked),
        )

    async def search_with_maps_grounding(self, request: ResearchRequest) -> list[Provider]:
        coordinates = request.coordinates or coordinates_for(request.location)
        places, _ = await self.gemini.search_with_maps(
            MAPS_PROMPT.format(
                service=request.service,
                location=request.location,
                min_rating=request.min_rating,
            ),
            coordinates.latitude,
            coordinates.longitude,
        )
        stamp = int(time.time() * 1000)
        providers = [
            Provider(
                id=f"gemini-maps-{stamp}-{index}",
                name=place.get("title") or "Unknown Provider",
                address=place.get("address") or "Address not available",
                rating=request.min_rating,
                place_id=place.get("placeId"),
                google_maps_uri=place.get("uri"),
                source="gemini_maps",
                reason=f"Highly rated {request.service} in {request.location}",
            )
            for index, place in enumerate(places)
        ]
        return normalize_phones(deduplicate(providers)[:MAX_GEMINI_PROVIDERS])

    async def search_with_json_fallback(self, request: ResearchRequest) -> list[Provider]:
        prompt = JSON_PROMPT.format(
            service=request.service,
            location=request.location,
            min_rating=request.min_rating,
        )
        try:
            parsed = await self.gemini.generate_json(prompt)
        except ValueError as e:
            logger.error(f"{__name__}:search_with_json_fallback - Unparseable JSON: {e}")
            return []

        if not isinstance(parsed, list):
            return []

        stamp = int(time.time() * 1000)
        providers = [
            Provider(
                id=f"gemini-json-{stamp}-{index}",
                name=item.get("name") or "Unknown Provider",
                address=item.get("address") or "Address not available",
                phone=item.get("phone"),
                rating=item.get("rating") or request.min_rating,
                reason=item.get("reason") or f"Recommended {request.service} in {request.location}",
                source="gemini_maps",
            )
            for index, item in enumerate(parsed)
            if isinstance(item, dict)
        ]
        return normalize_phones(deduplicate(providers)[:MAX_GEMINI_PROVIDERS])
