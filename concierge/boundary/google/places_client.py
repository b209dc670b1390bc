"""
Google Places API (New) client.

Text search for provider discovery and Place Details for enrichment
(phone, opening hours, website). Distances are great-circle miles from
the user's coordinates.

Dependencies: httpx, pydantic, concierge.boundary.http_retry
System role: Google Places boundary for provider research
"""

import asyncio
import logging
import math
from typing import Any

import httpx
from pydantic import BaseModel

from concierge.boundary.http_retry import http_retry
from concierge.configs.places import PlacesSettings
from concierge.core.exceptions import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3959
ENRICH_BATCH_SIZE = 5
ENRICH_BATCH_DELAY_SECONDS = 0.2

SEARCH_FIELD_MASK = ",".join(
    [
        "places.id",
        "places.displayName",
        "places.formattedAddress",
        "places.location",
        "places.rating",
        "places.userRatingCount",
        "places.businessStatus",
        "places.googleMapsUri",
        "nextPageToken",
    ]
)
DETAILS_FIELD_MASK = ",".join(
    [
        "id",
        "displayName",
        "formattedAddress",
        "location",
        "rating",
        "userRatingCount",
        "businessStatus",
        "googleMapsUri",
        "nationalPhoneNumber",
        "internationalPhoneNumber",
        "regularOpeningHours",
        "currentOpeningHours",
        "websiteUri",
    ]
)

DAY_ABBREVIATIONS = {
    "Monday": "Mon",
    "Tuesday": "Tue",
    "Wednesday": "Wed",
    "Thursday": "Thu",
    "Friday": "Fri",
    "Saturday": "Sat",
    "Sunday": "Sun",
}


class LatLng(BaseModel):
    latitude: float = 0.0
    longitude: float = 0.0


class PlaceSearchResult(BaseModel):
    place_id: str
    name: str = ""
    formatted_address: str = ""
    rating: float | None = None
    user_ratings_total: int | None = None
    location: LatLng = LatLng()
    business_status: str | None = None
    google_maps_uri: str | None = None
    distance: float | None = None
    distance_text: str | None = None


class OpeningHours(BaseModel):
    open_now: bool | None = None
    weekday_text: list[str] = []


class PlaceDetails(PlaceSearchResult):
    phone: str | None = None
    international_phone: str | None = None
    opening_hours: OpeningHours | None = None
    website: str | None = None


def haversine_miles(origin: LatLng, destination: LatLng) -> float:
    """Great-circle distance in miles, rounded to one decimal place."""
    d_lat = math.radians(destination.latitude - origin.latitude)
    d_lng = math.radians(destination.longitude - origin.longitude)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(origin.latitude))
        * math.cos(math.radians(destination.latitude))
        * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_MILES * c, 1)


def parse_opening_hours(descriptions: list[str] | None) -> list[str]:
    """'Monday: 8:00 AM – 6:00 PM' -> 'Mon: 8:00 AM - 6:00 PM'."""
    formatted = []
    for description in descriptions or []:
        for day, abbreviation in DAY_ABBREVIATIONS.items():
            description = description.replace(day, abbreviation)
        formatted.append(description.replace("–", "-"))
    return formatted


def _location(place: dict[str, Any]) -> LatLng:
    location = place.get("location") or {}
    return LatLng(
        latitude=location.get("latitude") or 0.0,
        longitude=location.get("longitude") or 0.0,
    )


class PlacesClient:
    """
    Async Google Places client.

    Args:
        settings: API key and base URL
        transport: Optional httpx transport (tests use httpx.MockTransport)
        batch_delay: Seconds between enrichment batches
    """

    def __init__(
        self,
        settings: PlacesSettings,
        transport: httpx.AsyncBaseTransport | None = None,
        batch_delay: float = ENRICH_BATCH_DELAY_SECONDS,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self.batch_delay = batch_delay

    def is_configured(self) -> bool:
        return self.settings.is_configured

    def _client(self, field_mask: str) -> httpx.AsyncClient:
        if not self.settings.api_key:
            raise ConfigurationError("Google Places API")
        return httpx.AsyncClient(
            base_url=self.settings.base_url,
            headers={
                "Content-Type": "application/json",
                "X-Goog-Api-Key": self.settings.api_key,
                "X-Goog-FieldMask": field_mask,
            },
            timeout=15.0,
            transport=self._transport,
        )

    @http_retry("places_text_search")
    async def _post_search(self, body: dict[str, Any]) -> dict[str, Any]:
        async with self._client(SEARCH_FIELD_MASK) as client:
            response = await client.post("/places:searchText", json=body)
            response.raise_for_status()
            return response.json()

    async def text_search(
        self,
        query: str,
        latitude: float | None = None,
        longitude: float | None = None,
        radius_m: float = 50000,
        max_results: int = 20,
    ) -> list[PlaceSearchResult]:
        """
        Search places by free text, biased toward a location.

        Args:
            query: e.g. "plumber near Greenville SC"
            latitude: Bias center latitude
            longitude: Bias center longitude
            radius_m: Bias radius in meters
            max_results: Results requested from Google (max 20)

        Returns:
            list[PlaceSearchResult]: With distance when coordinates are given

        Raises:
            ExternalServiceError: When the Places API request fails
        """
        body: dict[str, Any] = {"textQuery": query, "maxResultCount": max_results}
        origin = None
        if latitude is not None and longitude is not None:
            origin = LatLng(latitude=latitude, longitude=longitude)
            body["locationBias"] = {
                "circle": {
                    "center": {"latitude": latitude, "longitude": longitude},
                    "radius": radius_m,
                }
            }

        try:
            data = await self._post_search(body)
        except httpx.HTTPError as e:
            logger.error(f"{__name__}:text_search - FAILED query={query!r}: {e}")
            raise ExternalServiceError(
                f"Places API search failed: {e}", service="google_places"
            ) from e

        results = []
        for place in data.get("places") or []:
            result = PlaceSearchResult(
                place_id=place.get("id", ""),
                name=(place.get("displayName") or {}).get("text", ""),
                formatted_address=place.get("formattedAddress", ""),
                rating=place.get("rating"),
                user_ratings_total=place.get("userRatingCount"),
                location=_location(place),
                business_status=place.get("businessStatus"),
                google_maps_uri=place.get("googleMapsUri"),
            )
            if origin is not None:
                result.distance = haversine_miles(origin, result.location)
                result.distance_text = f"{result.distance} mi"
            results.append(result)

        logger.info(
            f"{__name__}:text_search - Found {len(results)} places",
            extra={"query": query},
        )
        return results

    async def get_place_details(self, place_id: str) -> PlaceDetails | None:
        """Place Details lookup; None on any failure."""
        try:
            async with self._client(DETAILS_FIELD_MASK) as client:
                response = await client.get(f"/places/{place_id}")
                response.raise_for_status()
                place = response.json()
        except (httpx.HTTPError, ConfigurationError) as e:
            logger.warning(f"{__name__}:get_place_details - FAILED place_id={place_id}: {e}")
            return None

        hours = place.get("currentOpeningHours") or place.get("regularOpeningHours")
        return PlaceDetails(
            place_id=place.get("id", place_id),
            name=(place.get("displayName") or {}).get("text", ""),
            formatted_address=place.get("formattedAddress", ""),
            rating=place.get("rating"),
            user_ratings_total=place.get("userRatingCount"),
            location=_location(place),
            business_status=place.get("businessStatus"),
            google_maps_uri=place.get("googleMapsUri"),
            phone=place.get("nationalPhoneNumber"),
            international_phone=place.get("internationalPhoneNumber"),
            opening_hours=(
                OpeningHours(
                    open_now=hours.get("openNow"),
                    weekday_text=parse_opening_hours(hours.get("weekdayDescriptions")),
                )
                if hours
                else None
            ),
            website=place.get("websiteUri"),
        )

    async def enrich_providers(self, place_ids: list[str]) -> dict[str, PlaceDetails]:
        """
        Fetch details for many places, five at a time.

        Returns:
            dict[str, PlaceDetails]: Details keyed by place ID; misses omitted
        """
        details: dict[str, PlaceDetails] = {}
        for start in range(0, len(place_ids), ENRICH_BATCH_SIZE):
            batch = place_ids[start:start + ENRICH_BATCH_SIZE]
            fetched = await asyncio.gather(*(self.get_place_details(pid) for pid in batch))
            for place_id, place in zip(batch, fetched):
                if place is not None:
                    details[place_id] = place
            if start + ENRICH_BATCH_SIZE < len(place_ids):
                await asyncio.sleep(self.batch_delay)
        logger.info(
            f"{__name__}:enrich_providers - Enriched {len(details)}/{len(place_ids)} places"
        )
        return details
