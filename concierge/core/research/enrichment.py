"""
Provider enrichment.

Fills in the details a text search leaves out (phone, hours, website) with
Place Details lookups. Providers without a place ID pass through untouched.
The phone filter is applied after enrichment, and it is skipped when too few
providers would survive it.

Dependencies: concierge.boundary.google.places_client
System role: Post-processing step of direct research
"""

import logging
import time

from concierge.boundary.google.places_client import LatLng, PlaceDetails, PlacesClient, haversine_miles
from concierge.core.phone import normalize_phone_to_e164
from concierge.models.research import EnrichmentOptions, EnrichmentResult, EnrichmentStats, Provider

logger = logging.getLogger(__name__)


def merge_details(
    provider: Provider,
    details: PlaceDetails,
    origin: LatLng | None = None,
) -> Provider:
    """Overlay Place Details onto a provider."""
    update = {
        "phone": normalize_phone_to_e164(details.phone) or details.phone or provider.phone,
        "international_phone": details.international_phone,
        "website": details.website or provider.website,
        "google_maps_uri": details.google_maps_uri or provider.google_maps_uri,
    }
    if details.opening_hours is not None:
        update["hours_of_operation"] = details.opening_hours.weekday_text
        update["is_open_now"] = details.opening_hours.open_now
    if origin is not None and (details.location.latitude or details.location.longitude):
        distance = haversine_miles(origin, details.location)
        update["distance"] = distance
        update["distance_text"] = f"{distance} mi"
    return provider.model_copy(update=update)


class ProviderEnrichmentService:
    """
    Enrich research results with Place Details.

    Args:
        places: Google Places client
    """

    def __init__(self, places: PlacesClient) -> None:
        self.places = places

    def is_available(self) -> bool:
        return self.places.is_configured()

    async def enrich(
        self,
        providers: list[Provider],
        options: EnrichmentOptions | None = None,
    ) -> EnrichmentResult:
        """
        Enrich up to `max_to_enrich` providers that carry a place ID.

        Args:
            providers: Research results
            options: Limits and phone filtering

        Returns:
            EnrichmentResult: Providers (enriched first) and stats
        """
        options = options or EnrichmentOptions()
        started = time.monotonic()
        stats = EnrichmentStats(total_input=len(providers))

        if not self.is_available():
            logger.warning(f"{__name__}:enrich - Places API not configured, skipping enrichment")
            stats.duration_ms = int((time.monotonic() - started) * 1000)
            return EnrichmentResult(providers=providers, stats=stats)

        with_place = [p for p in providers if p.place_id]
        without_place = [p for p in providers if not p.place_id]
        stats.skipped_no_place_id = len(without_place)
        to_enrich = with_place[:options.max_to_enrich]

        if not to_enrich:
            logger.warning(f"{__name__}:enrich - No providers with placeId to enrich")
            stats.duration_ms = int((time.monotonic() - started) * 1000)
            return EnrichmentResult(providers=providers, stats=stats)

        logger.info(
            f"{__name__}:enrich - START enriching {len(to_enrich)} providers",
            extra={"with_place_id": len(with_place), "without_place_id": len(without_place)},
        )
        details = await self.places.enrich_providers([p.place_id for p in to_enrich])
        origin = (
            LatLng(latitude=options.coordinates.latitude, longitude=options.coordinates.longitude)
            if options.coordinates
            else None
        )

        enriched = [
            merge_details(provider, details[provider.place_id], origin)
            for provider in to_enrich
            if provider.place_id in details
        ]
        # Providers whose lookup failed keep their search data
        missed = [p for p in to_enrich if p.place_id not in details]
        stats.enriched_count = len(enriched)

        everything = enriched + missed + with_place[options.max_to_enrich:] + without_place
        with_phone = [p for p in everything if p.phone]
        stats.with_phone_count = len(with_phone)

        final = everything
        if options.require_phone:
            if len(with_phone) < options.min_enriched_results:
                logger.warning(
                    f"{__name__}:enrich - Only {len(with_phone)} providers with phone "
                    f"(min {options.min_enriched_results}), keeping providers without phone"
                )
            else:
                final = with_phone

        stats.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"{__name__}:enrich - END", extra=stats.model_dump())
        return EnrichmentResult(providers=final, stats=stats)
