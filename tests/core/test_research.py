"""Tests for provider research: direct sources, enrichment and Kestra routing."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from concierge.boundary.google.places_client import OpeningHours, PlaceDetails, PlaceSearchResult
from concierge.core.exceptions import OrchestrationUnavailableError
from concierge.core.research.direct_research import (
    DEFAULT_COORDINATES,
    DirectResearchClient,
    coordinates_for,
    deduplicate,
    filter_providers,
    normalize_phones,
)
from concierge.core.research.enrichment import ProviderEnrichmentService
from concierge.core.research.research_service import ResearchService
from concierge.models.research import EnrichmentOptions, Provider, ResearchRequest, ResearchResult


def _provider(name, **fields):
    return Provider(id=f"id-{name}", name=name, **fields)


class TestHelpers:
    def test_coordinates_for_known_city(self):
        assert coordinates_for("Atlanta, GA").latitude == 33.749
        assert coordinates_for("Nowhere, KS") == DEFAULT_COORDINATES

    def test_deduplicate_ignores_case_and_space(self):
        providers = [_provider("Ace Plumbing"), _provider(" ace plumbing "), _provider("Bee HVAC")]
        assert [p.name for p in deduplicate(providers)] == ["Ace Plumbing", "Bee HVAC"]

    def test_normalize_phones_keeps_unparseable(self):
        providers = normalize_phones(
            [_provider("A", phone="(864) 555-0100"), _provider("B", phone="ext 12"), _provider("C")]
        )
        assert [p.phone for p in providers] == ["+18645550100", "ext 12", None]

    def test_filter_providers(self):
        providers = [
            _provider("Close", rating=4.8, distance=3.0, review_count=50),
            _provider("Far", rating=4.9, distance=40.0, review_count=50),
            _provider("Unknown distance", rating=4.7, review_count=50),
            _provider("Low", rating=3.9, distance=1.0, review_count=50),
            _provider("Unreviewed", rating=4.9, distance=1.0),
        ]
        kept = filter_providers(providers, min_rating=4.5, max_distance=10, min_review_count=10)
        assert [p.name for p in kept] == ["Close", "Unknown distance"]


@pytest.fixture
def places():
    client = MagicMock()
    client.is_configured.return_value = True
    return client


@pytest.fixture
def gemini():
    client = MagicMock()
    client.is_configured.return_value = True
    return client


class TestDirectResearch:
    @pytest.mark.asyncio
    async def test_places_results_sorted_by_distance(self, gemini, places):
        places.text_search = AsyncMock(
            return_value=[
                PlaceSearchResult(place_id="far", name="Far Co", rating=4.9, user_ratings_total=20, distance=12.0),
                PlaceSearchResult(place_id="near", name="Near Co", rating=4.6, user_ratings_total=20, distance=2.5),
                PlaceSearchResult(place_id="bad", name="Bad Co", rating=3.2, distance=1.0),
            ]
        )

        result = await DirectResearchClient(gemini, places).search(
            ResearchRequest(service="plumber", location="Greenville SC")
        )

        assert result.status == "success"
        assert result.method == "google_places"
        assert [p.name for p in result.providers] == ["Near Co", "Far Co"]
        assert result.total_found == 3

    @pytest.mark.asyncio
    async def test_falls_through_to_maps_grounding(self, gemini, places):
        places.text_search = AsyncMock(side_effect=RuntimeError("quota"))
        gemini.search_with_maps = AsyncMock(
            return_value=([{"title": "Ace"}, {"title": "ace"}, {"title": "Bee", "placeId": "p-2"}], "")
        )

        result = await DirectResearchClient(gemini, places).search(
            ResearchRequest(service="plumber", location="Greenville SC")
        )

        assert result.method == "direct_gemini"
        assert [p.name for p in result.providers] == ["Ace", "Bee"]
        assert result.providers[1].place_id == "p-2"

    @pytest.mark.asyncio
    async def test_json_fallback_and_empty_result(self, gemini, places):
        places.is_configured.return_value = False
        gemini.search_with_maps = AsyncMock(return_value=([], "no places"))
        gemini.generate_json = AsyncMock(
            return_value=[{"name": "Ace", "phone": "864-555-0100", "rating": 4.7}]
        )
        client = DirectResearchClient(gemini, places)
        request = ResearchRequest(service="plumber", location="Greenville SC")

        result = await client.search(request)
        assert result.status == "success"
        assert result.providers[0].phone == "+18645550100"

        gemini.generate_json = AsyncMock(side_effect=ValueError("garbage"))
        result = await client.search(request)
        assert result.status == "error"
        assert result.error == "No providers found in search area"


class TestEnrichment:
    @pytest.mark.asyncio
    async def test_merges_details_and_keeps_unmatched(self, places):
        places.enrich_providers = AsyncMock(
            return_value={
                "p-1": PlaceDetails(
                    place_id="p-1",
                    phone="(864) 555-0101",
                    website="https://ace.example",
                    opening_hours=OpeningHours(open_now=True, weekday_text=["Mon: 8:00 AM - 5:00 PM"]),
                )
            }
        )
        providers = [
            _provider("Ace", place_id="p-1"),
            _provider("Bee", place_id="p-2"),
            _provider("Cee", phone="+18645550103"),
        ]

        result = await ProviderEnrichmentService(places).enrich(
            providers, EnrichmentOptions(min_enriched_results=1)
        )

        assert [p.name for p in result.providers] == ["Ace", "Cee"]
        ace = result.providers[0]
        assert ace.phone == "+18645550101"
        assert ace.is_open_now is True
        assert ace.hours_of_operation == ["Mon: 8:00 AM - 5:00 PM"]
        assert result.stats.enriched_count == 1
        assert result.stats.skipped_no_place_id == 1

    @pytest.mark.asyncio
    async def test_phone_filter_skipped_when_too_few(self, places):
        places.enrich_providers = AsyncMock(return_value={})
        providers = [_provider("Ace", place_id="p-1"), _provider("Bee", place_id="p-2")]

        result = await ProviderEnrichmentService(places).enrich(providers)

        assert len(result.providers) == 2
        assert result.stats.with_phone_count == 0

    @pytest.mark.asyncio
    async def test_unconfigured_passes_through(self, places):
        places.is_configured.return_value = False
        providers = [_provider("Ace", place_id="p-1")]

        result = await ProviderEnrichmentService(places).enrich(providers)

        assert result.providers == providers
        places.enrich_providers.assert_not_called()


class TestResearchService:
    def _service(self, features, healthy=True):
        kestra = MagicMock()
        kestra.url = "http://kestra:8080"
        kestra.health_check = AsyncMock(return_value=healthy)
        kestra.trigger_research_flow = AsyncMock(
            return_value=ResearchResult(
                status="success", method="kestra", providers=[_provider("K", phone="864.555.0199")]
            )
        )
        direct = MagicMock()
        direct.search = AsyncMock(
            return_value=ResearchResult(status="success", method="direct_gemini", providers=[_provider("D")])
        )
        enrichment = MagicMock()
        enrichment.enrich = AsyncMock(side_effect=RuntimeError("places down"))
        return ResearchService(features, kestra, direct, enrichment)

    @pytest.mark.asyncio
    async def test_kestra_results_get_normalized_phones(self, live_features):
        live_features.kestra_enabled = True
        service = self._service(live_features)

        result = await service.search(ResearchRequest(service="plumber", location="Greenville"))

        assert result.method == "kestra"
        assert result.providers[0].phone == "+18645550199"
        service.direct.search.assert_not_called()

    @pytest.mark.asyncio
    async def test_enrichment_failure_keeps_direct_results(self, live_features):
        service = self._service(live_features)

        result = await service.search(ResearchRequest(service="plumber", location="Greenville"))

        assert [p.name for p in result.providers] == ["D"]

    @pytest.mark.asyncio
    async def test_unhealthy_kestra(self, live_features):
        live_features.kestra_enabled = True
        service = self._service(live_features, healthy=False)

        with pytest.raises(OrchestrationUnavailableError):
            await service.search(ResearchRequest(service="plumber", location="Greenville"))
