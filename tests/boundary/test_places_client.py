"""Tests for the Google Places client."""

import httpx
import pytest

from concierge.boundary.google.places_client import (
    LatLng,
    PlacesClient,
    haversine_miles,
    parse_opening_hours,
)
from concierge.configs.places import PlacesSettings
from concierge.core.exceptions import ExternalServiceError


@pytest.fixture
def settings():
    return PlacesSettings(api_key="places-key", base_url="https://places.test/v1")


def test_haversine_miles():
    greenville = LatLng(latitude=34.8526, longitude=-82.394)
    atlanta = LatLng(latitude=33.749, longitude=-84.388)
    assert 125 < haversine_miles(greenville, atlanta) < 135
    assert haversine_miles(greenville, greenville) == 0


def test_parse_opening_hours():
    assert parse_opening_hours(["Monday: 8:00 AM – 6:00 PM", "Sunday: Closed"]) == [
        "Mon: 8:00 AM - 6:00 PM",
        "Sun: Closed",
    ]
    assert parse_opening_hours(None) == []


@pytest.mark.asyncio
async def test_text_search_adds_distance(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["X-Goog-Api-Key"] == "places-key"
        return httpx.Response(
            200,
            json={
                "places": [
                    {
                        "id": "p-1",
                        "displayName": {"text": "Ace Plumbing"},
                        "rating": 4.7,
                        "userRatingCount": 31,
                        "location": {"latitude": 34.85, "longitude": -82.39},
                    }
                ]
            },
        )

    client = PlacesClient(settings, transport=httpx.MockTransport(handler))
    results = await client.text_search("plumber near Greenville", latitude=34.8526, longitude=-82.394)

    assert results[0].name == "Ace Plumbing"
    assert results[0].user_ratings_total == 31
    assert results[0].distance is not None
    assert results[0].distance_text.endswith(" mi")


@pytest.mark.asyncio
async def test_text_search_error(settings):
    client = PlacesClient(settings, transport=httpx.MockTransport(lambda r: httpx.Response(403)))

    with pytest.raises(ExternalServiceError):
        await client.text_search("plumber")


@pytest.mark.asyncio
async def test_enrich_providers_skips_misses(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/p-missing"):
            return httpx.Response(404)
        return httpx.Response(
            200,
            json={
                "id": "p-1",
                "nationalPhoneNumber": "(864) 555-0100",
                "regularOpeningHours": {"openNow": False, "weekdayDescriptions": ["Monday: Closed"]},
            },
        )

    client = PlacesClient(settings, transport=httpx.MockTransport(handler), batch_delay=0)
    details = await client.enrich_providers(["p-1", "p-missing"])

    assert list(details) == ["p-1"]
    assert details["p-1"].phone == "(864) 555-0100"
    assert details["p-1"].opening_hours.weekday_text == ["Mon: Closed"]
    assert details["p-1"].opening_hours.open_now is False
