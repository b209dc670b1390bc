from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from concierge.api.deps import (
    get_booking_service,
    get_calling_service,
    get_kestra_client,
    get_recommendation_service,
    get_service_request_service,
    get_settings_dependency,
)
from concierge.core.exceptions import NoProvidersError, OrchestrationUnavailableError
from concierge.models.bookings import BookingOutcome
from concierge.models.recommendations import (
    ProviderRecommendation,
    RecommendationResponse,
    RecommendationStats,
)

CALL_BODY = {
    "providerName": "Ace Plumbing",
    "providerPhone": "+18645550100",
    "serviceNeeded": "plumber",
    "userCriteria": "Licensed",
    "location": "Greenville, SC",
    "urgency": "within_2_days",
}


@pytest.fixture
def calling_service(client):
    service = AsyncMock()
    client.app.dependency_overrides[get_calling_service] = lambda: service
    return service


@pytest.fixture
def service_request_service(client):
    service = AsyncMock()
    client.app.dependency_overrides[get_service_request_service] = lambda: service
    return service


def test_call_provider(client, calling_service, make_call_result):
    calling_service.call_provider.return_value = make_call_result()

    response = client.post("/api/v1/providers/call", json=CALL_BODY)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "completed"
    assert data["callMethod"] == "simulated"
    assert data["analysis"]["structuredData"]["earliest_availability"] == "Tomorrow 9am"


def test_call_provider_kestra_unavailable(client, calling_service):
    calling_service.call_provider.side_effect = OrchestrationUnavailableError("http://kestra.test")

    response = client.post("/api/v1/providers/call", json=CALL_BODY)

    assert response.status_code == 503
    assert response.json()["success"] is False


def test_batch_call_empty_providers_is_400(client, calling_service):
    response = client.post(
        "/api/v1/providers/batch-call",
        json={"providers": [], "serviceNeeded": "plumber", "location": "Greenville, SC"},
    )

    assert response.status_code == 400
    calling_service.call_providers_batch.assert_not_called()


def test_batch_call_no_providers_error(client, calling_service):
    calling_service.call_providers_batch.side_effect = NoProvidersError()

    response = client.post(
        "/api/v1/providers/batch-call",
        json={
            "providers": [{"name": "Ace", "phone": "+18645550100"}],
            "serviceNeeded": "plumber",
            "location": "Greenville, SC",
        },
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Validation error"


def test_batch_call(client, calling_service, make_call_result):
    calling_service.call_providers_batch.return_value = {
        "results": [make_call_result()],
        "stats": {"total": 1, "completed": 1, "failed": 0},
        "resultsInDatabase": True,
    }

    response = client.post(
        "/api/v1/providers/batch-call",
        json={
            "providers": [{"name": "Ace", "phone": "+18645550100"}],
            "serviceNeeded": "plumber",
            "location": "Greenville, SC",
            "maxConcurrent": 3,
        },
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["results"][0]["provider"]["name"] == "Ace Plumbing"
    assert calling_service.call_providers_batch.await_args.kwargs["max_concurrent"] == 3


def test_batch_call_async_accepts(client, service_request_service):
    request_id = str(uuid4())

    with patch(
        "concierge.api.routers.providers.run_batch_calls_background", new=AsyncMock()
    ) as background:
        response = client.post(
            "/api/v1/providers/batch-call-async",
            json={
                "providers": [{"name": "Ace", "phone": "+18645550100", "id": "p-1"}],
                "serviceNeeded": "plumber",
                "location": "Greenville, SC",
                "serviceRequestId": request_id,
            },
        )

    assert response.status_code == 202
    data = response.json()["data"]
    assert data["status"] == "accepted"
    assert data["providersQueued"] == 1
    assert data["statusUrl"] == f"/api/v1/providers/batch-status/{request_id}"
    service_request_service.start_batch.assert_awaited_once()
    background.assert_awaited_once()


def test_recommend_direct(client, service_request_service):
    settings = MagicMock()
    settings.features.kestra_enabled = False
    recommendation_service = AsyncMock()
    recommendation_service.generate_recommendations.return_value = RecommendationResponse(
        recommendations=[
            ProviderRecommendation(
                provider_name="Ace Plumbing", phone="+18645550100", score=92, reasoning="Available today"
            )
        ],
        overall_recommendation="Ace Plumbing is the best choice",
        analysis_notes="",
        stats=RecommendationStats(total_calls=1, qualified_providers=1),
    )
    service_request_service.save_recommendations.return_value = None
    client.app.dependency_overrides[get_settings_dependency] = lambda: settings
    client.app.dependency_overrides[get_kestra_client] = lambda: MagicMock()
    client.app.dependency_overrides[get_recommendation_service] = lambda: recommendation_service

    response = client.post(
        "/api/v1/providers/recommend",
        json={"callResults": [], "originalCriteria": "Licensed", "serviceRequestId": str(uuid4())},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["method"] == "direct_gemini"
    assert body["data"]["recommendations"][0]["score"] == 92
    service_request_service.save_recommendations.assert_awaited_once()


def test_book_provider(client):
    booking_service = AsyncMock()
    booking_service.book.return_value = BookingOutcome(
        booking_confirmed=True,
        call_id="sim-booking-1",
        confirmed_date="Tuesday",
        confirmed_time="10:00 AM",
        method="simulated",
    )
    client.app.dependency_overrides[get_booking_service] = lambda: booking_service

    response = client.post(
        "/api/v1/providers/book",
        json={
            "providerId": "p-1",
            "providerName": "Ace Plumbing",
            "providerPhone": "+18645550100",
            "serviceNeeded": "plumber",
            "serviceRequestId": str(uuid4()),
            "location": "Greenville, SC",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["method"] == "simulated"
    assert body["data"]["bookingConfirmed"] is True
    assert "method" not in body["data"]
