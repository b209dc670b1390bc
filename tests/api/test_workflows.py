"""Research, notification and Gemini helper endpoints."""

from unittest.mock import AsyncMock

import pytest

from concierge.api.deps import get_gemini_workflow, get_notification_service, get_research_service
from concierge.core.exceptions import OrchestrationUnavailableError
from concierge.models.gemini import InteractionLogEntry, SearchProvidersResult
from concierge.models.research import Provider, ResearchResult


@pytest.fixture
def research_service(client):
    service = AsyncMock()
    client.app.dependency_overrides[get_research_service] = lambda: service
    return service


def test_research_success(client, research_service):
    research_service.search.return_value = ResearchResult(
        status="success",
        method="google_places",
        providers=[Provider(id="p-1", name="Ace Plumbing", phone="+18645550100", rating=4.8)],
        total_found=1,
    )

    response = client.post(
        "/api/v1/workflows/research", json={"service": "plumber", "location": "Greenville, SC"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["method"] == "google_places"
    assert body["data"]["providers"][0]["name"] == "Ace Plumbing"
    request = research_service.search.await_args.args[0]
    assert request.min_rating == 4.5


def test_research_error_is_unsuccessful(client, research_service):
    research_service.search.return_value = ResearchResult(
        status="error", method="direct_gemini", error="No providers found"
    )

    response = client.post(
        "/api/v1/workflows/research", json={"service": "plumber", "location": "Greenville, SC"}
    )

    assert response.status_code == 200
    assert response.json()["success"] is False


def test_research_kestra_down(client, research_service):
    research_service.search.side_effect = OrchestrationUnavailableError("http://kestra.test")

    response = client.post(
        "/api/v1/workflows/research", json={"service": "plumber", "location": "Greenville, SC"}
    )

    assert response.status_code == 503


def test_send_notification(client):
    service = AsyncMock()
    service.send_notification.return_value = (
        True,
        {"notificationSent": True, "messageSid": "SM-1", "method": "direct_twilio"},
    )
    client.app.dependency_overrides[get_notification_service] = lambda: service

    response = client.post(
        "/api/v1/notifications/send",
        json={
            "userPhone": "+18645550100",
            "serviceRequestId": "sr-1",
            "providers": [{"name": "Ace Plumbing", "earliestAvailability": "Tomorrow"}],
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"notificationSent": True, "messageSid": "SM-1", "method": "direct_twilio"},
    }


def test_send_notification_requires_providers(client):
    client.app.dependency_overrides[get_notification_service] = lambda: AsyncMock()

    response = client.post(
        "/api/v1/notifications/send",
        json={"userPhone": "+18645550100", "serviceRequestId": "sr-1", "providers": []},
    )

    assert response.status_code == 400


def test_gemini_search_returns_bare_result(client):
    workflow = AsyncMock()
    workflow.search_providers.return_value = SearchProvidersResult(
        providers=[],
        logs=InteractionLogEntry(step_name="Market Research", detail="No providers found", status="warning"),
    )
    client.app.dependency_overrides[get_gemini_workflow] = lambda: workflow

    response = client.post(
        "/api/v1/gemini/search-providers", json={"query": "plumber", "location": "Greenville, SC"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["providers"] == []
    assert body["logs"]["stepName"] == "Market Research"
