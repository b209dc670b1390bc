"""Gemini helper endpoints: bare quick routes and enveloped analysis routes."""

from unittest.mock import AsyncMock, patch

import pytest

from concierge.api.deps import get_gemini_client, get_gemini_workflow
from concierge.core.exceptions import ExternalServiceError
from concierge.models.direct_task import (
    AnalyzeDirectTaskResponse,
    GeneratedPrompt,
    PromptAnalysisResult,
    StrategicGuidance,
    TaskAnalysis,
)
from concierge.models.gemini import InteractionLogEntry, SelectBestProviderResult, TranscriptLine


@pytest.fixture
def workflow(client):
    service = AsyncMock()
    client.app.dependency_overrides[get_gemini_workflow] = lambda: service
    return service


@pytest.fixture
def gemini(client):
    model = AsyncMock()
    client.app.dependency_overrides[get_gemini_client] = lambda: model
    return model


def test_simulate_call_returns_log_entry(client, workflow):
    workflow.simulate_call.return_value = InteractionLogEntry(
        step_name="Calling Ace Plumbing",
        detail="Available tomorrow, licensed",
        transcript=[TranscriptLine(speaker="AI", text="Hi there")],
        status="success",
    )

    response = client.post(
        "/api/v1/gemini/simulate-call",
        json={"providerName": "Ace Plumbing", "userCriteria": "Licensed", "isDirect": False},
    )

    assert response.status_code == 200
    body = response.json()
    assert "success" not in body
    assert body["stepName"] == "Calling Ace Plumbing"
    assert body["transcript"] == [{"speaker": "AI", "text": "Hi there"}]
    workflow.simulate_call.assert_awaited_once_with("Ace Plumbing", "Licensed", False)


def test_select_best_provider(client, workflow):
    workflow.select_best_provider.return_value = SelectBestProviderResult(
        selected_id="p-1", reasoning="Highest rating and earliest slot"
    )

    response = client.post(
        "/api/v1/gemini/select-best-provider",
        json={
            "requestTitle": "Leaking water heater",
            "interactions": [],
            "providers": [{"id": "p-1", "name": "Ace Plumbing"}],
        },
    )

    assert response.status_code == 200
    assert response.json() == {"selectedId": "p-1", "reasoning": "Highest rating and earliest slot"}


def test_schedule_appointment(client, workflow):
    workflow.schedule_appointment.return_value = InteractionLogEntry(
        step_name="Booking Appointment", detail="Confirmed for Tuesday 2PM", status="success"
    )

    response = client.post(
        "/api/v1/gemini/schedule-appointment",
        json={"providerName": "Ace Plumbing", "details": "Tuesday afternoon"},
    )

    assert response.status_code == 200
    assert response.json()["detail"] == "Confirmed for Tuesday 2PM"


def test_quick_route_failure_uses_error_envelope(client, workflow):
    workflow.search_providers.side_effect = ExternalServiceError("Gemini quota exceeded", service="gemini")

    response = client.post(
        "/api/v1/gemini/search-providers", json={"query": "plumber", "location": "Greenville, SC"}
    )

    assert response.status_code == 500
    assert response.json()["error"] == "Gemini quota exceeded"


def test_analyze_direct_task_is_enveloped(client, gemini):
    analysis = AnalyzeDirectTaskResponse(
        task_analysis=TaskAnalysis(task_type="negotiate_price", intent="Lower the quote", difficulty="complex"),
        strategic_guidance=StrategicGuidance(key_goals=["Get a lower price"]),
        generated_prompt=GeneratedPrompt(
            system_prompt="You are negotiating", first_message="Hi!", closing_script="Thanks!"
        ),
    )

    with patch(
        "concierge.api.routers.gemini.analyze_direct_task", new=AsyncMock(return_value=analysis)
    ) as analyze:
        response = client.post(
            "/api/v1/gemini/analyze-direct-task",
            json={"taskDescription": "Negotiate my repair quote", "contactName": "Ace Plumbing"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["taskAnalysis"]["taskType"] == "negotiate_price"
    assert body["data"]["generatedPrompt"]["firstMessage"] == "Hi!"
    assert analyze.await_args.args[0] is gemini


def test_analyze_research_prompt_is_enveloped(client, gemini):
    result = PromptAnalysisResult(
        service_category="home_repair", system_prompt="Screen plumbers", first_message="Hello"
    )

    with patch(
        "concierge.api.routers.gemini.analyze_research_prompt", new=AsyncMock(return_value=result)
    ):
        response = client.post(
            "/api/v1/gemini/analyze-research-prompt", json={"serviceType": "plumber"}
        )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["serviceCategory"] == "home_repair"
    assert body["data"]["terminology"]["providerTerm"] == "provider"


def test_missing_fields_are_400(client, workflow):
    response = client.post("/api/v1/gemini/simulate-call", json={"providerName": "Ace"})

    assert response.status_code == 400
    assert response.json()["error"] == "Validation error"
