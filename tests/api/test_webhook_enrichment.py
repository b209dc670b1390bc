"""Background enrichment of Vapi webhook results."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from concierge.api.routers.router_utils import background_tasks
from concierge.api.routers.router_utils.background_tasks import (
    enrich_webhook_call,
    persist_webhook_result,
    webhook_call_result,
)
from concierge.core.calling.webhook_cache import webhook_cache

FULL_TRANSCRIPT = (
    "AI: Hi, I'm calling about a leaking water heater in Greenville.\n"
    "Provider: We can be there tomorrow morning at nine."
)


def _webhook_call(**overrides):
    call = {
        "id": "call-enrich-1",
        "status": "ended",
        "endedReason": "customer-ended-call",
        "startedAt": "2025-01-01T10:00:00Z",
        "endedAt": "2025-01-01T10:02:00Z",
        "transcript": "AI: Hi",
        "customer": {"number": "+18645550100"},
        "metadata": {"providerName": "Ace Plumbing", "serviceNeeded": "plumber"},
    }
    call.update(overrides)
    return call


def _complete_call():
    return _webhook_call(
        transcript=FULL_TRANSCRIPT,
        analysis={
            "summary": "Available tomorrow at 9am",
            "structuredData": {"availability": "available", "estimated_rate": "$120/hour"},
            "successEvaluation": True,
        },
        costBreakdown={"total": 0.31},
    )


@pytest.fixture(autouse=True)
def cached_partial():
    webhook_cache.clear()
    webhook_cache.set("call-enrich-1", webhook_call_result(_webhook_call()))
    yield
    webhook_cache.clear()


class TestEnrichWebhookCall:
    @pytest.mark.asyncio
    async def test_retries_until_complete_then_merges(self):
        """Incomplete API data is retried; the complete payload is merged and persisted."""
        # Arrange
        get_call = AsyncMock(side_effect=[_webhook_call(), _complete_call()])

        # Act
        with patch.object(background_tasks, "persist_webhook_result", new=AsyncMock()) as persist:
            enriched = await enrich_webhook_call("call-enrich-1", get_call, delays=(0, 0, 0))

        # Assert
        assert enriched is True
        assert get_call.await_count == 2
        cached = webhook_cache.get("call-enrich-1")
        assert cached.data_status == "complete"
        assert cached.transcript == FULL_TRANSCRIPT
        assert cached.analysis.summary == "Available tomorrow at 9am"
        assert cached.analysis.structured_data.availability == "available"
        persist.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_exhausted_attempts_mark_fetch_failed(self):
        get_call = AsyncMock(side_effect=[RuntimeError("vapi down"), _webhook_call(), _webhook_call()])

        with patch.object(background_tasks, "persist_webhook_result", new=AsyncMock()) as persist:
            enriched = await enrich_webhook_call("call-enrich-1", get_call, delays=(0, 0, 0))

        assert enriched is False
        assert get_call.await_count == 3
        cached = webhook_cache.get("call-enrich-1")
        assert cached.data_status == "fetch_failed"
        assert cached.fetch_error == "Max attempts reached"
        assert cached.transcript == "AI: Hi"
        persist.assert_not_awaited()


class TestPersistWebhookResult:
    @pytest.mark.asyncio
    async def test_skips_calls_without_db_ids(self):
        call = _complete_call()

        assert await persist_webhook_result(webhook_call_result(call), call) is False

    @pytest.mark.asyncio
    async def test_saves_when_metadata_links_request(self):
        call = _complete_call()
        call["metadata"].update({"providerId": "prov-1", "serviceRequestId": "sr-1"})
        result = webhook_call_result(call)
        session = MagicMock()

        @asynccontextmanager
        async def fake_scope():
            yield session

        service = MagicMock()
        service.save_call_result = AsyncMock()

        with (
            patch.object(background_tasks, "session_scope", new=fake_scope),
            patch.object(background_tasks, "CallResultService", return_value=service) as service_cls,
        ):
            saved = await persist_webhook_result(result, call)

        assert saved is True
        service_cls.assert_called_once_with(session)
        saved_result, request = service.save_call_result.await_args.args
        assert saved_result is result
        assert request.provider_id == "prov-1"
        assert request.service_request_id == "sr-1"
        assert request.provider_phone == "+18645550100"
