"""
Tests for CallResultService.

Covers transcript parsing, writing a call onto its provider row and the
deduplicated timeline entry shared with the webhook path.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.application.services.call_result_service import (
    CallResultService,
    log_status_for,
    parse_transcript,
    parse_uuid,
)
from concierge.boundary.db.CRUD import interaction_log_crud, provider_crud, service_request_crud
from concierge.boundary.db.models import LogStatus


@pytest.fixture
async def request_with_provider(test_async_db: AsyncSession):
    service_request = await service_request_crud.create(
        test_async_db,
        title="Fix leaking water heater",
        description="Leaking from the bottom",
        criteria="Licensed",
        location="Greenville, SC",
    )
    provider = await provider_crud.create(
        test_async_db, request_id=service_request.id, name="Ace Plumbing", phone="+18645550100"
    )
    await test_async_db.commit()
    return service_request, provider


def test_parse_uuid():
    assert parse_uuid(None) is None
    assert parse_uuid("task-123") is None
    assert str(parse_uuid("6f1c1d2e-4b6a-4c55-9d2c-0e5b8d9f1a22")) == "6f1c1d2e-4b6a-4c55-9d2c-0e5b8d9f1a22"


def test_parse_transcript():
    entries = parse_transcript("AI: Hello there\n\nProvider: Hi: how can I help?\nstatic")

    assert entries == [
        {"speaker": "AI", "text": "Hello there"},
        {"speaker": "Provider", "text": "Hi: how can I help?"},
        {"speaker": "unknown", "text": "static"},
    ]
    assert parse_transcript("") is None


def test_log_status_for(make_call_result):
    assert log_status_for(make_call_result()) == LogStatus.SUCCESS
    assert log_status_for(make_call_result(status="error")) == LogStatus.ERROR
    assert log_status_for(make_call_result(status="voicemail")) == LogStatus.WARNING


class TestSaveCallResult:
    @pytest.mark.asyncio
    async def test_updates_provider_and_timeline(
        self,
        test_async_db: AsyncSession,
        request_with_provider,
        make_call_request,
        make_call_result,
    ) -> None:
        """A completed call lands on the provider row and the request timeline."""
        # Arrange
        service_request, provider = request_with_provider
        result = make_call_result()
        request = make_call_request(
            provider_id=str(provider.id), service_request_id=str(service_request.id)
        )

        # Act
        await CallResultService(test_async_db).save_call_result(result, request)

        # Assert
        saved = await provider_crud.get_by_id(test_async_db, provider.id)
        assert saved.call_status == "completed"
        assert saved.call_id == result.call_id
        assert saved.call_method == "simulated"
        assert saved.call_result["availability"] == "available"
        assert saved.called_at is not None

        logs = await interaction_log_crud.get_by_request(test_async_db, service_request.id)
        assert len(logs) == 1
        assert logs[0].step_name == "Calling Ace Plumbing"
        assert logs[0].detail == f"Spoke with Ace Plumbing [Call ID: {result.call_id}]"
        assert logs[0].status == LogStatus.SUCCESS
        assert logs[0].transcript[0] == {"speaker": "AI", "text": "Hello"}

    @pytest.mark.asyncio
    async def test_saving_twice_logs_once(
        self,
        test_async_db: AsyncSession,
        request_with_provider,
        make_call_request,
        make_call_result,
    ) -> None:
        """The webhook and the calling service both save; the timeline keeps one entry."""
        service_request, provider = request_with_provider
        result = make_call_result()
        request = make_call_request(
            provider_id=str(provider.id), service_request_id=str(service_request.id)
        )
        service = CallResultService(test_async_db)

        await service.save_call_result(result, request)
        await service.save_call_result(result, request)

        logs = await interaction_log_crud.get_by_request(test_async_db, service_request.id)
        assert len(logs) == 1

    @pytest.mark.asyncio
    async def test_client_side_ids_are_skipped(
        self,
        test_async_db: AsyncSession,
        request_with_provider,
        make_call_request,
        make_call_result,
    ) -> None:
        service_request, provider = request_with_provider
        request = make_call_request(provider_id="task-1", service_request_id="task-1")

        await CallResultService(test_async_db).save_call_result(make_call_result(), request)

        saved = await provider_crud.get_by_id(test_async_db, provider.id)
        assert saved.call_status is None
        assert await interaction_log_crud.get_by_request(test_async_db, service_request.id) == []

    @pytest.mark.asyncio
    async def test_mark_call_in_progress(
        self, test_async_db: AsyncSession, request_with_provider
    ) -> None:
        _, provider = request_with_provider

        await CallResultService(test_async_db).mark_call_in_progress(str(provider.id), "call-42")

        saved = await provider_crud.get_by_id(test_async_db, provider.id)
        assert saved.call_status == "in_progress"
        assert saved.call_id == "call-42"
