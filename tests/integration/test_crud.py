"""
Integration tests for the CRUD layer against in-memory SQLite.

Covers the queries the workflow depends on: deduplicated call logs,
bulk provider status updates and the SMS-selection lookup.

System role: Verification of database access for service requests
"""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.boundary.db.CRUD import (
    interaction_log_crud,
    provider_crud,
    service_request_crud,
    user_crud,
)
from concierge.boundary.db.models import LogStatus, RequestStatus


async def _create_request(session: AsyncSession, **fields):
    values = {
        "title": "Fix leaking water heater",
        "description": "Water heater leaking from the bottom",
        "criteria": "Licensed, available this week",
        "location": "Greenville, SC",
        "user_phone": "+18645550100",
    }
    values.update(fields)
    return await service_request_crud.create(session, **values)


class TestServiceRequestCRUD:
    @pytest.mark.asyncio
    async def test_create_defaults_to_pending(self, test_async_db: AsyncSession) -> None:
        """New requests start PENDING with no recommendations."""
        request = await _create_request(test_async_db)

        assert request.id is not None
        assert request.status == RequestStatus.PENDING
        assert request.recommendations is None

    @pytest.mark.asyncio
    async def test_update_status_sets_extra_fields(self, test_async_db: AsyncSession) -> None:
        request = await _create_request(test_async_db)

        updated = await service_request_crud.update_status(
            test_async_db, request.id, RequestStatus.FAILED, final_outcome="All calls failed"
        )

        assert updated.status == RequestStatus.FAILED
        assert updated.final_outcome == "All calls failed"

    @pytest.mark.asyncio
    async def test_find_awaiting_selection_requires_recommendations(
        self, test_async_db: AsyncSession
    ) -> None:
        """Only selectable requests that already hold recommendations qualify."""
        # Arrange
        await _create_request(test_async_db, status=RequestStatus.RECOMMENDED)
        await _create_request(
            test_async_db,
            status=RequestStatus.COMPLETED,
            recommendations={"recommendations": []},
        )

        # Act / Assert
        assert await service_request_crud.find_awaiting_selection(test_async_db, "+18645550100") is None

        ready = await _create_request(
            test_async_db,
            status=RequestStatus.RECOMMENDED,
            recommendations={"recommendations": [{"providerName": "Ace"}]},
        )
        found = await service_request_crud.find_awaiting_selection(test_async_db, "+18645550100")
        assert found.id == ready.id

    @pytest.mark.asyncio
    async def test_find_latest_completed(self, test_async_db: AsyncSession) -> None:
        done = await _create_request(test_async_db, status=RequestStatus.COMPLETED)
        await _create_request(test_async_db, status=RequestStatus.CALLING)

        found = await service_request_crud.find_latest_completed(test_async_db, "+18645550100")

        assert found.id == done.id
        assert await service_request_crud.find_latest_completed(test_async_db, "+18645550199") is None


class TestProviderCRUD:
    @pytest.mark.asyncio
    async def test_set_call_status_bulk(self, test_async_db: AsyncSession) -> None:
        request = await _create_request(test_async_db)
        providers = [
            await provider_crud.create(test_async_db, request_id=request.id, name=name, phone="+18645550100")
            for name in ("Ace", "Bee", "Cee")
        ]

        updated = await provider_crud.set_call_status(
            test_async_db, [p.id for p in providers[:2]], "queued"
        )

        assert updated == 2
        assert await provider_crud.set_call_status(test_async_db, [], "queued") == 0
        rows = await provider_crud.get_by_request(test_async_db, request.id)
        assert sorted(p.call_status or "" for p in rows) == ["", "queued", "queued"]


class TestInteractionLogCRUD:
    @pytest.mark.asyncio
    async def test_duplicate_call_id_is_ignored(self, test_async_db: AsyncSession) -> None:
        """A call logged by both the webhook and the calling service appears once."""
        request = await _create_request(test_async_db)

        first = await interaction_log_crud.add_log(
            test_async_db, request.id, "Calling Ace", "Available tomorrow",
            status=LogStatus.SUCCESS, call_id="call-1",
        )
        second = await interaction_log_crud.add_log(
            test_async_db, request.id, "Calling Ace", "Available tomorrow", call_id="call-1",
        )
        await interaction_log_crud.add_log(test_async_db, request.id, "Note", "no call id")

        assert first is True
        assert second is False
        logs = await interaction_log_crud.get_by_request(test_async_db, request.id)
        assert [log.step_name for log in logs] == ["Calling Ace", "Note"]
        assert logs[0].status == LogStatus.SUCCESS


class TestUserCRUD:
    @pytest.mark.asyncio
    async def test_get_by_email_is_case_insensitive(self, test_async_db: AsyncSession) -> None:
        user = await user_crud.create(test_async_db, email="sam@example.com", name="Sam")

        found = await user_crud.get_by_email(test_async_db, "SAM@Example.com")

        assert found.id == user.id
        assert await user_crud.get_by_id(test_async_db, uuid.uuid4()) is None
