"""
Tests for ServiceRequestService.

Covers request creation, batch-call tracking and storing recommendations
together with the notification they trigger.
"""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.application.services.service_request_service import (
    ServiceRequestService,
    batch_progress,
)
from concierge.boundary.db.CRUD import interaction_log_crud, provider_crud, service_request_crud
from concierge.boundary.db.models import RequestStatus
from concierge.core.exceptions import ServiceRequestNotFoundError, UserNotFoundError
from concierge.models.recommendations import (
    ProviderRecommendation,
    RecommendationResponse,
    RecommendationStats,
)
from concierge.models.service_requests import CreateServiceRequest


def _recommendations(count: int = 2) -> RecommendationResponse:
    names = ["Ace Plumbing", "Bee Plumbing", "Cee Plumbing"][:count]
    return RecommendationResponse(
        recommendations=[
            ProviderRecommendation(
                provider_name=name,
                phone="+18645550100",
                rating=4.8,
                score=90 - i,
                reasoning="Available tomorrow",
            )
            for i, name in enumerate(names)
        ],
        overall_recommendation="Ace Plumbing is the strongest option",
        analysis_notes="",
        stats=RecommendationStats(total_calls=3, qualified_providers=count),
    )


class TestBatchProgress:
    def test_all_final_is_completed(self):
        progress = batch_progress(["completed", "voicemail", "error"])
        assert progress == {
            "status": "completed",
            "stats": {"total": 3, "queued": 0, "inProgress": 0, "completed": 3},
        }

    def test_in_progress_wins_over_queued(self):
        assert batch_progress(["queued", "in_progress", "completed"])["status"] == "in_progress"

    def test_empty_is_queued(self):
        assert batch_progress([])["status"] == "queued"


class TestServiceRequestService:
    @pytest.mark.asyncio
    async def test_create_request(self, test_async_db: AsyncSession) -> None:
        """New requests start PENDING and keep the user's contact preference."""
        service = ServiceRequestService(test_async_db)

        created = await service.create_request(
            CreateServiceRequest(
                title="Fix leaking water heater",
                location="Greenville, SC",
                user_phone="+18645550100",
                preferred_contact="phone",
            )
        )

        assert created.status == "PENDING"
        assert created.preferred_contact == "phone"
        detail = await service.get_request(created.id)
        assert detail.providers == []
        assert detail.interaction_logs == []

    @pytest.mark.asyncio
    async def test_create_request_unknown_user(self, test_async_db: AsyncSession) -> None:
        service = ServiceRequestService(test_async_db)

        with pytest.raises(UserNotFoundError):
            await service.create_request(
                CreateServiceRequest(title="Fix sink", user_id=uuid.uuid4())
            )

    @pytest.mark.asyncio
    async def test_update_status_missing_request(self, test_async_db: AsyncSession) -> None:
        with pytest.raises(ServiceRequestNotFoundError):
            await ServiceRequestService(test_async_db).update_status(
                uuid.uuid4(), RequestStatus.FAILED
            )

    @pytest.mark.asyncio
    async def test_start_batch_queues_providers(self, test_async_db: AsyncSession) -> None:
        """Starting a batch queues every provider and moves the request to CALLING."""
        # Arrange
        service_request = await service_request_crud.create(test_async_db, title="Plumber")
        providers = [
            await provider_crud.create(test_async_db, request_id=service_request.id, name=name)
            for name in ("Ace", "Bee")
        ]
        service = ServiceRequestService(test_async_db)

        # Act
        await service.start_batch(
            str(service_request.id), [str(p.id) for p in providers] + ["task-9"], "batch-1"
        )

        # Assert
        status = await service.get_batch_status(service_request.id)
        assert status["status"] == "queued"
        assert status["stats"]["queued"] == 2
        assert {p["callStatus"] for p in status["providers"]} == {"queued"}

        refreshed = await service_request_crud.get_by_id(test_async_db, service_request.id)
        assert refreshed.status == RequestStatus.CALLING
        logs = await interaction_log_crud.get_by_request(test_async_db, service_request.id)
        assert logs[0].step_name == "Batch Calls Started"
        assert "Queued 3 providers" in logs[0].detail

        await service.finish_batch(str(service_request.id))
        assert refreshed.status == RequestStatus.ANALYZING

    @pytest.mark.asyncio
    async def test_save_recommendations_returns_notification(
        self, test_async_db: AsyncSession
    ) -> None:
        service_request = await service_request_crud.create(
            test_async_db,
            title="Plumber",
            location="Greenville, SC",
            user_phone="+18645550100",
            direct_contact_info={"user_name": "Sam"},
        )
        service = ServiceRequestService(test_async_db)

        params = await service.save_recommendations(str(service_request.id), _recommendations())

        assert params.user_phone == "+18645550100"
        assert params.user_name == "Sam"
        assert params.preferred_contact == "text"
        assert [p.name for p in params.providers] == ["Ace Plumbing", "Bee Plumbing"]

        stored = await service_request_crud.get_by_id(test_async_db, service_request.id)
        assert stored.status == RequestStatus.RECOMMENDED
        assert stored.recommendations["recommendations"][0]["providerName"] == "Ace Plumbing"
        assert stored.recommendations["overallRecommendation"].startswith("Ace Plumbing")

    @pytest.mark.asyncio
    async def test_save_recommendations_without_phone(self, test_async_db: AsyncSession) -> None:
        service_request = await service_request_crud.create(test_async_db, title="Plumber")
        service = ServiceRequestService(test_async_db)

        assert await service.save_recommendations(str(service_request.id), _recommendations()) is None
        assert await service.save_recommendations("task-1", _recommendations()) is None
        assert await service.save_recommendations(str(uuid.uuid4()), _recommendations()) is None
