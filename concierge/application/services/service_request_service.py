"""
Service request orchestrator.

Lifecycle operations on a service request: creation, status changes,
batch-call tracking and storing the recommendations that the SMS reply
flow later reads back.

Dependencies: concierge.boundary.db.CRUD, concierge.boundary.db.models
System role: Service request use case orchestration
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from concierge.application.services.call_result_service import parse_uuid
from concierge.boundary.db.CRUD.interaction_log_crud import interaction_log_crud
from concierge.boundary.db.CRUD.provider_crud import provider_crud
from concierge.boundary.db.CRUD.service_request_crud import service_request_crud
from concierge.boundary.db.CRUD.user_crud import user_crud
from concierge.boundary.db.models.interaction_log_model import LogStatus
from concierge.boundary.db.models.service_request_model import (
    RequestStatus,
    RequestType,
    ServiceRequestModel,
)
from concierge.core.exceptions import (
    ServiceRequestNotFoundError,
    UserNotFoundError,
)
from concierge.models.notifications import NotificationProvider, TriggerNotificationParams
from concierge.models.recommendations import RecommendationResponse
from concierge.models.service_requests import (
    CreateServiceRequest,
    InteractionLogResponse,
    ProviderResponse,
    ServiceRequestDetailResponse,
    ServiceRequestResponse,
)

logger = logging.getLogger(__name__)

# Provider call statuses that mean the screening call is over
FINAL_CALL_STATUSES = frozenset({"completed", "failed", "no_answer", "voicemail", "error", "busy"})


def batch_progress(call_statuses: list[str | None]) -> dict[str, Any]:
    """
    Summarize provider call statuses for GET /providers/batch-status.

    Returns:
        dict: {status, stats{total, queued, inProgress, completed}}
    """
    stats = {
        "total": len(call_statuses),
        "queued": sum(1 for s in call_statuses if s == "queued"),
        "inProgress": sum(1 for s in call_statuses if s == "in_progress"),
        "completed": sum(1 for s in call_statuses if s in FINAL_CALL_STATUSES),
    }
    if stats["total"] > 0 and stats["completed"] == stats["total"]:
        status = "completed"
    elif stats["inProgress"] > 0:
        status = "in_progress"
    else:
        status = "queued"
    return {"status": status, "stats": stats}


class ServiceRequestService:
    """Service request orchestrator."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize with an async database session.

        Args:
            db: Async SQLAlchemy session
        """
        self.db = db

    async def _require(self, request_id: UUID) -> ServiceRequestModel:
        service_request = await service_request_crud.get_by_id(self.db, request_id)
        if service_request is None:
            raise ServiceRequestNotFoundError(str(request_id))
        return service_request

    async def create_request(self, payload: CreateServiceRequest) -> ServiceRequestResponse:
        """
        Create a service request in PENDING.

        Raises:
            UserNotFoundError: userId given but no such user
        """
        if payload.user_id is not None and not await user_crud.exists(self.db, payload.user_id):
            raise UserNotFoundError(str(payload.user_id))

        service_request = await service_request_crud.create(
            self.db,
            user_id=payload.user_id,
            type=RequestType(payload.type),
            title=payload.title,
            description=payload.description,
            criteria=payload.criteria,
            location=payload.location,
            status=RequestStatus.PENDING,
            user_phone=payload.user_phone,
            preferred_contact=payload.preferred_contact,
            direct_contact_info=payload.direct_contact_info,
        )
        await self.db.commit()
        logger.info(
            f"{__name__}:create_request - Created",
            extra={"service_request_id": str(service_request.id), "type": payload.type},
        )
        return ServiceRequestResponse.model_validate(service_request, from_attributes=True)

    async def get_request(self, request_id: UUID) -> ServiceRequestDetailResponse:
        """
        Get a request with its providers and timeline.

        Raises:
            ServiceRequestNotFoundError: No request with this ID
        """
        service_request = await self._require(request_id)
        providers = await provider_crud.get_by_request(self.db, request_id)
        logs = await interaction_log_crud.get_by_request(self.db, request_id)

        detail = ServiceRequestDetailResponse.model_validate(service_request, from_attributes=True)
        detail.providers = [
            ProviderResponse.model_validate(p, from_attributes=True) for p in providers
        ]
        detail.interaction_logs = [
            InteractionLogResponse.model_validate(log, from_attributes=True) for log in logs
        ]
        return detail

    async def list_requests(
        self,
        user_id: UUID | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ServiceRequestResponse]:
        if user_id is not None:
            rows = await service_request_crud.get_by_user(self.db, user_id, limit=limit)
        else:
            rows = await service_request_crud.get_all(self.db, limit=limit, offset=offset)
        return [ServiceRequestResponse.model_validate(r, from_attributes=True) for r in rows]

    async def update_status(
        self,
        request_id: UUID,
        status: RequestStatus,
        final_outcome: str | None = None,
    ) -> ServiceRequestResponse:
        """
        Move a request to a new status.

        Raises:
            ServiceRequestNotFoundError: No request with this ID
        """
        fields = {"final_outcome": final_outcome} if final_outcome is not None else {}
        updated = await service_request_crud.update_status(self.db, request_id, status, **fields)
        if updated is None:
            raise ServiceRequestNotFoundError(str(request_id))
        await self.db.commit()
        return ServiceRequestResponse.model_validate(updated, from_attributes=True)

    async def start_batch(
        self,
        service_request_id: str | None,
        provider_ids: list[str | None],
        execution_id: str,
    ) -> None:
        """Queue providers for calling and move the request to CALLING."""
        provider_uuids = [u for u in (parse_uuid(p) for p in provider_ids) if u is not None]
        await provider_crud.set_call_status(self.db, provider_uuids, "queued")

        request_id = parse_uuid(service_request_id)
        if request_id is not None:
            await service_request_crud.update_status(self.db, request_id, RequestStatus.CALLING)
            await interaction_log_crud.add_log(
                self.db,
                request_id=request_id,
                step_name="Batch Calls Started",
                detail=(
                    f"Queued {len(provider_ids)} providers for calling "
                    f"(execution: {execution_id})"
                ),
            )
        await self.db.commit()

    async def finish_batch(self, service_request_id: str | None) -> None:
        """Mark screening calls done so recommendation can start."""
        request_id = parse_uuid(service_request_id)
        if request_id is None:
            return
        await service_request_crud.update_status(self.db, request_id, RequestStatus.ANALYZING)
        await self.db.commit()

    async def fail_batch(self, service_request_id: str | None, error: Exception) -> None:
        request_id = parse_uuid(service_request_id)
        if request_id is None:
            return
        await self.db.rollback()
        await interaction_log_crud.add_log(
            self.db,
            request_id=request_id,
            step_name="Batch Calls Error",
            detail=f"Background processing failed: {error}",
            status=LogStatus.ERROR,
        )
        await self.db.commit()

    async def get_batch_status(self, request_id: UUID) -> dict[str, Any]:
        """Call progress of every provider on a request."""
        providers = await provider_crud.get_by_request(self.db, request_id)
        progress = batch_progress([p.call_status for p in providers])
        progress["providers"] = [
            {
                "id": str(p.id),
                "name": p.name,
                "callStatus": p.call_status,
                "calledAt": p.called_at.isoformat() if p.called_at else None,
            }
            for p in providers
        ]
        return progress

    async def save_recommendations(
        self,
        service_request_id: str,
        response: RecommendationResponse,
    ) -> TriggerNotificationParams | None:
        """
        Store recommendations and move the request to RECOMMENDED.

        Returns:
            TriggerNotificationParams | None: Notification to send, when the
            request has a phone to notify and at least one recommendation
        """
        request_id = parse_uuid(service_request_id)
        if request_id is None:
            return None

        service_request = await service_request_crud.update_status(
            self.db,
            request_id,
            RequestStatus.RECOMMENDED,
            recommendations=response.to_api(),
        )
        if service_request is None:
            logger.warning(
                f"{__name__}:save_recommendations - Request not found",
                extra={"service_request_id": service_request_id},
            )
            await self.db.rollback()
            return None

        await interaction_log_crud.add_log(
            self.db,
            request_id=request_id,
            step_name="Recommendations Generated",
            detail=(
                f"{len(response.recommendations)} providers recommended: "
                f"{response.overall_recommendation}"
            ),
            status=LogStatus.SUCCESS if response.recommendations else LogStatus.WARNING,
        )
        await self.db.commit()

        if not service_request.user_phone or not response.recommendations:
            return None

        contact = service_request.direct_contact_info or {}
        return TriggerNotificationParams(
            service_request_id=service_request_id,
            user_phone=service_request.user_phone,
            user_name=contact.get("user_name"),
            preferred_contact=service_request.preferred_contact or "text",
            service_needed=service_request.title,
            location=service_request.location,
            providers=[
                NotificationProvider(
                    name=r.provider_name,
                    earliest_availability=r.earliest_availability,
                    rating=r.rating,
                    review_count=r.review_count,
                    estimated_rate=r.estimated_rate,
                    reasoning=r.reasoning,
                    score=r.score,
                )
                for r in response.recommendations
            ],
            overall_recommendation=response.overall_recommendation,
        )
