"""
Service request API endpoints.

Routes:
- POST /service-requests - Create a request (PENDING)
- GET /service-requests - List requests, optionally for one user
- GET /service-requests/{id} - Request with providers and timeline
- PATCH /service-requests/{id}/status - Move a request to a new status

Dependencies: concierge.application.services.service_request_service
System role: Service request HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from concierge.api.deps import get_service_request_service
from concierge.api.routers.error_handling import handle_api_errors, success_response
from concierge.application.services import ServiceRequestService
from concierge.boundary.db.models.service_request_model import RequestStatus
from concierge.models.service_requests import CreateServiceRequest, UpdateServiceRequestStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/service-requests", tags=["service-requests"])


@router.post("")
@handle_api_errors
async def create_service_request(
    request: CreateServiceRequest,
    service: ServiceRequestService = Depends(get_service_request_service),
):
    """
    Create a service request.

    Raises:
        404: userId given but no such user
    """
    created = await service.create_request(request)
    return success_response(created.to_api(), status_code=201)


@router.get("")
@handle_api_errors
async def list_service_requests(
    user_id: UUID | None = Query(default=None, alias="userId"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    service: ServiceRequestService = Depends(get_service_request_service),
):
    rows = await service.list_requests(user_id=user_id, limit=limit, offset=offset)
    return success_response([r.to_api() for r in rows], count=len(rows))


@router.get("/{request_id}")
@handle_api_errors
async def get_service_request(
    request_id: UUID,
    service: ServiceRequestService = Depends(get_service_request_service),
):
    detail = await service.get_request(request_id)
    return success_response(detail.to_api())


@router.patch("/{request_id}/status")
@handle_api_errors
async def update_service_request_status(
    request_id: UUID,
    request: UpdateServiceRequestStatus,
    service: ServiceRequestService = Depends(get_service_request_service),
):
    updated = await service.update_status(
        request_id, RequestStatus(request.status), request.final_outcome
    )
    logger.info(
        f"{__name__}:update_service_request_status - {request.status}",
        extra={"service_request_id": str(request_id)},
    )
    return success_response(updated.to_api())
