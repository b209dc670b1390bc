"""
Provider API endpoints.

Routes:
- POST /providers/call - Call (or simulate) one provider
- GET /providers/call/status - Active calling path and its dependencies
- POST /providers/batch-call - Call several providers and wait for results
- POST /providers/batch-call-async - Queue a batch and return immediately (202)
- GET /providers/batch-status/{service_request_id} - Progress of a queued batch
- POST /providers/recommend - Score call results and pick the top providers
- POST /providers/book - Book an appointment with a vetted provider

Dependencies: concierge.core.calling, concierge.core.recommendation, concierge.application.services
System role: Provider calling HTTP API
"""

import logging
import uuid
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import ValidationError as PydanticValidationError

from concierge.api.deps import (
    get_booking_service,
    get_calling_service,
    get_kestra_client,
    get_recommendation_service,
    get_service_request_service,
    get_settings_dependency,
)
from concierge.api.routers.error_handling import handle_api_errors, success_response
from concierge.api.routers.router_utils import (
    run_batch_calls_background,
    run_notification_background,
)
from concierge.application.services import BookingService, ServiceRequestService
from concierge.boundary.kestra import KestraClient
from concierge.configs import Settings
from concierge.core.calling.provider_calling import ProviderCallingService
from concierge.core.recommendation.recommendation_service import RecommendationService
from concierge.models.bookings import BookProviderRequest
from concierge.models.calls import BatchCallRequest, CallRequest
from concierge.models.recommendations import RecommendationRequest, RecommendationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers", tags=["providers"])


@router.post("/call")
@handle_api_errors
async def call_provider(
    request: CallRequest,
    calling_service: ProviderCallingService = Depends(get_calling_service),
):
    """
    Call a single provider.

    Returns:
        {success, data: CallResult}

    Raises:
        503: Kestra enabled but unreachable
    """
    result = await calling_service.call_provider(request)
    return success_response(result.to_api())


@router.get("/call/status")
@handle_api_errors
async def call_status(
    calling_service: ProviderCallingService = Depends(get_calling_service),
):
    return await calling_service.get_system_status()


@router.post("/batch-call")
@handle_api_errors
async def batch_call(
    request: BatchCallRequest,
    calling_service: ProviderCallingService = Depends(get_calling_service),
):
    """Call every provider in the batch and wait for all results."""
    result = await calling_service.call_providers_batch(
        request.to_call_requests(),
        max_concurrent=request.max_concurrent,
    )
    result["results"] = [r.to_api() for r in result["results"]]
    return success_response(result)


@router.post("/batch-call-async")
@handle_api_errors
async def batch_call_async(
    request: BatchCallRequest,
    background_tasks: BackgroundTasks,
    service_request_service: ServiceRequestService = Depends(get_service_request_service),
):
    """
    Queue a batch of calls and return 202 right away.

    Providers are marked queued and the request moves to CALLING; progress
    is read back from GET /providers/batch-status/{id}.
    """
    execution_id = str(uuid.uuid4())
    calls = request.to_call_requests()

    await service_request_service.start_batch(
        request.service_request_id,
        [p.id for p in request.providers],
        execution_id,
    )
    background_tasks.add_task(
        run_batch_calls_background,
        calls,
        request.service_request_id,
        request.max_concurrent,
    )
    logger.info(
        f"{__name__}:batch_call_async - Accepted",
        extra={"execution_id": execution_id, "providers": len(calls)},
    )
    return success_response(
        {
            "executionId": execution_id,
            "status": "accepted",
            "providersQueued": len(calls),
            "message": f"Batch call started for {len(calls)} providers",
            "statusUrl": f"/api/v1/providers/batch-status/{request.service_request_id}",
        },
        status_code=202,
    )


@router.get("/batch-status/{service_request_id}")
@handle_api_errors
async def batch_status(
    service_request_id: UUID,
    service_request_service: ServiceRequestService = Depends(get_service_request_service),
):
    progress = await service_request_service.get_batch_status(service_request_id)
    return success_response(progress)


@router.post("/recommend")
@handle_api_errors
async def recommend_providers(
    request: RecommendationRequest,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings_dependency),
    kestra: KestraClient = Depends(get_kestra_client),
    recommendation_service: RecommendationService = Depends(get_recommendation_service),
    service_request_service: ServiceRequestService = Depends(get_service_request_service),
):
    """
    Rank screened providers.

    Uses the recommend_providers Kestra flow when Kestra is enabled and
    healthy, falling back to direct scoring if the flow fails. Stored
    recommendations trigger the user notification in the background.
    """
    kestra_healthy = settings.features.kestra_enabled and await kestra.health_check()
    logger.info(
        f"{__name__}:recommend_providers - Routing",
        extra={"kestra_enabled": settings.features.kestra_enabled, "kestra_healthy": kestra_healthy},
    )

    response: RecommendationResponse | None = None
    extra: dict = {"method": "direct_gemini"}
    if kestra_healthy:
        flow = await kestra.trigger_recommend_providers_flow(
            [r.to_api() for r in request.call_results],
            request.original_criteria,
            request.service_request_id,
        )
        if flow["success"]:
            try:
                response = RecommendationResponse.model_validate(flow["recommendations"])
                extra = {"method": "kestra", "executionId": flow["executionId"]}
            except PydanticValidationError as e:
                logger.warning(
                    f"{__name__}:recommend_providers - Unexpected Kestra output, falling back to direct",
                    extra={"error": str(e)},
                )
        else:
            logger.warning(
                f"{__name__}:recommend_providers - Kestra flow failed, falling back to direct",
                extra={"error": flow["error"]},
            )

    if response is None:
        response = await recommendation_service.generate_recommendations(request)

    notification = await service_request_service.save_recommendations(
        request.service_request_id, response
    )
    if notification is not None:
        background_tasks.add_task(run_notification_background, notification)

    return success_response(response.to_api(), **extra)


@router.post("/book")
@handle_api_errors
async def book_provider(
    request: BookProviderRequest,
    booking_service: BookingService = Depends(get_booking_service),
):
    """
    Book synchronously: simulated in simulation mode, otherwise a real call
    that waits for the provider to confirm.
    """
    outcome = await booking_service.book(request.to_booking_call())
    data = outcome.to_api()
    data.pop("method", None)
    return success_response(data, method=outcome.method)
