"""
Router background tasks.

Work handed to FastAPI BackgroundTasks after a route has answered: batch
calls, async bookings, the post-recommendation notification and Vapi
webhook enrichment. Each task opens its own database session because the
request session is closed by the time it runs.

Dependencies: concierge.application.services, concierge.boundary.db, concierge.api.deps
System role: Post-response processing for provider, booking and webhook routes
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from concierge.application.services import (
    CallResultService,
    NotificationService,
    ServiceRequestService,
    UserCallService,
)
from concierge.application.services.booking_service import run_background_booking
from concierge.boundary.db import session_scope
from concierge.boundary.vapi.direct_vapi_client import ENRICHMENT_DELAYS
from concierge.boundary.vapi.vapi_api_client import (
    is_data_complete,
    merge_call_data,
    transform_to_call_result,
)
from concierge.core.calling.webhook_cache import webhook_cache
from concierge.models.bookings import BookingCallRequest
from concierge.models.calls import CallRequest, CallResult
from concierge.models.notifications import TriggerNotificationParams

logger = logging.getLogger(__name__)


async def run_batch_calls_background(
    requests: list[CallRequest],
    service_request_id: str | None,
    max_concurrent: int,
) -> None:
    """
    Run a batch of provider calls queued by POST /providers/batch-call-async.

    Results are persisted per call by the calling service; this task only
    moves the request forward once every call has finished.
    """
    from concierge.api.deps import get_service_cache

    logger.info(
        f"{__name__}:run_batch_calls_background - START",
        extra={"service_request_id": service_request_id, "providers": len(requests)},
    )
    calling_service = get_service_cache().calling_service
    try:
        result = await calling_service.call_providers_batch(requests, max_concurrent=max_concurrent)
        async with session_scope() as session:
            await ServiceRequestService(session).finish_batch(service_request_id)
        logger.info(
            f"{__name__}:run_batch_calls_background - COMPLETE",
            extra={"service_request_id": service_request_id, "stats": result.get("stats")},
        )
    except Exception as e:
        logger.error(
            f"{__name__}:run_batch_calls_background - FAILED - {type(e).__name__}: {e}",
            extra={"service_request_id": service_request_id},
            exc_info=True,
        )
        async with session_scope() as session:
            await ServiceRequestService(session).fail_batch(service_request_id, e)


async def run_booking_background(request: BookingCallRequest) -> None:
    """Place a booking call queued by schedule-async or an SMS selection."""
    from concierge.api.deps import get_service_cache

    cache = get_service_cache()
    await run_background_booking(
        features=cache.settings.features,
        vapi=cache.vapi,
        twilio=cache.twilio,
        kestra=cache.kestra,
        request=request,
    )


async def run_notification_background(params: TriggerNotificationParams) -> None:
    """Tell the user their recommendations are ready."""
    from concierge.api.deps import get_service_cache

    cache = get_service_cache()
    try:
        async with session_scope() as session:
            service = NotificationService(
                db=session,
                features=cache.settings.features,
                user_calls=UserCallService(cache.vapi),
                twilio=cache.twilio,
                kestra=cache.kestra,
                frontend_url=cache.settings.frontend_url,
            )
            result = await service.trigger_user_notification(params)
        logger.info(
            f"{__name__}:run_notification_background - {result.method}",
            extra={"service_request_id": params.service_request_id, "success": result.success},
        )
    except Exception as e:
        logger.error(
            f"{__name__}:run_notification_background - FAILED - {type(e).__name__}: {e}",
            extra={"service_request_id": params.service_request_id},
            exc_info=True,
        )


def webhook_call_result(call: dict[str, Any]) -> CallResult:
    """Partial CallResult from an end-of-call webhook, awaiting enrichment."""
    result = transform_to_call_result(call)
    return result.model_copy(
        update={
            "data_status": "partial",
            "fetched_at": None,
            "webhook_received_at": datetime.now(timezone.utc).isoformat(),
        }
    )


async def persist_webhook_result(result: CallResult, call: dict[str, Any]) -> bool:
    """
    Save an enriched webhook result when the call metadata links it to the DB.

    Returns:
        bool: True if something was written
    """
    metadata = call.get("metadata") or {}
    provider_id = metadata.get("providerId")
    service_request_id = metadata.get("serviceRequestId")
    if not provider_id and not service_request_id:
        logger.debug(
            f"{__name__}:persist_webhook_result - No DB ids in metadata",
            extra={"call_id": result.call_id},
        )
        return False

    # Only the ids are read when saving; skip phone/location validation
    request = CallRequest.model_construct(
        provider_name=metadata.get("providerName") or result.provider.name,
        provider_phone=(call.get("customer") or {}).get("number") or result.provider.phone,
        service_needed=metadata.get("serviceNeeded") or result.provider.service,
        user_criteria=metadata.get("userCriteria") or result.request.criteria,
        location=metadata.get("location") or result.provider.location,
        urgency=metadata.get("urgency") or result.request.urgency,
        service_request_id=service_request_id,
        provider_id=provider_id,
    )
    async with session_scope() as session:
        await CallResultService(session).save_call_result(result, request)
    return True


async def enrich_webhook_call(
    call_id: str,
    get_call: Any,
    delays: tuple[float, ...] = ENRICHMENT_DELAYS,
) -> bool:
    """
    Fetch the full call from the Vapi API and fold it into the cached result.

    Waits before each attempt because Vapi finishes transcripts and analysis
    a few seconds after the webhook fires.

    Args:
        call_id: Vapi call ID
        get_call: Coroutine function returning the raw Vapi call
        delays: Seconds to wait before each attempt

    Returns:
        bool: True if the cache now holds complete data
    """
    webhook_cache.update_fetch_status(call_id, "fetching")

    for attempt, delay in enumerate(delays, start=1):
        await asyncio.sleep(delay)
        try:
            call = await get_call(call_id)
        except Exception as e:
            logger.error(
                f"{__name__}:enrich_webhook_call - Fetch failed",
                extra={"call_id": call_id, "attempt": attempt, "error": str(e)},
            )
            continue

        if not is_data_complete(call):
            logger.warning(
                f"{__name__}:enrich_webhook_call - Incomplete data, will retry",
                extra={"call_id": call_id, "attempt": attempt},
            )
            continue

        existing = webhook_cache.get(call_id)
        enriched = merge_call_data(existing, call) if existing else transform_to_call_result(call)
        webhook_cache.set(call_id, enriched)
        logger.info(
            f"{__name__}:enrich_webhook_call - Enriched",
            extra={"call_id": call_id, "transcript_length": len(enriched.transcript)},
        )
        try:
            await persist_webhook_result(enriched, call)
        except Exception as e:
            logger.error(
                f"{__name__}:enrich_webhook_call - Persist failed - {type(e).__name__}: {e}",
                extra={"call_id": call_id},
                exc_info=True,
            )
        return True

    logger.error(
        f"{__name__}:enrich_webhook_call - Max attempts reached, keeping partial data",
        extra={"call_id": call_id},
    )
    webhook_cache.update_fetch_status(call_id, "fetch_failed", "Max attempts reached")
    return False
