"""
Vapi webhook API endpoints.

Routes:
- POST /vapi/webhook - Receive end-of-call events from Vapi
- GET /vapi/calls/{call_id} - Cached call result (polled by Kestra scripts)
- DELETE /vapi/calls/{call_id} - Drop a cached result
- GET /vapi/cache/stats - Cache contents (debugging)

Dependencies: concierge.core.calling.webhook_cache, concierge.api.routers.router_utils
System role: Vapi callback HTTP API
"""

import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from concierge.api.deps import get_vapi_client
from concierge.api.routers.error_handling import error_response
from concierge.api.routers.router_utils import enrich_webhook_call, webhook_call_result
from concierge.boundary.vapi import DirectVapiClient
from concierge.core.calling.webhook_cache import webhook_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vapi", tags=["vapi"])

END_OF_CALL_EVENTS = ("end-of-call-report", "call-end")


class VapiWebhookMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    call: dict[str, Any] | None = None
    timestamp: str | None = None


class VapiWebhookPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: VapiWebhookMessage


@router.post("/webhook")
async def receive_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    vapi: DirectVapiClient = Depends(get_vapi_client),
) -> JSONResponse:
    """
    Cache an end-of-call result and schedule enrichment from the Vapi API.

    Always answers 200 once the payload parses so Vapi does not retry.
    """
    try:
        payload = VapiWebhookPayload.model_validate(await request.json())
    except (PydanticValidationError, ValueError) as e:
        logger.warning(f"{__name__}:receive_webhook - Invalid payload", extra={"error": str(e)})
        details = e.errors(include_url=False) if isinstance(e, PydanticValidationError) else None
        return error_response(400, "Invalid webhook payload", details)

    message = payload.message
    call_id = (message.call or {}).get("id") or "unknown"
    logger.info(
        f"{__name__}:receive_webhook - Received",
        extra={"type": message.type, "call_id": call_id, "timestamp": message.timestamp},
    )

    if message.type not in END_OF_CALL_EVENTS:
        return JSONResponse(
            content={
                "success": True,
                "message": "Webhook received but not processed (not an end-of-call event)",
                "callId": call_id,
            }
        )

    if not message.call:
        return error_response(400, "Missing call data in webhook payload")

    try:
        result = webhook_call_result(message.call)
        webhook_cache.set(call_id, result)
        logger.info(
            f"{__name__}:receive_webhook - Cached partial result",
            extra={"call_id": call_id, "status": result.status, "duration": result.duration},
        )

        if vapi.is_configured():
            background_tasks.add_task(enrich_webhook_call, call_id, vapi.api.get_call)
        else:
            logger.warning(
                f"{__name__}:receive_webhook - Vapi API not configured, skipping enrichment",
                extra={"call_id": call_id},
            )
            webhook_cache.update_fetch_status(call_id, "complete")
    except Exception as e:
        logger.error(
            f"{__name__}:receive_webhook - FAILED - {type(e).__name__}: {e}",
            extra={"call_id": call_id},
            exc_info=True,
        )
        return JSONResponse(
            content={
                "success": False,
                "message": "Webhook received but processing failed",
                "callId": call_id,
            }
        )

    return JSONResponse(
        content={
            "success": True,
            "message": "Webhook processed and cached, background enrichment triggered",
            "callId": call_id,
        }
    )


@router.get("/calls/{call_id}")
async def get_cached_call(call_id: str) -> JSONResponse:
    result = webhook_cache.get(call_id)
    if result is None:
        logger.debug(f"{__name__}:get_cached_call - Miss", extra={"call_id": call_id})
        return JSONResponse(
            status_code=404,
            content={
                "success": False,
                "error": "Call result not found",
                "message": (
                    f"No cached result found for call ID: {call_id}. "
                    "It may have expired or not been received yet."
                ),
            },
        )
    return JSONResponse(content={"success": True, "data": result.to_api()})


@router.delete("/calls/{call_id}")
async def delete_cached_call(call_id: str) -> dict[str, Any]:
    deleted = webhook_cache.delete(call_id)
    return {
        "success": True,
        "message": (
            f"Call result {call_id} deleted from cache"
            if deleted
            else f"Call result {call_id} not found in cache"
        ),
    }


@router.get("/cache/stats")
async def cache_stats() -> dict[str, Any]:
    """Webhook cache size and entries."""
    return {"success": True, "stats": webhook_cache.get_stats()}
