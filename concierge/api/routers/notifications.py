"""
Notification API endpoints.

Routes:
- POST /notifications/send - Send recommendations to the user (call or SMS)
- GET /notifications/status - Notification channel availability

Dependencies: concierge.application.services.notification_service
System role: User notification HTTP API
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from concierge.api.deps import get_notification_service
from concierge.api.routers.error_handling import handle_api_errors, success_response
from concierge.application.services import NotificationService
from concierge.models.notifications import SendNotificationRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("/send")
@handle_api_errors
async def send_notification(
    request: SendNotificationRequest,
    notification_service: NotificationService = Depends(get_notification_service),
):
    """
    Tell the user their recommendations are ready.

    A phone preference places a Vapi call when Vapi is configured; everything
    else goes out as SMS through Kestra or Twilio.
    """
    success, data = await notification_service.send_notification(request)
    logger.info(
        f"{__name__}:send_notification - {data.get('method')}",
        extra={"service_request_id": request.service_request_id, "success": success},
    )
    return JSONResponse(content=jsonable_encoder({"success": success, "data": data}))


@router.get("/status")
@handle_api_errors
async def notification_status(
    notification_service: NotificationService = Depends(get_notification_service),
):
    status = await notification_service.get_status()
    return success_response(status)
