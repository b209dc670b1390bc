"""
Twilio inbound SMS endpoints.

Routes:
- POST /twilio/webhook - Inbound SMS (provider selection replies)
- GET /twilio/status - Whether the webhook can reply

Twilio expects TwiML back, so every answer is an empty <Response/> document;
replies are sent through the REST API instead.

Dependencies: concierge.application.services.sms_reply_service
System role: Twilio callback HTTP API
"""

import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Form
from fastapi.responses import Response

from concierge.api.deps import get_sms_reply_service, get_twilio_client
from concierge.api.routers.router_utils import run_booking_background
from concierge.application.services import SmsReplyService
from concierge.boundary.twilio import TwilioClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/twilio", tags=["twilio"])

EMPTY_TWIML = "<Response></Response>"


def twiml_response(status_code: int = 200) -> Response:
    return Response(content=EMPTY_TWIML, media_type="text/xml", status_code=status_code)


@router.post("/webhook")
async def receive_sms(
    background_tasks: BackgroundTasks,
    message_sid: str | None = Form(default=None, alias="MessageSid"),
    from_phone: str | None = Form(default=None, alias="From"),
    to_phone: str | None = Form(default=None, alias="To"),
    body: str | None = Form(default=None, alias="Body"),
    sms_reply_service: SmsReplyService = Depends(get_sms_reply_service),
) -> Response:
    """
    Handle a user's SMS reply to the recommendations text.

    A valid pick records the selection and books the provider in the
    background.
    """
    if not message_sid or not from_phone or not to_phone or body is None:
        logger.warning(
            f"{__name__}:receive_sms - Invalid payload",
            extra={"message_sid": message_sid, "from": from_phone},
        )
        return twiml_response(400)

    try:
        outcome = await sms_reply_service.handle_reply(from_phone, body, message_sid)
    except Exception as e:
        logger.error(
            f"{__name__}:receive_sms - FAILED - {type(e).__name__}: {e}",
            extra={"message_sid": message_sid},
            exc_info=True,
        )
        return twiml_response(500)

    if outcome.booking is not None:
        background_tasks.add_task(run_booking_background, outcome.booking)
    return twiml_response()


@router.get("/status")
async def twilio_status(twilio: TwilioClient = Depends(get_twilio_client)) -> dict[str, Any]:
    configured = twilio.is_configured()
    return {"twilioConfigured": configured, "webhookReady": configured}
