"""
User notification service.

Tells the user their recommendations are ready, either with an outbound
Vapi call that can capture their pick on the spot, or with an SMS they
answer by replying 1, 2 or 3. Phone notifications fall back to SMS.

Dependencies: concierge.boundary.vapi, concierge.boundary.twilio,
              concierge.boundary.kestra, concierge.boundary.db.CRUD
System role: Notification use cases (POST /notifications/send and the
             automatic notification after recommendations)
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from concierge.application.services.call_result_service import parse_uuid
from concierge.boundary.db.CRUD.interaction_log_crud import interaction_log_crud
from concierge.boundary.db.CRUD.service_request_crud import service_request_crud
from concierge.boundary.db.models.interaction_log_model import LogStatus
from concierge.boundary.kestra import KestraClient
from concierge.boundary.twilio import TwilioClient
from concierge.boundary.vapi.direct_vapi_client import DirectVapiClient
from concierge.boundary.vapi.vapi_api_client import get_transcript
from concierge.configs.features import FeatureSettings
from concierge.core.calling.user_notification_assistant_config import (
    create_user_notification_assistant_config,
)
from concierge.core.exceptions import ExternalServiceError, OrchestrationUnavailableError
from concierge.models.notifications import (
    NotificationProvider,
    RecommendationOption,
    SendNotificationRequest,
    SmsNotification,
    TriggerNotificationParams,
    TriggerNotificationResult,
    UserCallResult,
    UserNotificationRequest,
)

logger = logging.getLogger(__name__)

USER_CALL_POLL_INTERVAL = 5.0
USER_CALL_MAX_ATTEMPTS = 36


def user_call_outcome(call: dict[str, Any]) -> tuple[str, int | None]:
    """
    Classify a finished notification call.

    Returns:
        tuple: (outcome, selected option 1-3 or None)
    """
    structured = (call.get("analysis") or {}).get("structuredData") or {}
    selected = structured.get("selected_provider")
    if isinstance(selected, int) and 1 <= selected <= 3:
        return "selected", selected
    if call.get("endedReason") == "voicemail":
        return "voicemail", None
    if call.get("endedReason") == "no-answer" or call.get("status") == "no-answer":
        return "no_answer", None
    return "no_selection", None


def to_recommendation_options(providers: list[NotificationProvider]) -> list[RecommendationOption]:
    return [
        RecommendationOption(
            rank=rank,
            provider_name=provider.name,
            availability=provider.earliest_availability,
            rating=provider.rating,
            review_count=provider.review_count,
            estimated_rate=provider.estimated_rate,
            score=provider.score,
            reasoning=provider.reasoning,
        )
        for rank, provider in enumerate(providers, start=1)
    ]


class UserCallService:
    """
    Calls the user to present recommendations.

    Args:
        vapi: Direct Vapi client (call creation and polling)
        poll_interval: Seconds between status polls
        max_attempts: Poll limit (36 x 5s = 3 minutes)
    """

    def __init__(
        self,
        vapi: DirectVapiClient,
        poll_interval: float = USER_CALL_POLL_INTERVAL,
        max_attempts: int = USER_CALL_MAX_ATTEMPTS,
    ) -> None:
        self.vapi = vapi
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    def is_available(self) -> bool:
        return self.vapi.is_configured()

    async def call_user(self, request: UserNotificationRequest) -> UserCallResult:
        """
        Place the notification call and wait for the user's choice.

        Never raises: failures come back as outcome "error".
        """
        if not self.is_available():
            return UserCallResult(
                success=False,
                call_outcome="error",
                error="VAPI not configured for user notification calls",
            )

        call_id = None
        try:
            logger.info(
                f"{__name__}:call_user - START",
                extra={"service_request_id": request.service_request_id},
            )
            call = await self.vapi.create_call(
                request.user_phone,
                request.user_name or "Customer",
                create_user_notification_assistant_config(request),
                metadata={"serviceRequestId": request.service_request_id, "kind": "user_notification"},
            )
            call_id = call["id"]

            finished = await self.vapi.wait_for_call_end(
                call_id,
                max_attempts=self.max_attempts,
                poll_interval=self.poll_interval,
            )
            if finished is None:
                logger.warning(f"{__name__}:call_user - Timed out call_id={call_id}")
                return UserCallResult(
                    success=False,
                    call_id=call_id,
                    call_outcome="no_answer",
                    error="Call timed out waiting for completion",
                )

            outcome, selected = user_call_outcome(finished)
            logger.info(
                f"{__name__}:call_user - END call_id={call_id} outcome={outcome}",
                extra={"selected_provider": selected},
            )
            return UserCallResult(
                success=outcome == "selected",
                call_id=call_id,
                selected_provider=selected,
                call_outcome=outcome,
                transcript=get_transcript(finished),
            )
        except Exception as e:
            logger.error(
                f"{__name__}:call_user - FAILED - {type(e).__name__}: {e}",
                exc_info=True,
            )
            return UserCallResult(success=False, call_id=call_id, call_outcome="error", error=str(e))


class NotificationService:
    """
    Notification use cases.

    Args:
        db: Async SQLAlchemy session
        features: Feature flags (Kestra routing)
        user_calls: Outbound user call service
        twilio: Twilio SMS client
        kestra: Kestra client (notify_user flow)
        frontend_url: Web app URL for request links
    """

    def __init__(
        self,
        db: AsyncSession,
        features: FeatureSettings,
        user_calls: UserCallService,
        twilio: TwilioClient,
        kestra: KestraClient,
        frontend_url: str = "http://localhost:3000",
    ) -> None:
        self.db = db
        self.features = features
        self.user_calls = user_calls
        self.twilio = twilio
        self.kestra = kestra
        self.frontend_url = frontend_url.rstrip("/")

    async def _record_notification(
        self,
        request_id: UUID,
        method: str,
        **fields,
    ) -> None:
        await service_request_crud.update_by_id(
            self.db,
            request_id,
            notification_sent_at=datetime.now(timezone.utc),
            notification_method=method,
            **fields,
        )

    async def trigger_user_notification(
        self,
        params: TriggerNotificationParams,
    ) -> TriggerNotificationResult:
        """
        Notify the user once per request, by phone or SMS as they prefer.

        Returns:
            TriggerNotificationResult: method is already_sent when a notification
            went out before, skipped when there is nothing or no way to send
        """
        request_id = parse_uuid(params.service_request_id)
        if request_id is None:
            return TriggerNotificationResult(
                success=False, method="skipped", error="Invalid service request ID"
            )

        service_request = await service_request_crud.get_by_id(self.db, request_id)
        if service_request is None:
            return TriggerNotificationResult(
                success=False, method="skipped", error="Failed to fetch service request"
            )
        if service_request.notification_sent_at is not None:
            logger.info(
                f"{__name__}:trigger_user_notification - Already sent, skipping",
                extra={
                    "service_request_id": params.service_request_id,
                    "method": service_request.notification_method,
                },
            )
            return TriggerNotificationResult(success=True, method="already_sent")
        if not params.providers:
            logger.warning(
                f"{__name__}:trigger_user_notification - No providers, skipping",
                extra={"service_request_id": params.service_request_id},
            )
            return TriggerNotificationResult(
                success=False, method="skipped", error="No providers to recommend"
            )

        if params.preferred_contact == "phone":
            result = await self._notify_by_phone(params)
        else:
            result = await self._notify_by_sms(params)

        if result.success:
            await self._record_notification(
                request_id,
                result.method,
                **({"sms_message_sid": result.message_sid} if result.message_sid else {}),
            )
            await self.db.commit()
            logger.info(
                f"{__name__}:trigger_user_notification - Notification recorded",
                extra={"service_request_id": params.service_request_id, "method": result.method},
            )
        return result

    async def _notify_by_phone(self, params: TriggerNotificationParams) -> TriggerNotificationResult:
        if not self.user_calls.is_available():
            logger.warning(f"{__name__}:_notify_by_phone - Vapi unavailable, falling back to SMS")
            return await self._notify_by_sms(params)

        call = await self.user_calls.call_user(
            UserNotificationRequest(
                user_phone=params.user_phone,
                user_name=params.user_name,
                service_request_id=params.service_request_id,
                service_needed=params.service_needed or "Service Request",
                location=params.location or "",
                recommendations=to_recommendation_options(params.providers),
                overall_recommendation=params.overall_recommendation,
            )
        )
        if call.success:
            return TriggerNotificationResult(success=True, method="vapi", call_id=call.call_id)

        logger.warning(
            f"{__name__}:_notify_by_phone - Call failed ({call.call_outcome}), falling back to SMS",
            extra={"error": call.error},
        )
        return await self._notify_by_sms(params)

    async def _notify_by_sms(self, params: TriggerNotificationParams) -> TriggerNotificationResult:
        if not self.twilio.is_configured():
            logger.warning(f"{__name__}:_notify_by_sms - Twilio not configured, skipping")
            return TriggerNotificationResult(
                success=False, method="skipped", error="Twilio not configured"
            )

        sms = await self.twilio.send_notification(
            SmsNotification(
                user_phone=params.user_phone,
                user_name=params.user_name,
                request_url=f"{self.frontend_url}/request/{params.service_request_id}",
                providers=params.providers,
                overall_recommendation=params.overall_recommendation,
            )
        )
        return TriggerNotificationResult(
            success=sms.success,
            method="sms",
            message_sid=sms.message_sid,
            error=sms.error,
        )

    async def send_notification(self, request: SendNotificationRequest) -> tuple[bool, dict[str, Any]]:
        """
        Explicit notification from POST /notifications/send.

        Returns:
            tuple: (success flag, response data)

        Raises:
            OrchestrationUnavailableError: Kestra enabled but unhealthy
            ExternalServiceError: Twilio or the notify_user flow failed
        """
        if request.preferred_contact == "phone" and self.user_calls.is_available():
            return await self._send_by_phone(request)

        kestra_healthy = False
        if self.features.kestra_enabled:
            kestra_healthy = await self.kestra.health_check()
            if not kestra_healthy:
                logger.error(f"{__name__}:send_notification - Kestra unavailable, not falling back")
                raise OrchestrationUnavailableError(self.kestra.url)

        if kestra_healthy:
            flow = await self.kestra.trigger_notify_user_flow(
                request.user_phone,
                [provider.to_api() for provider in request.providers],
                user_name=request.user_name,
                request_url=request.request_url,
            )
            if not flow["success"]:
                raise ExternalServiceError(
                    flow["error"] or "Failed to send notification", service="kestra"
                )
            return True, {
                "notificationSent": True,
                "executionId": flow["executionId"],
                "method": "kestra",
            }

        if not self.twilio.is_configured():
            logger.warning(f"{__name__}:send_notification - Twilio not configured, skipping SMS")
            return True, {
                "notificationSent": False,
                "method": "skipped",
                "reason": "Neither Kestra nor Twilio available",
            }

        sms = await self.twilio.send_notification(
            SmsNotification(
                user_phone=request.user_phone,
                user_name=request.user_name,
                request_url=request.request_url,
                providers=request.providers,
                overall_recommendation=request.overall_recommendation,
            )
        )
        if not sms.success:
            raise ExternalServiceError(
                sms.error or "Failed to send notification via Twilio", service="twilio"
            )

        request_id = parse_uuid(request.service_request_id)
        if request_id is not None:
            await self._record_notification(request_id, "sms", sms_message_sid=sms.message_sid)
            await self.db.commit()
        return True, {
            "notificationSent": True,
            "messageSid": sms.message_sid,
            "method": "direct_twilio",
        }

    async def _send_by_phone(self, request: SendNotificationRequest) -> tuple[bool, dict[str, Any]]:
        call = await self.user_calls.call_user(
            UserNotificationRequest(
                user_phone=request.user_phone,
                user_name=request.user_name,
                service_request_id=request.service_request_id,
                service_needed=request.service_needed or "service",
                location=request.location or "",
                request_url=request.request_url,
                recommendations=to_recommendation_options(request.providers),
                overall_recommendation=request.overall_recommendation,
            )
        )

        request_id = parse_uuid(request.service_request_id)
        if request_id is not None:
            await self._record_notification(
                request_id, "vapi", user_selection=call.selected_provider
            )
            selection = (
                f" - selected provider {call.selected_provider}" if call.selected_provider else ""
            )
            await interaction_log_crud.add_log(
                self.db,
                request_id=request_id,
                step_name="User Notification via Phone",
                detail=f"VAPI call {call.call_id}: {call.call_outcome}{selection}",
                status=LogStatus.SUCCESS if call.success else LogStatus.ERROR,
            )
            await self.db.commit()

        return call.success, {
            "notificationSent": True,
            "callId": call.call_id,
            "selectedProvider": call.selected_provider,
            "callOutcome": call.call_outcome,
            "method": "vapi_call",
        }

    async def get_status(self) -> dict[str, Any]:
        kestra_enabled = self.features.kestra_enabled
        return {
            "kestraEnabled": kestra_enabled,
            "kestraHealthy": await self.kestra.health_check() if kestra_enabled else False,
            "twilioConfigured": self.twilio.is_configured(),
            "vapiConfigured": self.user_calls.is_available(),
        }
