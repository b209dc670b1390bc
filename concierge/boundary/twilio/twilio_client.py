"""
Twilio SMS client.

Sends messages through the Twilio REST API (form-encoded POST with basic
auth) and formats the two messages the concierge sends: the recommendation
SMS the user replies 1/2/3 to, and the booking confirmation.

Send failures are returned as SmsResult(success=False), never raised, so a
failed text cannot abort the workflow that triggered it.

Dependencies: httpx, concierge.boundary.http_retry
System role: Direct (non-Kestra) SMS path
"""

import logging

import httpx

from concierge.boundary.http_retry import CONNECT_ERRORS, http_retry
from concierge.configs.twilio import TwilioSettings
from concierge.models.notifications import (
    NotificationProvider,
    SmsConfirmation,
    SmsNotification,
    SmsResult,
)
from concierge.observability.log_utils import log_with_context

logger = logging.getLogger(__name__)

SIGNATURE = "- AI Concierge"


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit - 3] + "..."


def format_recommendation_sms(
    user_name: str,
    providers: list[NotificationProvider],
    overall_recommendation: str | None = None,
) -> str:
    """Recommendation SMS featuring the top pick and up to two alternatives."""
    if not providers:
        return (
            f"Hi {user_name}, unfortunately no providers matched your criteria. "
            f"Please try again with different requirements. {SIGNATURE}"
        )

    plural = "s" if len(providers) > 1 else ""
    lines = [
        f"ACTION NEEDED: {user_name}, your AI Concierge found "
        f"{len(providers)} qualified provider{plural}!",
        "",
    ]

    top = providers[0]
    lines.append(f"TOP PICK: {top.name}")
    if top.rating:
        rating_line = f"{'★' * round(top.rating)} {top.rating:.1f}"
        if top.review_count:
            rating_line += f" ({top.review_count} reviews)"
        lines.append(rating_line)
    lines.append(f"Available: {top.earliest_availability or 'Contact for details'}")
    if top.estimated_rate:
        lines.append(f"Est. Rate: {top.estimated_rate}")
    if top.reasoning:
        lines.append(f"Why: {_truncate(top.reasoning, 100)}")

    if len(providers) > 1:
        lines.extend(["", "OTHER OPTIONS:"])
        for number, provider in enumerate(providers[1:3], start=2):
            line = f"{number}. {provider.name}"
            if provider.rating:
                line += f" ({provider.rating:.1f}★)"
            line += f" - {provider.earliest_availability or 'Contact'}"
            lines.append(line)

    if overall_recommendation:
        lines.extend(["", f"AI RECOMMENDATION: {_truncate(overall_recommendation, 120)}"])

    lines.extend(["", "Reply 1, 2, or 3 NOW to book before slots fill up!", "", SIGNATURE])
    return "\n".join(lines)


def format_confirmation_sms(confirmation: SmsConfirmation) -> str:
    greeting = f"Hi {confirmation.user_name}!" if confirmation.user_name else "Hi!"
    lines = [
        f"{greeting} Great news - your appointment is confirmed!",
        "",
        f"Provider: {confirmation.provider_name}",
    ]
    if confirmation.booking_date:
        lines.append(f"Date: {confirmation.booking_date}")
    if confirmation.booking_time:
        lines.append(f"Time: {confirmation.booking_time}")
    if confirmation.confirmation_number:
        lines.append(f"Confirmation #: {confirmation.confirmation_number}")
    lines.extend(["", "We'll send you a reminder before your appointment.", "", SIGNATURE])
    return "\n".join(lines)


class TwilioClient:
    """
    Async Twilio messaging client.

    Args:
        settings: Account SID, auth token and sending number
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        settings: TwilioSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    def is_configured(self) -> bool:
        return self.settings.is_configured

    @http_retry("twilio_send", retry_on=CONNECT_ERRORS)
    async def _create_message(self, to: str, body: str) -> dict:
        async with httpx.AsyncClient(
            base_url=self.settings.base_url,
            auth=(self.settings.account_sid, self.settings.auth_token),
            timeout=15.0,
            transport=self._transport,
        ) as client:
            response = await client.post(
                f"/2010-04-01/Accounts/{self.settings.account_sid}/Messages.json",
                data={"To": to, "From": self.settings.phone_number, "Body": body},
            )
            response.raise_for_status()
            return response.json()

    async def send_message(self, to: str, body: str) -> SmsResult:
        """Send a raw SMS."""
        if not self.is_configured():
            logger.warning(f"{__name__}:send_message - Twilio not configured, skipping SMS")
            return SmsResult(success=False, error="Twilio not configured")

        try:
            message = await self._create_message(to, body)
        except httpx.HTTPStatusError as e:
            error = e.response.text or str(e)
            logger.error(
                f"{__name__}:send_message - FAILED status={e.response.status_code}",
                extra={"to": to, "error": error},
            )
            return SmsResult(success=False, error=error)
        except httpx.HTTPError as e:
            logger.error(
                f"{__name__}:send_message - FAILED {type(e).__name__}: {e}",
                extra={"to": to},
            )
            return SmsResult(success=False, error=str(e))

        log_with_context(
            logger,
            logging.INFO,
            f"{__name__}:send_message - SMS sent",
            to=to,
            message_sid=message.get("sid"),
            status=message.get("status"),
        )
        return SmsResult(
            success=True,
            message_sid=message.get("sid"),
            message_status=message.get("status"),
        )

    async def send_notification(self, notification: SmsNotification) -> SmsResult:
        """Send the recommendation SMS."""
        body = format_recommendation_sms(
            notification.user_name or "Customer",
            notification.providers,
            notification.overall_recommendation,
        )
        return await self.send_message(notification.user_phone, body)

    async def send_confirmation(self, confirmation: SmsConfirmation) -> SmsResult:
        """Send the booking confirmation SMS."""
        return await self.send_message(
            confirmation.user_phone, format_confirmation_sms(confirmation)
        )
