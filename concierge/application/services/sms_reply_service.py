"""
Inbound SMS reply handling.

Users answer the recommendation text with 1, 2 or 3. The reply is matched
to the latest request for the sender's number that still awaits a pick,
recorded as the selection, and turns into a booking call.

Dependencies: concierge.boundary.twilio, concierge.boundary.db.CRUD
System role: Backing service for POST /twilio/webhook
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from concierge.application.services.call_result_service import parse_uuid
from concierge.boundary.db.CRUD.interaction_log_crud import interaction_log_crud
from concierge.boundary.db.CRUD.provider_crud import provider_crud
from concierge.boundary.db.CRUD.service_request_crud import service_request_crud
from concierge.boundary.db.models.interaction_log_model import LogStatus
from concierge.boundary.db.models.service_request_model import (
    RequestStatus,
    ServiceRequestModel,
)
from concierge.boundary.twilio import TwilioClient
from concierge.core.calling.call_mode import CallModeResolver
from concierge.core.phone import normalize_phone_to_e164
from concierge.models.bookings import BookingCallRequest
from concierge.observability.log_utils import log_with_context

logger = logging.getLogger(__name__)

NO_ACTIVE_REQUEST = "Hi! We couldn't find an active request. Visit concierge.ai to start a new search."
STILL_RESEARCHING = "We're still researching providers for you. Please wait for our recommendations."
BOOKING_NOT_STARTED = (
    "Sorry, we couldn't start booking {provider}. Please reply with another option "
    "or contact them directly."
)


@dataclass
class SmsReplyOutcome:
    """What the webhook decided: the text to send back and any booking to start."""

    reply: str
    booking: BookingCallRequest | None = None


def parse_selection(body: str, option_count: int) -> int | None:
    """1-based selection from an SMS body, or None if it is not a valid pick."""
    text = body.strip()
    digits = ""
    for char in text:
        if not char.isdigit():
            break
        digits += char
    if not digits:
        return None
    selection = int(digits)
    return selection if 1 <= selection <= option_count else None


def recommended_options(service_request: ServiceRequestModel) -> list[dict[str, Any]]:
    """Top three recommendations stored on the request."""
    payload = service_request.recommendations or {}
    return list(payload.get("recommendations") or [])[:3]


def already_confirmed_message(service_request: ServiceRequestModel, provider: Any) -> str:
    if service_request.final_outcome:
        message = service_request.final_outcome
    else:
        name = provider.name if provider is not None else "your selected provider"
        message = f"Great news! Your appointment is already confirmed with {name}."
        booking_date = provider.booking_date if provider is not None else None
        booking_time = provider.booking_time if provider is not None else None
        if booking_date or booking_time:
            at = f" at {booking_time}" if booking_time else ""
            message += f" Scheduled for {booking_date or 'TBD'}{at}."
    return f"{message} Thank you for using AI Concierge!"


class SmsReplyService:
    """
    Turns an inbound SMS into a provider selection.

    Args:
        db: Async SQLAlchemy session
        twilio: Twilio client used for replies
        call_mode: Resolver used to redirect the booking call in test mode
    """

    def __init__(
        self,
        db: AsyncSession,
        twilio: TwilioClient,
        call_mode: CallModeResolver,
    ) -> None:
        self.db = db
        self.twilio = twilio
        self.call_mode = call_mode

    async def handle_reply(self, from_phone: str, body: str, message_sid: str) -> SmsReplyOutcome:
        """
        Process one inbound SMS and send the reply.

        Returns:
            SmsReplyOutcome: Reply text plus the booking to schedule, if any
        """
        log_with_context(
            logger,
            logging.INFO,
            f"{__name__}:handle_reply - START",
            from_phone=from_phone,
            body=body[:50],
            message_sid=message_sid,
        )
        outcome = await self._decide(from_phone, body)
        await self.twilio.send_message(from_phone, outcome.reply)
        return outcome

    async def _decide(self, from_phone: str, body: str) -> SmsReplyOutcome:
        service_request = await service_request_crud.find_awaiting_selection(self.db, from_phone)
        if service_request is None:
            completed = await service_request_crud.find_latest_completed(self.db, from_phone)
            if completed is None:
                logger.warning(
                    f"{__name__}:_decide - No pending or completed request",
                    extra={"from": from_phone},
                )
                return SmsReplyOutcome(reply=NO_ACTIVE_REQUEST)
            provider = None
            if completed.selected_provider_id is not None:
                provider = await provider_crud.get_by_id(self.db, completed.selected_provider_id)
            return SmsReplyOutcome(reply=already_confirmed_message(completed, provider))

        options = recommended_options(service_request)
        if not options:
            logger.warning(
                f"{__name__}:_decide - Request has no recommended providers yet",
                extra={"service_request_id": str(service_request.id)},
            )
            return SmsReplyOutcome(reply=STILL_RESEARCHING)

        selection = parse_selection(body, len(options))
        if selection is None:
            listing = "\n".join(
                f"{number}. {option.get('providerName')}"
                for number, option in enumerate(options, start=1)
            )
            return SmsReplyOutcome(
                reply=f"Please reply with 1, 2, or 3 to select a provider:\n\n{listing}"
            )

        return await self._select(service_request, selection, options[selection - 1])

    async def _select(
        self,
        service_request: ServiceRequestModel,
        selection: int,
        option: dict[str, Any],
    ) -> SmsReplyOutcome:
        provider_id = option.get("providerId")
        provider_name = option.get("providerName") or "the provider"
        provider_uuid = parse_uuid(provider_id)
        if provider_uuid is not None and not await provider_crud.exists(self.db, provider_uuid):
            provider_uuid = None

        phone = self.call_mode.booking_phone(normalize_phone_to_e164(option.get("phone")) or "")
        contact = service_request.direct_contact_info or {}
        try:
            booking = BookingCallRequest(
                service_request_id=str(service_request.id),
                provider_id=str(provider_id or ""),
                provider_phone=phone,
                provider_name=provider_name,
                service_description=service_request.title or service_request.description or "service",
                preferred_date=option.get("earliestAvailability") or None,
                customer_name=contact.get("user_name") or "Customer",
                customer_phone=normalize_phone_to_e164(service_request.user_phone),
                location=service_request.location or "",
            )
        except ValueError as e:
            # Request stays RECOMMENDED so the user can pick again
            logger.error(
                f"{__name__}:_select - Cannot build booking call: {e}",
                extra={"service_request_id": str(service_request.id), "phone": phone},
            )
            await interaction_log_crud.add_log(
                self.db,
                request_id=service_request.id,
                step_name="Booking Not Started",
                detail=f"User selected {provider_name} but no valid phone number is on file",
                status=LogStatus.WARNING,
            )
            await self.db.commit()
            return SmsReplyOutcome(reply=BOOKING_NOT_STARTED.format(provider=provider_name))

        await service_request_crud.update_status(
            self.db,
            service_request.id,
            RequestStatus.BOOKING,
            user_selection=selection,
            selected_provider_id=provider_uuid,
        )
        await interaction_log_crud.add_log(
            self.db,
            request_id=service_request.id,
            step_name="User Selection via SMS",
            detail=f'User replied "{selection}" to select {provider_name}',
            status=LogStatus.SUCCESS,
        )
        await interaction_log_crud.add_log(
            self.db,
            request_id=service_request.id,
            step_name="Booking Auto-Triggered",
            detail=(
                f"Booking automatically triggered for {provider_name} via SMS selection "
                f"(phone: {phone})"
            ),
            status=LogStatus.INFO,
        )
        await self.db.commit()

        logger.info(
            f"{__name__}:_select - User selected provider",
            extra={
                "service_request_id": str(service_request.id),
                "selection": selection,
                "provider": provider_name,
            },
        )
        return SmsReplyOutcome(
            reply=(
                f"Great choice! I'm booking {provider_name} for you now. "
                "You'll receive a confirmation shortly."
            ),
            booking=booking,
        )
