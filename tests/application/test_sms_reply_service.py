"""Tests for SMS reply handling (selection by replying 1, 2 or 3)."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.application.services.sms_reply_service import (
    BOOKING_NOT_STARTED,
    NO_ACTIVE_REQUEST,
    STILL_RESEARCHING,
    SmsReplyService,
    parse_selection,
)
from concierge.boundary.db.CRUD import interaction_log_crud, provider_crud, service_request_crud
from concierge.boundary.db.models import LogStatus, RequestStatus
from concierge.core.calling.call_mode import CallModeResolver
from concierge.models.notifications import SmsResult

USER_PHONE = "+18645550100"


@pytest.fixture
def twilio():
    client = MagicMock()
    client.send_message = AsyncMock(return_value=SmsResult(success=True, message_sid="SM-reply"))
    return client


@pytest.fixture
def service(test_async_db: AsyncSession, live_features, twilio):
    return SmsReplyService(test_async_db, twilio, CallModeResolver(live_features))


@pytest.fixture
async def awaiting_request(test_async_db: AsyncSession):
    service_request = await service_request_crud.create(
        test_async_db,
        title="Fix leaking water heater",
        location="Greenville, SC",
        status=RequestStatus.RECOMMENDED,
        user_phone=USER_PHONE,
        direct_contact_info={"user_name": "Sam"},
    )
    provider = await provider_crud.create(
        test_async_db, request_id=service_request.id, name="Ace Plumbing", phone="+18645550111"
    )
    service_request = await service_request_crud.update_by_id(
        test_async_db,
        service_request.id,
        recommendations={
            "recommendations": [
                {
                    "providerId": str(provider.id),
                    "providerName": "Ace Plumbing",
                    "phone": "864-555-0111",
                    "earliestAvailability": "Tomorrow 9am",
                },
                {"providerId": "task-2", "providerName": "Bee Plumbing", "phone": "+18645550112"},
            ]
        },
    )
    await test_async_db.commit()
    return service_request, provider


@pytest.mark.parametrize(
    ("body", "count", "expected"),
    [("1", 3, 1), (" 2 please", 3, 2), ("3", 2, None), ("0", 3, None), ("yes", 3, None)],
)
def test_parse_selection(body, count, expected):
    assert parse_selection(body, count) == expected


@pytest.mark.asyncio
async def test_selection_triggers_booking(
    test_async_db: AsyncSession, service, twilio, awaiting_request
) -> None:
    """Replying 1 selects the top provider and produces the booking call."""
    # Arrange
    service_request, provider = awaiting_request

    # Act
    outcome = await service.handle_reply(USER_PHONE, "1", "SM-in")

    # Assert
    assert outcome.reply.startswith("Great choice! I'm booking Ace Plumbing")
    assert outcome.booking.provider_phone == "+18645550111"
    assert outcome.booking.customer_name == "Sam"
    assert outcome.booking.preferred_date == "Tomorrow 9am"
    twilio.send_message.assert_awaited_once_with(USER_PHONE, outcome.reply)

    stored = await service_request_crud.get_by_id(test_async_db, service_request.id)
    assert stored.status == RequestStatus.BOOKING
    assert stored.user_selection == 1
    assert stored.selected_provider_id == provider.id
    steps = [log.step_name for log in await interaction_log_crud.get_by_request(test_async_db, service_request.id)]
    assert steps == ["User Selection via SMS", "Booking Auto-Triggered"]


@pytest.mark.asyncio
async def test_selection_of_unsaved_provider(
    test_async_db: AsyncSession, service, awaiting_request
) -> None:
    service_request, _ = awaiting_request

    outcome = await service.handle_reply(USER_PHONE, "2", "SM-in")

    assert outcome.booking.provider_name == "Bee Plumbing"
    stored = await service_request_crud.get_by_id(test_async_db, service_request.id)
    assert stored.selected_provider_id is None
    assert stored.user_selection == 2


@pytest.mark.asyncio
async def test_invalid_reply_lists_options(service, awaiting_request) -> None:
    outcome = await service.handle_reply(USER_PHONE, "which one?", "SM-in")

    assert outcome.booking is None
    assert outcome.reply == (
        "Please reply with 1, 2, or 3 to select a provider:\n\n1. Ace Plumbing\n2. Bee Plumbing"
    )


@pytest.mark.asyncio
async def test_unknown_sender(service, twilio) -> None:
    outcome = await service.handle_reply("+18645550199", "1", "SM-in")

    assert outcome.reply == NO_ACTIVE_REQUEST
    twilio.send_message.assert_awaited_once_with("+18645550199", NO_ACTIVE_REQUEST)


@pytest.mark.asyncio
async def test_completed_request_reports_confirmation(test_async_db: AsyncSession, service) -> None:
    await service_request_crud.create(
        test_async_db,
        title="Plumber",
        status=RequestStatus.COMPLETED,
        user_phone=USER_PHONE,
        final_outcome="Appointment confirmed with Ace Plumbing for Tuesday at 2PM",
    )

    outcome = await service.handle_reply(USER_PHONE, "1", "SM-in")

    assert outcome.reply == (
        "Appointment confirmed with Ace Plumbing for Tuesday at 2PM Thank you for using AI Concierge!"
    )


@pytest.mark.asyncio
async def test_request_without_options(test_async_db: AsyncSession, service) -> None:
    await service_request_crud.create(
        test_async_db,
        title="Plumber",
        status=RequestStatus.ANALYZING,
        user_phone=USER_PHONE,
        recommendations={"recommendations": []},
    )

    outcome = await service.handle_reply(USER_PHONE, "1", "SM-in")

    assert outcome.reply == STILL_RESEARCHING


@pytest.mark.asyncio
async def test_unusable_phone_keeps_request_recommended(
    test_async_db: AsyncSession, simulated_features, twilio
) -> None:
    """A stored phone that cannot be dialled must not leave the request stuck in BOOKING."""
    # Arrange
    service_request = await service_request_crud.create(
        test_async_db,
        title="Plumber",
        status=RequestStatus.RECOMMENDED,
        user_phone=USER_PHONE,
        recommendations={
            "recommendations": [{"providerId": "task-1", "providerName": "Ace", "phone": "unknown"}]
        },
    )
    await test_async_db.commit()
    service = SmsReplyService(test_async_db, twilio, CallModeResolver(simulated_features))

    # Act
    outcome = await service.handle_reply(USER_PHONE, "1", "SM-in")

    # Assert
    assert outcome.booking is None
    assert outcome.reply == BOOKING_NOT_STARTED.format(provider="Ace")
    twilio.send_message.assert_awaited_once_with(USER_PHONE, outcome.reply)

    stored = await service_request_crud.get_by_id(test_async_db, service_request.id)
    assert stored.status == RequestStatus.RECOMMENDED
    assert stored.user_selection is None
    logs = await interaction_log_crud.get_by_request(test_async_db, service_request.id)
    assert [(log.step_name, log.status) for log in logs] == [("Booking Not Started", LogStatus.WARNING)]
