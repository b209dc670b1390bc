"""
Booking API endpoints.

Routes:
- POST /bookings/schedule - Book now (Kestra flow or direct Vapi call)
- POST /bookings/schedule-async - Queue a booking and return immediately (202)
- POST /bookings/save-booking-result - Callback for the schedule_service flow
- GET /bookings/status - Booking path availability

Dependencies: concierge.application.services.booking_service
System role: Appointment booking HTTP API
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from concierge.api.deps import get_booking_service
from concierge.api.routers.error_handling import handle_api_errors, success_response
from concierge.api.routers.router_utils import run_booking_background
from concierge.application.services import BookingService
from concierge.models.bookings import (
    BookingCallRequest,
    SaveBookingResultRequest,
    ScheduleAsyncRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/schedule")
@handle_api_errors
async def schedule_booking(
    request: BookingCallRequest,
    booking_service: BookingService = Depends(get_booking_service),
):
    """
    Schedule an appointment with the selected provider.

    Raises:
        503: Kestra enabled but unreachable, or Vapi not configured
    """
    result = await booking_service.schedule(request)
    return success_response(result)


@router.post("/schedule-async")
@handle_api_errors
async def schedule_booking_async(
    request: ScheduleAsyncRequest,
    background_tasks: BackgroundTasks,
    booking_service: BookingService = Depends(get_booking_service),
):
    """Mark the request BOOKING and place the call after responding."""
    queued = await booking_service.start_async_booking(request)
    background_tasks.add_task(run_booking_background, request)
    return success_response(queued, status_code=202)


@router.post("/save-booking-result")
@handle_api_errors
async def save_booking_result(
    request: SaveBookingResultRequest,
    booking_service: BookingService = Depends(get_booking_service),
):
    return await booking_service.save_booking_result(request)


@router.get("/status")
@handle_api_errors
async def booking_status(
    booking_service: BookingService = Depends(get_booking_service),
):
    status = await booking_service.get_status()
    return success_response(status)
