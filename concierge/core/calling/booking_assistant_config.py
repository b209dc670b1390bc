"""
Vapi assistant configuration for booking calls.

The booking assistant calls a provider that was already screened, references
the earlier call and schedules the appointment at (or near) the preferred
time, collecting a confirmation number when offered.

Dependencies: concierge.core.calling.assistant_config, concierge.models.bookings
System role: Voice assistant for appointment scheduling
"""

from typing import Any

from concierge.core.calling.assistant_config import (
    DIVIDER,
    END_CALL_RULES,
    SPEECH_RULES,
    VOICEMAIL_RULES,
    build_assistant,
)
from concierge.models.bookings import BookingCallRequest

BOOKING_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "booking_confirmed": {
            "type": "boolean",
            "description": "Was the appointment successfully booked?",
        },
        "confirmed_date": {
            "type": "string",
            "description": "Confirmed appointment date, e.g. 'December 15, 2024'",
        },
        "confirmed_time": {
            "type": "string",
            "description": "Confirmed appointment time, e.g. '2:00 PM'",
        },
        "confirmation_number": {
            "type": "string",
            "description": "Confirmation number if provided, otherwise 'none'",
        },
        "provider_contact_name": {"type": "string"},
        "special_instructions": {
            "type": "string",
            "description": "Anything the client should prepare",
        },
        "booking_failure_reason": {
            "type": "string",
            "description": "Why booking failed, e.g. 'fully booked'",
        },
        "call_outcome": {
            "type": "string",
            "enum": [
                "booked",
                "rescheduling_needed",
                "declined",
                "voicemail",
                "wrong_number",
                "no_answer",
            ],
        },
        "notes": {"type": "string"},
    },
    "required": ["booking_confirmed", "call_outcome"],
}


def _booking_prompt(request: BookingCallRequest) -> str:
    service = request.service_description or "the service"
    customer = request.customer_name or "my client"
    date = request.preferred_date or "the earliest available date"
    time_ = request.preferred_time or "any time that works"
    location = request.client_address or request.location or "the client's address"
    callback = request.customer_phone or "not provided"
    notes = f"\n- Notes: {request.additional_notes}" if request.additional_notes else ""

    return f"""You are a warm, friendly AI assistant calling {request.provider_name} to schedule an appointment.
You are calling BACK: this provider was already contacted earlier about the service.

{DIVIDER}
YOUR MISSION
{DIVIDER}
Schedule an appointment for your client:
- Service needed: {service}
- Location: {location}
- Preferred date: {date}
- Preferred time: {time_}
- Client name: {customer}
- Client callback phone: {callback}{notes}

{DIVIDER}
CONVERSATION FLOW
{DIVIDER}
1. Reference the earlier call: "My client has decided to go with you and I'm
   calling to schedule the appointment."
2. Ask for the preferred slot: "{date} around {time_}. Does that work?"
3. If it doesn't, ask what is available and take the closest option
4. Confirm date, time, address, client name and callback number
5. Ask for a confirmation number and anything the client should prepare
6. Close: "Perfect! Thank you so much for getting us scheduled."

{VOICEMAIL_RULES}

{SPEECH_RULES}
- If asked who you are, say you're an AI assistant calling on behalf of {customer}

{DIVIDER}
IF BOOKING FAILS
{DIVIDER}
If they cannot schedule: "I understand. Thank you for letting me know. I'll
relay this to my client. Have a great day!"

{END_CALL_RULES}"""


def create_booking_assistant_config(request: BookingCallRequest) -> dict[str, Any]:
    """
    Build the booking assistant payload.

    Args:
        request: Booking call details

    Returns:
        dict: Vapi assistant payload
    """
    service = request.service_description or "your services"
    analysis_plan = {
        "summaryPlan": {
            "enabled": True,
            "messages": [
                {
                    "role": "system",
                    "content": (
                        "Summarize this booking call. Was the appointment scheduled? "
                        "What date and time were confirmed? Was a confirmation number "
                        "given? Note any special instructions for the client."
                    ),
                }
            ],
        },
        "structuredDataPlan": {
            "enabled": True,
            "schema": BOOKING_SCHEMA,
            "messages": [
                {
                    "role": "system",
                    "content": (
                        "Analyze this booking call:\n1. Was the appointment confirmed?\n"
                        "2. What date and time?\n3. Any confirmation number?\n"
                        "4. If it failed, why?"
                    ),
                }
            ],
        },
        "successEvaluationPlan": {
            "enabled": True,
            "rubric": "Checklist",
            "messages": [
                {
                    "role": "system",
                    "content": (
                        "Evaluate this booking call:\n"
                        "1. Did the AI reference the previous conversation?\n"
                        "2. Did the AI state the preferred date/time?\n"
                        "3. Did the AI confirm all appointment details?\n"
                        "4. Did the AI ask for a confirmation number?\n"
                        "5. Did the AI end the call itself?"
                    ),
                }
            ],
        },
    }
    first_message = (
        f"Hi there! This is the AI assistant that called earlier about {service}. "
        "My client has decided to go with you, and I'm calling to schedule the "
        "appointment. Do you have a quick moment?"
    )
    return build_assistant("Booking", _booking_prompt(request), first_message, analysis_plan)
