"""
Vapi assistant configuration for provider calls.

Builds the transient assistant payload sent with every outbound call. Three
variants exist:

    screening      Research & Book: check availability, rates and the user's
                   criteria for ONE technician, then promise a callback.
    direct task    The user asked the concierge to do something (negotiate,
                   complain, cancel...). Uses the Gemini-generated prompt when
                   available, otherwise a static multi-purpose script.

Kestra's call-provider script builds the same payload, so both calling paths
behave identically on the phone.

Dependencies: concierge.models.calls
System role: Voice assistant prompt and analysis-plan construction
"""

import time
from typing import Any

from concierge.models.calls import CallRequest, CustomPrompt

VOICE = {
    "provider": "11labs",
    "voiceId": "21m00Tcm4TlvDq8ikWAM",
    "stability": 0.5,
    "similarityBoost": 0.75,
}
ASSISTANT_MODEL = "gemini-2.5-flash"
ASSISTANT_TEMPERATURE = 0.15
DEFAULT_END_CALL_MESSAGE = "Thank you so much for your time. Have a wonderful day!"
SILENCE_TIMEOUT_SECONDS = 20

DIVIDER = "=" * 67

VOICEMAIL_RULES = f"""{DIVIDER}
VOICEMAIL / ANSWERING MACHINE
{DIVIDER}
Invoke endCall immediately if you hear any of:
- "Please leave a message after the beep"
- "You have reached the voicemail of"
- "No one is available to take your call"
- "Leave your name and number"
- A long automated greeting or a recording beep

Never leave a voicemail. We will try again later."""

END_CALL_RULES = f"""{DIVIDER}
ENDING THE CALL
{DIVIDER}
You have an endCall tool and you MUST use it to hang up.
Right after your closing statement, invoke endCall. Do not wait for the
other side to hang up and do not keep the conversation going."""

SPEECH_RULES = f"""{DIVIDER}
SPEECH RULES
{DIVIDER}
- Never start a sentence with "Okay", "So", "Well", "Alright" or "Um"
- Never invent names or information you were not given
- Ask one question at a time and wait for the answer
- Keep every sentence short and complete"""

SCREENING_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "availability": {
            "type": "string",
            "enum": ["available", "unavailable", "callback_requested", "unclear"],
        },
        "earliest_availability": {
            "type": "string",
            "description": "Specific date/time the provider can come out, e.g. 'Tomorrow at 2pm'",
        },
        "estimated_rate": {"type": "string"},
        "single_person_found": {
            "type": "boolean",
            "description": "Did we find ONE person with ALL required qualities?",
        },
        "technician_name": {
            "type": "string",
            "description": "Name of the technician discussed, if given",
        },
        "all_criteria_met": {"type": "boolean"},
        "criteria_details": {
            "type": "object",
            "description": "Per-criterion details for the same person",
        },
        "disqualified": {"type": "boolean"},
        "disqualification_reason": {"type": "string"},
        "call_outcome": {
            "type": "string",
            "enum": ["positive", "negative", "neutral", "no_answer", "voicemail"],
        },
        "recommended": {"type": "boolean"},
        "notes": {"type": "string"},
    },
    "required": ["availability", "single_person_found", "all_criteria_met", "call_outcome"],
}

DIRECT_TASK_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "task_completed": {
            "type": "boolean",
            "description": "Was the task successfully completed?",
        },
        "outcome": {
            "type": "string",
            "enum": ["success", "partial", "failed", "needs_followup"],
        },
        "resolution_details": {
            "type": "string",
            "description": "Refund amount, new price, confirmation number, etc.",
        },
        "next_steps": {"type": "string"},
        "contact_name": {"type": "string"},
        "notes": {"type": "string"},
    },
    "required": ["task_completed", "outcome"],
}


def _assistant_name(prefix: str) -> str:
    return f"{prefix}-{str(int(time.time() * 1000))[-8:]}"


def _system_message(content: str) -> dict[str, str]:
    return {"role": "system", "content": content}


def build_assistant(
    name_prefix: str,
    system_prompt: str,
    first_message: str,
    analysis_plan: dict[str, Any],
    end_call_message: str = DEFAULT_END_CALL_MESSAGE,
) -> dict[str, Any]:
    """
    Assemble a Vapi transient assistant.

    Args:
        name_prefix: Assistant name prefix, suffixed with a timestamp
        system_prompt: Model system prompt
        first_message: Spoken opener
        analysis_plan: Vapi analysisPlan (summary, structured data, evaluation)
        end_call_message: Spoken when the assistant hangs up

    Returns:
        dict: Assistant payload for POST /call
    """
    return {
        "name": _assistant_name(name_prefix),
        "voice": dict(VOICE),
        "model": {
            "provider": "google",
            "model": ASSISTANT_MODEL,
            "messages": [_system_message(system_prompt)],
            "tools": [{"type": "endCall"}],
            "temperature": ASSISTANT_TEMPERATURE,
        },
        "transcriber": {"provider": "deepgram", "language": "en"},
        "voicemailDetection": {
            "provider": "twilio",
            "enabled": True,
            "machineDetectionTimeout": 10,
            "machineDetectionSpeechThreshold": 2500,
            "machineDetectionSpeechEndThreshold": 1200,
        },
        "firstMessage": first_message,
        "endCallFunctionEnabled": True,
        "endCallMessage": end_call_message,
        "silenceTimeoutSeconds": SILENCE_TIMEOUT_SECONDS,
        "analysisPlan": analysis_plan,
    }


def _analysis_plan(
    summary_prompt: str,
    schema: dict[str, Any],
    structured_prompt: str,
    checklist: str,
) -> dict[str, Any]:
    return {
        "summaryPlan": {
            "enabled": True,
            "messages": [_system_message(summary_prompt)],
        },
        "structuredDataPlan": {
            "enabled": True,
            "schema": schema,
            "messages": [_system_message(structured_prompt)],
        },
        "successEvaluationPlan": {
            "enabled": True,
            "rubric": "Checklist",
            "messages": [_system_message(checklist)],
        },
    }


def _direct_task_analysis(task: str) -> dict[str, Any]:
    return _analysis_plan(
        summary_prompt=(
            f"Summarize the outcome of this call. The task was: {task}. "
            "Was it successful? What was the resolution? Any confirmations or next steps?"
        ),
        schema=DIRECT_TASK_SCHEMA,
        structured_prompt=(
            f"Analyze this call. The task was: {task}\n"
            "Was the task completed and what specific outcome was achieved?"
        ),
        checklist=(
            "Evaluate this call:\n"
            "1. Did the AI clearly state the purpose of the call?\n"
            "2. Did the AI pursue the task persistently but politely?\n"
            "3. Did the AI get a clear resolution?\n"
            "4. Did the AI summarize the outcome before ending?\n"
            "5. Did the AI end the call itself?"
        ),
    )


def _static_direct_task_prompt(request: CallRequest) -> str:
    task = request.user_criteria
    return f"""You are a warm, confident AI assistant on a real phone call to {request.provider_name} on behalf of your client.

{DIVIDER}
YOUR TASK
{DIVIDER}
Your client asked you to do the following:
{task}

You are not shopping for a provider. You are calling to carry out this task.

{DIVIDER}
APPROACH BY TASK TYPE
{DIVIDER}
Complaint or refund: state the issue firmly but politely, ask for the
resolution, and get names, confirmation numbers and next steps.
Negotiating a bill: state the current amount and the goal, ask about
discounts or payment plans, and confirm the final agreed amount.
Scheduling: get a specific date and time and confirm every detail.
Cancelling: be explicit about what is cancelled, get confirmation, and ask
about any refund due.

{SPEECH_RULES}
- If asked who you are, say you are an AI assistant calling for your client

{VOICEMAIL_RULES}

{DIVIDER}
CONVERSATION FLOW
{DIVIDER}
1. Greet them and ask for a moment of their time
2. State clearly why you are calling
3. Handle questions and pushback; re-explain if transferred
4. Work toward a concrete outcome (amounts, dates, confirmation numbers)
5. Close:
   Success: "Thank you so much for your help! Just to confirm, [outcome]. Have a wonderful day!"
   No success: "I understand. I'll relay this to my client. Thank you for your time."

{END_CALL_RULES}"""


def create_direct_task_config(
    request: CallRequest,
    custom_prompt: CustomPrompt | None = None,
) -> dict[str, Any]:
    """
    Assistant for a direct task.

    Args:
        request: Call request whose user_criteria holds the task description
        custom_prompt: Gemini-generated prompt; static template when None

    Returns:
        dict: Vapi assistant payload
    """
    analysis = _direct_task_analysis(request.user_criteria)
    if custom_prompt is not None:
        return build_assistant(
            "DirectTask-Dynamic",
            custom_prompt.system_prompt,
            custom_prompt.first_message,
            analysis,
        )
    return build_assistant(
        "DirectTask",
        _static_direct_task_prompt(request),
        "Hi there! This is an AI assistant calling on behalf of my client "
        f"regarding {request.provider_name}. Do you have just a moment?",
        analysis,
    )


def _address_section(request: CallRequest, client_name: str) -> str:
    if request.client_address:
        return f"""{DIVIDER}
SERVICE LOCATION
{DIVIDER}
Service address: {request.client_address}
You may give this address if the provider asks for it."""
    return f"""{DIVIDER}
SERVICE LOCATION (GENERAL AREA ONLY)
{DIVIDER}
Service area: {request.location}. This is NOT a street address.
If asked for the street address, say: "I'm just checking availability and
rates right now. If {client_name} decides to schedule with you, they'll give
their exact address when we call back to book."
Never make up an address."""


def _screening_prompt(request: CallRequest, client_name: str) -> str:
    urgency_text = request.urgency.replace("_", " ")
    criteria = request.user_criteria
    return f"""You are a warm, friendly AI Concierge on a real phone call to {request.provider_name}.

{DIVIDER}
WHO YOU ARE
{DIVIDER}
You are {client_name}'s personal AI assistant, calling because {client_name}
needs {request.service_needed} services.

{_address_section(request, client_name)}

{DIVIDER}
INFORMATION YOU DON'T HAVE
{DIVIDER}
If asked for details you were not given (phone, insurance, payment...), say:
"I'm just checking availability and rates right now. If {client_name} decides
to schedule with you, they'll provide those details when we call back to book."

{DIVIDER}
ONE PERSON, ALL REQUIREMENTS
{DIVIDER}
{client_name} needs ONE technician who has ALL of these qualities:
{criteria}
Keep referring to the same person: "And is this same person also ...?"
Do not ask about anything outside these criteria.

{VOICEMAIL_RULES}

{DIVIDER}
DISQUALIFICATION
{DIVIDER}
The provider is disqualified if nobody is available, a requirement cannot be
met, they don't do this work, or the rate is far above reasonable. Then say:
"Thank you so much for taking the time to chat. Unfortunately, it sounds like
this particular request might not be the best fit for {client_name} right now,
but I really appreciate your help. Have a wonderful day!" and end the call.
Do not mention calling back to schedule.

{SPEECH_RULES}

{DIVIDER}
CONVERSATION FLOW
{DIVIDER}
1. Ask if they have a moment to chat
2. "{client_name} needs help {urgency_text}. Are you available?"
   If yes, ask for their soonest specific date and time
3. "What would your typical rate be?"
4. Ask about each requirement, one at a time, for the same person
5. If everything is met: "Perfect, thank you so much! I'll share this with
   {client_name} and if they'd like to proceed, we'll call back to schedule."
   Then end the call.

{END_CALL_RULES}"""


def create_screening_config(request: CallRequest) -> dict[str, Any]:
    """
    Assistant for a Research & Book screening call.

    A request-level customPrompt replaces the template prompt; the end-call
    rules are always appended so the assistant reliably hangs up.

    Args:
        request: Call request

    Returns:
        dict: Vapi assistant payload
    """
    client_name = request.client_name or "my client"
    analysis = _analysis_plan(
        summary_prompt=(
            "Summarize: Was ONE person found with ALL required qualities? What are "
            "their rates? What is their earliest availability (specific date/time)? "
            f"Does the provider meet all of {client_name}'s requirements?"
        ),
        schema=SCREENING_SCHEMA,
        structured_prompt=(
            f"Analyze this call. {client_name} needed ONE person with ALL of these "
            f"qualities:\n{request.user_criteria}\n\n"
            "1. Did we find one person with every requirement?\n"
            "2. Was the provider disqualified, and why?"
        ),
        checklist=(
            "Evaluate:\n"
            "1. Did we confirm availability with a specific earliest date/time?\n"
            "2. Did we get rates?\n"
            "3. Did we ask only about the explicit criteria?\n"
            "4. Did we track ONE person for all requirements?\n"
            "5. Did we deliver the callback closing?\n"
            "6. Did we end the call ourselves?"
        ),
    )

    custom = request.custom_prompt
    if custom and custom.system_prompt and custom.first_message:
        return build_assistant(
            "Concierge",
            f"{custom.system_prompt}\n\n{END_CALL_RULES}",
            custom.first_message,
            analysis,
            end_call_message=custom.closing_script or DEFAULT_END_CALL_MESSAGE,
        )

    problem = f" {client_name} {request.problem_description}." if request.problem_description else ""
    first_message = (
        f"Hi there! This is {client_name}'s personal AI assistant calling to check on "
        f"{request.service_needed} services.{problem} Do you have just a quick moment?"
    )
    return build_assistant("Concierge", _screening_prompt(request, client_name), first_message, analysis)


def create_assistant_config(
    request: CallRequest,
    custom_prompt: CustomPrompt | None = None,
) -> dict[str, Any]:
    """
    Pick the assistant variant for a call.

    Args:
        request: Call request
        custom_prompt: Direct-task prompt from the analyzer, if any

    Returns:
        dict: Vapi assistant payload
    """
    if request.is_direct_task:
        return create_direct_task_config(request, custom_prompt or request.custom_prompt)
    return create_screening_config(request)
