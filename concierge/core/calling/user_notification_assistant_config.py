"""
Vapi assistant configuration for user notification calls.

Calls the user, leads with the top recommendation, answers questions from a
small knowledge base of the ranked options and captures a 1/2/3 selection.

Dependencies: concierge.core.calling.assistant_config, concierge.models.notifications
System role: Voice assistant for presenting recommendations
"""

from typing import Any

from concierge.core.calling.assistant_config import VOICE
from concierge.models.notifications import RecommendationOption, UserNotificationRequest

SELECTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "selected_provider": {
            "type": "number",
            "description": "Provider number the user chose (1, 2 or 3); null if none",
        },
        "call_outcome": {
            "type": "string",
            "enum": ["selected", "no_selection", "declined_all", "wants_callback", "voicemail"],
        },
        "user_questions": {"type": "array", "items": {"type": "string"}},
        "decision_factors": {"type": "string"},
    },
    "required": ["call_outcome"],
}


def _knowledge_entry(option: RecommendationOption) -> str:
    lines = [f"**{option.provider_name}** (Option {option.rank})"]
    if option.rating:
        rating_line = f"- Rating: {option.rating:.1f} stars"
        if option.review_count:
            rating_line += f" from {option.review_count} reviews"
        lines.append(rating_line)
    lines.append(f"- Availability: {option.availability}")
    if option.estimated_rate:
        lines.append(f"- Estimated Rate: {option.estimated_rate}")
    if option.reasoning:
        lines.append(f"- Why Recommended: {option.reasoning}")
    return "\n".join(lines)


def _option_teaser(option: RecommendationOption | None, fallback: str) -> str:
    if option is None:
        return fallback
    text = option.provider_name
    if option.rating:
        text += f" with {option.rating:.1f} stars"
    return f"{text} available {option.availability}"


def create_user_notification_assistant_config(
    request: UserNotificationRequest,
) -> dict[str, Any]:
    """
    Build the notification assistant payload.

    Args:
        request: User, service and ranked recommendations

    Returns:
        dict: Vapi assistant payload
    """
    options = request.recommendations
    greeting_name = request.user_name or "there"
    knowledge = "\n\n".join(_knowledge_entry(option) for option in options)

    top = options[0] if options else None
    top_line = "the first provider"
    if top is not None:
        top_line = top.provider_name
        if top.rating:
            top_line += f" ({top.rating:.1f} stars)"
        if top.reasoning:
            top_line += f". {top.reasoning.split('.')[0]}"
        top_line += f". They're available {top.availability}"
        if top.estimated_rate:
            top_line += f" and their estimated rate is {top.estimated_rate}"

    second = options[1] if len(options) > 1 else None
    third = options[2] if len(options) > 2 else None
    summary_section = (
        f"### AI Recommendation Summary\n{request.overall_recommendation}\n"
        if request.overall_recommendation
        else ""
    )

    opener = (
        f"Hi {greeting_name}! This is AI Concierge calling about your "
        f"{request.service_needed} request. Great news - I've researched providers in "
        f"{request.location} and found some excellent options for you!"
    )

    system_prompt = f"""You are a friendly AI assistant calling to present provider recommendations and help the user choose one.

## KNOWLEDGE BASE

### Service Request
- Service Needed: {request.service_needed}
- Location: {request.location}
- Customer: {request.user_name or "Customer"}

### Providers (in order of recommendation)
{knowledge}

{summary_section}
## CONVERSATION FLOW
1. Open: "{opener}"
2. Lead with the top pick: "My top recommendation is {top_line}."
3. Mention the alternatives: {_option_teaser(second, "a second provider")}, and {_option_teaser(third, "a third option")}.
4. Ask: "Would you like more details about any of these, or are you ready to choose? Just say 1, 2, or 3."
5. Answer questions from the knowledge base with specific numbers, then ask again.
6. On a choice: "Excellent choice! I'll book them for you right away. You'll receive a confirmation shortly."
7. Close: "Thanks for using AI Concierge! Have a wonderful day!" then invoke endCall.

## GUIDELINES
- Be conversational and concise; this is a phone call
- If you don't know a detail, say so and share what you do know
- After the closing line, invoke endCall immediately"""

    return {
        "name": "AI Concierge - User Notification",
        "model": {
            "provider": "google",
            "model": "gemini-2.0-flash",
            "temperature": 0.25,
            "tools": [
                {
                    "type": "endCall",
                    "description": "End the phone call immediately after your closing statement.",
                }
            ],
            "messages": [{"role": "system", "content": system_prompt}],
        },
        "voice": dict(VOICE),
        "firstMessage": opener,
        "endCallFunctionEnabled": True,
        "endCallMessage": "Thanks for using AI Concierge! Goodbye!",
        "silenceTimeoutSeconds": 15,
        "maxDurationSeconds": 180,
        "analysisPlan": {
            "structuredDataSchema": SELECTION_SCHEMA,
            "successEvaluationPrompt": (
                "The call succeeded if the user selected provider 1, 2 or 3 "
                "or expressed a clear preference."
            ),
            "summaryPrompt": (
                "Summarize: 1) which provider was selected, if any, 2) what the user "
                "asked, 3) what influenced their decision."
            ),
        },
    }
