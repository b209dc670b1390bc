"""
Direct-task prompt generator.

Turns a task analysis and strategic guidance into a Vapi-ready system
prompt, opening line and closing script.

Dependencies: concierge.models.direct_task
System role: Custom assistant scripts for direct-task calls
"""

from concierge.models.direct_task import (
    AnalyzeDirectTaskRequest,
    GeneratedPrompt,
    StrategicGuidance,
    TaskAnalysis,
)

RULE = "═" * 67

ROLE_DESCRIPTIONS = {
    "negotiate_price": "persuasive negotiator focused on getting the best deal",
    "request_refund": "persistent but polite advocate requesting a refund",
    "complain_issue": "firm but professional representative addressing a complaint",
    "schedule_appointment": "efficient scheduler focused on finding the best time",
    "cancel_service": "clear and direct representative handling a cancellation",
    "make_inquiry": "thorough information gatherer collecting all relevant details",
    "general_task": "capable assistant completing the requested task",
}

FIRST_MESSAGES = {
    "negotiate_price": (
        "Hi there! This is an AI assistant calling on behalf of my client regarding their "
        "account with {contact}. Do you have just a moment to discuss their bill?"
    ),
    "request_refund": (
        "Hi there! This is an AI assistant calling on behalf of my client. I need to discuss "
        "a charge on their account that needs to be corrected. Do you have a moment?"
    ),
    "complain_issue": (
        "Hi there! This is an AI assistant calling on behalf of my client. I need to address "
        "an issue they've experienced. Do you have a moment?"
    ),
    "schedule_appointment": (
        "Hi there! This is an AI assistant calling on behalf of my client. They'd like to "
        "schedule an appointment. Do you have a moment?"
    ),
    "cancel_service": (
        "Hi there! This is an AI assistant calling on behalf of my client. They need to "
        "cancel their service. Do you have a moment?"
    ),
    "make_inquiry": (
        "Hi there! This is an AI assistant calling on behalf of my client. I have a few "
        "questions I'd like to ask. Do you have a moment?"
    ),
    "general_task": (
        "Hi there! This is an AI assistant calling on behalf of my client regarding "
        "{contact}. Do you have just a moment?"
    ),
}

CLOSING_SCRIPTS = {
    "negotiate_price": (
        "Thank you so much for working with me on this! Just to confirm the new arrangement: "
        "[summarize]. Have a wonderful day!"
    ),
    "request_refund": (
        "Thank you for resolving this! Can you confirm the credit reference number and when "
        "it will appear? [confirm details]. Have a wonderful day!"
    ),
    "complain_issue": (
        "Thank you for addressing this issue. Just to confirm: [summarize resolution]. "
        "Have a wonderful day!"
    ),
    "schedule_appointment": (
        "Perfect! So we're confirmed for [date/time]. Is there anything my client should "
        "bring or prepare? Great, have a wonderful day!"
    ),
    "cancel_service": (
        "Thank you for processing this cancellation. Can you confirm the effective date and "
        "any final steps? [confirm]. Have a wonderful day!"
    ),
    "make_inquiry": (
        "That's very helpful, thank you! Just to summarize what I've learned: [summarize]. "
        "Have a wonderful day!"
    ),
    "general_task": "Thank you so much for your help with this! Have a wonderful day!",
}


def _section(title: str, body: str) -> str:
    return f"{RULE}\n{title}\n{RULE}\n{body}"


def _numbered(items: list[str], quote: bool = False) -> str:
    return "\n".join(
        f'{i}. "{item}"' if quote else f"{i}. {item}"
        for i, item in enumerate(items, start=1)
    )


def generate_prompt_from_analysis(
    request: AnalyzeDirectTaskRequest,
    analysis: TaskAnalysis,
    guidance: StrategicGuidance,
) -> GeneratedPrompt:
    """
    Build the assistant script for a direct task.

    Unknown task types are scripted as general_task.
    """
    task_type = analysis.task_type if analysis.task_type in ROLE_DESCRIPTIONS else "general_task"
    objections = "\n".join(
        f'If they say: "{objection}"\nRespond with: "{response}"\n'
        for objection, response in guidance.objection_handlers.items()
    )

    sections = [
        _section("YOUR ROLE", f"You are a {ROLE_DESCRIPTIONS[task_type]}."),
        _section(
            "YOUR MISSION",
            f"{analysis.intent}\n\nTask details: {request.task_description}",
        ),
        _section("KEY GOALS", _numbered(guidance.key_goals)),
        _section(
            "TALKING POINTS (use these specific phrases)",
            _numbered(guidance.talking_points, quote=True),
        ),
        _section("HANDLING OBJECTIONS", objections),
        _section("SUCCESS CRITERIA", _numbered(guidance.success_criteria)),
        _section(
            "SPEECH RULES",
            "- Be confident and assertive, but always polite\n"
            '- NEVER start sentences with: "Okay", "So", "Well", "Alright", "Um"\n'
            "- Keep responses clear and direct\n"
            "- Listen carefully and adapt to their responses\n"
            "- If asked who you are, say you're an AI assistant calling on behalf of your client",
        ),
        _section(
            "CONVERSATION FLOW",
            "1. GREETING: Introduce yourself as calling on behalf of your client\n"
            "2. STATE PURPOSE: Clearly explain why you're calling\n"
            "3. PURSUE GOALS: Work through your key goals systematically\n"
            "4. HANDLE RESPONSES: Use your objection handlers when needed\n"
            "5. CONFIRM SUCCESS: Get specific commitments (numbers, dates, confirmations)\n"
            "6. CLOSE: Thank them and summarize the outcome",
        ),
        _section(
            "ENDING THE CALL",
            "You have an endCall function available. You MUST use it to hang up.\n"
            "After your closing statement, immediately invoke endCall.\n"
            "DO NOT wait for them to hang up - YOU end the call.",
        ),
        _section(
            "TONE",
            "Be confident, clear, and professional. You're advocating for your client.\n"
            "Stay calm even if the conversation gets difficult.\n"
            "Thank them genuinely when they help.",
        ),
    ]
    system_prompt = (
        f"You are a warm, confident AI Assistant making a real phone call to "
        f"{request.contact_name} on behalf of your client.\n\n" + "\n\n".join(sections)
    )

    return GeneratedPrompt(
        system_prompt=system_prompt,
        first_message=FIRST_MESSAGES[task_type].format(contact=request.contact_name),
        closing_script=CLOSING_SCRIPTS[task_type],
    )
