"""
Research-call script writer.

Asks Gemini for a natural opening line and system prompt tailored to the
service being screened (a dentist "appointment" vs a plumber "service call").
Falls back to a plain template when Gemini's answer is missing either piece.

Dependencies: concierge.boundary.google.gemini_client
System role: Powers POST /gemini/analyze-research-prompt
"""

import logging

from concierge.boundary.google.gemini_client import GeminiClient
from concierge.models.direct_task import PromptAnalysisResult, ResearchPromptRequest, ServiceTerminology

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """You are an expert at writing natural, conversational phone call scripts for AI assistants.

<context>
<client_name>{client_name}</client_name>
<service_type>{service_type}</service_type>
<problem_description>{problem}</problem_description>
<requirements>{criteria}</requirements>
<location>{location}</location>
<urgency>{urgency}</urgency>
<provider_being_called>{provider_name}</provider_being_called>
</context>

<task>
Write TWO natural, grammatically correct pieces for a phone assistant:

1. FIRST MESSAGE (the opening line when the call connects):
   - Introduce yourself as the client's personal AI assistant
   - Naturally explain WHY you're calling (weave in the problem or service needed)
   - Ask if they have a moment
   - Warm and human, not templated; 2-3 sentences maximum

2. SYSTEM PROMPT (instructions for the assistant during the call):
   - WHO: the client's personal AI assistant calling the provider
   - SITUATION: the client's problem, timeline and location
   - WHAT TO ASK, in order: availability (use "earliest available appointment" for
     medical/dental/salon, "when could you come out" for home services), rates,
     then 1-2 questions based on the requirements
   - UNKNOWN INFO: if asked for address, phone or insurance, explain you're only checking
     availability and the client will provide details when booking
   - SPEECH: natural contractions, acknowledge answers, vary length
   - VOICEMAIL: use the endCall tool immediately, leave no message
   - ENDING: thank them, say the client will call back to schedule, then use endCall

Use third person and correct possessives for the client. Use the right terminology:
medical ("appointment", "patient"), home service ("service call", "technician"),
professional ("consultation", "attorney").
</task>

<output_format>
Return ONLY valid JSON (no markdown, no explanation):
{{
  "serviceCategory": "medical" | "home_service" | "professional" | "retail" | "other",
  "terminology": {{
    "providerTerm": "dentist, plumber, attorney, etc.",
    "appointmentTerm": "appointment" or "service call" or "consultation",
    "visitDirection": "patient visits provider" or "provider comes to location"
  }},
  "firstMessage": "the complete opening, no placeholders",
  "systemPrompt": "the complete instructions, no placeholders",
  "contextualQuestions": ["1-3 service-specific questions based on the requirements"]
}}
</output_format>"""


def default_analysis(request: ResearchPromptRequest) -> PromptAnalysisResult:
    client = request.client_name or "my client"
    urgency = request.urgency.replace("_", " ")
    problem = f" The issue: {request.problem_description}." if request.problem_description else ""
    return PromptAnalysisResult(
        service_category="other",
        terminology=ServiceTerminology(),
        contextual_questions=["Are you available for this type of service?"],
        first_message=(
            f"Hi! I'm {client}'s personal AI assistant calling about {request.service_type} "
            "services. Do you have a quick moment?"
        ),
        system_prompt=(
            f"You are {client}'s personal AI assistant calling {request.provider_name} "
            f"in {request.location}.\n\n"
            f"{client}'s situation: They need {request.service_type} services.{problem} "
            f"Timeline: {urgency}.\n\n"
            "Ask about:\n"
            "1. Availability\n"
            "2. Rates\n"
            f"3. Any specific requirements: {request.user_criteria}\n\n"
            "If asked for information you don't have (address, phone, insurance), say: "
            f"\"I'm just checking availability right now. {client} will provide those details "
            "when scheduling.\"\n\n"
            'Be warm and friendly. Use contractions. Acknowledge responses ("Great!", "Perfect!").\n\n'
            f"When done, thank them and say you'll have {client} call back to schedule if "
            "interested. Then use endCall tool immediately."
        ),
    )


async def analyze_research_prompt(
    gemini: GeminiClient,
    request: ResearchPromptRequest,
) -> PromptAnalysisResult:
    """
    Generate a screening-call script for one provider.

    Raises:
        ExternalServiceError: The Gemini request itself failed
    """
    prompt = ANALYSIS_PROMPT.format(
        client_name=request.client_name,
        service_type=request.service_type,
        problem=request.problem_description or "General inquiry",
        criteria=request.user_criteria,
        location=request.location,
        urgency=request.urgency.replace("_", " "),
        provider_name=request.provider_name,
    )
    try:
        analysis = await gemini.generate_json(prompt)
    except ValueError:
        logger.warning(f"{__name__}:analyze_research_prompt - No JSON in response, using default")
        return default_analysis(request)

    if not isinstance(analysis, dict) or not analysis.get("firstMessage") or not analysis.get("systemPrompt"):
        logger.error(
            f"{__name__}:analyze_research_prompt - Incomplete prompts from Gemini, using default"
        )
        return default_analysis(request)

    return PromptAnalysisResult(
        service_category=analysis.get("serviceCategory") or "other",
        terminology=ServiceTerminology.model_validate(analysis.get("terminology") or {}),
        contextual_questions=analysis.get("contextualQuestions") or [],
        system_prompt=analysis["systemPrompt"],
        first_message=analysis["firstMessage"],
    )
