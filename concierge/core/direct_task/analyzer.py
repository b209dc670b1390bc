"""
Direct-task analyzer.

Two Gemini passes: classify the task, then draft a call strategy for it.
The result is rendered into an assistant script by the prompt generator.

Dependencies: concierge.boundary.google.gemini_client
System role: Powers POST /gemini/analyze-direct-task
"""

import logging

from concierge.boundary.google.gemini_client import GeminiClient
from concierge.core.direct_task.prompt_generator import generate_prompt_from_analysis
from concierge.core.exceptions import ExternalServiceError
from concierge.models.direct_task import (
    AnalyzeDirectTaskRequest,
    AnalyzeDirectTaskResponse,
    StrategicGuidance,
    TaskAnalysis,
)

logger = logging.getLogger(__name__)

CLASSIFICATION_PROMPT = """Analyze this task and classify it:

Task: "{task}"
Contact: "{contact}"

Return a JSON object with:
{{
  "taskType": one of: "negotiate_price", "request_refund", "complain_issue", "schedule_appointment", "cancel_service", "make_inquiry", "general_task",
  "intent": brief description of what the user wants to achieve,
  "difficulty": "easy", "moderate", or "complex" based on typical resistance expected
}}

ONLY return valid JSON, no markdown."""

STRATEGY_PROMPT = """You are an expert negotiator and customer service advocate.

For this task type: {task_type}
User's intent: {intent}
Contact: {contact}
Full task description: "{task}"

Generate strategic guidance as JSON:
{{
  "keyGoals": [3-5 specific goals to achieve during the call],
  "talkingPoints": [5-7 specific things to say, tailored to this exact task],
  "objectionHandlers": {{
    "common objection 1": "response to use",
    "common objection 2": "response to use"
  }},
  "successCriteria": [2-4 measurable outcomes that define success]
}}

Include 3-5 objections relevant to this task type.
Make the talking points SPECIFIC to: "{task}"
ONLY return valid JSON, no markdown."""


async def analyze_direct_task(
    gemini: GeminiClient,
    request: AnalyzeDirectTaskRequest,
) -> AnalyzeDirectTaskResponse:
    """
    Classify a direct task and generate its call script.

    Args:
        gemini: Gemini client
        request: Task description and who to call

    Returns:
        AnalyzeDirectTaskResponse: Analysis, strategy and generated prompt

    Raises:
        ExternalServiceError: Gemini failed or returned unusable JSON
    """
    logger.info(
        f"{__name__}:analyze_direct_task - START contact={request.contact_name!r}"
    )
    try:
        classification = await gemini.generate_json(
            CLASSIFICATION_PROMPT.format(task=request.task_description, contact=request.contact_name)
        )
        analysis = TaskAnalysis.model_validate(classification)

        strategy = await gemini.generate_json(
            STRATEGY_PROMPT.format(
                task_type=analysis.task_type,
                intent=analysis.intent,
                contact=request.contact_name,
                task=request.task_description,
            )
        )
        guidance = StrategicGuidance.model_validate(strategy)
    except (ExternalServiceError, ValueError) as e:
        logger.error(
            f"{__name__}:analyze_direct_task - FAILED - {type(e).__name__}: {e}",
            exc_info=True,
        )
        raise ExternalServiceError(
            f"Failed to analyze direct task: {e}", service="gemini"
        ) from e

    logger.info(
        f"{__name__}:analyze_direct_task - END task_type={analysis.task_type} "
        f"difficulty={analysis.difficulty}"
    )
    return AnalyzeDirectTaskResponse(
        task_analysis=analysis,
        strategic_guidance=guidance,
        generated_prompt=generate_prompt_from_analysis(request, analysis, guidance),
    )
