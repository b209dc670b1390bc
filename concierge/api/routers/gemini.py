"""
Gemini API endpoints.

Routes:
- POST /gemini/search-providers - Maps-grounded provider search (top 3)
- POST /gemini/simulate-call - Simulated vetting call as a timeline entry
- POST /gemini/select-best-provider - Model pick among vetted providers
- POST /gemini/schedule-appointment - Simulated booking confirmation
- POST /gemini/analyze-direct-task - Strategy and script for a direct task call
- POST /gemini/analyze-research-prompt - Service-specific screening script

Dependencies: concierge.core.research.gemini_workflow, concierge.core.direct_task
System role: Gemini helper HTTP API
"""

import logging

from fastapi import APIRouter, Depends

from concierge.api.deps import get_gemini_client, get_gemini_workflow
from concierge.api.routers.error_handling import handle_api_errors, success_response
from concierge.boundary.google import GeminiClient
from concierge.core.direct_task.analyzer import analyze_direct_task
from concierge.core.direct_task.research_prompt_analyzer import analyze_research_prompt
from concierge.core.research.gemini_workflow import GeminiWorkflowService
from concierge.models.direct_task import AnalyzeDirectTaskRequest, ResearchPromptRequest
from concierge.models.gemini import (
    ScheduleAppointmentRequest,
    SearchProvidersRequest,
    SelectBestProviderRequest,
    SimulateCallLogRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gemini", tags=["gemini"])


@router.post("/search-providers")
@handle_api_errors
async def search_providers(
    request: SearchProvidersRequest,
    workflow: GeminiWorkflowService = Depends(get_gemini_workflow),
):
    result = await workflow.search_providers(request)
    return result.to_api()


@router.post("/simulate-call")
@handle_api_errors
async def simulate_call(
    request: SimulateCallLogRequest,
    workflow: GeminiWorkflowService = Depends(get_gemini_workflow),
):
    log = await workflow.simulate_call(request.provider_name, request.user_criteria, request.is_direct)
    return log.to_api()


@router.post("/select-best-provider")
@handle_api_errors
async def select_best_provider(
    request: SelectBestProviderRequest,
    workflow: GeminiWorkflowService = Depends(get_gemini_workflow),
):
    result = await workflow.select_best_provider(
        request.request_title, request.interactions, request.providers
    )
    return result.to_api()


@router.post("/schedule-appointment")
@handle_api_errors
async def schedule_appointment(
    request: ScheduleAppointmentRequest,
    workflow: GeminiWorkflowService = Depends(get_gemini_workflow),
):
    log = await workflow.schedule_appointment(request.provider_name, request.details)
    return log.to_api()


@router.post("/analyze-direct-task")
@handle_api_errors
async def direct_task_analysis(
    request: AnalyzeDirectTaskRequest,
    gemini: GeminiClient = Depends(get_gemini_client),
):
    """Classify a direct task and write the call script for it."""
    analysis = await analyze_direct_task(gemini, request)
    return success_response(analysis.to_api())


@router.post("/analyze-research-prompt")
@handle_api_errors
async def research_prompt_analysis(
    request: ResearchPromptRequest,
    gemini: GeminiClient = Depends(get_gemini_client),
):
    analysis = await analyze_research_prompt(gemini, request)
    return success_response(analysis.to_api())
