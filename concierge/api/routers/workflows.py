"""
Workflow API endpoints.

Routes:
- POST /workflows/research - Find providers for a service near a location
- GET /workflows/status - Research path availability

Dependencies: concierge.core.research.research_service
System role: Provider research HTTP API
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from concierge.api.deps import get_research_service
from concierge.api.routers.error_handling import handle_api_errors
from concierge.core.research.research_service import ResearchService
from concierge.models.research import ResearchRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.post("/research")
@handle_api_errors
async def research_providers(
    request: ResearchRequest,
    research_service: ResearchService = Depends(get_research_service),
):
    """
    Research providers through Kestra or directly (Places, then Gemini).

    Raises:
        503: Kestra enabled but unreachable
    """
    result = await research_service.search(request)
    logger.info(
        f"{__name__}:research_providers - {result.status}",
        extra={"method": result.method, "providers": len(result.providers)},
    )
    return JSONResponse(
        content=jsonable_encoder({"success": result.status == "success", "data": result.to_api()})
    )


@router.get("/status")
@handle_api_errors
async def research_status(
    research_service: ResearchService = Depends(get_research_service),
):
    return await research_service.get_system_status()
