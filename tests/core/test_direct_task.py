"""Tests for direct-task analysis and screening-script generation."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from concierge.core.direct_task.analyzer import analyze_direct_task
from concierge.core.direct_task.prompt_generator import (
    CLOSING_SCRIPTS,
    generate_prompt_from_analysis,
)
from concierge.core.direct_task.research_prompt_analyzer import analyze_research_prompt
from concierge.core.exceptions import ExternalServiceError
from concierge.models.direct_task import (
    AnalyzeDirectTaskRequest,
    ResearchPromptRequest,
    StrategicGuidance,
    TaskAnalysis,
)


@pytest.fixture
def task_request():
    return AnalyzeDirectTaskRequest(
        task_description="Get my internet bill lowered to $50/month",
        contact_name="Comcast",
    )


@pytest.fixture
def guidance():
    return StrategicGuidance(
        key_goals=["Lower the bill"],
        talking_points=["Loyal customer for 5 years"],
        objection_handlers={"That's our best price": "A competitor offers $45."},
        success_criteria=["New rate confirmed"],
    )


class TestPromptGenerator:
    def test_negotiation_script(self, task_request, guidance):
        analysis = TaskAnalysis(task_type="negotiate_price", intent="Lower the monthly bill")

        prompt = generate_prompt_from_analysis(task_request, analysis, guidance)

        assert "persuasive negotiator" in prompt.system_prompt
        assert '1. "Loyal customer for 5 years"' in prompt.system_prompt
        assert 'If they say: "That\'s our best price"' in prompt.system_prompt
        assert "account with Comcast" in prompt.first_message
        assert prompt.closing_script == CLOSING_SCRIPTS["negotiate_price"]

    def test_unknown_task_type_is_general(self, task_request, guidance):
        prompt = generate_prompt_from_analysis(
            task_request, TaskAnalysis(task_type="sing_a_song"), guidance
        )
        assert prompt.closing_script == CLOSING_SCRIPTS["general_task"]
        assert "regarding Comcast" in prompt.first_message


class TestAnalyzeDirectTask:
    @pytest.mark.asyncio
    async def test_two_pass_analysis(self, task_request):
        gemini = MagicMock()
        gemini.generate_json = AsyncMock(
            side_effect=[
                {"taskType": "negotiate_price", "intent": "Lower bill", "difficulty": "moderate"},
                {
                    "keyGoals": ["Get $50/month"],
                    "talkingPoints": ["Long-time customer"],
                    "objectionHandlers": {"No discounts": "Ask for retention"},
                    "successCriteria": ["Rate confirmed"],
                },
            ]
        )

        response = await analyze_direct_task(gemini, task_request)

        assert response.task_analysis.task_type == "negotiate_price"
        assert response.strategic_guidance.key_goals == ["Get $50/month"]
        assert "Long-time customer" in response.generated_prompt.system_prompt
        assert gemini.generate_json.await_count == 2

    @pytest.mark.asyncio
    async def test_unusable_json_raises(self, task_request):
        gemini = MagicMock()
        gemini.generate_json = AsyncMock(side_effect=ValueError("no json"))

        with pytest.raises(ExternalServiceError, match="Failed to analyze direct task"):
            await analyze_direct_task(gemini, task_request)


class TestResearchPrompt:
    @pytest.fixture
    def prompt_request(self):
        return ResearchPromptRequest(
            service_type="dentist",
            problem_description="Chipped tooth",
            user_criteria="Takes Delta Dental",
            location="Greenville SC",
            urgency="within_24_hours",
            provider_name="Smile Co",
            client_name="Sam",
        )

    @pytest.mark.asyncio
    async def test_uses_gemini_answer(self, prompt_request):
        gemini = MagicMock()
        gemini.generate_json = AsyncMock(
            return_value={
                "serviceCategory": "medical",
                "terminology": {"providerTerm": "dentist", "appointmentTerm": "appointment"},
                "firstMessage": "Hi, this is Sam's assistant.",
                "systemPrompt": "You are Sam's assistant.",
                "contextualQuestions": ["Do you take Delta Dental?"],
            }
        )

        result = await analyze_research_prompt(gemini, prompt_request)

        assert result.service_category == "medical"
        assert result.terminology.provider_term == "dentist"
        assert result.first_message == "Hi, this is Sam's assistant."

    @pytest.mark.asyncio
    async def test_incomplete_answer_uses_template(self, prompt_request):
        gemini = MagicMock()
        gemini.generate_json = AsyncMock(return_value={"firstMessage": "Hi"})

        result = await analyze_research_prompt(gemini, prompt_request)

        assert result.service_category == "other"
        assert "Sam's personal AI assistant" in result.first_message
        assert "The issue: Chipped tooth." in result.system_prompt
        assert "Timeline: within 24 hours." in result.system_prompt
