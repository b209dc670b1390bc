"""
Direct-task and research-prompt analysis models.

Dependencies: pydantic, concierge.models.common
System role: Contracts for Gemini-generated call scripts
"""

from typing import Literal

from pydantic import Field

from concierge.models.common import CamelModel

TaskType = Literal[
    "negotiate_price",
    "request_refund",
    "complain_issue",
    "schedule_appointment",
    "cancel_service",
    "make_inquiry",
    "general_task",
]
TASK_TYPES: tuple[str, ...] = TaskType.__args__


class AnalyzeDirectTaskRequest(CamelModel):
    task_description: str = Field(min_length=1)
    contact_name: str = Field(min_length=1)
    contact_phone: str | None = None


class TaskAnalysis(CamelModel):
    task_type: str = "general_task"
    intent: str = ""
    difficulty: Literal["easy", "moderate", "complex"] = "moderate"


class StrategicGuidance(CamelModel):
    key_goals: list[str] = Field(default_factory=list)
    talking_points: list[str] = Field(default_factory=list)
    objection_handlers: dict[str, str] = Field(default_factory=dict)
    success_criteria: list[str] = Field(default_factory=list)


class GeneratedPrompt(CamelModel):
    system_prompt: str
    first_message: str
    closing_script: str


class AnalyzeDirectTaskResponse(CamelModel):
    task_analysis: TaskAnalysis
    strategic_guidance: StrategicGuidance
    generated_prompt: GeneratedPrompt


class ResearchPromptRequest(CamelModel):
    """Context for a Gemini-written screening script."""

    service_type: str = Field(min_length=1)
    problem_description: str = ""
    user_criteria: str = ""
    location: str = ""
    urgency: str = "within_2_days"
    provider_name: str = ""
    client_name: str = ""


class ServiceTerminology(CamelModel):
    provider_term: str = "provider"
    appointment_term: str = "service"
    visit_direction: str = "provider comes to location"


class PromptAnalysisResult(CamelModel):
    service_category: str = "other"
    terminology: ServiceTerminology = Field(default_factory=ServiceTerminology)
    contextual_questions: list[str] = Field(default_factory=list)
    system_prompt: str
    first_message: str
