"""LLM gateway that turns user intent into task and dependency suggestions."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from pydantic import BaseModel

from agentflow.llm.bedrock_client import BedrockClient, BedrockInvocationError, JSONParseError
from agentflow.llm.prompt_templates import (
    TASK_ANALYSIS_SCHEMA,
    TASK_ANALYSIS_SYSTEM_PROMPT,
    get_task_analysis_prompt,
)

logger = logging.getLogger(__name__)

TASK_PRIORITIES = ("low", "medium", "high", "urgent")
DEPENDENCY_PRIORITIES = ("high", "urgent")
TASK_CATEGORIES = ("strategy", "research", "implementation", "review", "communication")
DEFAULT_DEPENDENCY_REASON = "Requires human approval"


class TaskAnalysisRequest(BaseModel):
    """Structured request sent to the gateway."""
    user_input: str
    agent_goal: str = ""
    agent_type: str = "custom"
    existing_tasks: list[dict[str, Any]] = []
    user_id: str


class TaskSuggestion(BaseModel):
    """A task the agent can do on its own."""
    title: str
    description: str = ""
    priority: str = "medium"
    estimated_hours: Optional[float] = None
    category: str = "implementation"
    metadata: dict[str, Any] = {}


class DependencySuggestion(BaseModel):
    """A step that needs a human before the agent can continue."""
    title: str
    description: str = ""
    reason: str = DEFAULT_DEPENDENCY_REASON
    priority: str = "high"
    dependency_type: str = "approval"
    estimated_hours: Optional[float] = None
    metadata: dict[str, Any] = {}


class TaskAnalysisResult(BaseModel):
    """Ephemeral analysis; consumed once by the orchestrator."""
    success: bool
    user_need_analysis: Optional[str] = None
    tasks: list[TaskSuggestion] = []
    dependencies: list[DependencySuggestion] = []
    recommended_flow: list[str] = []
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        """True when the analysis proposes nothing to create."""
        return not self.tasks and not self.dependencies


class LLMGateway(Protocol):
    """Anything that can analyze a request into suggestions."""

    async def generate(self, request: TaskAnalysisRequest) -> TaskAnalysisResult:
        ...


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class TaskAnalyzer:
    """Gateway implementation backed by Bedrock."""

    def __init__(self, bedrock_client: BedrockClient):
        """
        Initialize analyzer.

        Args:
            bedrock_client: Bedrock client for LLM invocation
        """
        self.bedrock = bedrock_client

    async def generate(self, request: TaskAnalysisRequest) -> TaskAnalysisResult:
        """
        Ask the model for an analysis of the request.

        The blocking boto3 call runs in a worker thread so callers can put
        a deadline on it.

        Returns:
            Sanitized analysis, or success=False with the provider error
        """
        prompt = get_task_analysis_prompt(
            user_input=request.user_input,
            agent_goal=request.agent_goal,
            agent_type=request.agent_type,
            existing_tasks=request.existing_tasks,
        )

        try:
            raw = await asyncio.to_thread(
                self.bedrock.invoke_model_with_json_schema,
                prompt=prompt,
                json_schema=TASK_ANALYSIS_SCHEMA,
                system_prompt=TASK_ANALYSIS_SYSTEM_PROMPT,
            )
        except (BedrockInvocationError, JSONParseError) as e:
            logger.error(f"Task analysis failed for user {request.user_id}: {e}")
            return TaskAnalysisResult(success=False, error=str(e))

        result = self.process_response(raw, request)
        logger.info(
            f"Task analysis produced {len(result.tasks)} tasks and "
            f"{len(result.dependencies)} dependencies"
        )
        return result

    def process_response(
        self,
        raw: dict[str, Any],
        request: TaskAnalysisRequest
    ) -> TaskAnalysisResult:
        """
        Validate and sanitize a raw model reply.

        Args:
            raw: Parsed JSON from the model
            request: The request the reply answers

        Returns:
            TaskAnalysisResult with defaults filled in
        """
        generated_at = datetime.now(timezone.utc).isoformat()

        tasks = []
        for index, item in enumerate(raw.get("tasks") or []):
            if not isinstance(item, dict):
                continue
            priority = item.get("priority")
            category = item.get("category")
            tasks.append(TaskSuggestion(
                title=_text(item.get("title")) or f"Task {index + 1}",
                description=_text(item.get("description")),
                priority=priority if priority in TASK_PRIORITIES else "medium",
                estimated_hours=_number(item.get("estimatedHours")) or 2.0,
                category=category if category in TASK_CATEGORIES else "implementation",
                metadata={
                    **(item.get("metadata") if isinstance(item.get("metadata"), dict) else {}),
                    "ai_generated": True,
                    "user_input": request.user_input,
                    "generated_at": generated_at,
                },
            ))

        dependencies = []
        for index, item in enumerate(raw.get("dependencies") or []):
            if not isinstance(item, dict):
                continue
            priority = item.get("priority")
            reason = _text(item.get("reason")) or _text(item.get("blockedReason"))
            dependencies.append(DependencySuggestion(
                title=_text(item.get("title")) or f"Dependency {index + 1}",
                description=_text(item.get("description")),
                reason=reason or DEFAULT_DEPENDENCY_REASON,
                priority=priority if priority in DEPENDENCY_PRIORITIES else "high",
                dependency_type=_text(item.get("dependencyType")) or "approval",
                estimated_hours=_number(item.get("estimatedHours")) or 1.0,
                metadata={
                    **(item.get("metadata") if isinstance(item.get("metadata"), dict) else {}),
                    "ai_generated": True,
                    "requires_human_approval": True,
                },
            ))

        flow = raw.get("recommendedFlow")
        return TaskAnalysisResult(
            success=True,
            user_need_analysis=_text(raw.get("userNeedAnalysis")) or "Analysis not available",
            tasks=tasks,
            dependencies=dependencies,
            recommended_flow=[str(step) for step in flow] if isinstance(flow, list) else [],
        )
