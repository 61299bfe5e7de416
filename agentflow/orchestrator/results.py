"""Tagged result models returned by public core operations."""

from typing import Optional

from pydantic import BaseModel

from agentflow.orchestrator.errors import AgentFlowError
from agentflow.orchestrator.projections import DependencyOverview
from agentflow.store.records import AgentLogRecord, AgentRecord


class OperationResult(BaseModel):
    """Base result: success flag plus a human-readable error on failure."""
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def fail(cls, exc: AgentFlowError, **payload):
        """Build a failure result from a core error."""
        return cls(success=False, error=str(exc), error_code=exc.code, **payload)

    @classmethod
    def unexpected(cls, **payload):
        """Build a failure result for an error outside the taxonomy."""
        return cls(
            success=False,
            error="An unexpected error occurred",
            error_code="UnexpectedError",
            **payload
        )


class DependencyResult(OperationResult):
    """Result of a single dependency operation."""
    task_id: Optional[str] = None
    state: Optional[str] = None
    already_in_state: bool = False


class ItemFailure(BaseModel):
    """One item of a batch that could not be inserted."""
    kind: str  # task, dependency
    title: str
    error: str
    error_code: str


class MaterializationResult(OperationResult):
    """Result of turning an analysis into rows."""
    created_tasks: list[str] = []
    created_dependencies: list[str] = []
    failures: list[ItemFailure] = []
    partial_failure: bool = False


class GenerationResult(MaterializationResult):
    """Result of an LLM-driven task generation."""
    user_need_analysis: Optional[str] = None
    recommended_flow: list[str] = []


class AgentResult(OperationResult):
    """Result of an agent operation."""
    agent: Optional[AgentRecord] = None


class OverviewResult(OperationResult):
    """Result of a dependency dashboard read."""
    overview: Optional[DependencyOverview] = None


class LogListResult(OperationResult):
    """Result of an activity log read."""
    entries: list[AgentLogRecord] = []
