"""Row-level records and enumerations shared by the store and the core."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

from agentflow.app.models.agent import AgentModel
from agentflow.app.models.agent_log import AgentLogModel
from agentflow.app.models.task import TaskModel


class TaskStatus(str, Enum):
    """Task status column values."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    DONE = "done"


class TaskPriority(str, Enum):
    """Task priority column values."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AgentStatus(str, Enum):
    """Agent status column values."""
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


class LogType(str, Enum):
    """Agent log entry types."""
    MILESTONE = "milestone"
    ACTION = "action"
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    TASK_UPDATE = "task_update"
    DEPENDENCY = "dependency"


class AgentRecord(BaseModel):
    """Agent row."""
    id: str
    owner_id: str
    name: str
    goal: Optional[str] = None
    behavior: Optional[str] = None
    status: str = AgentStatus.ACTIVE.value
    template_slug: Optional[str] = None
    metadata: dict[str, Any] = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: AgentModel) -> "AgentRecord":
        """Create AgentRecord from an ORM row."""
        return cls(
            id=model.id,
            owner_id=model.owner_id,
            name=model.name,
            goal=model.goal,
            behavior=model.behavior,
            status=model.status,
            template_slug=model.template_slug,
            metadata=dict(model.metadata_ or {}),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class TaskRecord(BaseModel):
    """Task row, in the persisted layout exposed to callers."""
    id: str
    agent_id: str
    title: str
    description: Optional[str] = None
    status: str = TaskStatus.TODO.value
    priority: str = TaskPriority.MEDIUM.value
    is_dependency: bool = False
    blocked_reason: Optional[str] = None
    auto_generated: bool = False
    metadata: dict[str, Any] = {}
    workflow_state: Optional[str] = None
    version: int = 1
    estimated_hours: Optional[float] = None
    position: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: TaskModel) -> "TaskRecord":
        """Create TaskRecord from an ORM row."""
        return cls(
            id=model.id,
            agent_id=model.agent_id,
            title=model.title,
            description=model.description,
            status=model.status,
            priority=model.priority,
            is_dependency=bool(model.is_dependency),
            blocked_reason=model.blocked_reason,
            auto_generated=bool(model.auto_generated),
            metadata=dict(model.metadata_ or {}),
            workflow_state=model.workflow_state,
            version=model.version,
            estimated_hours=model.estimated_hours,
            position=model.position,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class AgentLogRecord(BaseModel):
    """Agent log row."""
    id: str
    agent_id: str
    user_id: Optional[str] = None
    log_type: str
    message: str
    task_id: Optional[str] = None
    metadata: dict[str, Any] = {}
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: AgentLogModel) -> "AgentLogRecord":
        """Create AgentLogRecord from an ORM row."""
        return cls(
            id=model.id,
            agent_id=model.agent_id,
            user_id=model.user_id,
            log_type=model.log_type,
            message=model.message,
            task_id=model.task_id,
            metadata=dict(model.metadata_ or {}),
            created_at=model.created_at,
        )
