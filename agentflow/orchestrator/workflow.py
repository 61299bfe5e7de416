"""Dependency workflow states, transition table and row shapes.

A dependency's state lives in the ``workflow_state`` column. The status,
``is_dependency``, ``blocked_reason`` and metadata flags that dashboards read
are always written from that state, never inferred back from them.

    pending       -> user_working, completed
    user_working  -> completed
    completed     -> (terminal)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from agentflow.orchestrator.errors import InvalidTransition, ValidationError
from agentflow.store.records import TaskRecord, TaskStatus


class DependencyState(str, Enum):
    """Lifecycle state of a dependency."""
    PENDING = "pending"
    USER_WORKING = "user_working"
    COMPLETED = "completed"


TRANSITIONS: dict[DependencyState, frozenset[DependencyState]] = {
    DependencyState.PENDING: frozenset({DependencyState.USER_WORKING, DependencyState.COMPLETED}),
    DependencyState.USER_WORKING: frozenset({DependencyState.COMPLETED}),
    DependencyState.COMPLETED: frozenset(),
}

# Column values each state requires: (status, is_dependency, has_blocked_reason)
_ROW_SHAPES: dict[DependencyState, tuple[str, bool, bool]] = {
    DependencyState.PENDING: (TaskStatus.BLOCKED.value, True, True),
    DependencyState.USER_WORKING: (TaskStatus.IN_PROGRESS.value, False, False),
    DependencyState.COMPLETED: (TaskStatus.DONE.value, True, False),
}


# Metadata keys owned by the state machine; callers may not supply them
STATE_METADATA_KEYS = frozenset({
    "workflow_status",
    "moved_to_tasks",
    "moved_at",
    "moved_by",
    "original_dependency",
    "in_history",
    "completed_at",
    "completed_by",
    "completion_notes",
})


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def without_state_flags(metadata: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Copy of externally supplied metadata with state-owned keys removed."""
    return {k: v for k, v in (metadata or {}).items() if k not in STATE_METADATA_KEYS}


def state_of(task: TaskRecord) -> Optional[DependencyState]:
    """Return the dependency state of a task, or None for an ordinary task."""
    if task.workflow_state is None:
        return None
    return DependencyState(task.workflow_state)


def can_transition(current: DependencyState, target: DependencyState) -> bool:
    """Whether the table allows moving from current to target."""
    return target in TRANSITIONS[current]


def check_transition(current: DependencyState, target: DependencyState) -> None:
    """
    Validate a transition.

    Raises:
        InvalidTransition: If the table does not allow it
    """
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Dependency cannot move from {current.value} to {target.value}"
        )


def pending_row(
    reason: str,
    priority: str,
    metadata: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Column values for a newly created pending dependency."""
    return {
        "status": TaskStatus.BLOCKED.value,
        "is_dependency": True,
        "blocked_reason": reason,
        "workflow_state": DependencyState.PENDING.value,
        "metadata": {
            **(metadata or {}),
            "priority": priority,
            "workflow_status": DependencyState.PENDING.value,
        },
    }


def claimed_row(task: TaskRecord, user_id: str) -> dict[str, Any]:
    """Column values after a user takes a dependency on."""
    return {
        "status": TaskStatus.IN_PROGRESS.value,
        "is_dependency": False,
        "blocked_reason": None,
        "workflow_state": DependencyState.USER_WORKING.value,
        "metadata": {
            **task.metadata,
            "moved_to_tasks": True,
            "moved_at": _now_iso(),
            "moved_by": user_id,
            "workflow_status": DependencyState.USER_WORKING.value,
            "original_dependency": True,
            "in_history": False,
        },
    }


def completed_row(task: TaskRecord, user_id: str, completion_notes: str = "") -> dict[str, Any]:
    """Column values after a user resolves a dependency."""
    return {
        "status": TaskStatus.DONE.value,
        "is_dependency": True,
        "blocked_reason": None,
        "workflow_state": DependencyState.COMPLETED.value,
        "metadata": {
            **task.metadata,
            "completion_notes": completion_notes or "Task completed by user.",
            "completed_at": _now_iso(),
            "completed_by": user_id,
            "workflow_status": DependencyState.COMPLETED.value,
            "in_history": True,
            "moved_to_tasks": False,
        },
    }


def check_row(state: DependencyState, row: dict[str, Any]) -> None:
    """
    Verify that row values agree with the state they are written for.

    Raises:
        ValidationError: If status, dependency flag, blocked reason or
            metadata flags contradict the state
    """
    status, is_dependency, needs_reason = _ROW_SHAPES[state]
    metadata = row.get("metadata") or {}
    problems = []

    if row.get("status") != status:
        problems.append(f"status must be {status}")
    if bool(row.get("is_dependency")) != is_dependency:
        problems.append(f"is_dependency must be {is_dependency}")
    reason = (row.get("blocked_reason") or "").strip()
    if needs_reason and not reason:
        problems.append("blocked_reason is required")
    if not needs_reason and row.get("blocked_reason") is not None:
        problems.append("blocked_reason must be cleared")
    if metadata.get("workflow_status") != state.value:
        problems.append(f"metadata.workflow_status must be {state.value}")
    if state == DependencyState.USER_WORKING and metadata.get("moved_to_tasks") is not True:
        problems.append("metadata.moved_to_tasks must be true")
    if state != DependencyState.USER_WORKING and metadata.get("moved_to_tasks") is True:
        problems.append("metadata.moved_to_tasks must not be set")

    if problems:
        raise ValidationError(
            f"Inconsistent {state.value} dependency row: {'; '.join(problems)}"
        )
