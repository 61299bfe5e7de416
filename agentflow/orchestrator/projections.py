"""Read-side dependency projections.

Pure functions over task rows. Callers recompute them on every read because
agents and humans mutate tasks concurrently.
"""

from typing import Iterable

from pydantic import BaseModel

from agentflow.store.records import TaskPriority, TaskRecord, TaskStatus

URGENT_PRIORITIES = frozenset({TaskPriority.URGENT.value, TaskPriority.HIGH.value})


def is_pending_dependency(task: TaskRecord) -> bool:
    """A dependency still waiting for a human to pick it up."""
    return (
        task.is_dependency
        and task.status != TaskStatus.DONE.value
        and task.metadata.get("workflow_status") != "completed"
        and task.metadata.get("moved_to_tasks") is not True
    )


def is_completed_dependency(task: TaskRecord) -> bool:
    """A dependency a human has resolved."""
    return (
        task.is_dependency
        and task.status == TaskStatus.DONE.value
        and (
            task.metadata.get("workflow_status") == "completed"
            or task.metadata.get("in_history") is True
        )
    )


def is_active_user_task(task: TaskRecord) -> bool:
    """A former dependency a human is currently working on."""
    return (
        not task.is_dependency
        and task.status == TaskStatus.IN_PROGRESS.value
        and task.metadata.get("moved_to_tasks") is True
        and task.metadata.get("workflow_status") == "user_working"
    )


def pending_dependencies(tasks: Iterable[TaskRecord]) -> list[TaskRecord]:
    return [t for t in tasks if is_pending_dependency(t)]


def completed_dependencies(tasks: Iterable[TaskRecord]) -> list[TaskRecord]:
    return [t for t in tasks if is_completed_dependency(t)]


def active_user_task_count(tasks: Iterable[TaskRecord]) -> int:
    return sum(1 for t in tasks if is_active_user_task(t))


def urgent_count(tasks: Iterable[TaskRecord]) -> int:
    """Pending dependencies whose metadata priority is urgent or high."""
    return sum(
        1 for t in pending_dependencies(tasks)
        if t.metadata.get("priority") in URGENT_PRIORITIES
    )


class DependencyOverview(BaseModel):
    """Dashboard bundle of the dependency projections."""
    pending: list[TaskRecord] = []
    completed: list[TaskRecord] = []
    active_user_task_count: int = 0
    urgent_count: int = 0


def build_overview(tasks: Iterable[TaskRecord]) -> DependencyOverview:
    """Compute every projection from one snapshot of task rows."""
    tasks = list(tasks)
    return DependencyOverview(
        pending=pending_dependencies(tasks),
        completed=completed_dependencies(tasks),
        active_user_task_count=active_user_task_count(tasks),
        urgent_count=urgent_count(tasks),
    )
