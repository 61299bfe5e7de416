"""Dependency lifecycle engine.

Classifies generated work as plain tasks or human-blocking dependencies and
moves dependencies through pending -> user_working -> completed. Every public
method returns a tagged result; side effects are queued while rows are
written and dispatched afterwards.
"""

import logging
from typing import Any, Callable, Optional

from agentflow.llm.task_analyzer import TaskAnalysisResult, TaskSuggestion
from agentflow.orchestrator import workflow
from agentflow.orchestrator.access import require_agent, require_owned_agent, require_user
from agentflow.orchestrator.errors import (
    AgentFlowError,
    NotFoundError,
    PartialMaterializationFailure,
    StaleWriteError,
    ValidationError,
)
from agentflow.orchestrator.projections import build_overview
from agentflow.orchestrator.results import (
    DependencyResult,
    ItemFailure,
    MaterializationResult,
    OverviewResult,
)
from agentflow.orchestrator.side_effects import (
    LogEffect,
    NotifyEffect,
    ReactivateAgentEffect,
    SideEffect,
    SideEffectDispatcher,
)
from agentflow.orchestrator.workflow import DependencyState
from agentflow.store.records import AgentRecord, LogType, TaskPriority, TaskRecord, TaskStatus
from agentflow.store.task_store import TaskStore

logger = logging.getLogger(__name__)

PRIORITIES = {p.value for p in TaskPriority}

# Reads of a dependency before a conflicting write is reported
_WRITE_ATTEMPTS = 2


class DependencyLifecycleEngine:
    """Creates, materializes, claims and resolves dependencies."""

    def __init__(self, store: TaskStore, dispatcher: SideEffectDispatcher):
        """
        Initialize engine.

        Args:
            store: Task store
            dispatcher: Runs post-commit side effects
        """
        self.store = store
        self.dispatcher = dispatcher

    async def create_dependency(
        self,
        agent_id: str,
        title: str,
        reason: str,
        priority: str = TaskPriority.HIGH.value,
        user_id: Optional[str] = None,
    ) -> DependencyResult:
        """
        Create a pending dependency that blocks the agent until a human acts.

        Args:
            agent_id: Owning agent
            title: What the human must do
            reason: Why the agent is blocked
            priority: low, medium, high or urgent
            user_id: When given, the caller must own the agent

        Returns:
            DependencyResult with the new task id, or a tagged failure
        """
        logger.info(f"Creating dependency for agent {agent_id}: {title}")

        try:
            if user_id is not None:
                agent = await require_owned_agent(self.store, agent_id, user_id)
            else:
                agent = await require_agent(self.store, agent_id)
            task_id, effects = await self._insert_dependency(
                agent, title, reason, priority, user_id=user_id
            )
        except AgentFlowError as e:
            logger.error(f"Failed to create dependency for agent {agent_id}: {e}")
            return DependencyResult.fail(e)
        except Exception as e:
            logger.error(f"Unexpected error creating dependency for agent {agent_id}: {e}", exc_info=True)
            return DependencyResult.unexpected()

        await self.dispatcher.dispatch(effects)
        return DependencyResult(
            success=True,
            task_id=task_id,
            state=DependencyState.PENDING.value,
            message=f'Dependency "{title.strip()}" created.',
        )

    async def materialize_from_analysis(
        self,
        agent_id: str,
        user_id: Optional[str],
        analysis: TaskAnalysisResult,
    ) -> MaterializationResult:
        """
        Insert every task and dependency an analysis proposes.

        Best-effort batch: a failing item is recorded in ``failures`` and the
        remaining items are still inserted. Nothing is rolled back.

        Args:
            agent_id: Owning agent
            user_id: User on whose behalf rows are created
            analysis: Successful analysis from the LLM gateway

        Returns:
            MaterializationResult with created ids and per-item failures
        """
        try:
            agent = await require_agent(self.store, agent_id)
        except AgentFlowError as e:
            logger.error(f"Cannot materialize analysis for agent {agent_id}: {e}")
            return MaterializationResult.fail(e)
        except Exception as e:
            logger.error(f"Unexpected error loading agent {agent_id}: {e}", exc_info=True)
            return MaterializationResult.unexpected()

        created_tasks: list[str] = []
        created_dependencies: list[str] = []
        failures: list[ItemFailure] = []
        effects: list[SideEffect] = []

        for index, suggestion in enumerate(analysis.tasks):
            try:
                task_id = await self._insert_plain_task(agent, suggestion, index)
                created_tasks.append(task_id)
            except Exception as e:
                failures.append(self._item_failure("task", suggestion.title, e))

        for suggestion in analysis.dependencies:
            try:
                task_id, item_effects = await self._insert_dependency(
                    agent,
                    suggestion.title,
                    suggestion.reason,
                    suggestion.priority,
                    description=suggestion.description,
                    estimated_hours=suggestion.estimated_hours,
                    metadata={
                        **suggestion.metadata,
                        "dependency_type": suggestion.dependency_type,
                        "ai_generated": True,
                        "manually_created": False,
                    },
                    user_id=user_id,
                )
                created_dependencies.append(task_id)
                effects.extend(item_effects)
            except Exception as e:
                failures.append(self._item_failure("dependency", suggestion.title, e))

        await self.dispatcher.dispatch(effects)

        total = len(analysis.tasks) + len(analysis.dependencies)
        created = len(created_tasks) + len(created_dependencies)
        result = MaterializationResult(
            success=created > 0 or not failures,
            created_tasks=created_tasks,
            created_dependencies=created_dependencies,
            failures=failures,
            partial_failure=bool(failures),
        )
        if failures:
            result.error_code = PartialMaterializationFailure.code
            result.error = f"{len(failures)} of {total} item(s) could not be created"
            logger.warning(f"Materialization for agent {agent_id}: {result.error}")

        logger.info(
            f"Materialized {len(created_tasks)} tasks and {len(created_dependencies)} "
            f"dependencies for agent {agent_id}"
        )
        return result

    async def claim(self, dependency_id: str, user_id: Optional[str]) -> DependencyResult:
        """
        Move a pending dependency into the user's active work.

        Claiming an already claimed dependency is a no-op success. Claiming a
        completed dependency, a missing task or a plain task fails with a
        NotFoundError-class error.
        """
        logger.info(f"User {user_id} claiming dependency {dependency_id}")

        try:
            user_id = require_user(user_id)
            task, agent, changed = await self._apply_transition(
                dependency_id,
                user_id,
                DependencyState.USER_WORKING,
                lambda current: workflow.claimed_row(current, user_id),
            )

            if not changed:
                return DependencyResult(
                    success=True,
                    task_id=task.id,
                    state=DependencyState.USER_WORKING.value,
                    already_in_state=True,
                    message=f'"{task.title}" is already in your active tasks.',
                )
        except AgentFlowError as e:
            logger.error(f"Failed to claim dependency {dependency_id}: {e}")
            return DependencyResult.fail(e, task_id=dependency_id)
        except Exception as e:
            logger.error(f"Unexpected error claiming dependency {dependency_id}: {e}", exc_info=True)
            return DependencyResult.unexpected(task_id=dependency_id)

        await self.dispatcher.dispatch([
            LogEffect(
                agent_id=task.agent_id,
                log_type=LogType.ACTION,
                message=f'User took ownership of dependency "{task.title}" and moved it to their active tasks.',
                task_id=task.id,
                metadata={"task_id": task.id, "action": "move_to_tasks", "user_id": user_id},
                user_id=user_id,
            ),
            NotifyEffect(message=f'User took ownership of dependency "{task.title}" for {agent.name}'),
        ])

        logger.info(f"Dependency {task.id} claimed by user {user_id}")
        return DependencyResult(
            success=True,
            task_id=task.id,
            state=DependencyState.USER_WORKING.value,
            message=f'"{task.title}" is now in your active tasks.',
        )

    async def resolve(
        self,
        dependency_id: str,
        user_id: Optional[str],
        completion_notes: str = "",
    ) -> DependencyResult:
        """
        Complete a dependency so its agent may resume.

        Resolving twice is a benign no-op. The agent is not re-invoked; an
        activity log entry and a reactivation check are queued instead.
        """
        logger.info(f"User {user_id} resolving dependency {dependency_id}")

        try:
            user_id = require_user(user_id)
            task, agent, changed = await self._apply_transition(
                dependency_id,
                user_id,
                DependencyState.COMPLETED,
                lambda current: workflow.completed_row(current, user_id, completion_notes),
            )

            if not changed:
                return DependencyResult(
                    success=True,
                    task_id=task.id,
                    state=DependencyState.COMPLETED.value,
                    already_in_state=True,
                    message=f'"{task.title}" is already resolved.',
                )
        except AgentFlowError as e:
            logger.error(f"Failed to resolve dependency {dependency_id}: {e}")
            return DependencyResult.fail(e, task_id=dependency_id)
        except Exception as e:
            logger.error(f"Unexpected error resolving dependency {dependency_id}: {e}", exc_info=True)
            return DependencyResult.unexpected(task_id=dependency_id)

        await self.dispatcher.dispatch([
            LogEffect(
                agent_id=task.agent_id,
                log_type=LogType.SUCCESS,
                message=f'User completed dependency "{task.title}". The agent may resume.',
                task_id=task.id,
                metadata={
                    "task_id": task.id,
                    "action": "resolve_dependency",
                    "user_id": user_id,
                    "completion_notes": completion_notes,
                },
                user_id=user_id,
            ),
            NotifyEffect(
                message=f'Task "{task.title}" completed by user! {agent.name} may now proceed if unblocked.'
            ),
            ReactivateAgentEffect(agent_id=task.agent_id),
        ])

        logger.info(f"Dependency {task.id} resolved by user {user_id}")
        return DependencyResult(
            success=True,
            task_id=task.id,
            state=DependencyState.COMPLETED.value,
            message=f'"{task.title}" completed! It has been moved to your completed history.',
        )

    async def dependency_overview(
        self,
        user_id: Optional[str],
        agent_id: Optional[str] = None,
    ) -> OverviewResult:
        """
        Compute the pending/completed dependency projections for a user.

        Args:
            user_id: Caller; only tasks of agents they own are considered
            agent_id: Optionally restrict to one agent
        """
        try:
            user_id = require_user(user_id)
            if agent_id is not None:
                await require_owned_agent(self.store, agent_id, user_id)
            tasks = await self.store.list_tasks(agent_id=agent_id, owner_id=user_id)
        except AgentFlowError as e:
            logger.error(f"Failed to load dependency overview for user {user_id}: {e}")
            return OverviewResult.fail(e)
        except Exception as e:
            logger.error(f"Unexpected error loading dependency overview: {e}", exc_info=True)
            return OverviewResult.unexpected()

        return OverviewResult(success=True, overview=build_overview(tasks))

    async def _insert_dependency(
        self,
        agent: AgentRecord,
        title: str,
        reason: str,
        priority: str,
        description: Optional[str] = None,
        estimated_hours: Optional[float] = None,
        metadata: Optional[dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> tuple[str, list[SideEffect]]:
        title = (title or "").strip()
        reason = (reason or "").strip()
        if not title:
            raise ValidationError("Dependency title is required")
        if not reason:
            raise ValidationError("Dependency reason is required")
        if priority not in PRIORITIES:
            raise ValidationError(f"Unknown priority: {priority}")

        row = workflow.pending_row(
            reason,
            priority,
            metadata={
                "blocked_by": "user_input",
                "workflow_type": "dependency",
                "ai_generated": False,
                "requires_human_input": True,
                "dependency_type": "user_input",
                "manually_created": True,
                **workflow.without_state_flags(metadata),
            },
        )
        workflow.check_row(DependencyState.PENDING, row)

        task_id = await self.store.insert_task(
            agent.id,
            title,
            description=description or None,
            priority=priority,
            auto_generated=False,
            estimated_hours=estimated_hours,
            **row,
        )

        effects: list[SideEffect] = [
            LogEffect(
                agent_id=agent.id,
                log_type=LogType.DEPENDENCY,
                message=f"New dependency created: {title}",
                task_id=task_id,
                metadata={
                    "dependency_id": task_id,
                    "dependency_title": title,
                    "dependency_reason": reason,
                    "manually_created": row["metadata"]["manually_created"],
                },
                user_id=user_id,
            )
        ]
        return task_id, effects

    async def _insert_plain_task(self, agent: AgentRecord, suggestion: TaskSuggestion, index: int) -> str:
        title = (suggestion.title or "").strip()
        if not title:
            raise ValidationError("Task title is required")
        priority = suggestion.priority if suggestion.priority in PRIORITIES else TaskPriority.MEDIUM.value

        return await self.store.insert_task(
            agent.id,
            title,
            description=suggestion.description or None,
            status=TaskStatus.TODO.value,
            priority=priority,
            is_dependency=False,
            auto_generated=True,
            metadata={
                **workflow.without_state_flags(suggestion.metadata),
                "priority": priority,
                "category": suggestion.category,
                "source": "ai_task_analysis",
            },
            estimated_hours=suggestion.estimated_hours,
            position=index,
        )

    async def _apply_transition(
        self,
        dependency_id: str,
        user_id: str,
        target: DependencyState,
        build_row: Callable[[TaskRecord], dict[str, Any]],
    ) -> tuple[TaskRecord, AgentRecord, bool]:
        """
        Move a dependency to ``target`` with a versioned write.

        A write that loses a race re-reads the row once. If the winner already
        moved it to ``target`` the call is a no-op; otherwise the transition is
        re-validated against the fresh row.

        Returns:
            The task as read, its agent, and whether this call wrote the row

        Raises:
            StaleWriteError: If the row kept changing under every attempt
        """
        for attempt in range(1, _WRITE_ATTEMPTS + 1):
            task, state, agent = await self._load_dependency(dependency_id, user_id)
            if state == target:
                return task, agent, False

            workflow.check_transition(state, target)
            row = build_row(task)
            workflow.check_row(target, row)
            try:
                await self.store.update_task(task.id, row, expected_version=task.version)
                return task, agent, True
            except StaleWriteError:
                if attempt == _WRITE_ATTEMPTS:
                    raise
                logger.info(f"Dependency {task.id} changed before {target.value} was written, re-reading")

        raise StaleWriteError(f"Task {dependency_id} could not be written")

    async def _load_dependency(
        self,
        dependency_id: str,
        user_id: str,
    ) -> tuple[TaskRecord, DependencyState, AgentRecord]:
        task = await self.store.get_task(dependency_id)
        if task is None:
            raise NotFoundError(f"Task not found (ID: {dependency_id})")

        state = workflow.state_of(task)
        if state is None:
            raise NotFoundError(f"Task {dependency_id} is not a dependency")

        agent = await require_owned_agent(self.store, task.agent_id, user_id)
        return task, state, agent

    @staticmethod
    def _item_failure(kind: str, title: str, exc: Exception) -> ItemFailure:
        if isinstance(exc, AgentFlowError):
            logger.error(f"Error creating {kind} {title!r}: {exc}")
            return ItemFailure(kind=kind, title=title or "", error=str(exc), error_code=exc.code)

        logger.error(f"Unexpected error creating {kind} {title!r}: {exc}", exc_info=True)
        return ItemFailure(kind=kind, title=title or "", error=str(exc), error_code="UnexpectedError")
