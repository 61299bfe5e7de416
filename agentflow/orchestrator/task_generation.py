"""Task generation orchestrator.

Turns free-text user intent into tasks and dependencies through the LLM
gateway, then delegates row creation to the dependency lifecycle engine.
Materialization only starts after a complete, successful analysis, so a
provider failure or timeout never leaves rows behind.
"""

import asyncio
import logging
from typing import Any, Optional

from agentflow.llm.prompt_templates import get_dependency_analysis_prompt
from agentflow.llm.task_analyzer import LLMGateway, TaskAnalysisRequest, TaskAnalysisResult
from agentflow.orchestrator.access import require_owned_agent, require_user
from agentflow.orchestrator.dependency_lifecycle import DependencyLifecycleEngine
from agentflow.orchestrator.errors import (
    AgentFlowError,
    EmptyInput,
    NotFoundError,
    ProviderFailure,
)
from agentflow.orchestrator.results import GenerationResult
from agentflow.orchestrator.side_effects import LogEffect, NotifyEffect, SideEffect
from agentflow.store.records import AgentRecord, LogType
from agentflow.store.task_store import TaskStore

logger = logging.getLogger(__name__)


class TaskGenerationOrchestrator:
    """Coordinates LLM analysis and materialization for one agent."""

    def __init__(
        self,
        store: TaskStore,
        gateway: LLMGateway,
        engine: DependencyLifecycleEngine,
        llm_timeout: float = 60.0,
        context_limit: int = 10,
        min_input_length: int = 1,
    ):
        """
        Initialize orchestrator.

        Args:
            store: Task store
            gateway: LLM gateway producing task analyses
            engine: Dependency lifecycle engine that writes rows
            llm_timeout: Default deadline for one gateway call, in seconds
            context_limit: Existing tasks sent to the model as context
            min_input_length: Minimum non-whitespace characters of user input
        """
        self.store = store
        self.gateway = gateway
        self.engine = engine
        self.dispatcher = engine.dispatcher
        self.llm_timeout = llm_timeout
        self.context_limit = context_limit
        self.min_input_length = min_input_length

    async def generate_and_materialize(
        self,
        agent_id: str,
        user_id: Optional[str],
        user_input: str,
        agent_context: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> GenerationResult:
        """
        Analyze user input with the LLM and create the proposed rows.

        Args:
            agent_id: Agent to generate work for
            user_id: Caller; must own the agent
            user_input: What the user wants the agent to work on
            agent_context: Optional overrides for ``agent_goal``/``agent_type``
            timeout: Deadline for the LLM call (default: configured timeout)

        Returns:
            GenerationResult; never raises
        """
        try:
            user_id = require_user(user_id)
            user_input = self._check_input(user_input)
            agent = await require_owned_agent(self.store, agent_id, user_id)
            analysis = await self._analyze(agent, user_id, user_input, agent_context, timeout)
        except AgentFlowError as e:
            logger.error(f"Task generation for agent {agent_id} rejected: {e}")
            return GenerationResult.fail(e)
        except Exception as e:
            logger.error(f"Unexpected error in task generation for agent {agent_id}: {e}", exc_info=True)
            return GenerationResult.unexpected()

        materialized = await self.engine.materialize_from_analysis(agent.id, user_id, analysis)
        if not materialized.success:
            return GenerationResult(
                **materialized.model_dump(),
                user_need_analysis=analysis.user_need_analysis,
                recommended_flow=analysis.recommended_flow,
            )

        task_count = len(materialized.created_tasks)
        dependency_count = len(materialized.created_dependencies)

        effects: list[SideEffect] = [
            LogEffect(
                agent_id=agent.id,
                log_type=LogType.MILESTONE,
                message=(
                    f"AI created {task_count} task(s) and {dependency_count} "
                    f"dependency(ies) based on user input"
                ),
                metadata={
                    "user_input": user_input,
                    "tasks_created": task_count,
                    "dependencies_created": dependency_count,
                    "failed_items": len(materialized.failures),
                    "user_need_analysis": analysis.user_need_analysis,
                    "ai_generated": True,
                },
                user_id=user_id,
            )
        ]
        if dependency_count > 0:
            effects.append(NotifyEffect(message=(
                f'AI created {dependency_count} dependency task(s) for agent "{agent.name}" '
                f"that require your attention. Check your Dependencies basket."
            )))
        await self.dispatcher.dispatch(effects)

        result = GenerationResult(
            **materialized.model_dump(),
            user_need_analysis=analysis.user_need_analysis,
            recommended_flow=analysis.recommended_flow,
        )
        result.message = (
            f"AI successfully created {task_count} task(s) and {dependency_count} "
            f"dependency(ies) based on your request."
        )
        return result

    async def analyze_task_dependencies(
        self,
        agent_id: str,
        task_id: str,
        user_id: Optional[str],
        timeout: Optional[float] = None,
    ) -> GenerationResult:
        """
        Ask the LLM which human inputs an existing task needs and create them.

        Tasks proposed by the analysis are discarded; only dependencies are
        materialized.
        """
        try:
            user_id = require_user(user_id)
            agent = await require_owned_agent(self.store, agent_id, user_id)
            task = await self.store.get_task(task_id)
            if task is None or task.agent_id != agent.id:
                raise NotFoundError(f"Task not found (ID: {task_id})")

            analysis = await self._analyze(
                agent,
                user_id,
                get_dependency_analysis_prompt(task.title, task.description),
                {"agent_type": "dependency-analyzer"},
                timeout,
                allow_empty=True,
            )
        except AgentFlowError as e:
            logger.error(f"Dependency analysis for task {task_id} failed: {e}")
            return GenerationResult.fail(e)
        except Exception as e:
            logger.error(f"Unexpected error analyzing dependencies of task {task_id}: {e}", exc_info=True)
            return GenerationResult.unexpected()

        if not analysis.dependencies:
            return GenerationResult(
                success=True,
                message="No dependencies needed.",
                user_need_analysis=analysis.user_need_analysis,
            )

        dependencies_only = analysis.model_copy(update={"tasks": []})
        materialized = await self.engine.materialize_from_analysis(agent.id, user_id, dependencies_only)
        return GenerationResult(
            **materialized.model_dump(),
            user_need_analysis=analysis.user_need_analysis,
            recommended_flow=analysis.recommended_flow,
        )

    def _check_input(self, user_input: Optional[str]) -> str:
        text = (user_input or "").strip()
        if len("".join(text.split())) < self.min_input_length:
            raise EmptyInput("Please describe what you need the agent to work on.")
        return text

    async def _existing_tasks(self, agent_id: str) -> list[dict[str, Any]]:
        tasks = await self.store.list_tasks(
            agent_id=agent_id, limit=self.context_limit, newest_first=True
        )
        return [
            {
                "id": t.id,
                "title": t.title,
                "description": t.description,
                "status": t.status,
                "priority": t.priority,
                "is_dependency": t.is_dependency,
            }
            for t in tasks
        ]

    async def _analyze(
        self,
        agent: AgentRecord,
        user_id: str,
        user_input: str,
        agent_context: Optional[dict[str, Any]],
        timeout: Optional[float],
        allow_empty: bool = False,
    ) -> TaskAnalysisResult:
        context = agent_context or {}
        request = TaskAnalysisRequest(
            user_input=user_input,
            agent_goal=context.get("agent_goal") or agent.goal or "",
            agent_type=context.get("agent_type") or agent.template_slug or "custom",
            existing_tasks=await self._existing_tasks(agent.id),
            user_id=user_id,
        )
        deadline = timeout if timeout is not None else self.llm_timeout

        try:
            analysis = await asyncio.wait_for(self.gateway.generate(request), timeout=deadline)
        except asyncio.TimeoutError as e:
            raise ProviderFailure(f"AI analysis timed out after {deadline:g}s") from e
        except Exception as e:
            raise ProviderFailure(f"AI analysis failed: {e}") from e

        if not analysis.success:
            raise ProviderFailure(analysis.error or "Failed to analyze user needs")
        if analysis.is_empty and not allow_empty:
            raise ProviderFailure("AI analysis did not propose any tasks or dependencies")

        logger.info(
            f"Analysis for agent {agent.id}: {len(analysis.tasks)} tasks, "
            f"{len(analysis.dependencies)} dependencies"
        )
        return analysis
