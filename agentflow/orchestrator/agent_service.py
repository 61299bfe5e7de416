"""Agent creation, status changes and activity log reads."""

import logging
from typing import Optional

from agentflow.orchestrator.access import require_owned_agent, require_user
from agentflow.orchestrator.errors import AgentFlowError, ValidationError
from agentflow.orchestrator.results import AgentResult, LogListResult
from agentflow.orchestrator.side_effects import LogEffect, SideEffectDispatcher
from agentflow.store.activity_log import AgentActivityLog
from agentflow.store.records import AgentStatus, LogType
from agentflow.store.task_store import TaskStore

logger = logging.getLogger(__name__)

# Statuses a user can flip between by hand
_TOGGLE = {
    AgentStatus.ACTIVE.value: AgentStatus.PAUSED.value,
    AgentStatus.PAUSED.value: AgentStatus.ACTIVE.value,
}


class AgentService:
    """User-facing agent operations."""

    def __init__(
        self,
        store: TaskStore,
        activity_log: AgentActivityLog,
        dispatcher: SideEffectDispatcher
    ):
        self.store = store
        self.activity_log = activity_log
        self.dispatcher = dispatcher

    async def create_agent(
        self,
        user_id: Optional[str],
        name: str,
        goal: str,
        behavior: Optional[str] = None,
        template_slug: Optional[str] = None,
    ) -> AgentResult:
        """Create an active agent owned by the caller."""
        try:
            user_id = require_user(user_id)
            if not (name or "").strip():
                raise ValidationError("Agent name is required")
            if not (goal or "").strip():
                raise ValidationError("Agent goal is required")

            agent = await self.store.create_agent(
                owner_id=user_id,
                name=name.strip(),
                goal=goal.strip(),
                behavior=behavior,
                template_slug=template_slug,
            )
        except AgentFlowError as e:
            logger.error(f"Failed to create agent for user {user_id}: {e}")
            return AgentResult.fail(e)
        except Exception as e:
            logger.error(f"Unexpected error creating agent: {e}", exc_info=True)
            return AgentResult.unexpected()

        await self.dispatcher.dispatch([
            LogEffect(
                agent_id=agent.id,
                log_type=LogType.MILESTONE,
                message=f'Agent "{agent.name}" created',
                metadata={"goal": agent.goal, "template_slug": template_slug},
                user_id=user_id,
            )
        ])
        logger.info(f"Created agent {agent.id} for user {user_id}")
        return AgentResult(success=True, agent=agent, message=f'Agent "{agent.name}" created.')

    async def toggle_status(self, agent_id: str, user_id: Optional[str]) -> AgentResult:
        """Switch an agent between active and paused."""
        try:
            agent = await require_owned_agent(self.store, agent_id, user_id)
            new_status = _TOGGLE.get(agent.status)
            if new_status is None:
                raise ValidationError(f"Agent in status {agent.status} cannot be paused or resumed")
            await self.store.update_agent(agent.id, {"status": new_status})
        except AgentFlowError as e:
            logger.error(f"Failed to toggle agent {agent_id}: {e}")
            return AgentResult.fail(e)
        except Exception as e:
            logger.error(f"Unexpected error toggling agent {agent_id}: {e}", exc_info=True)
            return AgentResult.unexpected()

        await self.dispatcher.dispatch([
            LogEffect(
                agent_id=agent.id,
                log_type=LogType.MILESTONE,
                message=f"Agent {'resumed' if new_status == AgentStatus.ACTIVE.value else 'paused'} by user",
                metadata={"status_change": {"from": agent.status, "to": new_status}},
                user_id=user_id,
            )
        ])
        return AgentResult(
            success=True,
            agent=agent.model_copy(update={"status": new_status}),
            message=f"Agent is now {new_status}.",
        )

    async def list_logs(
        self,
        agent_id: str,
        user_id: Optional[str],
        limit: int = 50,
        log_type: Optional[str] = None,
    ) -> LogListResult:
        """Read the agent's activity log, newest first."""
        try:
            await require_owned_agent(self.store, agent_id, user_id)
            if log_type is not None and log_type not in {t.value for t in LogType}:
                raise ValidationError(f"Unknown log type: {log_type}")
            entries = await self.activity_log.list_entries(agent_id, limit=limit, log_type=log_type)
        except AgentFlowError as e:
            return LogListResult.fail(e)
        except Exception as e:
            logger.error(f"Unexpected error reading logs of agent {agent_id}: {e}", exc_info=True)
            return LogListResult.unexpected()

        return LogListResult(success=True, entries=entries)
