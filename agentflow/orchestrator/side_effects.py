"""Post-commit side effects and their dispatcher.

Core operations collect effects while they write rows and hand the list to
the dispatcher once the writes are done. Effect delivery is best-effort and
at-most-once; a failing effect is logged and skipped.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel

from agentflow.notifications.slack import SlackNotifier
from agentflow.store.activity_log import AgentActivityLog
from agentflow.store.records import AgentStatus, LogType
from agentflow.store.task_store import TaskStore

logger = logging.getLogger(__name__)


class LogEffect(BaseModel):
    """Append an agent activity log entry."""
    agent_id: str
    log_type: LogType
    message: str
    task_id: Optional[str] = None
    metadata: dict[str, Any] = {}
    user_id: Optional[str] = None


class NotifyEffect(BaseModel):
    """Send a human-readable notification."""
    message: str


class ReactivateAgentEffect(BaseModel):
    """Return an agent to active once none of its dependencies block it."""
    agent_id: str


SideEffect = Union[LogEffect, NotifyEffect, ReactivateAgentEffect]


class SideEffectDispatcher:
    """Executes side effects, swallowing and logging their failures."""

    def __init__(
        self,
        activity_log: AgentActivityLog,
        notifier: SlackNotifier,
        store: TaskStore
    ):
        self.activity_log = activity_log
        self.notifier = notifier
        self.store = store

    async def dispatch(self, effects: list[SideEffect]) -> int:
        """
        Run effects in order.

        Args:
            effects: Effects queued by a core operation

        Returns:
            Number of effects that ran without error
        """
        delivered = 0
        for effect in effects:
            try:
                await self._run(effect)
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Side effect {type(effect).__name__} failed and was dropped: {e}",
                    exc_info=True
                )
        return delivered

    async def _run(self, effect: SideEffect) -> None:
        if isinstance(effect, LogEffect):
            await self.activity_log.append(
                agent_id=effect.agent_id,
                log_type=effect.log_type,
                message=effect.message,
                task_id=effect.task_id,
                metadata=effect.metadata,
                user_id=effect.user_id,
            )
        elif isinstance(effect, NotifyEffect):
            await self.notifier.notify(effect.message)
        elif isinstance(effect, ReactivateAgentEffect):
            await self._reactivate_agent(effect.agent_id)
        else:
            raise TypeError(f"Unknown side effect: {effect!r}")

    async def _reactivate_agent(self, agent_id: str) -> None:
        remaining = await self.store.count_blocking_dependencies(agent_id)
        if remaining:
            logger.info(
                f"Agent {agent_id} still has {remaining} pending dependencies, not restarting"
            )
            return

        agent = await self.store.get_agent(agent_id)
        if agent is None:
            logger.warning(f"Agent {agent_id} disappeared before reactivation")
            return
        if agent.status == AgentStatus.ACTIVE.value:
            return

        await self.store.update_agent(
            agent_id,
            {
                "status": AgentStatus.ACTIVE.value,
                "metadata": {
                    **agent.metadata,
                    "auto_restarted": True,
                    "restart_reason": "All dependencies resolved",
                    "restarted_at": datetime.now(timezone.utc).isoformat(),
                },
            },
        )
        await self.activity_log.append(
            agent_id=agent_id,
            log_type=LogType.MILESTONE,
            message="Agent automatically restarted: all dependencies resolved",
            metadata={"auto_restart": True, "trigger": "dependency_resolution"},
        )
        logger.info(f"Agent {agent_id} reactivated")
