"""Append-only agent activity log."""

import logging
from typing import Any, Optional

from agentflow.orchestrator.errors import StoreError
from agentflow.store.records import AgentLogRecord, LogType
from agentflow.store.task_store import TaskStore

logger = logging.getLogger(__name__)


class AgentActivityLog:
    """
    Best-effort writer and reader for agent log entries.

    A failed write is logged locally and dropped; it never fails the
    business operation that produced it.
    """

    def __init__(self, store: TaskStore):
        self.store = store

    async def append(
        self,
        agent_id: str,
        log_type: str,
        message: str,
        task_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Append a log entry.

        Returns:
            The new entry id, or None if the write was dropped
        """
        try:
            log_type = LogType(log_type).value
        except ValueError:
            logger.warning(f"Dropped log with unknown type {log_type!r} for agent {agent_id}: {message!r}")
            return None

        try:
            log_id = await self.store.insert_log(
                agent_id=agent_id,
                log_type=log_type,
                message=message,
                task_id=task_id,
                metadata=metadata,
                user_id=user_id,
            )
        except StoreError as e:
            logger.warning(
                f"Dropped {log_type} log for agent {agent_id}: {e} (message={message!r})"
            )
            return None

        logger.debug(f"Agent {agent_id} [{log_type}] {message}")
        return log_id

    async def list_entries(
        self,
        agent_id: str,
        limit: int = 50,
        log_type: Optional[str] = None,
    ) -> list[AgentLogRecord]:
        """Read entries for an agent, newest first."""
        return await self.store.list_logs(
            agent_id,
            limit=limit,
            log_type=LogType(log_type).value if log_type else None,
        )
