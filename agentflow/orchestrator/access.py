"""Caller and ownership checks shared by core operations."""

from typing import Optional

from agentflow.orchestrator.errors import AgentNotFound, AuthenticationRequired, PermissionDenied
from agentflow.store.records import AgentRecord
from agentflow.store.task_store import TaskStore


def require_user(user_id: Optional[str]) -> str:
    """Return the caller id or raise AuthenticationRequired."""
    if not user_id or not user_id.strip():
        raise AuthenticationRequired("Authentication required.")
    return user_id


async def require_agent(store: TaskStore, agent_id: str) -> AgentRecord:
    """Return the agent or raise AgentNotFound."""
    agent = await store.get_agent(agent_id)
    if agent is None:
        raise AgentNotFound(f"Agent not found (ID: {agent_id})")
    return agent


async def require_owned_agent(store: TaskStore, agent_id: str, user_id: Optional[str]) -> AgentRecord:
    """Return the agent if the caller owns it."""
    user_id = require_user(user_id)
    agent = await require_agent(store, agent_id)
    if agent.owner_id != user_id:
        raise PermissionDenied("You don't have permission to modify this agent.")
    return agent
