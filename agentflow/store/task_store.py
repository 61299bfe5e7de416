"""Task store backed by async SQLAlchemy.

Every method opens its own short session and commits before returning, so
each call is one row-level operation. There is no cross-row transaction.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agentflow.app.models.agent import AgentModel
from agentflow.app.models.agent_log import AgentLogModel
from agentflow.app.models.task import TaskModel, utcnow
from agentflow.orchestrator.errors import StaleWriteError, StoreError
from agentflow.store.records import (
    AgentLogRecord,
    AgentRecord,
    AgentStatus,
    TaskPriority,
    TaskRecord,
    TaskStatus,
)

logger = logging.getLogger(__name__)

# Record field name -> ORM attribute name
_COLUMN_ALIASES = {"metadata": "metadata_"}


def _new_id() -> str:
    return str(uuid.uuid4())


def _column(model: type, field: str):
    return getattr(model, _COLUMN_ALIASES.get(field, field))


class TaskStore:
    """Row-level CRUD over agents, tasks and agent logs."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """
        Initialize task store.

        Args:
            session_factory: Async session factory bound to the database
        """
        self.sessions = session_factory

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.sessions() as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Store failure during {action}: {e}")
            raise StoreError(f"Database unavailable during {action}") from e

    # Agents

    async def get_agent(self, agent_id: str) -> Optional[AgentRecord]:
        """Fetch an agent by id, or None."""
        async with self._session("get_agent") as session:
            model = await session.get(AgentModel, agent_id)
            return AgentRecord.from_model(model) if model else None

    async def create_agent(
        self,
        owner_id: str,
        name: str,
        goal: Optional[str] = None,
        behavior: Optional[str] = None,
        template_slug: Optional[str] = None,
        status: str = AgentStatus.ACTIVE.value,
        metadata: Optional[dict[str, Any]] = None,
    ) -> AgentRecord:
        """Insert an agent and return it."""
        model = AgentModel(
            id=_new_id(),
            owner_id=owner_id,
            name=name,
            goal=goal,
            behavior=behavior,
            status=status,
            template_slug=template_slug,
            metadata_=metadata or {},
            created_at=utcnow(),
        )
        async with self._session("create_agent") as session:
            session.add(model)
            await session.commit()
            return AgentRecord.from_model(model)

    async def update_agent(self, agent_id: str, values: dict[str, Any]) -> None:
        """Update agent columns by id."""
        values = {**values, "updated_at": utcnow()}
        stmt = (
            update(AgentModel)
            .where(AgentModel.id == agent_id)
            .values({_column(AgentModel, k): v for k, v in values.items()})
        )
        async with self._session("update_agent") as session:
            await session.execute(stmt)
            await session.commit()

    # Tasks

    async def insert_task(
        self,
        agent_id: str,
        title: str,
        *,
        description: Optional[str] = None,
        status: str = TaskStatus.TODO.value,
        priority: str = TaskPriority.MEDIUM.value,
        is_dependency: bool = False,
        blocked_reason: Optional[str] = None,
        auto_generated: bool = False,
        metadata: Optional[dict[str, Any]] = None,
        workflow_state: Optional[str] = None,
        estimated_hours: Optional[float] = None,
        position: Optional[int] = None,
    ) -> str:
        """
        Insert a task row.

        Returns:
            The new task id
        """
        task_id = _new_id()
        model = TaskModel(
            id=task_id,
            agent_id=agent_id,
            title=title,
            description=description,
            status=status,
            priority=priority,
            is_dependency=is_dependency,
            blocked_reason=blocked_reason,
            auto_generated=auto_generated,
            metadata_=metadata or {},
            workflow_state=workflow_state,
            version=1,
            estimated_hours=estimated_hours,
            position=position,
            created_at=utcnow(),
        )
        async with self._session("insert_task") as session:
            session.add(model)
            await session.commit()

        logger.debug(f"Inserted task {task_id} for agent {agent_id} (status={status})")
        return task_id

    async def get_task(self, task_id: str) -> Optional[TaskRecord]:
        """Fetch a task by id, or None."""
        async with self._session("get_task") as session:
            model = await session.get(TaskModel, task_id)
            return TaskRecord.from_model(model) if model else None

    async def update_task(
        self,
        task_id: str,
        values: dict[str, Any],
        expected_version: int,
    ) -> int:
        """
        Update a task only if its version still matches.

        Args:
            task_id: Task to update
            values: Column values keyed by record field name
            expected_version: Version the caller read

        Returns:
            The new version

        Raises:
            StaleWriteError: If the row changed or disappeared since it was read
        """
        new_version = expected_version + 1
        values = {**values, "version": new_version, "updated_at": utcnow()}
        stmt = (
            update(TaskModel)
            .where(TaskModel.id == task_id, TaskModel.version == expected_version)
            .values({_column(TaskModel, k): v for k, v in values.items()})
            .execution_options(synchronize_session=False)
        )
        async with self._session("update_task") as session:
            result = await session.execute(stmt)
            matched = result.rowcount
            await session.commit()

        if matched == 0:
            raise StaleWriteError(
                f"Task {task_id} was modified concurrently (expected version {expected_version})"
            )
        return new_version

    async def list_tasks(
        self,
        agent_id: Optional[str] = None,
        owner_id: Optional[str] = None,
        limit: Optional[int] = None,
        newest_first: bool = True,
        **filters: Any,
    ) -> list[TaskRecord]:
        """
        Select tasks with equality filters.

        Args:
            agent_id: Restrict to one agent
            owner_id: Restrict to agents owned by this user
            limit: Maximum number of rows
            newest_first: Order by creation time descending
            **filters: Column equality filters (e.g. status="blocked")
        """
        stmt = select(TaskModel)
        if owner_id is not None:
            stmt = stmt.join(AgentModel, AgentModel.id == TaskModel.agent_id).where(
                AgentModel.owner_id == owner_id
            )
        if agent_id is not None:
            stmt = stmt.where(TaskModel.agent_id == agent_id)
        for field, value in filters.items():
            stmt = stmt.where(_column(TaskModel, field) == value)

        order = TaskModel.created_at.desc() if newest_first else TaskModel.created_at.asc()
        stmt = stmt.order_by(order)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session("list_tasks") as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [TaskRecord.from_model(row) for row in rows]

    async def count_blocking_dependencies(self, agent_id: str) -> int:
        """Count dependencies of an agent that still block it."""
        stmt = select(func.count()).select_from(TaskModel).where(
            TaskModel.agent_id == agent_id,
            TaskModel.is_dependency.is_(True),
            TaskModel.status.in_([TaskStatus.BLOCKED.value, TaskStatus.TODO.value]),
        )
        async with self._session("count_blocking_dependencies") as session:
            return (await session.execute(stmt)).scalar_one()

    # Agent logs

    async def insert_log(
        self,
        agent_id: str,
        log_type: str,
        message: str,
        task_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> str:
        """Append a log row and return its id."""
        log_id = _new_id()
        model = AgentLogModel(
            id=log_id,
            agent_id=agent_id,
            user_id=user_id,
            log_type=log_type,
            message=message,
            task_id=task_id,
            metadata_=metadata or {},
            created_at=utcnow(),
        )
        async with self._session("insert_log") as session:
            session.add(model)
            await session.commit()
        return log_id

    async def list_logs(
        self,
        agent_id: str,
        limit: int = 50,
        log_type: Optional[str] = None,
    ) -> list[AgentLogRecord]:
        """Read log rows for an agent, newest first."""
        stmt = select(AgentLogModel).where(AgentLogModel.agent_id == agent_id)
        if log_type is not None:
            stmt = stmt.where(AgentLogModel.log_type == log_type)
        stmt = stmt.order_by(AgentLogModel.created_at.desc()).limit(limit)

        async with self._session("list_logs") as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [AgentLogRecord.from_model(row) for row in rows]
