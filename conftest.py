"""Pytest configuration and shared fixtures."""

import asyncio
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from agentflow.app.database import create_engine, create_session_factory, init_db
from agentflow.app.services import AgentFlowServices
from agentflow.llm.task_analyzer import (
    DependencySuggestion,
    TaskAnalysisRequest,
    TaskAnalysisResult,
    TaskSuggestion,
)
from agentflow.notifications.slack import SlackNotifier
from agentflow.store.task_store import TaskStore

TEST_USER_ID = "550e8400-e29b-41d4-a716-446655440000"
OTHER_USER_ID = "550e8400-e29b-41d4-a716-446655440001"


class FakeGateway:
    """LLM gateway double that returns a canned analysis."""

    def __init__(
        self,
        result: Optional[TaskAnalysisResult] = None,
        exc: Optional[Exception] = None,
        delay: float = 0.0
    ):
        self.result = result or TaskAnalysisResult(success=True)
        self.exc = exc
        self.delay = delay
        self.requests: list[TaskAnalysisRequest] = []

    async def generate(self, request: TaskAnalysisRequest) -> TaskAnalysisResult:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.result


def pricing_analysis() -> TaskAnalysisResult:
    """One task and one dependency, as in the pricing research scenario."""
    return TaskAnalysisResult(
        success=True,
        user_need_analysis="User wants a pricing comparison of competitors",
        tasks=[TaskSuggestion(title="Research competitors")],
        dependencies=[
            DependencySuggestion(
                title="Get access to pricing database",
                reason="requires credentials",
            )
        ],
        recommended_flow=["Get access", "Research", "Summarize"],
    )


@pytest.fixture
async def session_factory(tmp_path):
    """Session factory over a fresh SQLite database."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'agentflow.db'}")
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def store(session_factory) -> TaskStore:
    return TaskStore(session_factory)


@pytest.fixture
def notifier():
    return AsyncMock(spec=SlackNotifier)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway(pricing_analysis())


@pytest.fixture
def services(store, gateway, notifier) -> AgentFlowServices:
    return AgentFlowServices(store=store, gateway=gateway, notifier=notifier, llm_timeout=5.0)


@pytest.fixture
async def agent(store):
    """An active agent owned by the test user."""
    return await store.create_agent(
        owner_id=TEST_USER_ID,
        name="Pricing Scout",
        goal="Keep track of competitor pricing",
        template_slug="research",
    )
