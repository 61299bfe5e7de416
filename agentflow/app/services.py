"""Explicitly constructed service graph for the API process."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agentflow.app.config import Settings
from agentflow.llm.bedrock_client import BedrockClient
from agentflow.llm.task_analyzer import LLMGateway, TaskAnalyzer
from agentflow.notifications.slack import SlackNotifier
from agentflow.orchestrator.agent_service import AgentService
from agentflow.orchestrator.dependency_lifecycle import DependencyLifecycleEngine
from agentflow.orchestrator.side_effects import SideEffectDispatcher
from agentflow.orchestrator.task_generation import TaskGenerationOrchestrator
from agentflow.store.activity_log import AgentActivityLog
from agentflow.store.task_store import TaskStore

logger = logging.getLogger(__name__)


class AgentFlowServices:
    """All core services, wired once at process start and shared by handlers."""

    def __init__(
        self,
        store: TaskStore,
        gateway: LLMGateway,
        notifier: SlackNotifier,
        llm_timeout: float = 60.0,
        context_limit: int = 10,
        min_input_length: int = 1
    ):
        self.store = store
        self.gateway = gateway
        self.notifier = notifier
        self.activity_log = AgentActivityLog(store)
        self.dispatcher = SideEffectDispatcher(self.activity_log, notifier, store)
        self.dependencies = DependencyLifecycleEngine(store, self.dispatcher)
        self.generation = TaskGenerationOrchestrator(
            store=store,
            gateway=gateway,
            engine=self.dependencies,
            llm_timeout=llm_timeout,
            context_limit=context_limit,
            min_input_length=min_input_length,
        )
        self.agents = AgentService(store, self.activity_log, self.dispatcher)


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession]
) -> AgentFlowServices:
    """Build the production service graph from settings."""
    bedrock = BedrockClient(
        profile=settings.aws_profile,
        region=settings.aws_region,
        model_id=settings.bedrock_model_id,
        max_tokens=settings.llm_max_tokens,
        read_timeout=settings.llm_timeout,
    )
    services = AgentFlowServices(
        store=TaskStore(session_factory),
        gateway=TaskAnalyzer(bedrock),
        notifier=SlackNotifier(
            webhook_url=settings.slack_webhook_url,
            timeout=settings.notification_timeout,
        ),
        llm_timeout=settings.llm_timeout,
        context_limit=settings.existing_task_context_limit,
        min_input_length=settings.min_input_length,
    )
    logger.info("AgentFlow services initialized")
    return services
