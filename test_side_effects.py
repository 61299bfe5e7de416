"""Tests for side effect dispatch, the activity log and Slack notifications."""

import json
from unittest.mock import AsyncMock

import httpx

from agentflow.notifications.slack import SlackNotifier
from agentflow.orchestrator.errors import StoreError
from agentflow.orchestrator.side_effects import (
    LogEffect,
    NotifyEffect,
    ReactivateAgentEffect,
    SideEffectDispatcher,
)
from agentflow.store.activity_log import AgentActivityLog
from agentflow.store.records import LogType


class TestDispatcher:

    async def test_runs_effects_in_order(self, services, store, notifier, agent):
        delivered = await services.dispatcher.dispatch([
            LogEffect(agent_id=agent.id, log_type=LogType.INFO, message="hello"),
            NotifyEffect(message="ping"),
        ])

        assert delivered == 2
        logs = await store.list_logs(agent.id)
        assert [log.message for log in logs] == ["hello"]
        notifier.notify.assert_awaited_once_with("ping")

    async def test_failing_effect_is_dropped(self, store, agent):
        notifier = AsyncMock(spec=SlackNotifier)
        notifier.notify.side_effect = RuntimeError("webhook down")
        dispatcher = SideEffectDispatcher(AgentActivityLog(store), notifier, store)

        delivered = await dispatcher.dispatch([
            NotifyEffect(message="ping"),
            LogEffect(agent_id=agent.id, log_type=LogType.INFO, message="after"),
        ])

        assert delivered == 1
        assert [log.message for log in await store.list_logs(agent.id)] == ["after"]

    async def test_reactivation_skipped_while_blocked(self, services, store, agent):
        await store.update_agent(agent.id, {"status": "paused"})
        await store.insert_task(agent.id, "Still blocked", status="blocked", is_dependency=True)

        await services.dispatcher.dispatch([ReactivateAgentEffect(agent_id=agent.id)])

        assert (await store.get_agent(agent.id)).status == "paused"

    async def test_reactivation_restarts_paused_agent(self, services, store, agent):
        await store.update_agent(agent.id, {"status": "paused"})

        await services.dispatcher.dispatch([ReactivateAgentEffect(agent_id=agent.id)])

        restarted = await store.get_agent(agent.id)
        assert restarted.status == "active"
        assert restarted.metadata["auto_restarted"] is True
        assert "restarted_at" in restarted.metadata
        milestones = await store.list_logs(agent.id, log_type="milestone")
        assert "automatically restarted" in milestones[0].message

    async def test_active_agent_left_alone(self, services, store, agent):
        await services.dispatcher.dispatch([ReactivateAgentEffect(agent_id=agent.id)])

        assert await store.list_logs(agent.id) == []


class TestActivityLog:

    async def test_append_and_list(self, store, agent):
        log = AgentActivityLog(store)

        log_id = await log.append(agent.id, "milestone", "Started", metadata={"step": 1})

        entries = await log.list_entries(agent.id)
        assert [e.id for e in entries] == [log_id]
        assert entries[0].metadata == {"step": 1}

    async def test_store_failure_drops_entry(self, agent):
        store = AsyncMock()
        store.insert_log.side_effect = StoreError("Database unavailable during insert_log")

        assert await AgentActivityLog(store).append(agent.id, "info", "lost") is None

    async def test_unknown_log_type_dropped(self, store, agent):
        assert await AgentActivityLog(store).append(agent.id, "gossip", "nope") is None
        assert await store.list_logs(agent.id) == []


class TestSlackNotifier:

    async def test_unconfigured_only_logs(self, caplog):
        caplog.set_level("INFO")

        await SlackNotifier().notify("hello")

        assert "not configured" in caplog.text

    async def test_posts_text_payload(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="ok")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            notifier = SlackNotifier("https://hooks.slack.test/T/B/X", client=client)
            await notifier.notify("Dependency ready")

        assert len(seen) == 1
        assert seen[0].url == "https://hooks.slack.test/T/B/X"
        assert json.loads(seen[0].content) == {"text": "Dependency ready"}

    async def test_error_status_is_logged(self, caplog):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))

        async with httpx.AsyncClient(transport=transport) as client:
            await SlackNotifier("https://hooks.slack.test/x", client=client).notify("hi")

        assert "Slack notification failed: 500" in caplog.text

    async def test_transport_error_is_swallowed(self, caplog):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("no route", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await SlackNotifier("https://hooks.slack.test/x", client=client).notify("hi")

        assert "Error sending Slack notification" in caplog.text
