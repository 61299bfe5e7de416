"""Tests for the SQLAlchemy task store."""

import pytest

from agentflow.orchestrator.errors import StaleWriteError
from conftest import OTHER_USER_ID, TEST_USER_ID


async def test_insert_and_get_task(store, agent):
    task_id = await store.insert_task(
        agent.id,
        "Draft outline",
        description="First pass",
        priority="high",
        metadata={"category": "strategy"},
        estimated_hours=1.5,
        position=0,
    )

    task = await store.get_task(task_id)

    assert task.title == "Draft outline"
    assert task.status == "todo"
    assert task.priority == "high"
    assert task.is_dependency is False
    assert task.metadata == {"category": "strategy"}
    assert task.version == 1
    assert task.estimated_hours == 1.5


async def test_get_missing_rows_return_none(store):
    assert await store.get_task("missing") is None
    assert await store.get_agent("missing") is None


async def test_update_task_bumps_version(store, agent):
    task_id = await store.insert_task(agent.id, "Write summary")

    new_version = await store.update_task(
        task_id, {"status": "in_progress", "metadata": {"moved": True}}, expected_version=1
    )

    task = await store.get_task(task_id)
    assert new_version == 2
    assert task.version == 2
    assert task.status == "in_progress"
    assert task.metadata == {"moved": True}
    assert task.updated_at is not None


async def test_update_task_with_stale_version_fails(store, agent):
    task_id = await store.insert_task(agent.id, "Write summary")
    await store.update_task(task_id, {"status": "in_progress"}, expected_version=1)

    with pytest.raises(StaleWriteError):
        await store.update_task(task_id, {"status": "done"}, expected_version=1)

    assert (await store.get_task(task_id)).status == "in_progress"


async def test_update_missing_task_fails(store):
    with pytest.raises(StaleWriteError):
        await store.update_task("missing", {"status": "done"}, expected_version=1)


async def test_list_tasks_filters_and_limit(store, agent):
    for i in range(3):
        await store.insert_task(agent.id, f"Task {i}")
    await store.insert_task(agent.id, "Blocked one", status="blocked", is_dependency=True)

    blocked = await store.list_tasks(agent_id=agent.id, status="blocked")
    newest = await store.list_tasks(agent_id=agent.id, limit=2)
    oldest = await store.list_tasks(agent_id=agent.id, limit=1, newest_first=False)

    assert [t.title for t in blocked] == ["Blocked one"]
    assert [t.title for t in newest] == ["Blocked one", "Task 2"]
    assert [t.title for t in oldest] == ["Task 0"]


async def test_list_tasks_by_owner(store, agent):
    other = await store.create_agent(owner_id=OTHER_USER_ID, name="Other agent")
    await store.insert_task(agent.id, "Mine")
    await store.insert_task(other.id, "Theirs")

    mine = await store.list_tasks(owner_id=TEST_USER_ID)

    assert [t.title for t in mine] == ["Mine"]


async def test_count_blocking_dependencies(store, agent):
    await store.insert_task(agent.id, "Blocked", status="blocked", is_dependency=True)
    await store.insert_task(agent.id, "Queued", status="todo", is_dependency=True)
    await store.insert_task(agent.id, "Done", status="done", is_dependency=True)
    await store.insert_task(agent.id, "Plain", status="blocked")

    assert await store.count_blocking_dependencies(agent.id) == 2


async def test_update_agent(store, agent):
    await store.update_agent(agent.id, {"status": "paused", "metadata": {"note": "x"}})

    updated = await store.get_agent(agent.id)
    assert updated.status == "paused"
    assert updated.metadata == {"note": "x"}


async def test_logs_newest_first_with_type_filter(store, agent):
    await store.insert_log(agent.id, "info", "first")
    await store.insert_log(agent.id, "milestone", "second")
    await store.insert_log(agent.id, "info", "third")

    all_logs = await store.list_logs(agent.id)
    info_logs = await store.list_logs(agent.id, log_type="info", limit=1)

    assert [log.message for log in all_logs] == ["third", "second", "first"]
    assert [log.message for log in info_logs] == ["third"]
