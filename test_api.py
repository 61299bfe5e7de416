"""HTTP tests for the FastAPI routes."""

import httpx
import pytest

from agentflow.app.main import create_app
from agentflow.llm.task_analyzer import DependencySuggestion, TaskAnalysisResult
from conftest import OTHER_USER_ID, TEST_USER_ID, FakeGateway

AUTH = {"X-User-Id": TEST_USER_ID}


@pytest.fixture
async def client(services):
    app = create_app(services)
    # ASGITransport does not run the lifespan
    app.state.services = services
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_create_agent(client):
    response = await client.post(
        "/agents", json={"name": "Scout", "goal": "Watch prices"}, headers=AUTH
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["agent"]["owner_id"] == TEST_USER_ID
    assert body["agent"]["status"] == "active"


async def test_create_agent_requires_user(client):
    response = await client.post("/agents", json={"name": "Scout", "goal": "Watch prices"})

    assert response.status_code == 401
    assert response.json()["error_code"] == "AuthenticationRequired"


async def test_toggle_agent_status(client, agent):
    response = await client.post(f"/agents/{agent.id}/status/toggle", headers=AUTH)

    assert response.status_code == 200
    assert response.json()["agent"]["status"] == "paused"


async def test_dependency_lifecycle_over_http(client, agent):
    created = await client.post(
        f"/agents/{agent.id}/dependencies",
        json={"title": "Approve budget", "reason": "needs sign-off", "priority": "urgent"},
        headers=AUTH,
    )
    task_id = created.json()["task_id"]
    assert created.status_code == 200

    overview = (await client.get("/dependencies", headers=AUTH)).json()["overview"]
    assert [t["id"] for t in overview["pending"]] == [task_id]
    assert overview["urgent_count"] == 1

    claimed = await client.post(f"/dependencies/{task_id}/claim", headers=AUTH)
    assert claimed.json()["state"] == "user_working"

    resolved = await client.post(
        f"/dependencies/{task_id}/resolve", json={"completion_notes": "signed"}, headers=AUTH
    )
    assert resolved.json()["state"] == "completed"

    overview = (await client.get(f"/dependencies?agent_id={agent.id}", headers=AUTH)).json()["overview"]
    assert overview["pending"] == []
    assert overview["completed"][0]["metadata"]["completion_notes"] == "signed"


async def test_create_dependency_requires_user(client, agent):
    response = await client.post(
        f"/agents/{agent.id}/dependencies", json={"title": "Approve", "reason": "why"}
    )

    assert response.status_code == 401


async def test_claim_foreign_dependency_forbidden(client, services, agent):
    created = await services.dependencies.create_dependency(agent.id, "Approve", "why")

    response = await client.post(
        f"/dependencies/{created.task_id}/claim", headers={"X-User-Id": OTHER_USER_ID}
    )

    assert response.status_code == 403


async def test_claim_unknown_task(client):
    response = await client.post("/dependencies/missing/claim", headers=AUTH)

    assert response.status_code == 404
    assert response.json()["success"] is False


async def test_generate_tasks(client, agent, notifier):
    response = await client.post(
        f"/agents/{agent.id}/tasks/generate",
        json={"user_input": "Compare competitor pricing"},
        headers=AUTH,
    )

    body = response.json()
    assert response.status_code == 200
    assert len(body["created_tasks"]) == 1
    assert len(body["created_dependencies"]) == 1
    notifier.notify.assert_awaited_once()


async def test_generate_tasks_nothing_created_is_bad_gateway(client, services, store, agent):
    services.generation.gateway = FakeGateway(TaskAnalysisResult(
        success=True,
        dependencies=[DependencySuggestion(title="Approve", reason="why", priority="someday")],
    ))

    response = await client.post(
        f"/agents/{agent.id}/tasks/generate", json={"user_input": "pricing"}, headers=AUTH
    )

    body = response.json()
    assert response.status_code == 502
    assert body["error_code"] == "PartialMaterializationFailure"
    assert body["failures"][0]["error_code"] == "ValidationError"
    assert await store.list_tasks(agent_id=agent.id) == []


async def test_generate_tasks_empty_input(client, agent):
    response = await client.post(
        f"/agents/{agent.id}/tasks/generate", json={"user_input": "  "}, headers=AUTH
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "EmptyInput"


async def test_agent_logs(client, agent):
    await client.post(
        f"/agents/{agent.id}/dependencies",
        json={"title": "Approve", "reason": "why"},
        headers=AUTH,
    )

    response = await client.get(f"/agents/{agent.id}/logs?log_type=dependency", headers=AUTH)

    entries = response.json()["entries"]
    assert [e["message"] for e in entries] == ["New dependency created: Approve"]
