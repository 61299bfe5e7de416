"""HTTP routes exposing the core operations."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from agentflow.app.services import AgentFlowServices
from agentflow.orchestrator.errors import AuthenticationRequired
from agentflow.orchestrator.results import OperationResult

router = APIRouter()

ERROR_STATUS = {
    "AuthenticationRequired": 401,
    "PermissionDenied": 403,
    "NotFoundError": 404,
    "AgentNotFound": 404,
    "InvalidTransition": 404,
    "ValidationError": 422,
    "EmptyInput": 422,
    "StaleWriteError": 409,
    "ProviderFailure": 502,
    "PartialMaterializationFailure": 502,
    "StoreError": 503,
}


class CreateAgentRequest(BaseModel):
    name: str
    goal: str
    behavior: Optional[str] = None
    template_slug: Optional[str] = None


class GenerateTasksRequest(BaseModel):
    user_input: str
    agent_goal: Optional[str] = None
    agent_type: Optional[str] = None
    timeout: Optional[float] = None


class CreateDependencyRequest(BaseModel):
    title: str
    reason: str
    priority: str = "high"


class ResolveDependencyRequest(BaseModel):
    completion_notes: str = ""


def get_services(request: Request) -> AgentFlowServices:
    return request.app.state.services


def current_user(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Caller identity, resolved upstream; None when unauthenticated."""
    return x_user_id


def respond(result: OperationResult) -> JSONResponse:
    """Serialize a tagged result with a status code derived from its error."""
    if result.success:
        status_code = 200
    else:
        status_code = ERROR_STATUS.get(result.error_code or "", 500)
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


@router.post("/agents")
async def create_agent(
    body: CreateAgentRequest,
    services: AgentFlowServices = Depends(get_services),
    user_id: Optional[str] = Depends(current_user),
):
    """Create an agent owned by the caller."""
    return respond(await services.agents.create_agent(
        user_id, body.name, body.goal, body.behavior, body.template_slug
    ))


@router.post("/agents/{agent_id}/status/toggle")
async def toggle_agent_status(
    agent_id: str,
    services: AgentFlowServices = Depends(get_services),
    user_id: Optional[str] = Depends(current_user),
):
    """Pause an active agent or resume a paused one."""
    return respond(await services.agents.toggle_status(agent_id, user_id))


@router.post("/agents/{agent_id}/tasks/generate")
async def generate_tasks(
    agent_id: str,
    body: GenerateTasksRequest,
    services: AgentFlowServices = Depends(get_services),
    user_id: Optional[str] = Depends(current_user),
):
    """Analyze user input with the LLM and create tasks and dependencies."""
    context = {"agent_goal": body.agent_goal, "agent_type": body.agent_type}
    return respond(await services.generation.generate_and_materialize(
        agent_id, user_id, body.user_input, agent_context=context, timeout=body.timeout
    ))


@router.post("/agents/{agent_id}/tasks/{task_id}/analyze-dependencies")
async def analyze_task_dependencies(
    agent_id: str,
    task_id: str,
    services: AgentFlowServices = Depends(get_services),
    user_id: Optional[str] = Depends(current_user),
):
    """Create the human dependencies an existing task needs."""
    return respond(await services.generation.analyze_task_dependencies(agent_id, task_id, user_id))


@router.post("/agents/{agent_id}/dependencies")
async def create_dependency(
    agent_id: str,
    body: CreateDependencyRequest,
    services: AgentFlowServices = Depends(get_services),
    user_id: Optional[str] = Depends(current_user),
):
    """Create a pending dependency on an agent the caller owns."""
    if not user_id:
        return respond(OperationResult.fail(AuthenticationRequired("Authentication required.")))
    return respond(await services.dependencies.create_dependency(
        agent_id, body.title, body.reason, body.priority, user_id=user_id
    ))


@router.post("/dependencies/{task_id}/claim")
async def claim_dependency(
    task_id: str,
    services: AgentFlowServices = Depends(get_services),
    user_id: Optional[str] = Depends(current_user),
):
    """Move a pending dependency into the caller's active tasks."""
    return respond(await services.dependencies.claim(task_id, user_id))


@router.post("/dependencies/{task_id}/resolve")
async def resolve_dependency(
    task_id: str,
    body: Optional[ResolveDependencyRequest] = None,
    services: AgentFlowServices = Depends(get_services),
    user_id: Optional[str] = Depends(current_user),
):
    """Complete a dependency so its agent can resume."""
    notes = body.completion_notes if body else ""
    return respond(await services.dependencies.resolve(task_id, user_id, notes))


@router.get("/dependencies")
async def dependency_overview(
    agent_id: Optional[str] = Query(default=None),
    services: AgentFlowServices = Depends(get_services),
    user_id: Optional[str] = Depends(current_user),
):
    """Pending and completed dependencies with dashboard counters."""
    return respond(await services.dependencies.dependency_overview(user_id, agent_id=agent_id))


@router.get("/agents/{agent_id}/logs")
async def agent_logs(
    agent_id: str,
    limit: int = Query(default=50, ge=1, le=500),
    log_type: Optional[str] = Query(default=None),
    services: AgentFlowServices = Depends(get_services),
    user_id: Optional[str] = Depends(current_user),
):
    """Activity log of an agent, newest first."""
    return respond(await services.agents.list_logs(agent_id, user_id, limit=limit, log_type=log_type))
