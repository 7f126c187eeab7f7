"""
API routes for SmartCube Core
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field

from ..core.container import ServiceContainer
from ..core.errors import ExecutionAccessError, WorkflowNotFoundError
from ..core.execution.validator import WorkflowValidator

router = APIRouter()


# Request/Response models
class CubeModel(BaseModel):
    """A single cube in the workflow graph"""
    id: str = Field(..., description="Cube id, unique within the workflow")
    type: str = Field(..., description="Cube type, e.g. 'loader-text' or 'decider'")
    name: str = Field(..., description="Display name")
    config: Dict[str, Any] = Field(default_factory=dict, description="Static cube configuration")
    position: Optional[Dict[str, float]] = Field(default=None, description="Editor position (ignored by the engine)")


class ConnectionModel(BaseModel):
    """Directed edge between two cubes"""
    id: str
    sourceId: str
    targetId: str
    sourceHandle: Optional[str] = None
    targetHandle: Optional[str] = Field(default=None, description="Input key on the target (default 'input')")


class WorkflowModel(BaseModel):
    """Workflow authoring payload"""
    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    cubes: List[CubeModel] = Field(default_factory=list)
    connections: List[ConnectionModel] = Field(default_factory=list)

    def to_workflow(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ValidationResponse(BaseModel):
    valid: bool
    errors: List[str]
    executionOrder: Optional[List[str]] = None


class ExecutionStartedResponse(BaseModel):
    executionId: str
    status: str


def get_container(request: Request) -> ServiceContainer:
    """Get ServiceContainer from app state (injected by FastAPI)"""
    return request.app.state.container


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller identity; authentication happens upstream"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


# Workflow Endpoints
@router.post("/workflows")
def save_workflow(
    workflow: WorkflowModel,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Create or update a workflow"""
    if workflow.id:
        existing = container.storage.get_workflow(workflow.id)
        if existing is not None and existing.get('userId') != user_id:
            raise ExecutionAccessError("Unauthorized to modify this workflow")
    return container.storage.save_workflow(workflow.to_workflow(), user_id)


@router.get("/workflows")
def list_workflows(
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
):
    return container.storage.list_workflows(user_id)


@router.post("/workflows/validate", response_model=ValidationResponse)
def validate_workflow(workflow: WorkflowModel):
    """Structural validation without running anything"""
    payload = workflow.to_workflow()
    result = WorkflowValidator.validate(payload)
    order = None
    if result.valid:
        order = WorkflowValidator.get_execution_order(payload['cubes'], payload['connections'])
    return ValidationResponse(valid=result.valid, errors=result.errors, executionOrder=order)


@router.post("/workflows/execute")
def execute_inline(
    workflow: WorkflowModel,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Run an unsaved workflow payload to completion"""
    return container.manager.execute_workflow(workflow.to_workflow(), user_id)


@router.get("/workflows/{workflow_id}")
def get_workflow(
    workflow_id: str,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
):
    workflow = container.storage.get_workflow(workflow_id)
    if workflow is None:
        raise WorkflowNotFoundError(workflow_id)
    if workflow.get('userId') != user_id:
        raise ExecutionAccessError("Unauthorized to view this workflow")
    return workflow


@router.post("/workflows/{workflow_id}/execute", response_model=ExecutionStartedResponse)
def execute_workflow(
    workflow_id: str,
    background: bool = Query(default=True, description="Return immediately and run on a worker thread"),
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """Start a run of a stored workflow"""
    execution_id = container.manager.start_execution(workflow_id, user_id, background=background)
    record = container.storage.get_execution(execution_id) or {}
    return ExecutionStartedResponse(executionId=execution_id, status=record.get('status', 'running'))


@router.get("/workflows/{workflow_id}/executions")
def list_executions(
    workflow_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
):
    return container.manager.list_executions(workflow_id, user_id, limit=limit)


# Execution Endpoints
@router.get("/executions/{execution_id}")
def get_execution(
    execution_id: str,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
):
    return container.manager.get_execution(execution_id, user_id)


@router.post("/executions/{execution_id}/cancel")
def cancel_execution(
    execution_id: str,
    user_id: str = Depends(get_user_id),
    container: ServiceContainer = Depends(get_container),
):
    return container.manager.cancel_execution(execution_id, user_id)


@router.get("/cube-types")
def list_cube_types(container: ServiceContainer = Depends(get_container)):
    """Registered cube types and their required inputs"""
    types = []
    for cube_type in container.registry.types():
        handler = container.registry.get(cube_type)
        types.append({
            'type': cube_type,
            'requiredInputs': list(handler.required_inputs),
            'aiBacked': handler.ai_backed,
        })
    return types
