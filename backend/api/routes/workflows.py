"""Workflow endpoints: create, list, get, change status, execute."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from api.schemas.workflow import (
    ExecuteRequest,
    WorkflowCreate,
    WorkflowListResponse,
    WorkflowStatusUpdate,
)
from app.dependencies import get_flow_service
from core.constants import WorkflowStatus
from services.flow_service import FlowService
from workflow.models import Execution, Workflow

router = APIRouter(tags=["workflows"])


@router.post("/", response_model=Workflow, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    request: WorkflowCreate,
    svc: FlowService = Depends(get_flow_service),
) -> Workflow:
    """
    Create a new workflow. New workflows start as draft unless a status is given.
    """
    return await svc.create_workflow(
        organization_id=request.organization_id,
        name=request.name,
        steps=request.steps,
        description=request.description or "",
        trigger=request.trigger,
        status=request.status,
        created_by=request.created_by,
    )


@router.get("/", response_model=WorkflowListResponse)
async def list_workflows(
    organization_id: str = Query(..., description="Organization to list"),
    wf_status: Optional[WorkflowStatus] = Query(None, alias="status", description="Filter by status"),
    svc: FlowService = Depends(get_flow_service),
) -> WorkflowListResponse:
    workflows = await svc.get_workflows(organization_id, wf_status)
    return WorkflowListResponse(workflows=workflows, total=len(workflows))


@router.get("/{workflow_id}", response_model=Workflow)
async def get_workflow(
    workflow_id: str,
    svc: FlowService = Depends(get_flow_service),
) -> Workflow:
    return await svc.get_workflow(workflow_id)


@router.patch("/{workflow_id}/status", response_model=Workflow)
async def update_workflow_status(
    workflow_id: str,
    request: WorkflowStatusUpdate,
    svc: FlowService = Depends(get_flow_service),
) -> Workflow:
    """
    Activate, pause or archive a workflow. Only active workflows can be executed.
    """
    return await svc.update_workflow_status(workflow_id, request.status)


@router.post("/{workflow_id}/execute", response_model=Execution, status_code=status.HTTP_202_ACCEPTED)
async def execute_workflow(
    workflow_id: str,
    request: ExecuteRequest,
    svc: FlowService = Depends(get_flow_service),
) -> Execution:
    """
    Start an execution of an active workflow.

    Step failures do not fail the request; they show up in the returned
    execution's status and step results.
    """
    return await svc.execute_workflow(
        workflow_id,
        triggered_by=request.triggered_by,
        input=request.input,
        wait=request.wait,
    )
