"""Workflow execution history endpoints."""

from fastapi import APIRouter, Depends, Query

from api.schemas.execution import ExecutionListResponse
from app.dependencies import get_flow_service
from services.flow_service import FlowService
from workflow.models import Execution

router = APIRouter(tags=["executions"])


@router.get("/", response_model=ExecutionListResponse)
async def list_executions(
    organization_id: str = Query(..., description="Organization to list"),
    limit: int = Query(50, ge=1, le=500, description="Maximum executions returned"),
    svc: FlowService = Depends(get_flow_service),
) -> ExecutionListResponse:
    """
    List the most recent executions of an organization, newest first.
    """
    executions = await svc.get_executions(organization_id, limit=limit)
    return ExecutionListResponse(executions=executions, total=len(executions))


@router.get("/{execution_id}", response_model=Execution)
async def get_execution(
    execution_id: str,
    svc: FlowService = Depends(get_flow_service),
) -> Execution:
    return await svc.get_execution(execution_id)
