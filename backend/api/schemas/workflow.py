"""Workflow schemas."""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from core.constants import WorkflowStatus
from workflow.models import Step, Workflow, WorkflowTrigger


class WorkflowCreate(BaseModel):
    """Request to create a workflow."""

    organization_id: str = Field(min_length=1, description="Owning organization")
    name: str = Field(min_length=1, description="Workflow name")
    description: Optional[str] = Field(default="", description="Workflow description")
    status: WorkflowStatus = Field(default=WorkflowStatus.DRAFT, description="Initial status")
    trigger: WorkflowTrigger = Field(default_factory=WorkflowTrigger)
    steps: List[Step] = Field(default_factory=list, description="Ordered step definitions")
    created_by: str = Field(default="system", description="Author")


class WorkflowStatusUpdate(BaseModel):
    """Request to change a workflow's status."""

    status: WorkflowStatus


class ExecuteRequest(BaseModel):
    """Request to start an execution."""

    triggered_by: str = Field(min_length=1, description="User or system starting the run")
    input: Optional[Dict[str, Any]] = Field(default=None, description="Initial context variables")
    wait: bool = Field(default=True, description="Block until finished or awaiting approval")


class WorkflowListResponse(BaseModel):
    """List of workflows."""

    workflows: List[Workflow]
    total: int
