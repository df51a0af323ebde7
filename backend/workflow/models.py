"""Workflow domain records.

A workflow is an ordered list of steps plus a trigger. Every run of it is an
Execution holding one StepResult per step, created 1:1 with the definition
and never resized afterwards. Approval steps park an execution behind a
PendingApproval until someone decides it.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from core.constants import (
    ApprovalStatus,
    ErrorPolicy,
    ExecutionStatus,
    StepStatus,
    StepType,
    TERMINAL_EXECUTION_STATUSES,
    TriggerType,
    WorkflowStatus,
)
from core.utils import new_id, utc_now


class WorkflowTrigger(BaseModel):
    type: TriggerType = TriggerType.MANUAL
    config: dict[str, Any] = Field(default_factory=dict)


class Step(BaseModel):
    """A single step definition inside a workflow."""

    id: str
    name: str
    type: StepType
    config: dict[str, Any] = Field(default_factory=dict)
    # Stored for editors; the engine always runs steps in list order
    next_steps: Optional[list[str]] = None
    on_error: ErrorPolicy = ErrorPolicy.STOP
    retry_count: int = Field(default=0, ge=0)


class Workflow(BaseModel):
    id: str = Field(default_factory=lambda: new_id("wf"))
    organization_id: str
    name: str
    description: str = ""
    status: WorkflowStatus = WorkflowStatus.DRAFT
    trigger: WorkflowTrigger = Field(default_factory=WorkflowTrigger)
    steps: list[Step] = Field(default_factory=list)
    created_by: str = "system"
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Rolling statistics, recomputed after each terminal execution
    execution_count: int = 0
    success_rate: float = 100.0
    avg_duration: float = 0.0  # seconds

    def find_step(self, step_id: str) -> Optional[Step]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


class StepResult(BaseModel):
    """Per-step execution record."""

    step_id: str
    step_name: str
    status: StepStatus = StepStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    output: Any = None
    error: Optional[str] = None
    retries: int = 0


class Execution(BaseModel):
    id: str = Field(default_factory=lambda: new_id("exec"))
    workflow_id: str
    workflow_name: str
    organization_id: str
    status: ExecutionStatus = ExecutionStatus.PENDING
    triggered_by: str
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    duration: Optional[float] = None  # seconds
    step_results: list[StepResult] = Field(default_factory=list)
    input: Optional[dict[str, Any]] = None
    output: Optional[dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def for_workflow(
        cls,
        workflow: Workflow,
        triggered_by: str,
        input: Optional[dict[str, Any]] = None,
    ) -> "Execution":
        """Create a pending execution with one pending result per workflow step."""
        return cls(
            workflow_id=workflow.id,
            workflow_name=workflow.name,
            organization_id=workflow.organization_id,
            triggered_by=triggered_by,
            step_results=[
                StepResult(step_id=step.id, step_name=step.name)
                for step in workflow.steps
            ],
            input=input,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_EXECUTION_STATUSES


class PendingApproval(BaseModel):
    """A human decision an execution is parked behind."""

    id: str = Field(default_factory=lambda: new_id("approval"))
    execution_id: str
    workflow_id: str
    workflow_name: str
    organization_id: str
    step_id: str
    step_name: str
    requested_by: str
    requested_at: datetime = Field(default_factory=utc_now)
    approvers: list[str] = Field(default_factory=lambda: ["admin"])
    status: ApprovalStatus = ApprovalStatus.PENDING
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    reason: Optional[str] = None
