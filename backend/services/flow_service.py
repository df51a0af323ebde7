"""Flow service: workflow definitions, executions and approvals.

Thin facade over the repository and the WorkflowEngine, used by the API
routes. Definition CRUD lives here; everything that runs steps is delegated
to the engine.
"""

from typing import Any, Optional

import structlog

from core.constants import ApprovalStatus, WorkflowStatus
from core.exceptions import ExecutionNotFound, ValidationError, WorkflowNotFound
from core.utils import utc_now
from workflow.engine import WorkflowEngine
from workflow.models import Execution, PendingApproval, Step, Workflow, WorkflowTrigger
from workflow.repository import FlowRepository

logger = structlog.get_logger(__name__)


class FlowService:
    """Service for workflow management and execution."""

    def __init__(self, repository: FlowRepository, engine: WorkflowEngine):
        self.repository = repository
        self.engine = engine

    # ─── Workflows ─────────────────────────────────────────

    async def create_workflow(
        self,
        organization_id: str,
        name: str,
        steps: Optional[list[Step | dict]] = None,
        description: str = "",
        trigger: Optional[WorkflowTrigger | dict] = None,
        status: WorkflowStatus = WorkflowStatus.DRAFT,
        created_by: str = "system",
    ) -> Workflow:
        """Create a new workflow with fresh id, timestamps and statistics.

        Raises:
            ValidationError: Two steps share the same id
        """
        workflow = Workflow(
            organization_id=organization_id,
            name=name,
            description=description,
            status=status,
            trigger=trigger or WorkflowTrigger(),
            steps=steps or [],
            created_by=created_by,
        )
        step_ids = [step.id for step in workflow.steps]
        duplicates = sorted({sid for sid in step_ids if step_ids.count(sid) > 1})
        if duplicates:
            raise ValidationError(f"Duplicate step ids: {', '.join(duplicates)}")

        await self.repository.save_workflow(workflow)
        logger.info(
            "Workflow created",
            workflow_id=workflow.id,
            organization_id=organization_id,
            steps=len(workflow.steps),
        )
        return workflow

    async def get_workflow(self, workflow_id: str) -> Workflow:
        workflow = await self.repository.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFound(workflow_id)
        return workflow

    async def get_workflows(
        self,
        organization_id: str,
        status: Optional[WorkflowStatus] = None,
    ) -> list[Workflow]:
        return await self.repository.list_workflows(organization_id, status)

    async def update_workflow_status(self, workflow_id: str, status: WorkflowStatus) -> Workflow:
        """Activate, pause or archive a workflow."""
        workflow = await self.get_workflow(workflow_id)
        previous = workflow.status
        workflow.status = WorkflowStatus(status)
        workflow.updated_at = utc_now()
        await self.repository.save_workflow(workflow)
        logger.info(
            "Workflow status changed",
            workflow_id=workflow_id,
            previous=previous.value,
            status=workflow.status.value,
        )
        return workflow

    # ─── Executions ────────────────────────────────────────

    async def execute_workflow(
        self,
        workflow_id: str,
        triggered_by: str,
        input: Optional[dict[str, Any]] = None,
        wait: bool = True,
    ) -> Execution:
        return await self.engine.execute_workflow(workflow_id, triggered_by, input, wait=wait)

    async def get_execution(self, execution_id: str) -> Execution:
        execution = await self.repository.get_execution(execution_id)
        if execution is None:
            raise ExecutionNotFound(execution_id)
        return execution

    async def get_executions(self, organization_id: str, limit: int = 50) -> list[Execution]:
        """Most recent executions of an organization, newest first."""
        executions = await self.repository.list_executions(organization_id=organization_id)
        return executions[:limit]

    # ─── Approvals ─────────────────────────────────────────

    async def get_pending_approvals(self, organization_id: str) -> list[PendingApproval]:
        return await self.repository.list_approvals(
            organization_id=organization_id,
            status=ApprovalStatus.PENDING,
        )

    async def process_approval(
        self,
        approval_id: str,
        approved: bool,
        decided_by: str,
        reason: Optional[str] = None,
        wait: bool = True,
    ) -> PendingApproval:
        return await self.engine.process_approval(approval_id, approved, decided_by, reason, wait=wait)
