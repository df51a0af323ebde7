"""Repository abstraction for workflow, execution and approval records.

The engine only talks to this protocol, so it does not care whether records
live in process memory or in a database. Every record is stored and fetched
by id and listed by organization.
"""

from __future__ import annotations

from typing import Optional, Protocol

from core.constants import ApprovalStatus, WorkflowStatus
from workflow.models import Execution, PendingApproval, Workflow


class FlowRepository(Protocol):
    """Protocol for flow record persistence backends."""

    async def save_workflow(self, workflow: Workflow) -> None:
        """Insert or replace a workflow."""

    async def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        """Fetch a workflow by id."""

    async def list_workflows(
        self, organization_id: str, status: Optional[WorkflowStatus] = None
    ) -> list[Workflow]:
        """Workflows of an organization, optionally filtered by status."""

    async def save_execution(self, execution: Execution) -> None:
        """Insert or replace an execution."""

    async def get_execution(self, execution_id: str) -> Optional[Execution]:
        """Fetch an execution by id."""

    async def list_executions(
        self,
        organization_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
    ) -> list[Execution]:
        """Executions filtered by organization and/or workflow, newest first."""

    async def save_approval(self, approval: PendingApproval) -> None:
        """Insert or replace an approval."""

    async def get_approval(self, approval_id: str) -> Optional[PendingApproval]:
        """Fetch an approval by id."""

    async def list_approvals(
        self,
        organization_id: Optional[str] = None,
        status: Optional[ApprovalStatus] = None,
    ) -> list[PendingApproval]:
        """Approvals filtered by organization and/or status."""


class InMemoryFlowRepository(FlowRepository):
    """Keep flow records in local memory.

    Useful for tests or when no database is configured. Records are held
    by reference, so callers see each other's mutations; data is lost on
    process restart.
    """

    def __init__(self) -> None:
        self._workflows: dict[str, Workflow] = {}
        self._executions: dict[str, Execution] = {}
        self._approvals: dict[str, PendingApproval] = {}

    # ------------------------------------------------------------------
    async def save_workflow(self, workflow: Workflow) -> None:
        self._workflows[workflow.id] = workflow

    async def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        return self._workflows.get(workflow_id)

    async def list_workflows(
        self, organization_id: str, status: Optional[WorkflowStatus] = None
    ) -> list[Workflow]:
        return [
            wf
            for wf in self._workflows.values()
            if wf.organization_id == organization_id
            and (status is None or wf.status == status)
        ]

    # ------------------------------------------------------------------
    async def save_execution(self, execution: Execution) -> None:
        self._executions[execution.id] = execution

    async def get_execution(self, execution_id: str) -> Optional[Execution]:
        return self._executions.get(execution_id)

    async def list_executions(
        self,
        organization_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
    ) -> list[Execution]:
        executions = [
            ex
            for ex in self._executions.values()
            if (organization_id is None or ex.organization_id == organization_id)
            and (workflow_id is None or ex.workflow_id == workflow_id)
        ]
        return sorted(executions, key=lambda ex: ex.started_at, reverse=True)

    # ------------------------------------------------------------------
    async def save_approval(self, approval: PendingApproval) -> None:
        self._approvals[approval.id] = approval

    async def get_approval(self, approval_id: str) -> Optional[PendingApproval]:
        return self._approvals.get(approval_id)

    async def list_approvals(
        self,
        organization_id: Optional[str] = None,
        status: Optional[ApprovalStatus] = None,
    ) -> list[PendingApproval]:
        return [
            ap
            for ap in self._approvals.values()
            if (organization_id is None or ap.organization_id == organization_id)
            and (status is None or ap.status == status)
        ]
