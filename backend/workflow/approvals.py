"""Approval gate: park an execution behind a human decision.

Suspending creates a PendingApproval and moves the execution to
``awaiting_approval``; nothing in memory is kept. Deciding records the
outcome. An approval marks the execution ``running`` again for the engine to
resume, and a rejection cancels it for good.
"""

from typing import Optional

import structlog

from core.constants import ApprovalStatus, ExecutionStatus
from core.exceptions import ApprovalAlreadyDecided, ApprovalNotFound
from core.utils import seconds_between, utc_now
from workflow.models import Execution, PendingApproval, Step, Workflow
from workflow.repository import FlowRepository

logger = structlog.get_logger(__name__)


class ApprovalGate:
    def __init__(self, repository: FlowRepository, default_approvers: Optional[list[str]] = None):
        self._repository = repository
        self._default_approvers = list(default_approvers or ["admin"])

    async def suspend(self, step: Step, execution: Execution, workflow: Workflow) -> PendingApproval:
        """Create the pending approval and park the execution."""
        approvers = step.config.get("approvers") or self._default_approvers
        approval = PendingApproval(
            execution_id=execution.id,
            workflow_id=workflow.id,
            workflow_name=workflow.name,
            organization_id=execution.organization_id,
            step_id=step.id,
            step_name=step.name,
            requested_by=execution.triggered_by,
            approvers=list(approvers),
        )
        execution.status = ExecutionStatus.AWAITING_APPROVAL

        await self._repository.save_approval(approval)
        await self._repository.save_execution(execution)

        logger.info(
            "Approval requested",
            approval_id=approval.id,
            execution_id=execution.id,
            step_id=step.id,
            approvers=approval.approvers,
        )
        return approval

    async def decide(
        self,
        approval_id: str,
        approved: bool,
        decided_by: str,
        reason: Optional[str] = None,
    ) -> tuple[PendingApproval, Optional[Execution]]:
        """Record a decision and apply it to the parked execution.

        Returns the approval and its execution (None if the execution record
        is gone). The caller resumes the execution when it was approved.

        Raises:
            ApprovalNotFound: Unknown approval id
            ApprovalAlreadyDecided: The approval is no longer pending
        """
        approval = await self._repository.get_approval(approval_id)
        if approval is None:
            raise ApprovalNotFound(approval_id)
        if approval.status != ApprovalStatus.PENDING:
            raise ApprovalAlreadyDecided(approval_id, approval.status.value)

        approval.status = ApprovalStatus.APPROVED if approved else ApprovalStatus.REJECTED
        approval.decided_by = decided_by
        approval.decided_at = utc_now()
        approval.reason = reason
        await self._repository.save_approval(approval)

        logger.info(
            "Approval decided",
            approval_id=approval.id,
            execution_id=approval.execution_id,
            approved=approved,
            decided_by=decided_by,
        )

        execution = await self._repository.get_execution(approval.execution_id)
        if execution is None:
            logger.warning("Approval decided for missing execution", execution_id=approval.execution_id)
            return approval, None

        self._record_decision(execution, approval)
        if approved:
            execution.status = ExecutionStatus.RUNNING
        else:
            execution.status = ExecutionStatus.CANCELLED
            execution.completed_at = utc_now()
            execution.duration = seconds_between(execution.started_at, execution.completed_at)
            execution.error = f"Approval rejected: {reason or 'No reason provided'}"
        await self._repository.save_execution(execution)
        return approval, execution

    @staticmethod
    def _record_decision(execution: Execution, approval: PendingApproval) -> None:
        for result in execution.step_results:
            if result.step_id == approval.step_id and isinstance(result.output, dict):
                result.output = {
                    **result.output,
                    "status": approval.status.value,
                    "decidedBy": approval.decided_by,
                    "reason": approval.reason,
                }
