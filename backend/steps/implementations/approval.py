"""Approval step: suspend the execution until someone approves or rejects it.

Config:
    approvers: List of approver ids/roles (default from settings, ["admin"])
"""

from typing import Any, Dict

from core.constants import StepType
from steps.base import AwaitingApproval, StepHandler, StepRun
from workflow.approvals import ApprovalGate


class ApprovalStepHandler(StepHandler):
    step_type = StepType.APPROVAL
    display_name = "Approval"
    description = "Wait for a human decision before continuing"

    def __init__(self, gate: ApprovalGate):
        self._gate = gate

    async def execute(self, config: Dict[str, Any], run: StepRun) -> Any:
        approval = await self._gate.suspend(run.step, run.execution, run.workflow)
        return AwaitingApproval(approval)
