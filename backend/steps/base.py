"""
Base interface for all workflow step handlers.

Every step kind (action, condition, loop, ...) has one handler that
inherits from StepHandler and implements execute(). A handler returns the
step output or raises; the engine owns status bookkeeping and error policy.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict

from core.constants import StepType
from workflow.models import Execution, PendingApproval, Step, Workflow


@dataclass
class StepRun:
    """Everything a handler may look at while executing one step."""

    step: Step
    execution: Execution
    workflow: Workflow
    context: Dict[str, Any]


class _Skipped:
    def __repr__(self) -> str:
        return "SKIPPED"


# Returned by a handler to mark its step result as skipped instead of success
SKIPPED = _Skipped()


@dataclass
class AwaitingApproval:
    """Returned by the approval handler; the engine suspends the execution."""

    approval: PendingApproval

    def to_output(self) -> Dict[str, Any]:
        return {
            "approvalId": self.approval.id,
            "approvers": list(self.approval.approvers),
            "status": self.approval.status.value,
        }


class StepHandler(ABC):
    """
    Abstract base class for step handlers.

    Subclasses must implement:
    - execute(config, run) -> output
    - step_type, display_name (class attributes)
    """

    step_type: StepType
    display_name: str = "Step"
    description: str = ""

    @abstractmethod
    async def execute(self, config: Dict[str, Any], run: StepRun) -> Any:
        """
        Execute the step.

        Args:
            config: The step's config from the workflow definition
            run: Step definition, owning execution/workflow and live context

        Returns:
            Step output, SKIPPED, or AwaitingApproval
        """

    def describe(self) -> Dict[str, Any]:
        return {
            "step_type": self.step_type.value,
            "display_name": self.display_name,
            "description": self.description,
        }
