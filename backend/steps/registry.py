"""
Step Handler Registry: maps each step kind to the handler that runs it.

The engine dispatches through the registry only, so a new step kind is
added by registering a handler; the engine itself does not change.
"""

from typing import Dict, Optional

from core.constants import StepType
from integrations.transport import Transport
from steps.base import StepHandler
from steps.implementations.action import ActionStepHandler
from steps.implementations.approval import ApprovalStepHandler
from steps.implementations.condition import ConditionStepHandler
from steps.implementations.delay import DelayStepHandler
from steps.implementations.loop import LoopStepHandler
from steps.implementations.parallel import ParallelStepHandler
from steps.implementations.webhook import WebhookStepHandler
from workflow.approvals import ApprovalGate


class StepRegistry:
    """Registry of step handler instances keyed by step type."""

    def __init__(self):
        self._handlers: Dict[StepType, StepHandler] = {}

    def register(self, handler: StepHandler, step_type: Optional[StepType] = None) -> None:
        """Register a handler, replacing any handler for the same step type."""
        self._handlers[StepType(step_type or handler.step_type)] = handler

    def get(self, step_type: StepType | str) -> Optional[StepHandler]:
        try:
            return self._handlers.get(StepType(step_type))
        except ValueError:
            return None

    def list_all(self) -> list:
        """List all registered step types with metadata."""
        return [handler.describe() for handler in self._handlers.values()]

    @property
    def available_types(self) -> list:
        return [step_type.value for step_type in self._handlers]


def build_default_registry(
    gate: ApprovalGate,
    transport: Optional[Transport] = None,
    settings=None,
) -> StepRegistry:
    """Registry with the seven built-in step handlers."""
    max_iterations = settings.LOOP_MAX_ITERATIONS if settings else 1000
    max_delay_ms = settings.DELAY_MAX_MS if settings else 300_000

    registry = StepRegistry()
    registry.register(ActionStepHandler(transport))
    registry.register(ConditionStepHandler())
    registry.register(LoopStepHandler(max_iterations=max_iterations))
    registry.register(ParallelStepHandler())
    registry.register(DelayStepHandler(max_delay_ms=max_delay_ms))
    registry.register(WebhookStepHandler(transport))
    registry.register(ApprovalStepHandler(gate))
    return registry
