"""Workflow Execution Engine.

Runs a workflow's steps in declared order against an Execution record:

- One StepResult per step, created with the execution and never resized
- Dispatch to a step handler through the StepRegistry
- Error policy per step: stop (default), continue, or retry with backoff
- Context threading: each successful object output is stored under the
  step id for later templates
- Approval steps park the execution; a later approval resumes it

Resumption keeps no continuation. A run re-scans step_results and skips
every entry that is already success or skipped, so a resumed run continues
at the first unsettled step. Runs and approval decisions for the same
execution are serialized with a per-execution lock.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from app.config import Settings, get_settings
from core.constants import (
    ErrorPolicy,
    ExecutionStatus,
    SETTLED_STEP_STATUSES,
    StepStatus,
    WorkflowStatus,
)
from core.exceptions import (
    ApprovalNotFound,
    StepDefinitionNotFound,
    UnknownStepType,
    WorkflowNotActive,
    WorkflowNotFound,
)
from core.logging_config import execution_log_context
from core.utils import seconds_between, utc_now
from integrations.transport import Transport, build_transport
from steps.base import SKIPPED, AwaitingApproval, StepRun
from steps.registry import StepRegistry, build_default_registry
from workflow.approvals import ApprovalGate
from workflow.models import Execution, PendingApproval, Step, StepResult, Workflow
from workflow.repository import FlowRepository
from workflow.retry_strategies import RetryStrategy
from workflow.stats import update_workflow_stats

logger = structlog.get_logger(__name__)


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


def _error_message(error: Exception) -> str:
    return str(error) or type(error).__name__


class WorkflowEngine:
    """Main workflow execution engine."""

    def __init__(
        self,
        repository: FlowRepository,
        registry: Optional[StepRegistry] = None,
        transport: Optional[Transport] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self._repository = repository
        self.approvals = ApprovalGate(repository, self._settings.DEFAULT_APPROVERS)
        self.registry = registry or build_default_registry(
            self.approvals,
            transport or build_transport(self._settings),
            self._settings,
        )
        self._locks: dict[str, _LockEntry] = {}
        self._background: set[asyncio.Task] = set()

    # ─── Public API ───────────────────────────────────────────

    async def execute_workflow(
        self,
        workflow_id: str,
        triggered_by: str,
        input: Optional[dict[str, Any]] = None,
        wait: bool = True,
    ) -> Execution:
        """Create an execution for an active workflow and run it.

        With wait=True the call returns once the execution finished or
        parked for approval; with wait=False it returns the pending record
        and the run continues in the background.

        Raises:
            WorkflowNotFound: Unknown workflow id
            WorkflowNotActive: Workflow status is not active
        """
        workflow = await self._repository.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFound(workflow_id)
        if workflow.status != WorkflowStatus.ACTIVE:
            raise WorkflowNotActive(workflow_id, workflow.status.value)

        execution = Execution.for_workflow(workflow, triggered_by, input)
        await self._repository.save_execution(execution)
        logger.info(
            "Execution created",
            execution_id=execution.id,
            workflow_id=workflow.id,
            triggered_by=triggered_by,
            steps=len(execution.step_results),
        )

        if not wait:
            self._spawn(self.run(execution))
            return execution
        return await self.run(execution)

    async def process_approval(
        self,
        approval_id: str,
        approved: bool,
        decided_by: str,
        reason: Optional[str] = None,
        wait: bool = True,
    ) -> PendingApproval:
        """Decide a pending approval; resume the execution if approved.

        Raises:
            ApprovalNotFound: Unknown approval id
            ApprovalAlreadyDecided: Approval was decided before
        """
        approval = await self._repository.get_approval(approval_id)
        if approval is None:
            raise ApprovalNotFound(approval_id)

        async with self._execution_lock(approval.execution_id):
            approval, execution = await self.approvals.decide(approval_id, approved, decided_by, reason)

        if execution is None:
            return approval

        if approved:
            if wait:
                await self.run(execution)
            else:
                self._spawn(self.run(execution))
        else:
            workflow = await self._repository.get_workflow(execution.workflow_id)
            if workflow is not None:
                await update_workflow_stats(self._repository, workflow)
        return approval

    async def run(self, execution: Execution) -> Execution:
        """Drive an execution until it finishes or parks for approval.

        Safe to call again on the same execution: settled steps are skipped,
        and executions that are terminal or awaiting approval are returned
        unchanged.
        """
        async with self._execution_lock(execution.id):
            current = await self._repository.get_execution(execution.id) or execution
            if current.status not in (ExecutionStatus.PENDING, ExecutionStatus.RUNNING):
                logger.info(
                    "Execution not runnable, skipping",
                    execution_id=current.id,
                    status=current.status.value,
                )
                return current

            with execution_log_context(current.id, current.workflow_id):
                workflow = await self._repository.get_workflow(current.workflow_id)
                if workflow is None:
                    current.error = f"Workflow {current.workflow_id} no longer exists"
                    await self._finish(current, None, ExecutionStatus.FAILED)
                    return current
                return await self._run_steps(current, workflow)

    async def shutdown(self) -> None:
        """Wait for background runs to finish."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ─── Orchestrator ─────────────────────────────────────────

    async def _run_steps(self, execution: Execution, workflow: Workflow) -> Execution:
        resumed = execution.status == ExecutionStatus.RUNNING
        execution.status = ExecutionStatus.RUNNING
        await self._repository.save_execution(execution)
        logger.info("Execution resumed" if resumed else "Execution started")

        context = self._seed_context(execution)

        for result in execution.step_results:
            if result.status in SETTLED_STEP_STATUSES:
                continue

            result.status = StepStatus.RUNNING
            result.started_at = utc_now()
            result.error = None
            await self._repository.save_execution(execution)

            step = workflow.find_step(result.step_id)
            if step is None:
                error = StepDefinitionNotFound(result.step_id)
                self._mark_failed(result, error)
                logger.warning("Step definition not found", step_id=result.step_id)
                await self._repository.save_execution(execution)
                continue

            try:
                output = await self._dispatch(step, execution, workflow, context)
            except Exception as e:
                self._mark_failed(result, e)
                logger.warning("Step failed", step_id=step.id, error=result.error, on_error=step.on_error.value)
                await self._repository.save_execution(execution)

                if step.on_error == ErrorPolicy.CONTINUE:
                    continue
                recovered, output = await self._retry(step, result, execution, workflow, context)
                if not recovered:
                    execution.error = f'Step "{result.step_name}" failed: {result.error}'
                    await self._finish(execution, workflow, ExecutionStatus.FAILED)
                    return execution

            if isinstance(output, AwaitingApproval):
                self._mark_settled(result, output.to_output())
                await self._repository.save_execution(execution)
                logger.info("Execution suspended for approval", approval_id=output.approval.id, step_id=step.id)
                return execution

            self._mark_settled(result, output)
            if isinstance(output, dict):
                context[step.id] = output
            await self._repository.save_execution(execution)

        execution.output = {"completed": True, "context": dict(context)}
        await self._finish(execution, workflow, ExecutionStatus.SUCCESS)
        return execution

    async def _dispatch(
        self,
        step: Step,
        execution: Execution,
        workflow: Workflow,
        context: dict[str, Any],
    ) -> Any:
        handler = self.registry.get(step.type)
        if handler is None:
            raise UnknownStepType(step.type.value)
        return await handler.execute(step.config, StepRun(step, execution, workflow, context))

    async def _retry(
        self,
        step: Step,
        result: StepResult,
        execution: Execution,
        workflow: Workflow,
        context: dict[str, Any],
    ) -> tuple[bool, Any]:
        """Re-invoke a failed step per its retry policy. Returns (recovered, output)."""
        strategy = RetryStrategy.for_step(step, base_delay=self._settings.RETRY_BASE_DELAY)
        for attempt in strategy.attempts():
            logger.info(
                "Retrying step",
                step_id=step.id,
                attempt=attempt.number,
                max_retries=attempt.max_retries,
                delay=attempt.delay,
            )
            await attempt.wait()
            result.retries = attempt.number
            try:
                output = await self._dispatch(step, execution, workflow, context)
            except Exception as e:
                result.error = _error_message(e)
                logger.warning("Retry failed", step_id=step.id, attempt=attempt.number, error=result.error)
                continue
            result.error = None
            return True, output
        return False, None

    async def _finish(
        self,
        execution: Execution,
        workflow: Optional[Workflow],
        status: ExecutionStatus,
    ) -> None:
        execution.status = status
        execution.completed_at = utc_now()
        execution.duration = seconds_between(execution.started_at, execution.completed_at)
        await self._repository.save_execution(execution)

        log = logger.info if status == ExecutionStatus.SUCCESS else logger.error
        log(
            "Execution finished",
            execution_id=execution.id,
            status=status.value,
            duration=round(execution.duration, 3),
            error=execution.error,
        )
        if workflow is not None:
            await update_workflow_stats(self._repository, workflow)

    # ─── Helpers ──────────────────────────────────────────────

    @staticmethod
    def _seed_context(execution: Execution) -> dict[str, Any]:
        context: dict[str, Any] = dict(execution.input or {})
        for result in execution.step_results:
            if result.status == StepStatus.SUCCESS and isinstance(result.output, dict):
                context[result.step_id] = result.output
        return context

    @staticmethod
    def _mark_failed(result: StepResult, error: Exception) -> None:
        result.status = StepStatus.FAILED
        result.error = _error_message(error)
        result.completed_at = utc_now()

    @staticmethod
    def _mark_settled(result: StepResult, output: Any) -> None:
        if output is SKIPPED:
            result.status = StepStatus.SKIPPED
            result.output = None
        else:
            result.status = StepStatus.SUCCESS
            result.output = output
        result.error = None
        result.completed_at = utc_now()

    @asynccontextmanager
    async def _execution_lock(self, execution_id: str):
        entry = self._locks.setdefault(execution_id, _LockEntry())
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(execution_id, None)

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background execution crashed", error=_error_message(task.exception()))
