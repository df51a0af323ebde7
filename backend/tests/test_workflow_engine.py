"""Tests for the workflow execution engine."""

import asyncio
from typing import Any, Dict

import pytest

from core.constants import (
    ApprovalStatus,
    ExecutionStatus,
    StepStatus,
    StepType,
    WorkflowStatus,
)
from core.exceptions import WorkflowNotActive, WorkflowNotFound
from steps.base import SKIPPED, StepHandler, StepRun
from steps.registry import StepRegistry
from workflow.engine import WorkflowEngine
from workflow.models import Execution


class FailingHandler(StepHandler):
    """Action handler that fails its first ``failures`` calls, then succeeds."""

    step_type = StepType.ACTION

    def __init__(self, failures: int = 10**6, output: Any = None):
        self.failures = failures
        self.calls = 0
        self.output = output if output is not None else {"ok": True}

    async def execute(self, config: Dict[str, Any], run: StepRun) -> Any:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"boom {self.calls}")
        return self.output


class SkippingHandler(StepHandler):
    step_type = StepType.ACTION

    async def execute(self, config: Dict[str, Any], run: StepRun) -> Any:
        return SKIPPED


def _log(step_id: str, message: str = "hi", **kwargs) -> dict:
    return {
        "id": step_id,
        "name": step_id.title(),
        "type": "action",
        "config": {"action": "log", "params": {"message": message}},
        **kwargs,
    }


@pytest.mark.unit
class TestExecuteWorkflow:
    @pytest.mark.asyncio
    async def test_single_log_step_succeeds(self, engine, make_workflow):
        wf = await make_workflow([_log("s1", "hi")])

        ex = await engine.execute_workflow(wf.id, "tester")

        assert ex.status == ExecutionStatus.SUCCESS
        assert ex.step_results[0].status == StepStatus.SUCCESS
        assert ex.step_results[0].output["message"] == "hi"
        assert ex.completed_at is not None
        assert ex.duration >= 0
        assert ex.output["completed"] is True

    @pytest.mark.asyncio
    async def test_condition_reads_input(self, engine, make_workflow):
        wf = await make_workflow([
            {"id": "c", "name": "Check", "type": "condition",
             "config": {"field": "x", "operator": "gt", "value": 5}},
        ])

        ex = await engine.execute_workflow(wf.id, "tester", {"x": 10})

        assert ex.step_results[0].output["conditionMet"] is True
        assert ex.step_results[0].output["branch"] == "true"

    @pytest.mark.asyncio
    async def test_loop_truncates(self, engine, make_workflow):
        wf = await make_workflow([
            {"id": "l", "name": "Loop", "type": "loop",
             "config": {"collection": "items", "maxIterations": 3}},
        ])

        ex = await engine.execute_workflow(wf.id, "tester", {"items": [1, 2, 3, 4, 5]})

        assert ex.step_results[0].output["iterations"] == 3
        assert ex.step_results[0].output["truncated"] is True

    @pytest.mark.asyncio
    async def test_outputs_thread_through_context(self, engine, make_workflow):
        wf = await make_workflow([
            {"id": "vars", "name": "Vars", "type": "action",
             "config": {"action": "set_variable", "params": {"name": "greeting", "value": "hello"}}},
            _log("say", "{{ vars.greeting }}"),
        ])

        ex = await engine.execute_workflow(wf.id, "tester", {"user": "ana"})

        assert ex.step_results[1].output["message"] == "hello"
        assert ex.output["context"]["user"] == "ana"
        assert ex.output["context"]["vars"] == {"greeting": "hello"}

    @pytest.mark.asyncio
    async def test_result_count_matches_steps(self, engine, make_workflow):
        wf = await make_workflow([_log("a"), _log("b"), _log("c")])
        ex = await engine.execute_workflow(wf.id, "tester")
        assert [r.step_id for r in ex.step_results] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_empty_workflow_succeeds(self, engine, make_workflow):
        wf = await make_workflow([])
        ex = await engine.execute_workflow(wf.id, "tester")
        assert ex.status == ExecutionStatus.SUCCESS
        assert ex.step_results == []

    @pytest.mark.asyncio
    async def test_unknown_workflow(self, engine):
        with pytest.raises(WorkflowNotFound):
            await engine.execute_workflow("wf-missing", "tester")

    @pytest.mark.asyncio
    async def test_inactive_workflow(self, engine, make_workflow, repository):
        wf = await make_workflow([_log("a")], status=WorkflowStatus.DRAFT)
        with pytest.raises(WorkflowNotActive):
            await engine.execute_workflow(wf.id, "tester")
        assert await repository.list_executions(workflow_id=wf.id) == []

    @pytest.mark.asyncio
    async def test_background_run(self, engine, make_workflow, repository):
        wf = await make_workflow([_log("a")])

        ex = await engine.execute_workflow(wf.id, "tester", wait=False)
        assert ex.status == ExecutionStatus.PENDING

        await engine.shutdown()
        stored = await repository.get_execution(ex.id)
        assert stored.status == ExecutionStatus.SUCCESS


@pytest.mark.unit
class TestErrorPolicies:
    @pytest.mark.asyncio
    async def test_stop_fails_execution(self, engine, make_workflow):
        engine.registry.register(FailingHandler())
        wf = await make_workflow([_log("a"), _log("b")])

        ex = await engine.execute_workflow(wf.id, "tester")

        assert ex.status == ExecutionStatus.FAILED
        assert ex.error == 'Step "A" failed: boom 1'
        assert ex.step_results[0].status == StepStatus.FAILED
        assert ex.step_results[1].status == StepStatus.PENDING

    @pytest.mark.asyncio
    async def test_continue_moves_on(self, engine, make_workflow):
        handler = FailingHandler(failures=1)
        engine.registry.register(handler)
        wf = await make_workflow([_log("a", on_error="continue"), _log("b")])

        ex = await engine.execute_workflow(wf.id, "tester")

        assert ex.status == ExecutionStatus.SUCCESS
        assert ex.step_results[0].status == StepStatus.FAILED
        assert ex.step_results[0].error == "boom 1"
        assert ex.step_results[1].status == StepStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_retry_exhausted(self, engine, make_workflow):
        handler = FailingHandler()
        engine.registry.register(handler)
        wf = await make_workflow([_log("a", on_error="retry", retry_count=2)])

        ex = await engine.execute_workflow(wf.id, "tester")

        assert ex.status == ExecutionStatus.FAILED
        assert handler.calls == 3
        assert ex.step_results[0].retries == 2
        assert ex.step_results[0].error == "boom 3"
        assert ex.error == 'Step "A" failed: boom 3'

    @pytest.mark.asyncio
    async def test_retry_recovers(self, engine, make_workflow):
        handler = FailingHandler(failures=1, output={"value": 7})
        engine.registry.register(handler)
        wf = await make_workflow([_log("a", on_error="retry", retry_count=3), _log("b", "{{ a.value }}")])

        ex = await engine.execute_workflow(wf.id, "tester")

        assert ex.status == ExecutionStatus.SUCCESS
        assert ex.step_results[0].status == StepStatus.SUCCESS
        assert ex.step_results[0].retries == 1
        assert ex.step_results[0].error is None
        assert ex.output["context"]["a"] == {"value": 7}

    @pytest.mark.asyncio
    async def test_retry_waits_linearly(self, repository, transport, settings, make_workflow, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr("workflow.retry_strategies.asyncio.sleep", fake_sleep)
        engine = WorkflowEngine(
            repository,
            transport=transport,
            settings=settings.model_copy(update={"RETRY_BASE_DELAY": 1.0}),
        )
        engine.registry.register(FailingHandler())
        wf = await make_workflow([_log("a", on_error="retry", retry_count=3)])

        await engine.execute_workflow(wf.id, "tester")

        assert delays == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_retry_with_zero_count_acts_as_stop(self, engine, make_workflow):
        handler = FailingHandler()
        engine.registry.register(handler)
        wf = await make_workflow([_log("a", on_error="retry", retry_count=0), _log("b")])

        ex = await engine.execute_workflow(wf.id, "tester")

        assert ex.status == ExecutionStatus.FAILED
        assert handler.calls == 1

    @pytest.mark.asyncio
    async def test_unknown_step_type(self, repository, settings, make_workflow):
        engine = WorkflowEngine(repository, registry=StepRegistry(), settings=settings)
        wf = await make_workflow([_log("a")])

        ex = await engine.execute_workflow(wf.id, "tester")

        assert ex.status == ExecutionStatus.FAILED
        assert ex.step_results[0].error == "Unknown step type: action"

    @pytest.mark.asyncio
    async def test_skipped_output(self, engine, make_workflow):
        engine.registry.register(SkippingHandler())
        wf = await make_workflow([_log("a")])

        ex = await engine.execute_workflow(wf.id, "tester")

        assert ex.status == ExecutionStatus.SUCCESS
        assert ex.step_results[0].status == StepStatus.SKIPPED
        assert "a" not in ex.output["context"]

    @pytest.mark.asyncio
    async def test_missing_step_definition_is_not_fatal(self, engine, make_workflow, repository):
        wf = await make_workflow([_log("a"), _log("b")])
        execution = Execution.for_workflow(wf, "tester")
        await repository.save_execution(execution)
        wf.steps = [s for s in wf.steps if s.id != "a"]
        await repository.save_workflow(wf)

        ex = await engine.run(execution)

        assert ex.status == ExecutionStatus.SUCCESS
        assert ex.step_results[0].status == StepStatus.FAILED
        assert ex.step_results[0].error == "Step definition not found"
        assert ex.step_results[1].status == StepStatus.SUCCESS


@pytest.mark.unit
class TestApprovalFlow:
    @pytest.mark.asyncio
    async def test_approval_suspends_and_resumes(self, engine, make_workflow, repository):
        wf = await make_workflow([
            _log("before"),
            {"id": "ok", "name": "Sign off", "type": "approval", "config": {"approvers": ["lead"]}},
            _log("after", "resumed"),
        ])

        ex = await engine.execute_workflow(wf.id, "tester")

        assert ex.status == ExecutionStatus.AWAITING_APPROVAL
        assert ex.step_results[1].status == StepStatus.SUCCESS
        assert ex.step_results[1].output["status"] == "pending"
        assert ex.step_results[2].status == StepStatus.PENDING
        approvals = await repository.list_approvals(status=ApprovalStatus.PENDING)
        assert len(approvals) == 1
        assert approvals[0].approvers == ["lead"]

        approval = await engine.process_approval(approvals[0].id, True, "lead")

        assert approval.status == ApprovalStatus.APPROVED
        resumed = await repository.get_execution(ex.id)
        assert resumed.status == ExecutionStatus.SUCCESS
        assert resumed.step_results[2].output["message"] == "resumed"
        assert resumed.step_results[1].output["status"] == "approved"
        assert resumed.step_results[1].output["decidedBy"] == "lead"

    @pytest.mark.asyncio
    async def test_rejection_cancels(self, engine, make_workflow, repository):
        wf = await make_workflow([
            {"id": "ok", "name": "Sign off", "type": "approval", "config": {}},
            _log("after"),
        ])
        ex = await engine.execute_workflow(wf.id, "tester")
        approval_id = ex.step_results[0].output["approvalId"]

        approval = await engine.process_approval(approval_id, False, "lead", "Too risky")

        assert approval.status == ApprovalStatus.REJECTED
        assert approval.reason == "Too risky"
        cancelled = await repository.get_execution(ex.id)
        assert cancelled.status == ExecutionStatus.CANCELLED
        assert cancelled.error == "Approval rejected: Too risky"
        assert cancelled.step_results[1].status == StepStatus.PENDING
        stats = await repository.get_workflow(wf.id)
        assert stats.execution_count == 1
        assert stats.success_rate == 0

    @pytest.mark.asyncio
    async def test_rejection_without_reason(self, engine, make_workflow, repository):
        wf = await make_workflow([{"id": "ok", "name": "Sign off", "type": "approval"}])
        ex = await engine.execute_workflow(wf.id, "tester")

        await engine.process_approval(ex.step_results[0].output["approvalId"], False, "lead")

        cancelled = await repository.get_execution(ex.id)
        assert cancelled.error == "Approval rejected: No reason provided"

    @pytest.mark.asyncio
    async def test_second_approval_step_suspends_again(self, engine, make_workflow, repository):
        wf = await make_workflow([
            {"id": "first", "name": "First", "type": "approval"},
            {"id": "second", "name": "Second", "type": "approval"},
        ])
        ex = await engine.execute_workflow(wf.id, "tester")

        await engine.process_approval(ex.step_results[0].output["approvalId"], True, "admin")

        parked = await repository.get_execution(ex.id)
        assert parked.status == ExecutionStatus.AWAITING_APPROVAL
        pending = await repository.list_approvals(status=ApprovalStatus.PENDING)
        assert [a.step_id for a in pending] == ["second"]

    @pytest.mark.asyncio
    async def test_concurrent_decisions_resume_once(self, engine, make_workflow, repository):
        handler = FailingHandler(failures=0, output={"n": 1})
        engine.registry.register(handler)
        wf = await make_workflow([
            {"id": "ok", "name": "Sign off", "type": "approval"},
            _log("after"),
        ])
        ex = await engine.execute_workflow(wf.id, "tester")
        approval_id = ex.step_results[0].output["approvalId"]

        results = await asyncio.gather(
            engine.process_approval(approval_id, True, "a"),
            engine.process_approval(approval_id, True, "b"),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, Exception)) == 1
        assert handler.calls == 1
        assert (await repository.get_execution(ex.id)).status == ExecutionStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_run_is_idempotent_for_settled_execution(self, engine, make_workflow):
        handler = FailingHandler(failures=0)
        engine.registry.register(handler)
        wf = await make_workflow([_log("a")])

        ex = await engine.execute_workflow(wf.id, "tester")
        again = await engine.run(ex)

        assert again.status == ExecutionStatus.SUCCESS
        assert handler.calls == 1
