"""Tests for rolling workflow statistics."""

from datetime import timedelta

import pytest

from core.constants import ExecutionStatus
from workflow.models import Execution
from workflow.stats import update_workflow_stats


async def _add_execution(repository, workflow, status: ExecutionStatus, duration: float | None):
    execution = Execution.for_workflow(workflow, "tester")
    execution.status = status
    execution.duration = duration
    if duration is not None:
        execution.completed_at = execution.started_at + timedelta(seconds=duration)
    await repository.save_execution(execution)
    return execution


@pytest.mark.unit
class TestWorkflowStats:
    @pytest.mark.asyncio
    async def test_no_executions(self, repository, make_workflow):
        wf = await make_workflow([])
        wf.success_rate = 12.0

        await update_workflow_stats(repository, wf)

        assert wf.execution_count == 0
        assert wf.success_rate == 100.0
        assert wf.avg_duration == 0.0

    @pytest.mark.asyncio
    async def test_mixed_outcomes(self, repository, make_workflow):
        wf = await make_workflow([])
        await _add_execution(repository, wf, ExecutionStatus.SUCCESS, 2.0)
        await _add_execution(repository, wf, ExecutionStatus.SUCCESS, 4.0)
        await _add_execution(repository, wf, ExecutionStatus.FAILED, 6.0)
        await _add_execution(repository, wf, ExecutionStatus.CANCELLED, 8.0)

        await update_workflow_stats(repository, wf)

        assert wf.execution_count == 4
        assert wf.success_rate == 50.0
        assert wf.avg_duration == 5.0

    @pytest.mark.asyncio
    async def test_running_executions_are_ignored(self, repository, make_workflow):
        wf = await make_workflow([])
        await _add_execution(repository, wf, ExecutionStatus.SUCCESS, 3.0)
        await _add_execution(repository, wf, ExecutionStatus.RUNNING, None)

        await update_workflow_stats(repository, wf)

        assert wf.execution_count == 1
        assert wf.success_rate == 100.0
        assert wf.avg_duration == 3.0

    @pytest.mark.asyncio
    async def test_parked_executions_count_without_duration(self, repository, make_workflow):
        wf = await make_workflow([])
        await _add_execution(repository, wf, ExecutionStatus.SUCCESS, 4.0)
        await _add_execution(repository, wf, ExecutionStatus.AWAITING_APPROVAL, None)

        await update_workflow_stats(repository, wf)

        assert wf.execution_count == 2
        assert wf.success_rate == 50.0
        assert wf.avg_duration == 2.0

    @pytest.mark.asyncio
    async def test_other_workflows_not_counted(self, repository, make_workflow):
        wf = await make_workflow([])
        other = await make_workflow([], name="Other")
        await _add_execution(repository, other, ExecutionStatus.FAILED, 1.0)

        await update_workflow_stats(repository, wf)

        assert wf.execution_count == 0

    @pytest.mark.asyncio
    async def test_engine_updates_stats_after_run(self, engine, make_workflow, repository):
        wf = await make_workflow([
            {"id": "a", "name": "A", "type": "action", "config": {"action": "log", "params": {"message": "x"}}},
        ])

        await engine.execute_workflow(wf.id, "tester")
        await engine.execute_workflow(wf.id, "tester")

        stored = await repository.get_workflow(wf.id)
        assert stored.execution_count == 2
        assert stored.success_rate == 100.0
