"""Rolling workflow statistics, recomputed from the workflow's executions
after every terminal execution.
"""

import structlog

from core.constants import ExecutionStatus
from workflow.models import Workflow
from workflow.repository import FlowRepository

logger = structlog.get_logger(__name__)


async def update_workflow_stats(repository: FlowRepository, workflow: Workflow) -> Workflow:
    """Recompute execution_count, success_rate and avg_duration for a workflow.

    Every execution that is not currently running counts. With no such
    executions the success rate is 100 and the average duration 0.
    """
    executions = [
        ex
        for ex in await repository.list_executions(workflow_id=workflow.id)
        if ex.status != ExecutionStatus.RUNNING
    ]

    count = len(executions)
    if count:
        succeeded = sum(1 for ex in executions if ex.status == ExecutionStatus.SUCCESS)
        workflow.success_rate = succeeded / count * 100
        workflow.avg_duration = sum(ex.duration or 0 for ex in executions) / count
    else:
        workflow.success_rate = 100.0
        workflow.avg_duration = 0.0
    workflow.execution_count = count

    await repository.save_workflow(workflow)
    logger.debug(
        "Workflow stats updated",
        workflow_id=workflow.id,
        execution_count=count,
        success_rate=round(workflow.success_rate, 2),
    )
    return workflow
