"""Parallel step: fan out over named branches and wait for all of them.

Config:
    branches: Non-empty list of ``{"name": ..., "action": {...}}``

Every branch renders its action templates against the context in its own
task. The join waits for every branch; one failing branch never cancels
the others.
"""

import asyncio
from typing import Any, Dict

import structlog

from core.constants import ErrorCode, StepStatus, StepType
from steps.base import StepHandler, StepRun
from workflow.context import resolve_templates

logger = structlog.get_logger(__name__)


async def _run_branch(branch: Any, context: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(branch, dict):
        raise ValueError("Branch must be an object with name and action")
    action = branch.get("action") or {}
    if not isinstance(action, dict):
        raise ValueError(f'Branch "{branch.get("name")}" action must be an object')
    return resolve_templates(action, context)


class ParallelStepHandler(StepHandler):
    step_type = StepType.PARALLEL
    display_name = "Parallel"
    description = "Evaluate several branches concurrently"

    async def execute(self, config: Dict[str, Any], run: StepRun) -> Any:
        branches = config.get("branches")
        if not isinstance(branches, list) or not branches:
            return {
                "error": "No branches defined for parallel step",
                "code": ErrorCode.NO_BRANCHES_DEFINED.value,
            }

        outcomes = await asyncio.gather(
            *[_run_branch(branch, run.context) for branch in branches],
            return_exceptions=True,
        )

        results = []
        for branch, outcome in zip(branches, outcomes):
            name = branch.get("name") if isinstance(branch, dict) else None
            if isinstance(outcome, Exception):
                logger.warning("Parallel branch failed", branch=name, error=str(outcome))
                results.append({"name": name, "status": StepStatus.FAILED.value, "error": str(outcome)})
            else:
                results.append({"name": name, "status": StepStatus.SUCCESS.value, "output": outcome})

        return {
            "branches": results,
            "allSucceeded": all(r["status"] == StepStatus.SUCCESS.value for r in results),
        }
