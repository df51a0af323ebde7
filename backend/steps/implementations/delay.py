"""Delay step: sleep for ``durationMs`` (default 1000), capped by settings."""

import asyncio
from typing import Any, Dict

from core.constants import StepType
from steps.base import StepHandler, StepRun


class DelayStepHandler(StepHandler):
    step_type = StepType.DELAY
    display_name = "Delay"
    description = "Pause the execution for a bounded time"

    def __init__(self, max_delay_ms: int = 300_000):
        self._max_delay_ms = max_delay_ms

    async def execute(self, config: Dict[str, Any], run: StepRun) -> Any:
        requested = config.get("durationMs") or 1000
        actual = min(requested, self._max_delay_ms)

        await asyncio.sleep(actual / 1000)

        return {"delayed": True, "requestedMs": requested, "actualMs": actual}
