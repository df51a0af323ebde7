"""Loop step: iterate a context collection and render a body per item.

Config:
    collection: Context path of the list to iterate
    itemVariable: Name the current item is bound to (default ``item``)
    maxIterations: Iteration cap (default from settings, 1000)
    body: Optional dict of templates rendered against each iteration's
        context; without it each result is ``{index, item}``

Each iteration sees a copy of the context with the item plus ``__index``
and ``__length``. A non-list collection is reported in the output.
"""

from typing import Any, Dict

from core.constants import ErrorCode, StepType
from steps.base import StepHandler, StepRun
from workflow.context import resolve_path, resolve_templates


class LoopStepHandler(StepHandler):
    step_type = StepType.LOOP
    display_name = "Loop"
    description = "Iterate over a collection from the context"

    def __init__(self, max_iterations: int = 1000):
        self._max_iterations = max_iterations

    async def execute(self, config: Dict[str, Any], run: StepRun) -> Any:
        collection = config.get("collection")
        item_variable = config.get("itemVariable") or "item"
        max_iterations = config.get("maxIterations") or self._max_iterations
        body = config.get("body")

        items = resolve_path(run.context, collection)
        if not isinstance(items, list):
            return {
                "error": f'Collection "{collection}" is not an array',
                "code": ErrorCode.COLLECTION_NOT_ARRAY.value,
                "iterations": 0,
            }

        limit = max(0, min(len(items), int(max_iterations)))
        results = []
        for index, item in enumerate(items[:limit]):
            iteration_context = {
                **run.context,
                item_variable: item,
                "__index": index,
                "__length": len(items),
            }
            if isinstance(body, dict):
                results.append(resolve_templates(body, iteration_context))
            else:
                results.append({"index": index, "item": item})

        return {
            "iterations": len(results),
            "results": results,
            "truncated": len(items) > max_iterations,
        }
