"""Condition step: evaluate one field against a value.

Config:
    field: Context path of the value under test
    operator: eq/==, ne/!=, gt/>, gte/>=, lt/<, lte/<=, contains, exists,
        truthy, in (unknown operators behave like truthy)
    value: Expected value (may be a ``{{ path }}`` template)
    then / else: Branch labels reported in the output

Ordering operators are false when either side is missing.
The step only reports the branch; execution always continues with the
next step in the list.
"""

import math
from typing import Any, Callable, Dict

from core.constants import StepType
from steps.base import StepHandler, StepRun
from steps.values import strict_equals, to_number, to_text
from workflow.context import resolve_path, resolve_value


def _compare(check: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def numeric(actual: Any, expected: Any) -> bool:
        if actual is None or expected is None:
            return False
        a, b = to_number(actual), to_number(expected)
        if math.isnan(a) or math.isnan(b):
            return False
        return check(a, b)
    return numeric


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple, dict)):
        return expected in actual
    return to_text(expected) in to_text(actual)


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "eq": strict_equals,
    "ne": lambda a, b: not strict_equals(a, b),
    "gt": _compare(lambda a, b: a > b),
    "gte": _compare(lambda a, b: a >= b),
    "lt": _compare(lambda a, b: a < b),
    "lte": _compare(lambda a, b: a <= b),
    "contains": _contains,
    "exists": lambda a, _: a is not None,
    "truthy": lambda a, _: bool(a),
    "in": lambda a, b: isinstance(b, list) and a in b,
}

OPERATOR_ALIASES = {
    "==": "eq",
    "!=": "ne",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
}


def evaluate_condition(operator: str, actual: Any, expected: Any) -> bool:
    name = OPERATOR_ALIASES.get(operator, operator)
    check = OPERATORS.get(name, OPERATORS["truthy"])
    return bool(check(actual, expected))


class ConditionStepHandler(StepHandler):
    step_type = StepType.CONDITION
    display_name = "Condition"
    description = "Compare a context value and report which branch applies"

    async def execute(self, config: Dict[str, Any], run: StepRun) -> Any:
        field = config.get("field")
        operator = config.get("operator")
        expected = resolve_value(config.get("value"), run.context)
        actual = resolve_path(run.context, field)

        met = evaluate_condition(operator, actual, expected)
        branch = (config.get("then") or "true") if met else (config.get("else") or "false")

        return {
            "conditionMet": met,
            "field": field,
            "operator": operator,
            "actualValue": actual,
            "expectedValue": expected,
            "branch": branch,
        }
