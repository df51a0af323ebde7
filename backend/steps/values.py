"""Loose value coercion shared by condition and transform steps.

Workflow data arrives as JSON, so numbers may be strings and missing
values are None.
"""

import math
from typing import Any

NAN = math.nan


def to_number(value: Any) -> float | int:
    """Coerce a value to a number; NaN when it cannot be read as one.

    None and empty strings count as 0, booleans as 1/0.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if value is None:
        return 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return NAN
    return NAN


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without bool/number cross-matching (True != 1)."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right
