"""
Utility functions for the workflow execution engine.

Includes:
- Record id generation
- UTC datetime helpers
"""

from datetime import datetime, timezone
from uuid import uuid4


def new_id(prefix: str) -> str:
    """
    Generate a record id such as ``exec-3f9a0c1b2d4e``.

    Args:
        prefix: Record kind prefix (wf, exec, approval)

    Returns:
        Prefixed random id
    """
    return f"{prefix}-{uuid4().hex[:12]}"


def utc_now() -> datetime:
    """
    Get the current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)


def seconds_between(start: datetime, end: datetime) -> float:
    """Elapsed seconds between two datetimes, tolerant of naive values from storage."""
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    return (end - start).total_seconds()
