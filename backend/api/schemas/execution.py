"""Execution schemas."""

from pydantic import BaseModel
from typing import List

from workflow.models import Execution


class ExecutionListResponse(BaseModel):
    """Most recent executions of an organization."""

    executions: List[Execution]
    total: int
