"""Approval schemas."""

from pydantic import BaseModel, Field
from typing import List, Optional

from workflow.models import PendingApproval


class ApprovalDecision(BaseModel):
    """Request to approve or reject a pending approval."""

    approved: bool
    decided_by: str = Field(min_length=1, description="Who made the decision")
    reason: Optional[str] = Field(default=None, description="Optional justification")
    wait: bool = Field(default=True, description="Block until the resumed run settles")


class ApprovalListResponse(BaseModel):
    """Pending approvals of an organization."""

    approvals: List[PendingApproval]
    total: int
