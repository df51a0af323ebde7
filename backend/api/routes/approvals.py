"""Approval endpoints: list pending approvals and decide them."""

from fastapi import APIRouter, Depends, Query

from api.schemas.approval import ApprovalDecision, ApprovalListResponse
from app.dependencies import get_flow_service
from services.flow_service import FlowService
from workflow.models import PendingApproval

router = APIRouter(tags=["approvals"])


@router.get("/", response_model=ApprovalListResponse)
async def list_pending_approvals(
    organization_id: str = Query(..., description="Organization to list"),
    svc: FlowService = Depends(get_flow_service),
) -> ApprovalListResponse:
    approvals = await svc.get_pending_approvals(organization_id)
    return ApprovalListResponse(approvals=approvals, total=len(approvals))


@router.post("/{approval_id}/decision", response_model=PendingApproval)
async def decide_approval(
    approval_id: str,
    request: ApprovalDecision,
    svc: FlowService = Depends(get_flow_service),
) -> PendingApproval:
    """
    Approve or reject a pending approval.

    Approving resumes the parked execution after the approval step;
    rejecting cancels it.
    """
    return await svc.process_approval(
        approval_id,
        approved=request.approved,
        decided_by=request.decided_by,
        reason=request.reason,
        wait=request.wait,
    )
