from __future__ import annotations

from fastapi import APIRouter, Depends

from expense_approvals.authz.context import ActorContext
from expense_approvals.models.expenses import ApprovalRecord
from expense_approvals.schemas.expenses import ApprovalRecordOut, DecisionIn, DecisionOut, PendingApprovalOut
from expense_approvals.security.dependencies import get_actor, get_workflow
from expense_approvals.workflow.engine import ApprovalWorkflowEngine

router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.get("/pending", response_model=list[PendingApprovalOut])
def pending_approvals(
    actor: ActorContext = Depends(get_actor),
    workflow: ApprovalWorkflowEngine = Depends(get_workflow),
) -> list[ApprovalRecord]:
    # Always "assigned to me", whatever the role.
    return workflow.list_pending_approvals(actor)


@router.post("/{id}/decision", response_model=DecisionOut)
def decide(
    id: int,
    body: DecisionIn,
    actor: ActorContext = Depends(get_actor),
    workflow: ApprovalWorkflowEngine = Depends(get_workflow),
) -> DecisionOut:
    result = workflow.decide(actor, id, body.status, body.comments)
    return DecisionOut(
        approval=ApprovalRecordOut.model_validate(result.approval),
        expense_status=result.claim_status,
    )
