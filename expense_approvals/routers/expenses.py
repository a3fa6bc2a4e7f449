from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from expense_approvals.authz.context import ActorContext
from expense_approvals.models.expenses import ApprovalRecord, ClaimStatus, ExpenseClaim
from expense_approvals.schemas.expenses import (
    ApprovalRecordOut,
    AssignApproverIn,
    ClaimCreate,
    ClaimOut,
    ClaimUpdate,
)
from expense_approvals.security.dependencies import get_actor, get_workflow
from expense_approvals.workflow.engine import ApprovalWorkflowEngine

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.get("", response_model=list[ClaimOut])
def list_expenses(
    status_filter: ClaimStatus | None = Query(default=None, alias="status"),
    actor: ActorContext = Depends(get_actor),
    workflow: ApprovalWorkflowEngine = Depends(get_workflow),
) -> list[ExpenseClaim]:
    # Scope (all / department / own) is resolved from the role and applied in SQL.
    return workflow.list_claims(actor, status=status_filter)


@router.post("", response_model=ClaimOut, status_code=status.HTTP_201_CREATED)
def create_expense(
    body: ClaimCreate,
    actor: ActorContext = Depends(get_actor),
    workflow: ApprovalWorkflowEngine = Depends(get_workflow),
) -> ExpenseClaim:
    return workflow.create_claim(
        actor,
        title=body.title,
        amount=body.amount,
        currency=body.currency,
        description=body.description,
        submit=body.submit,
    )


@router.get("/{id}", response_model=ClaimOut)
def get_expense(
    id: int,
    actor: ActorContext = Depends(get_actor),
    workflow: ApprovalWorkflowEngine = Depends(get_workflow),
) -> ExpenseClaim:
    return workflow.get_claim(actor, id)


@router.put("/{id}", response_model=ClaimOut)
def update_expense(
    id: int,
    body: ClaimUpdate,
    actor: ActorContext = Depends(get_actor),
    workflow: ApprovalWorkflowEngine = Depends(get_workflow),
) -> ExpenseClaim:
    return workflow.update_claim(actor, id, body.model_dump(exclude_unset=True))


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    id: int,
    actor: ActorContext = Depends(get_actor),
    workflow: ApprovalWorkflowEngine = Depends(get_workflow),
) -> Response:
    workflow.delete_claim(actor, id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{id}/submit", response_model=ClaimOut)
def submit_expense(
    id: int,
    actor: ActorContext = Depends(get_actor),
    workflow: ApprovalWorkflowEngine = Depends(get_workflow),
) -> ExpenseClaim:
    return workflow.submit(actor, id).claim


@router.post("/{id}/approvers", response_model=ApprovalRecordOut, status_code=status.HTTP_201_CREATED)
def assign_approver(
    id: int,
    body: AssignApproverIn,
    actor: ActorContext = Depends(get_actor),
    workflow: ApprovalWorkflowEngine = Depends(get_workflow),
) -> ApprovalRecord:
    return workflow.assign_approver(actor, id, body.approver_id)
