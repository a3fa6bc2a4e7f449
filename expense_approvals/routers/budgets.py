from __future__ import annotations

from fastapi import APIRouter, Depends

from expense_approvals.authz.context import ActorContext
from expense_approvals.models.expenses import Budget
from expense_approvals.schemas.expenses import BudgetOut
from expense_approvals.security.dependencies import get_actor, get_workflow
from expense_approvals.workflow.engine import ApprovalWorkflowEngine

router = APIRouter(prefix="/budgets", tags=["budgets"])


@router.get("", response_model=list[BudgetOut])
def list_budgets(
    actor: ActorContext = Depends(get_actor),
    workflow: ApprovalWorkflowEngine = Depends(get_workflow),
) -> list[Budget]:
    return workflow.list_budgets(actor)
