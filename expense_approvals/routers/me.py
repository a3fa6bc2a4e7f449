from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from expense_approvals.authz.catalog import capability_summary
from expense_approvals.authz.context import ActorContext
from expense_approvals.schemas.security import PermissionsOut, UserOut
from expense_approvals.security.dependencies import get_actor

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=UserOut)
def me(request: Request, actor: ActorContext = Depends(get_actor)) -> UserOut:
    return request.state.user


@router.get("/permissions", response_model=PermissionsOut)
def my_permissions(actor: ActorContext = Depends(get_actor)) -> PermissionsOut:
    return PermissionsOut(
        role=actor.role,
        permissions=sorted(p.value for p in actor.permissions),
        capabilities=capability_summary(actor.role),
    )
