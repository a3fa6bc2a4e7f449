from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from expense_approvals.authz.catalog import Permission
from expense_approvals.authz.context import ActorContext
from expense_approvals.authz.evaluator import check_permission
from expense_approvals.db.session import get_db
from expense_approvals.errors import NotFound, ValidationFailed
from expense_approvals.models.security import Department, User
from expense_approvals.schemas.security import UserOut, UserUpdate
from expense_approvals.security.decorators import require_permissions
from expense_approvals.security.dependencies import get_actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[UserOut])
@require_permissions([Permission.VIEW_ALL_USERS])
def list_users(db: Session = Depends(get_db)) -> list[User]:
    stmt = select(User).options(selectinload(User.department)).order_by(User.id)
    return list(db.scalars(stmt).all())


@router.patch("/users/{id}", response_model=UserOut)
def update_user(
    id: int,
    body: UserUpdate,
    actor: ActorContext = Depends(get_actor),
    db: Session = Depends(get_db),
) -> User:
    changes = body.model_dump(exclude_unset=True)
    if "role" in changes:
        check_permission(actor, Permission.UPDATE_USER_ROLE)
    if changes.keys() - {"role"}:
        check_permission(actor, Permission.UPDATE_USER)

    user = db.get(User, id)
    if user is None:
        raise NotFound("User not found", user_id=id)
    if changes.get("department_id") is not None and db.get(Department, changes["department_id"]) is None:
        raise ValidationFailed("Unknown department", department_id=changes["department_id"])
    if changes.get("role") is None:
        changes.pop("role", None)
    if changes.get("is_active") is None:
        changes.pop("is_active", None)

    for name, value in changes.items():
        setattr(user, name, value)
    db.commit()
    db.refresh(user)
    logger.info("User updated id=%s fields=%s by user=%s", id, sorted(changes), actor.user_id)
    return user
