"""
Per-request authorization decisions.

Every check is a pure function of the actor and the target resource's owner
and department. Resolution order is the same for every resource type; a
``ResourcePolicy`` names which permissions play the "all", "department" and
"own" parts for that type.

Rules that hold for every check:
- inactive actors are denied,
- a department-scoped check with a missing department on either side denies,
- approving one's own resource is denied before any permission lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable

from expense_approvals.authz.catalog import Permission
from expense_approvals.authz.context import ActorContext
from expense_approvals.errors import Forbidden

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourcePolicy:
    """Which permissions grant each kind of access to one resource type."""

    name: str
    view_all: Permission | None = None
    view_department: Permission | None = None
    view_own: Permission | None = None
    edit_any: Permission | None = None
    edit_own: Permission | None = None
    approve_all: Permission | None = None
    approve_department: Permission | None = None
    delete_any: Permission | None = None
    delete_own: Permission | None = None


EXPENSE_POLICY = ResourcePolicy(
    name="expense",
    view_all=Permission.VIEW_ALL_EXPENSES,
    view_department=Permission.VIEW_DEPARTMENT_EXPENSES,
    view_own=Permission.VIEW_OWN_EXPENSES,
    edit_any=Permission.UPDATE_ANY_EXPENSE,
    edit_own=Permission.UPDATE_OWN_EXPENSE,
    approve_all=Permission.APPROVE_ALL_EXPENSES,
    approve_department=Permission.APPROVE_DEPARTMENT_EXPENSES,
    delete_any=Permission.DELETE_ANY_EXPENSE,
    delete_own=Permission.DELETE_OWN_EXPENSE,
)

# Budgets belong to departments, not people: there is no "own" level.
BUDGET_POLICY = ResourcePolicy(
    name="budget",
    view_all=Permission.VIEW_ALL_BUDGETS,
    view_department=Permission.VIEW_DEPARTMENT_BUDGET,
    edit_any=Permission.UPDATE_BUDGET,
    delete_any=Permission.DELETE_BUDGET,
)


def _holds(actor: ActorContext, permission: Permission | None) -> bool:
    return permission is not None and permission in actor.permissions


def _same_department(actor_dept: int | None, resource_dept: int | None) -> bool:
    if actor_dept is None or resource_dept is None:
        return False
    return actor_dept == resource_dept


def _is_owner(actor: ActorContext, owner_id: int | None) -> bool:
    return owner_id is not None and actor.user_id == owner_id


def _scoped_decision(
    actor: ActorContext,
    owner_id: int | None,
    department_id: int | None,
    all_perm: Permission | None,
    department_perm: Permission | None,
    own_perm: Permission | None,
) -> bool:
    if _holds(actor, all_perm):
        return True
    if _holds(actor, department_perm):
        return _same_department(actor.department_id, department_id)
    if _holds(actor, own_perm):
        return _is_owner(actor, owner_id)
    return False


def can_view(
    actor: ActorContext,
    owner_id: int | None,
    department_id: int | None,
    policy: ResourcePolicy = EXPENSE_POLICY,
) -> bool:
    allowed = _scoped_decision(
        actor, owner_id, department_id, policy.view_all, policy.view_department, policy.view_own
    )
    logger.debug(
        "authz view %s: user=%s role=%s allowed=%s", policy.name, actor.user_id, actor.role.value, allowed
    )
    return allowed


def can_edit(actor: ActorContext, owner_id: int | None, policy: ResourcePolicy = EXPENSE_POLICY) -> bool:
    if _holds(actor, policy.edit_any):
        return True
    return _holds(actor, policy.edit_own) and _is_owner(actor, owner_id)


def can_approve(
    actor: ActorContext,
    owner_id: int | None,
    department_id: int | None,
    policy: ResourcePolicy = EXPENSE_POLICY,
) -> bool:
    # Hard rule, independent of role (ADMIN included).
    if _is_owner(actor, owner_id):
        logger.debug("authz approve %s: self-approval denied user=%s", policy.name, actor.user_id)
        return False
    allowed = _scoped_decision(
        actor, owner_id, department_id, policy.approve_all, policy.approve_department, None
    )
    logger.debug(
        "authz approve %s: user=%s role=%s allowed=%s", policy.name, actor.user_id, actor.role.value, allowed
    )
    return allowed


def can_delete(actor: ActorContext, owner_id: int | None, policy: ResourcePolicy = EXPENSE_POLICY) -> bool:
    if _holds(actor, policy.delete_any):
        return True
    return _holds(actor, policy.delete_own) and _is_owner(actor, owner_id)


def can_manage_budgets(actor: ActorContext) -> bool:
    return any(
        _holds(actor, p) for p in (Permission.CREATE_BUDGET, Permission.UPDATE_BUDGET, Permission.DELETE_BUDGET)
    )


def can_manage_users(actor: ActorContext) -> bool:
    return any(
        _holds(actor, p)
        for p in (
            Permission.CREATE_USER,
            Permission.UPDATE_USER,
            Permission.DELETE_USER,
            Permission.UPDATE_USER_ROLE,
        )
    )


def can_view_audit_logs(actor: ActorContext) -> bool:
    return _holds(actor, Permission.VIEW_AUDIT_LOGS)


def check_permission(actor: ActorContext, permission: Permission) -> None:
    """Raise ``Forbidden`` unless the actor holds ``permission``."""
    if not _holds(actor, permission):
        raise Forbidden(
            "Insufficient permissions",
            required=permission.value,
            role=actor.role.value,
            active=actor.is_active,
        )


def check_any_permission(actor: ActorContext, permissions: Iterable[Permission]) -> None:
    required = list(permissions)
    if not any(_holds(actor, p) for p in required):
        raise Forbidden(
            "Insufficient permissions",
            required=sorted(p.value for p in required),
            role=actor.role.value,
            active=actor.is_active,
        )
