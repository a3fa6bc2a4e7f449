"""
View-scope resolution.

A ``Scope`` is the filter every listing query must carry into storage. It is
applied inside the SQL statement (see ``expense_approvals.db.filters``) so
rows outside the scope are never fetched.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from expense_approvals.authz.context import ActorContext
from expense_approvals.authz.evaluator import EXPENSE_POLICY, ResourcePolicy
from expense_approvals.errors import Forbidden


class ScopeKind(str, Enum):
    ALL = "ALL"
    DEPARTMENT = "DEPARTMENT"
    OWNER = "OWNER"


@dataclass(frozen=True)
class Scope:
    kind: ScopeKind
    value: int | None = None

    @classmethod
    def all(cls) -> Scope:
        return cls(ScopeKind.ALL)

    @classmethod
    def department(cls, department_id: int | None) -> Scope:
        return cls(ScopeKind.DEPARTMENT, department_id)

    @classmethod
    def owner(cls, user_id: int) -> Scope:
        return cls(ScopeKind.OWNER, user_id)

    def __str__(self) -> str:
        if self.kind is ScopeKind.ALL:
            return "ALL"
        return f"{self.kind.value}:{self.value}"


def resolve_scope(actor: ActorContext, policy: ResourcePolicy = EXPENSE_POLICY) -> Scope:
    if not actor.is_active:
        raise Forbidden("Inactive account", user_id=actor.user_id)

    held = actor.permissions
    if policy.view_all is not None and policy.view_all in held:
        return Scope.all()
    if policy.view_department is not None and policy.view_department in held:
        # A missing department yields a scope that matches nothing.
        return Scope.department(actor.department_id)
    return Scope.owner(actor.user_id)


def approver_scope(actor: ActorContext) -> Scope:
    """Scope for "assigned to me" approval queries, whatever the role."""
    if not actor.is_active:
        raise Forbidden("Inactive account", user_id=actor.user_id)
    return Scope.owner(actor.user_id)


def recipient_scope(actor: ActorContext) -> Scope:
    # Notifications are private to their recipient, ADMIN included.
    if not actor.is_active:
        raise Forbidden("Inactive account", user_id=actor.user_id)
    return Scope.owner(actor.user_id)
