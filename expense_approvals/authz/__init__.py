"""
Authorization core: permission catalog, evaluator and view-scope resolver.

Pure Python, no FastAPI or database dependency.
"""

from .catalog import Permission, Role, capability_summary, has_all, has_any, has_permission, role_permissions
from .context import ActorContext, require_actor
from .evaluator import (
    BUDGET_POLICY,
    EXPENSE_POLICY,
    ResourcePolicy,
    can_approve,
    can_delete,
    can_edit,
    can_view,
    check_any_permission,
    check_permission,
)
from .scope import Scope, ScopeKind, approver_scope, recipient_scope, resolve_scope

__all__ = [
    "ActorContext",
    "BUDGET_POLICY",
    "EXPENSE_POLICY",
    "Permission",
    "ResourcePolicy",
    "Role",
    "Scope",
    "ScopeKind",
    "approver_scope",
    "recipient_scope",
    "can_approve",
    "can_delete",
    "can_edit",
    "can_view",
    "capability_summary",
    "check_any_permission",
    "check_permission",
    "has_all",
    "has_any",
    "has_permission",
    "require_actor",
    "resolve_scope",
    "role_permissions",
]
