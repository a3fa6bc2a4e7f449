from __future__ import annotations

from sqlalchemy import ColumnElement, Select, false, select, true

from expense_approvals.authz.scope import Scope, ScopeKind
from expense_approvals.models.expenses import ApprovalRecord, Budget, ExpenseClaim, Notification


def scope_criteria(model: type, scope: Scope) -> ColumnElement[bool]:
    """
    SQL criteria restricting ``model`` rows to ``scope``.

    The scope is pushed into the statement itself so rows outside of it are
    never loaded (no post-filtering, nothing leaks through counts or paging).
    Unknown scope/model combinations match nothing.
    """

    if scope.kind is ScopeKind.ALL:
        return true()
    if scope.value is None:
        # Never compare against NULL: "no department" must not match unassigned rows.
        return false()

    if model is ExpenseClaim:
        if scope.kind is ScopeKind.DEPARTMENT:
            return ExpenseClaim.department_id == scope.value
        return ExpenseClaim.owner_id == scope.value

    if model is ApprovalRecord:
        if scope.kind is ScopeKind.OWNER:
            return ApprovalRecord.approver_id == scope.value
        in_department = select(ExpenseClaim.id).where(ExpenseClaim.department_id == scope.value)
        return ApprovalRecord.expense_id.in_(in_department)

    if model is Budget:
        if scope.kind is ScopeKind.DEPARTMENT:
            return Budget.department_id == scope.value
        # Budgets have no owner.
        return false()

    if model is Notification:
        if scope.kind is ScopeKind.OWNER:
            return Notification.user_id == scope.value
        return false()

    return false()


def apply_scope(stmt: Select, model: type, scope: Scope) -> Select:
    return stmt.where(scope_criteria(model, scope))
