"""
Role -> permission catalog.

Each role's permissions are an explicit, fully-materialized set computed once
at import time. There is no role inheritance: answering "does this role hold
this permission" is a single mapping lookup, and auditing a role means reading
one set.

ADMIN holds the whole ``Permission`` enumeration, so a permission added to the
enum is granted to ADMIN without touching the matrix.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Mapping


class Role(str, Enum):
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    FINANCE = "FINANCE"
    ADMIN = "ADMIN"


class Permission(str, Enum):
    # Users
    VIEW_ALL_USERS = "VIEW_ALL_USERS"
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"
    UPDATE_USER_ROLE = "UPDATE_USER_ROLE"

    # Expenses
    VIEW_OWN_EXPENSES = "VIEW_OWN_EXPENSES"
    VIEW_DEPARTMENT_EXPENSES = "VIEW_DEPARTMENT_EXPENSES"
    VIEW_ALL_EXPENSES = "VIEW_ALL_EXPENSES"
    CREATE_EXPENSE = "CREATE_EXPENSE"
    UPDATE_OWN_EXPENSE = "UPDATE_OWN_EXPENSE"
    UPDATE_ANY_EXPENSE = "UPDATE_ANY_EXPENSE"
    DELETE_OWN_EXPENSE = "DELETE_OWN_EXPENSE"
    DELETE_ANY_EXPENSE = "DELETE_ANY_EXPENSE"

    # Approvals
    APPROVE_DEPARTMENT_EXPENSES = "APPROVE_DEPARTMENT_EXPENSES"
    APPROVE_ALL_EXPENSES = "APPROVE_ALL_EXPENSES"
    REJECT_EXPENSES = "REJECT_EXPENSES"
    ASSIGN_APPROVERS = "ASSIGN_APPROVERS"

    # Budgets
    VIEW_DEPARTMENT_BUDGET = "VIEW_DEPARTMENT_BUDGET"
    VIEW_ALL_BUDGETS = "VIEW_ALL_BUDGETS"
    CREATE_BUDGET = "CREATE_BUDGET"
    UPDATE_BUDGET = "UPDATE_BUDGET"
    DELETE_BUDGET = "DELETE_BUDGET"

    # Departments
    VIEW_DEPARTMENTS = "VIEW_DEPARTMENTS"
    CREATE_DEPARTMENT = "CREATE_DEPARTMENT"
    UPDATE_DEPARTMENT = "UPDATE_DEPARTMENT"
    DELETE_DEPARTMENT = "DELETE_DEPARTMENT"

    # Categories
    VIEW_CATEGORIES = "VIEW_CATEGORIES"
    CREATE_CATEGORY = "CREATE_CATEGORY"
    UPDATE_CATEGORY = "UPDATE_CATEGORY"
    DELETE_CATEGORY = "DELETE_CATEGORY"

    # Notifications
    VIEW_OWN_NOTIFICATIONS = "VIEW_OWN_NOTIFICATIONS"
    CREATE_NOTIFICATION = "CREATE_NOTIFICATION"
    DELETE_NOTIFICATION = "DELETE_NOTIFICATION"

    # Audit & reports
    VIEW_AUDIT_LOGS = "VIEW_AUDIT_LOGS"
    GENERATE_REPORTS = "GENERATE_REPORTS"
    EXPORT_DATA = "EXPORT_DATA"

    # System
    MANAGE_SYSTEM_SETTINGS = "MANAGE_SYSTEM_SETTINGS"


P = Permission

EMPLOYEE_PERMISSIONS: frozenset[Permission] = frozenset(
    {
        P.VIEW_OWN_EXPENSES,
        P.CREATE_EXPENSE,
        P.UPDATE_OWN_EXPENSE,
        P.DELETE_OWN_EXPENSE,
        P.VIEW_DEPARTMENTS,
        P.VIEW_CATEGORIES,
        P.VIEW_DEPARTMENT_BUDGET,
        P.VIEW_OWN_NOTIFICATIONS,
        P.DELETE_NOTIFICATION,
    }
)

# Written out in full rather than as "EMPLOYEE_PERMISSIONS | {...}".
MANAGER_PERMISSIONS: frozenset[Permission] = frozenset(
    {
        P.VIEW_OWN_EXPENSES,
        P.CREATE_EXPENSE,
        P.UPDATE_OWN_EXPENSE,
        P.DELETE_OWN_EXPENSE,
        P.VIEW_DEPARTMENTS,
        P.VIEW_CATEGORIES,
        P.VIEW_DEPARTMENT_BUDGET,
        P.VIEW_OWN_NOTIFICATIONS,
        P.DELETE_NOTIFICATION,
        P.VIEW_DEPARTMENT_EXPENSES,
        P.APPROVE_DEPARTMENT_EXPENSES,
        P.REJECT_EXPENSES,
        P.GENERATE_REPORTS,
    }
)

FINANCE_PERMISSIONS: frozenset[Permission] = frozenset(
    {
        P.VIEW_ALL_EXPENSES,
        P.VIEW_DEPARTMENT_EXPENSES,
        P.VIEW_OWN_EXPENSES,
        P.CREATE_EXPENSE,
        P.UPDATE_ANY_EXPENSE,
        P.APPROVE_ALL_EXPENSES,
        P.APPROVE_DEPARTMENT_EXPENSES,
        P.REJECT_EXPENSES,
        P.VIEW_ALL_BUDGETS,
        P.VIEW_DEPARTMENT_BUDGET,
        P.CREATE_BUDGET,
        P.UPDATE_BUDGET,
        P.DELETE_BUDGET,
        P.VIEW_DEPARTMENTS,
        P.VIEW_CATEGORIES,
        P.VIEW_ALL_USERS,
        P.GENERATE_REPORTS,
        P.EXPORT_DATA,
        P.VIEW_OWN_NOTIFICATIONS,
        P.CREATE_NOTIFICATION,
        P.DELETE_NOTIFICATION,
    }
)

ADMIN_PERMISSIONS: frozenset[Permission] = frozenset(Permission)

ROLE_PERMISSIONS: Mapping[Role, frozenset[Permission]] = {
    Role.EMPLOYEE: EMPLOYEE_PERMISSIONS,
    Role.MANAGER: MANAGER_PERMISSIONS,
    Role.FINANCE: FINANCE_PERMISSIONS,
    Role.ADMIN: ADMIN_PERMISSIONS,
}

APPROVER_PERMISSIONS: frozenset[Permission] = frozenset({P.APPROVE_ALL_EXPENSES, P.APPROVE_DEPARTMENT_EXPENSES})


def _coerce_role(role: Role | str) -> Role | None:
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def role_permissions(role: Role | str) -> frozenset[Permission]:
    """Effective permissions of ``role``; empty for unknown role names."""
    resolved = _coerce_role(role)
    if resolved is None:
        return frozenset()
    return ROLE_PERMISSIONS[resolved]


def has_permission(role: Role | str, permission: Permission) -> bool:
    return permission in role_permissions(role)


def has_any(role: Role | str, permissions: Iterable[Permission]) -> bool:
    held = role_permissions(role)
    return any(p in held for p in permissions)


def has_all(role: Role | str, permissions: Iterable[Permission]) -> bool:
    held = role_permissions(role)
    return all(p in held for p in permissions)


def capability_summary(role: Role | str) -> dict[str, Any]:
    """
    Flags a client can use to decide which navigation entries and actions to show.

    Purely informational: every operation re-checks on the server.
    """

    if has_permission(role, P.VIEW_ALL_EXPENSES):
        view_scope = "ALL"
    elif has_permission(role, P.VIEW_DEPARTMENT_EXPENSES):
        view_scope = "DEPARTMENT"
    else:
        view_scope = "OWN"

    return {
        "show_approvals": has_any(role, APPROVER_PERMISSIONS),
        "show_budgets": has_any(role, [P.VIEW_DEPARTMENT_BUDGET, P.VIEW_ALL_BUDGETS]),
        "show_users": has_permission(role, P.VIEW_ALL_USERS),
        "show_reports": has_permission(role, P.GENERATE_REPORTS),
        "show_audit_logs": has_permission(role, P.VIEW_AUDIT_LOGS),
        "can_create_expense": has_permission(role, P.CREATE_EXPENSE),
        "can_approve": has_any(role, APPROVER_PERMISSIONS),
        "can_manage_budgets": has_any(role, [P.CREATE_BUDGET, P.UPDATE_BUDGET, P.DELETE_BUDGET]),
        "can_manage_users": has_any(role, [P.CREATE_USER, P.UPDATE_USER, P.DELETE_USER, P.UPDATE_USER_ROLE]),
        "can_export_data": has_permission(role, P.EXPORT_DATA),
        "can_manage_system": has_permission(role, P.MANAGE_SYSTEM_SETTINGS),
        "view_scope": view_scope,
    }
