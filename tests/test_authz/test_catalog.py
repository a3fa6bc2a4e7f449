"""Tests for the role -> permission catalog."""

import pytest

from expense_approvals.authz.catalog import (
    ROLE_PERMISSIONS,
    Permission,
    Role,
    capability_summary,
    has_all,
    has_any,
    has_permission,
    role_permissions,
)


@pytest.mark.parametrize("permission", list(Permission))
def test_admin_holds_every_permission(permission):
    assert has_permission(Role.ADMIN, permission)


def test_admin_set_is_the_whole_enumeration():
    assert ROLE_PERMISSIONS[Role.ADMIN] == frozenset(Permission)


def test_every_role_has_an_explicit_set():
    assert set(ROLE_PERMISSIONS) == set(Role)
    for perms in ROLE_PERMISSIONS.values():
        assert isinstance(perms, frozenset)


def test_employee_permissions():
    assert has_permission(Role.EMPLOYEE, Permission.CREATE_EXPENSE)
    assert has_permission(Role.EMPLOYEE, Permission.VIEW_OWN_EXPENSES)
    assert not has_permission(Role.EMPLOYEE, Permission.VIEW_DEPARTMENT_EXPENSES)
    assert not has_permission(Role.EMPLOYEE, Permission.APPROVE_DEPARTMENT_EXPENSES)


def test_manager_includes_employee_capabilities_without_inheritance():
    employee = role_permissions(Role.EMPLOYEE)
    manager = role_permissions(Role.MANAGER)
    assert employee <= manager
    assert Permission.APPROVE_DEPARTMENT_EXPENSES in manager
    assert Permission.APPROVE_ALL_EXPENSES not in manager


def test_finance_can_approve_everything_but_not_delete_any():
    assert has_permission(Role.FINANCE, Permission.APPROVE_ALL_EXPENSES)
    assert has_permission(Role.FINANCE, Permission.UPDATE_ANY_EXPENSE)
    assert not has_permission(Role.FINANCE, Permission.DELETE_ANY_EXPENSE)
    assert not has_permission(Role.FINANCE, Permission.ASSIGN_APPROVERS)


def test_has_any_and_has_all():
    perms = [Permission.VIEW_ALL_EXPENSES, Permission.VIEW_OWN_EXPENSES]
    assert has_any(Role.EMPLOYEE, perms)
    assert not has_all(Role.EMPLOYEE, perms)
    assert has_all(Role.FINANCE, perms)
    assert not has_any(Role.EMPLOYEE, [])
    assert has_all(Role.EMPLOYEE, [])


def test_role_given_as_string():
    assert has_permission("MANAGER", Permission.VIEW_DEPARTMENT_EXPENSES)


def test_unknown_role_holds_nothing():
    assert role_permissions("SUPERUSER") == frozenset()
    assert not has_permission("SUPERUSER", Permission.VIEW_OWN_EXPENSES)


def test_capability_summary_view_scope():
    assert capability_summary(Role.EMPLOYEE)["view_scope"] == "OWN"
    assert capability_summary(Role.MANAGER)["view_scope"] == "DEPARTMENT"
    assert capability_summary(Role.FINANCE)["view_scope"] == "ALL"
    assert capability_summary(Role.ADMIN)["view_scope"] == "ALL"


def test_capability_summary_flags():
    employee = capability_summary(Role.EMPLOYEE)
    assert employee["can_create_expense"] is True
    assert employee["can_approve"] is False
    assert employee["show_users"] is False

    admin = capability_summary(Role.ADMIN)
    assert admin["can_manage_users"] is True
    assert admin["can_manage_system"] is True
