"""
Tests for user-loading data access (ORM).

Uses db_session fixture: in-memory SQLite, rolled back after each test.
"""
from __future__ import annotations

import pytest

from expense_approvals.authz.catalog import Permission, Role
from expense_approvals.errors import Unauthenticated
from expense_approvals.models.security import Department, User
from expense_approvals.security.auth import actor_for, load_user, resolve_user
from expense_approvals.security.config import AuthConfig, SecurityConfig, SecurityConfigModel


def dummy_config() -> SecurityConfig:
    return SecurityConfig(SecurityConfigModel(auth=AuthConfig(provider="dummy")))


def test_load_user_returns_user_with_department(db_session):
    # Arrange: create department and user (like init_db does)
    dept = Department(name="IT", code="IT", description="IT Dept")
    db_session.add(dept)
    db_session.flush()

    user = User(
        username="testuser",
        email="test@example.com",
        role=Role.MANAGER,
        department_id=dept.id,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()

    # Act
    loaded = load_user(db_session, user.id)

    # Assert
    assert loaded.id == user.id
    assert loaded.username == "testuser"
    assert loaded.role is Role.MANAGER
    assert loaded.department is not None
    assert loaded.department.code == "IT"


def test_load_user_raises_when_not_found(db_session):
    with pytest.raises(Unauthenticated) as exc_info:
        load_user(db_session, 99999)
    assert exc_info.value.code == "unauthenticated"


def test_inactive_user_loads_but_holds_no_permissions(db_session):
    user = User(username="inactive", email="inactive@example.com", role=Role.ADMIN, is_active=False)
    db_session.add(user)
    db_session.commit()

    actor = actor_for(load_user(db_session, user.id))

    assert actor.is_active is False
    assert actor.department_id is None
    assert actor.permissions == frozenset()


def test_actor_for_active_user(db_session):
    user = User(username="fin", email="fin@example.com", role=Role.FINANCE, is_active=True)
    db_session.add(user)
    db_session.commit()

    actor = actor_for(user)

    assert actor.user_id == user.id
    assert actor.role is Role.FINANCE
    assert Permission.APPROVE_ALL_EXPENSES in actor.permissions


def test_resolve_user_with_dummy_token(db_session):
    user = User(username="emp", email="emp@example.com", role=Role.EMPLOYEE)
    db_session.add(user)
    db_session.commit()

    assert resolve_user(db_session, str(user.id), dummy_config(), None).id == user.id


@pytest.mark.parametrize("token", ["not-a-number", "99999"])
def test_resolve_user_rejects_unknown_dummy_token(db_session, token):
    with pytest.raises(Unauthenticated):
        resolve_user(db_session, token, dummy_config(), None)
