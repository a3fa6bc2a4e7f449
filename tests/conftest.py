"""
Pytest fixtures for the test suite.

Data-layer and workflow tests use an in-memory SQLite engine and a session
that rolls back after each test, so tests do not affect each other.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from expense_approvals.authz.catalog import Role
from expense_approvals.authz.context import ActorContext


TEST_DB_URL = "sqlite:///:memory:"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from expense_approvals.db.base import Base
    from expense_approvals.models import expenses, security  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    The transaction is rolled back so the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


class RecordingNotifier:
    """Collects notifications instead of delivering them."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, str, dict[str, Any]]] = []

    def notify(self, user_id: int, kind: str, payload: Mapping[str, Any]) -> None:
        self.sent.append((user_id, kind, dict(payload)))

    def kinds_for(self, user_id: int) -> list[str]:
        return [kind for uid, kind, _ in self.sent if uid == user_id]


class FailingNotifier:
    def notify(self, user_id: int, kind: str, payload: Mapping[str, Any]) -> None:
        raise RuntimeError("mail server down")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> FailingNotifier:
    return FailingNotifier()


@pytest.fixture
def departments(db_session):
    from expense_approvals.models.security import Department

    sales = Department(name="Sales", code="SALES")
    eng = Department(name="Engineering", code="ENG")
    db_session.add_all([sales, eng])
    db_session.commit()
    return {"sales": sales.id, "eng": eng.id}


@pytest.fixture
def make_user(db_session):
    from expense_approvals.models.security import User

    counter = {"n": 0}

    def _make(role: Role, department_id: int | None = None, is_active: bool = True) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=f"{role.value.lower()}_{n}",
            email=f"{role.value.lower()}_{n}@example.com",
            role=role,
            department_id=department_id,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def store(db_session):
    from expense_approvals.db.store import SqlApprovalStore

    return SqlApprovalStore(db_session)


@pytest.fixture
def workflow(store, notifier):
    from expense_approvals.workflow.engine import ApprovalWorkflowEngine

    return ApprovalWorkflowEngine(store, store, notifier, finance_threshold=Decimal("1000"))


@pytest.fixture
def as_actor():
    """Build the ActorContext of a persisted user."""

    def _as(user) -> ActorContext:
        return ActorContext(
            user_id=user.id,
            role=user.role,
            department_id=user.department_id,
            is_active=user.is_active,
        )

    return _as
