"""Notifier implementations."""
from __future__ import annotations

from sqlalchemy import select

import pytest
import requests

from expense_approvals.authz.catalog import Role
from expense_approvals.models.expenses import Notification
from expense_approvals.notifications import DatabaseNotifier, FanoutNotifier, LoggingNotifier, WebhookNotifier


class FakeResponse:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeHttp:
    def __init__(self, status_code: int = 204) -> None:
        self.status_code = status_code
        self.calls: list[tuple[str, dict, float]] = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        return FakeResponse(self.status_code)


def test_webhook_posts_json():
    http = FakeHttp()
    WebhookNotifier("https://hooks.example.com/expenses", timeout_seconds=2, session=http).notify(
        7, "EXPENSE_APPROVED", {"expense_id": 3}
    )

    assert http.calls == [
        (
            "https://hooks.example.com/expenses",
            {"user_id": 7, "kind": "EXPENSE_APPROVED", "payload": {"expense_id": 3}},
            2,
        )
    ]


def test_webhook_raises_on_http_error():
    notifier = WebhookNotifier("https://hooks.example.com/expenses", session=FakeHttp(status_code=502))
    with pytest.raises(requests.HTTPError):
        notifier.notify(7, "EXPENSE_APPROVED", {"expense_id": 3})


def test_fanout_keeps_delivering_after_a_failure():
    working = FakeHttp()
    broken = WebhookNotifier("https://down.example.com", session=FakeHttp(status_code=500))
    fanout = FanoutNotifier([broken, LoggingNotifier(), WebhookNotifier("https://up.example.com", session=working)])

    fanout.notify(1, "APPROVAL_REQUESTED", {"expense_id": 9})

    assert len(working.calls) == 1


def test_database_notifier_stores_in_app_notification(db_session, make_user):
    user = make_user(Role.EMPLOYEE)

    class SharedSession:
        # Reuse the test session so the rollback fixture cleans up after us.
        def __enter__(self):
            return db_session

        def __exit__(self, *exc):
            return False

    DatabaseNotifier(SharedSession).notify(
        user.id, "EXPENSE_REJECTED", {"expense_id": 5, "title": "Hotel", "comments": "No receipt"}
    )

    (stored,) = db_session.scalars(select(Notification).where(Notification.user_id == user.id)).all()
    assert stored.kind == "EXPENSE_REJECTED"
    assert stored.title == "Expense rejected"
    assert stored.message == "Expense rejected: Hotel (No receipt)"
    assert stored.is_read is False
