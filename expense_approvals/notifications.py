"""
Notification collaborators.

``notify`` is fire-and-forget from the workflow's point of view: the engine
logs a failing notifier and carries on, so an outage here never undoes an
approval decision.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

import requests
from sqlalchemy.orm import Session

from expense_approvals.models.expenses import Notification

logger = logging.getLogger(__name__)

TITLES = {
    "APPROVAL_REQUESTED": "New expense approval required",
    "EXPENSE_SUBMITTED": "Expense submitted",
    "EXPENSE_APPROVED": "Expense approved",
    "EXPENSE_REJECTED": "Expense rejected",
    "APPROVER_ASSIGNED": "Expense assigned to you for approval",
}


def _title_for(kind: str) -> str:
    return TITLES.get(kind, kind.replace("_", " ").capitalize())


def _message_for(kind: str, payload: Mapping[str, Any]) -> str:
    title = payload.get("title") or f"#{payload.get('expense_id')}"
    message = f"{_title_for(kind)}: {title}"
    comments = payload.get("comments")
    if comments:
        message = f"{message} ({comments})"
    return message


class LoggingNotifier:
    def notify(self, user_id: int, kind: str, payload: Mapping[str, Any]) -> None:
        logger.info("notify user=%s kind=%s expense=%s", user_id, kind, payload.get("expense_id"))


class DatabaseNotifier:
    """Stores in-app notifications, using its own short-lived session."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def notify(self, user_id: int, kind: str, payload: Mapping[str, Any]) -> None:
        with self._session_factory() as db:
            db.add(
                Notification(
                    user_id=user_id,
                    kind=kind,
                    title=_title_for(kind),
                    message=_message_for(kind, payload),
                )
            )
            db.commit()


class WebhookNotifier:
    """POSTs each event as JSON to an external delivery service (email, chat, ...)."""

    def __init__(self, url: str, timeout_seconds: float = 5.0, session: requests.Session | None = None) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._http = session or requests.Session()

    def notify(self, user_id: int, kind: str, payload: Mapping[str, Any]) -> None:
        body = {"user_id": user_id, "kind": kind, "payload": dict(payload)}
        resp = self._http.post(self._url, json=body, timeout=self._timeout)
        resp.raise_for_status()
        logger.debug("Webhook notification delivered user=%s kind=%s status=%s", user_id, kind, resp.status_code)


class FanoutNotifier:
    """
    Delivers to every wrapped notifier.

    One failing channel does not stop the others; failures are logged here.
    """

    def __init__(self, notifiers: Iterable[Any]) -> None:
        self._notifiers = list(notifiers)

    def notify(self, user_id: int, kind: str, payload: Mapping[str, Any]) -> None:
        for notifier in self._notifiers:
            try:
                notifier.notify(user_id, kind, payload)
            except Exception:
                logger.exception("Notifier %s failed user=%s kind=%s", type(notifier).__name__, user_id, kind)
