from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response, status

from expense_approvals.authz.context import ActorContext
from expense_approvals.authz.scope import recipient_scope
from expense_approvals.db.store import SqlApprovalStore
from expense_approvals.errors import NotFound
from expense_approvals.models.expenses import Notification
from expense_approvals.schemas.notifications import MarkAllReadOut, NotificationOut
from expense_approvals.security.dependencies import get_actor, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def list_notifications(
    unread_only: bool = Query(default=False),
    actor: ActorContext = Depends(get_actor),
    store: SqlApprovalStore = Depends(get_store),
) -> list[Notification]:
    # Always the caller's own notifications, whatever the role.
    return store.list_notifications(recipient_scope(actor), unread_only=unread_only)


@router.patch("/read-all", response_model=MarkAllReadOut)
def mark_all_read(
    actor: ActorContext = Depends(get_actor),
    store: SqlApprovalStore = Depends(get_store),
) -> MarkAllReadOut:
    updated = store.mark_all_notifications_read(recipient_scope(actor))
    logger.info("Notifications marked read user=%s count=%s", actor.user_id, updated)
    return MarkAllReadOut(updated=updated)


@router.patch("/{id}/read", response_model=NotificationOut)
def mark_read(
    id: int,
    actor: ActorContext = Depends(get_actor),
    store: SqlApprovalStore = Depends(get_store),
) -> Notification:
    notification = store.mark_notification_read(id, recipient_scope(actor))
    if notification is None:
        # Someone else's notification is reported exactly like a missing one.
        raise NotFound("Notification not found", notification_id=id)
    return notification


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    id: int,
    actor: ActorContext = Depends(get_actor),
    store: SqlApprovalStore = Depends(get_store),
) -> Response:
    if not store.delete_notification(id, recipient_scope(actor)):
        raise NotFound("Notification not found", notification_id=id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
