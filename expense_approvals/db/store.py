"""
SQLAlchemy implementation of the workflow's persistence and roster interfaces.

Contended writes (deciding an approval record, moving a claim out of DRAFT)
are single conditional UPDATE statements. The status check and the write are
one statement, so of two concurrent writers exactly one sees rowcount == 1.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, Iterable, Iterator, Mapping

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, selectinload

from expense_approvals.authz.catalog import Role
from expense_approvals.authz.scope import Scope
from expense_approvals.db.base import utcnow
from expense_approvals.db.filters import apply_scope, scope_criteria
from expense_approvals.errors import Conflict, NotFound, Unavailable
from expense_approvals.models.expenses import (
    ApprovalRecord,
    ApprovalStatus,
    Budget,
    ClaimStatus,
    ExpenseClaim,
    Notification,
)
from expense_approvals.models.security import User

logger = logging.getLogger(__name__)


class SqlApprovalStore:
    def __init__(self, db: Session) -> None:
        self._db = db

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (OperationalError, InterfaceError) as exc:
            self._db.rollback()
            logger.error("Storage unavailable during %s: %s", operation, type(exc).__name__)
            raise Unavailable("Storage temporarily unavailable", operation=operation) from exc

    # ---- Users / roster ----------------------------------------------------------------

    def get_user(self, user_id: int) -> User | None:
        with self._guard("get_user"):
            return self._db.get(User, user_id)

    def find_active_users_by_role(self, role: Role) -> list[User]:
        with self._guard("find_active_users_by_role"):
            stmt = select(User).where(User.role == role, User.is_active.is_(True)).order_by(User.id)
            return list(self._db.scalars(stmt).all())

    # ---- Claims ------------------------------------------------------------------------

    def get_claim(self, claim_id: int) -> ExpenseClaim | None:
        with self._guard("get_claim"):
            return self._db.get(ExpenseClaim, claim_id, populate_existing=True)

    def add_claim(self, claim: ExpenseClaim) -> ExpenseClaim:
        with self._guard("add_claim"):
            self._db.add(claim)
            self._db.commit()
            self._db.refresh(claim)
            return claim

    def update_claim_fields(self, claim_id: int, fields: Mapping[str, Any]) -> ExpenseClaim:
        with self._guard("update_claim_fields"):
            claim = self._db.get(ExpenseClaim, claim_id)
            if claim is None:
                raise NotFound("Expense not found", claim_id=claim_id)
            for name, value in fields.items():
                setattr(claim, name, value)
            self._db.commit()
            self._db.refresh(claim)
            return claim

    def delete_claim(self, claim_id: int) -> None:
        with self._guard("delete_claim"):
            self._db.execute(delete(ApprovalRecord).where(ApprovalRecord.expense_id == claim_id))
            self._db.execute(delete(ExpenseClaim).where(ExpenseClaim.id == claim_id))
            self._db.commit()

    def transition_claim(self, claim_id: int, expected: ClaimStatus, new: ClaimStatus) -> bool:
        with self._guard("transition_claim"):
            result = self._db.execute(
                update(ExpenseClaim)
                .where(ExpenseClaim.id == claim_id, ExpenseClaim.status == expected)
                .values(status=new, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            self._db.commit()
            return result.rowcount == 1

    def set_claim_status(
        self, claim_id: int, status: ClaimStatus, expected: ClaimStatus = ClaimStatus.PENDING
    ) -> bool:
        """
        Move the claim from ``expected`` to ``status``.

        Returns False when the claim is no longer in ``expected``, so a
        recompute that read stale records can never undo a final status.
        """
        with self._guard("set_claim_status"):
            result = self._db.execute(
                update(ExpenseClaim)
                .where(ExpenseClaim.id == claim_id, ExpenseClaim.status == expected)
                .values(status=status, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            self._db.commit()
            return result.rowcount == 1

    def list_claims(self, scope: Scope, status: ClaimStatus | None = None) -> list[ExpenseClaim]:
        with self._guard("list_claims"):
            stmt = select(ExpenseClaim).options(selectinload(ExpenseClaim.approvals))
            stmt = apply_scope(stmt, ExpenseClaim, scope)
            if status is not None:
                stmt = stmt.where(ExpenseClaim.status == status)
            return list(self._db.scalars(stmt.order_by(ExpenseClaim.id)).all())

    # ---- Approval records ---------------------------------------------------------------

    def create_approval_records(self, expense_id: int, approver_ids: Iterable[int]) -> list[ApprovalRecord]:
        records = [
            ApprovalRecord(expense_id=expense_id, approver_id=approver_id, status=ApprovalStatus.PENDING)
            for approver_id in approver_ids
        ]
        if not records:
            return []
        with self._guard("create_approval_records"):
            self._db.add_all(records)
            try:
                self._db.commit()
            except IntegrityError as exc:
                self._db.rollback()
                raise Conflict("Approver already assigned to this expense", expense_id=expense_id) from exc
            for record in records:
                self._db.refresh(record)
            return records

    def get_approval_record(self, record_id: int) -> ApprovalRecord | None:
        with self._guard("get_approval_record"):
            return self._db.get(ApprovalRecord, record_id)

    def conditional_decide(
        self,
        record_id: int,
        new_status: ApprovalStatus,
        comments: str | None,
        expected: ApprovalStatus = ApprovalStatus.PENDING,
    ) -> bool:
        with self._guard("conditional_decide"):
            result = self._db.execute(
                update(ApprovalRecord)
                .where(ApprovalRecord.id == record_id, ApprovalRecord.status == expected)
                .values(status=new_status, comments=comments, decided_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            self._db.commit()
            return result.rowcount == 1

    def list_approval_records(self, expense_id: int) -> list[ApprovalRecord]:
        with self._guard("list_approval_records"):
            stmt = select(ApprovalRecord).where(ApprovalRecord.expense_id == expense_id).order_by(ApprovalRecord.id)
            # populate_existing: always read what is committed now, not an identity-map copy.
            return list(self._db.scalars(stmt.execution_options(populate_existing=True)).all())

    def list_approval_records_in_scope(
        self,
        scope: Scope,
        status: ApprovalStatus | None = None,
        claim_status: ClaimStatus | None = None,
    ) -> list[ApprovalRecord]:
        with self._guard("list_approval_records_in_scope"):
            stmt = select(ApprovalRecord).options(selectinload(ApprovalRecord.expense))
            stmt = apply_scope(stmt, ApprovalRecord, scope)
            if status is not None:
                stmt = stmt.where(ApprovalRecord.status == status)
            if claim_status is not None:
                stmt = stmt.join(ApprovalRecord.expense).where(ExpenseClaim.status == claim_status)
            return list(self._db.scalars(stmt.order_by(ApprovalRecord.id)).all())

    # ---- Budgets -----------------------------------------------------------------------

    def list_budgets(self, scope: Scope) -> list[Budget]:
        with self._guard("list_budgets"):
            stmt = apply_scope(select(Budget), Budget, scope).order_by(Budget.id)
            return list(self._db.scalars(stmt).all())

    # ---- Notifications -----------------------------------------------------------------

    def list_notifications(self, scope: Scope, unread_only: bool = False) -> list[Notification]:
        with self._guard("list_notifications"):
            stmt = apply_scope(select(Notification), Notification, scope)
            if unread_only:
                stmt = stmt.where(Notification.is_read.is_(False))
            return list(self._db.scalars(stmt.order_by(Notification.created_at.desc(), Notification.id.desc())).all())

    def mark_notification_read(self, notification_id: int, scope: Scope) -> Notification | None:
        """Returns None when the notification does not exist inside ``scope``."""
        with self._guard("mark_notification_read"):
            result = self._db.execute(
                update(Notification)
                .where(Notification.id == notification_id, scope_criteria(Notification, scope))
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            self._db.commit()
            if result.rowcount != 1:
                return None
            return self._db.get(Notification, notification_id, populate_existing=True)

    def mark_all_notifications_read(self, scope: Scope) -> int:
        with self._guard("mark_all_notifications_read"):
            result = self._db.execute(
                update(Notification)
                .where(scope_criteria(Notification, scope), Notification.is_read.is_(False))
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            self._db.commit()
            return result.rowcount

    def delete_notification(self, notification_id: int, scope: Scope) -> bool:
        with self._guard("delete_notification"):
            result = self._db.execute(
                delete(Notification).where(Notification.id == notification_id, scope_criteria(Notification, scope))
            )
            self._db.commit()
            return result.rowcount == 1
