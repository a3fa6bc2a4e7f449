"""
Interfaces of the collaborators the workflow engine depends on.

The engine receives these as constructor arguments; nothing is reached
through a module-level client. ``expense_approvals.db.store`` provides the
SQLAlchemy implementation and the tests substitute their own notifier.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol

from expense_approvals.authz.catalog import Role
from expense_approvals.authz.scope import Scope
from expense_approvals.models.expenses import ApprovalRecord, ApprovalStatus, Budget, ClaimStatus, ExpenseClaim
from expense_approvals.models.security import User


class ApprovalStore(Protocol):
    def get_user(self, user_id: int) -> User | None: ...

    def get_claim(self, claim_id: int) -> ExpenseClaim | None: ...

    def add_claim(self, claim: ExpenseClaim) -> ExpenseClaim: ...

    def update_claim_fields(self, claim_id: int, fields: Mapping[str, Any]) -> ExpenseClaim: ...

    def delete_claim(self, claim_id: int) -> None: ...

    def transition_claim(self, claim_id: int, expected: ClaimStatus, new: ClaimStatus) -> bool: ...

    def set_claim_status(
        self, claim_id: int, status: ClaimStatus, expected: ClaimStatus = ClaimStatus.PENDING
    ) -> bool: ...

    def list_claims(self, scope: Scope, status: ClaimStatus | None = None) -> list[ExpenseClaim]: ...

    def create_approval_records(self, expense_id: int, approver_ids: Iterable[int]) -> list[ApprovalRecord]: ...

    def get_approval_record(self, record_id: int) -> ApprovalRecord | None: ...

    def conditional_decide(
        self,
        record_id: int,
        new_status: ApprovalStatus,
        comments: str | None,
        expected: ApprovalStatus = ApprovalStatus.PENDING,
    ) -> bool: ...

    def list_approval_records(self, expense_id: int) -> list[ApprovalRecord]: ...

    def list_approval_records_in_scope(
        self,
        scope: Scope,
        status: ApprovalStatus | None = None,
        claim_status: ClaimStatus | None = None,
    ) -> list[ApprovalRecord]: ...

    def list_budgets(self, scope: Scope) -> list[Budget]: ...


class Roster(Protocol):
    def find_active_users_by_role(self, role: Role) -> list[User]: ...


class Notifier(Protocol):
    """Fire-and-forget delivery. Implementations may raise; the engine logs and moves on."""

    def notify(self, user_id: int, kind: str, payload: Mapping[str, Any]) -> None: ...
