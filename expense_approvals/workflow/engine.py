"""
Approval workflow engine.

Claim lifecycle::

    DRAFT --submit--> PENDING --decide/recompute--> APPROVED | REJECTED
    APPROVED --(finance, outside this package)--> PAID

Once a claim leaves DRAFT its status is written only here, and only as a
function of its full approval record set (see ``recompute_status``). Nothing
is counted incrementally, so the order in which concurrent decisions land
does not matter: the last recomputation reads every committed decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
import logging
from typing import Any, Mapping

from expense_approvals.authz.catalog import Permission, Role
from expense_approvals.authz.context import ActorContext, require_actor
from expense_approvals.authz.evaluator import (
    BUDGET_POLICY,
    can_approve,
    can_delete,
    can_edit,
    can_view,
    check_permission,
)
from expense_approvals.authz.scope import approver_scope, resolve_scope
from expense_approvals.errors import Conflict, Forbidden, NotFound, SelfApprovalForbidden, ValidationFailed
from expense_approvals.models.expenses import ApprovalRecord, ApprovalStatus, Budget, ClaimStatus, ExpenseClaim
from expense_approvals.models.security import User
from expense_approvals.settings import Settings
from expense_approvals.workflow.assignment import DEFAULT_FINANCE_THRESHOLD, aggregate_status, select_approvers
from expense_approvals.workflow.ports import ApprovalStore, Notifier, Roster

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = frozenset({ClaimStatus.DRAFT, ClaimStatus.PENDING})
PROTECTED_STATUSES = frozenset({ClaimStatus.APPROVED, ClaimStatus.PAID})
EDITABLE_FIELDS = frozenset({"title", "description", "amount", "currency"})
DECISIONS = {"APPROVED": ApprovalStatus.APPROVED, "REJECTED": ApprovalStatus.REJECTED}


@dataclass(frozen=True)
class SubmissionResult:
    claim: ExpenseClaim
    approvals: list[ApprovalRecord]


@dataclass(frozen=True)
class DecisionResult:
    approval: ApprovalRecord
    claim_status: ClaimStatus


def _clean_amount(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationFailed("Amount must be a number", field="amount") from exc
    if not amount.is_finite() or amount <= 0:
        raise ValidationFailed("Amount must be greater than zero", field="amount")
    return amount


def _clean_title(value: Any) -> str:
    title = str(value).strip() if value is not None else ""
    if not title:
        raise ValidationFailed("Title is required", field="title")
    return title


class ApprovalWorkflowEngine:
    """
    Entry point for every claim and approval operation.

    Collaborators are injected; the engine holds no global state and can be
    built per request.
    """

    def __init__(
        self,
        store: ApprovalStore,
        roster: Roster,
        notifier: Notifier,
        finance_threshold: Decimal = DEFAULT_FINANCE_THRESHOLD,
        privileged_pending_edit: bool = False,
    ) -> None:
        self._store = store
        self._roster = roster
        self._notifier = notifier
        self._finance_threshold = Decimal(finance_threshold)
        self._privileged_pending_edit = privileged_pending_edit

    @classmethod
    def from_settings(
        cls, store: ApprovalStore, roster: Roster, notifier: Notifier, settings: Settings
    ) -> ApprovalWorkflowEngine:
        return cls(
            store,
            roster,
            notifier,
            finance_threshold=settings.finance_approval_threshold,
            privileged_pending_edit=settings.privileged_pending_edit,
        )

    # ---- Helpers -----------------------------------------------------------------------

    def _load_claim(self, claim_id: int) -> ExpenseClaim:
        claim = self._store.get_claim(claim_id)
        if claim is None:
            raise NotFound("Expense not found", claim_id=claim_id)
        return claim

    def _notify(self, user_id: int, kind: str, payload: Mapping[str, Any]) -> None:
        try:
            self._notifier.notify(user_id, kind, payload)
        except Exception:
            # Delivery is best-effort; the workflow state is already committed.
            logger.exception("Notification failed user=%s kind=%s", user_id, kind)

    @staticmethod
    def _can_decide(user: User, claim: ExpenseClaim) -> bool:
        """Whether ``user`` could actually approve ``claim`` if assigned to it."""
        candidate = ActorContext(
            user_id=user.id,
            role=user.role,
            department_id=user.department_id,
            is_active=user.is_active,
        )
        return can_approve(candidate, claim.owner_id, claim.department_id)

    def _qualified(self, role: Role, claim: ExpenseClaim) -> list[User]:
        return [u for u in self._roster.find_active_users_by_role(role) if self._can_decide(u, claim)]

    @staticmethod
    def _payload(claim: ExpenseClaim, **extra: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "expense_id": claim.id,
            "title": claim.title,
            "amount": str(claim.amount),
            "currency": claim.currency,
        }
        payload.update(extra)
        return payload

    # ---- Claims ------------------------------------------------------------------------

    def create_claim(
        self,
        actor: ActorContext | None,
        title: str,
        amount: Any,
        currency: str = "USD",
        description: str | None = None,
        submit: bool = False,
    ) -> ExpenseClaim:
        """
        Create a DRAFT claim owned by the actor, in the actor's department.

        With ``submit=True`` the claim is submitted straight away.
        """

        actor = require_actor(actor)
        check_permission(actor, Permission.CREATE_EXPENSE)

        claim = ExpenseClaim(
            owner_id=actor.user_id,
            department_id=actor.department_id,
            title=_clean_title(title),
            description=description,
            amount=_clean_amount(amount),
            currency=(currency or "USD").upper(),
            status=ClaimStatus.DRAFT,
        )
        claim = self._store.add_claim(claim)
        logger.info("Expense created id=%s owner=%s amount=%s", claim.id, actor.user_id, claim.amount)

        if submit:
            return self.submit(actor, claim.id).claim
        return claim

    def get_claim(self, actor: ActorContext | None, claim_id: int) -> ExpenseClaim:
        actor = require_actor(actor)
        claim = self._load_claim(claim_id)
        if not can_view(actor, claim.owner_id, claim.department_id):
            raise Forbidden("You cannot view this expense", claim_id=claim_id)
        return claim

    def list_claims(self, actor: ActorContext | None, status: ClaimStatus | None = None) -> list[ExpenseClaim]:
        actor = require_actor(actor)
        scope = resolve_scope(actor)
        logger.debug("Listing expenses user=%s scope=%s status=%s", actor.user_id, scope, status)
        return self._store.list_claims(scope, status=status)

    def update_claim(self, actor: ActorContext | None, claim_id: int, changes: Mapping[str, Any]) -> ExpenseClaim:
        actor = require_actor(actor)
        claim = self._load_claim(claim_id)

        if not can_edit(actor, claim.owner_id):
            raise Forbidden("You cannot edit this expense", claim_id=claim_id)
        if claim.status not in EDITABLE_STATUSES:
            raise Conflict("Expense can no longer be edited", claim_id=claim_id, status=claim.status.value)

        is_owner = claim.owner_id == actor.user_id
        if claim.status is ClaimStatus.PENDING and not is_owner and not self._privileged_pending_edit:
            raise Forbidden("Pending expenses can only be edited by their owner", claim_id=claim_id)

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationFailed("Fields cannot be edited", fields=sorted(unknown))

        fields: dict[str, Any] = {}
        if "title" in changes:
            fields["title"] = _clean_title(changes["title"])
        if "amount" in changes:
            fields["amount"] = _clean_amount(changes["amount"])
        if "currency" in changes:
            fields["currency"] = str(changes["currency"] or "USD").upper()
        if "description" in changes:
            fields["description"] = changes["description"]

        if not fields:
            return claim
        return self._store.update_claim_fields(claim_id, fields)

    def delete_claim(self, actor: ActorContext | None, claim_id: int) -> None:
        actor = require_actor(actor)
        claim = self._load_claim(claim_id)

        if not can_delete(actor, claim.owner_id):
            raise Forbidden("You cannot delete this expense", claim_id=claim_id)
        if claim.status in PROTECTED_STATUSES and Permission.DELETE_ANY_EXPENSE not in actor.permissions:
            raise Conflict("Approved expenses cannot be deleted", claim_id=claim_id, status=claim.status.value)

        self._store.delete_claim(claim_id)
        logger.info("Expense deleted id=%s by user=%s", claim_id, actor.user_id)

    # ---- Submission --------------------------------------------------------------------

    def submit(self, actor: ActorContext | None, claim_id: int) -> SubmissionResult:
        """
        DRAFT -> PENDING, then assign approvers.

        The status move is a conditional update; a second submit (or a submit
        racing another) gets ``Conflict`` and creates no records.
        """

        actor = require_actor(actor)
        check_permission(actor, Permission.CREATE_EXPENSE)
        claim = self._load_claim(claim_id)

        if claim.owner_id != actor.user_id:
            raise Forbidden("Only the owner can submit this expense", claim_id=claim_id)
        if claim.status is not ClaimStatus.DRAFT:
            raise Conflict("Expense was already submitted", claim_id=claim_id, status=claim.status.value)
        if not self._store.transition_claim(claim_id, ClaimStatus.DRAFT, ClaimStatus.PENDING):
            raise Conflict("Expense was already submitted", claim_id=claim_id)

        claim = self._load_claim(claim_id)
        approver_ids = select_approvers(
            owner_id=claim.owner_id,
            amount=claim.amount,
            # Only users who could decide this claim; anyone else would leave it stuck.
            managers=self._qualified(Role.MANAGER, claim),
            finance=self._qualified(Role.FINANCE, claim),
            threshold=self._finance_threshold,
            department_id=claim.department_id,
        )
        records = self._store.create_approval_records(claim_id, approver_ids)

        if records:
            logger.info("Expense submitted id=%s approvers=%s", claim_id, approver_ids)
        else:
            logger.warning("Expense submitted without approvers id=%s; manual assignment required", claim_id)

        claim = self._load_claim(claim_id)
        for record in records:
            self._notify(record.approver_id, "APPROVAL_REQUESTED", self._payload(claim, approval_id=record.id))
        self._notify(claim.owner_id, "EXPENSE_SUBMITTED", self._payload(claim, approvers=len(records)))

        return SubmissionResult(claim=claim, approvals=records)

    def assign_approver(self, actor: ActorContext | None, claim_id: int, approver_id: int) -> ApprovalRecord:
        """Attach one more approver to a PENDING claim (recovery for claims nobody can approve)."""

        actor = require_actor(actor)
        check_permission(actor, Permission.ASSIGN_APPROVERS)
        claim = self._load_claim(claim_id)

        if claim.status is not ClaimStatus.PENDING:
            raise Conflict("Approvers can only be added to pending expenses", claim_id=claim_id)
        if approver_id == claim.owner_id:
            raise SelfApprovalForbidden("An expense owner cannot approve their own expense", claim_id=claim_id)

        approver = self._store.get_user(approver_id)
        if approver is None:
            raise NotFound("User not found", user_id=approver_id)
        if not self._can_decide(approver, claim):
            raise ValidationFailed("User cannot approve this expense", user_id=approver_id)
        if any(r.approver_id == approver_id for r in self._store.list_approval_records(claim_id)):
            raise Conflict("Approver already assigned to this expense", claim_id=claim_id, user_id=approver_id)

        (record,) = self._store.create_approval_records(claim_id, [approver_id])
        logger.info("Approver assigned expense=%s approver=%s by user=%s", claim_id, approver_id, actor.user_id)
        self._notify(approver_id, "APPROVER_ASSIGNED", self._payload(claim, approval_id=record.id))
        return record

    # ---- Decisions ---------------------------------------------------------------------

    def list_pending_approvals(self, actor: ActorContext | None) -> list[ApprovalRecord]:
        actor = require_actor(actor)
        return self._store.list_approval_records_in_scope(
            approver_scope(actor),
            status=ApprovalStatus.PENDING,
            claim_status=ClaimStatus.PENDING,
        )

    def decide(
        self,
        actor: ActorContext | None,
        record_id: int,
        decision: str,
        comments: str | None = None,
    ) -> DecisionResult:
        actor = require_actor(actor)

        new_status = DECISIONS.get(str(getattr(decision, "value", decision)).upper())
        if new_status is None:
            raise ValidationFailed("Decision must be APPROVED or REJECTED", field="status")
        comments = comments.strip() if comments else None
        if new_status is ApprovalStatus.REJECTED and not comments:
            raise ValidationFailed("A reason is required when rejecting", field="comments")

        record = self._store.get_approval_record(record_id)
        if record is None:
            raise NotFound("Approval not found", approval_id=record_id)
        claim = self._load_claim(record.expense_id)

        if claim.owner_id == actor.user_id:
            raise SelfApprovalForbidden("You cannot approve your own expense", approval_id=record_id)
        if record.approver_id != actor.user_id:
            raise Forbidden("You are not the approver of this record", approval_id=record_id)
        if not can_approve(actor, claim.owner_id, claim.department_id):
            raise Forbidden("You are not allowed to approve this expense", approval_id=record_id)

        if not self._store.conditional_decide(record_id, new_status, comments):
            raise Conflict("This approval has already been decided", approval_id=record_id)

        logger.info("Approval decided id=%s expense=%s status=%s", record_id, claim.id, new_status.value)
        claim_status = self.recompute_status(claim.id, comments=comments)

        decided = self._store.get_approval_record(record_id)
        return DecisionResult(approval=decided, claim_status=claim_status)

    def recompute_status(self, claim_id: int, comments: str | None = None) -> ClaimStatus:
        """
        Derive the claim status from all of its approval records and store it.

        The owner is notified only on the move to APPROVED or REJECTED.
        """

        records = self._store.list_approval_records(claim_id)
        status = ClaimStatus(aggregate_status(r.status for r in records))

        # The aggregate only moves forward (PENDING -> final). A PENDING result
        # may come from a stale read, so it is never written back.
        if status is ClaimStatus.PENDING:
            return self._load_claim(claim_id).status

        changed = self._store.set_claim_status(claim_id, status, expected=ClaimStatus.PENDING)
        claim = self._load_claim(claim_id)
        if changed:
            logger.info("Expense %s id=%s", status.value.lower(), claim_id)
            kind = "EXPENSE_APPROVED" if status is ClaimStatus.APPROVED else "EXPENSE_REJECTED"
            self._notify(claim.owner_id, kind, self._payload(claim, status=status.value, comments=comments))
        return claim.status

    # ---- Budgets -----------------------------------------------------------------------

    def list_budgets(self, actor: ActorContext | None) -> list[Budget]:
        actor = require_actor(actor)
        return self._store.list_budgets(resolve_scope(actor, BUDGET_POLICY))
