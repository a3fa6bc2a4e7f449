"""
Approver assignment rules.

Evaluated once, at submission. Given the same roster the result is always the
same, so an assignment can be replayed for audits.

1. One active MANAGER, if any exists.
2. Additionally one active FINANCE user when the amount is strictly above the
   threshold.
3. Otherwise no approvers; the claim stays PENDING until one is assigned by
   hand.

The claim owner is never a candidate. Among several candidates the one in the
claim's department wins, then the lowest user id. Callers pass only users
who are allowed to decide the claim (see ``ApprovalWorkflowEngine.submit``).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol, Sequence

DEFAULT_FINANCE_THRESHOLD = Decimal("1000")


class Candidate(Protocol):
    id: int
    department_id: int | None
    is_active: bool


def pick_candidate(candidates: Iterable[Candidate], owner_id: int, department_id: int | None = None) -> int | None:
    eligible = [c for c in candidates if c.is_active and c.id != owner_id]
    if not eligible:
        return None

    def sort_key(c: Candidate) -> tuple[int, int]:
        same_dept = department_id is not None and c.department_id == department_id
        return (0 if same_dept else 1, c.id)

    return min(eligible, key=sort_key).id


def select_approvers(
    owner_id: int,
    amount: Decimal,
    managers: Sequence[Candidate],
    finance: Sequence[Candidate],
    threshold: Decimal = DEFAULT_FINANCE_THRESHOLD,
    department_id: int | None = None,
) -> list[int]:
    approvers: list[int] = []

    manager_id = pick_candidate(managers, owner_id, department_id)
    if manager_id is not None:
        approvers.append(manager_id)

    if Decimal(amount) > threshold:
        finance_id = pick_candidate(finance, owner_id, department_id)
        if finance_id is not None and finance_id not in approvers:
            approvers.append(finance_id)

    return approvers


def aggregate_status(statuses: Iterable[str]) -> str:
    """
    Claim status implied by its approval record statuses.

    Any REJECTED wins; all APPROVED (and at least one record) means APPROVED;
    anything else is still PENDING, including the empty set.
    """

    values = list(statuses)
    if any(s == "REJECTED" for s in values):
        return "REJECTED"
    if values and all(s == "APPROVED" for s in values):
        return "APPROVED"
    return "PENDING"
