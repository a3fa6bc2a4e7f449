"""
Error taxonomy shared by the authorization layer and the approval workflow.

Every error carries a stable ``code`` plus a small ``context`` mapping so the
request layer can render a specific message ("you already decided this",
"you cannot approve your own expense") instead of a generic failure.
"""

from __future__ import annotations

from typing import Any


class ExpenseApprovalsError(Exception):
    """Base class. Subclasses set ``code``; callers branch on type or code."""

    code = "error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "context": dict(self.context)}


class Unauthenticated(ExpenseApprovalsError):
    """No (or invalid) actor context."""

    code = "unauthenticated"


class Forbidden(ExpenseApprovalsError):
    """The authorization evaluator denied the action."""

    code = "forbidden"


class SelfApprovalForbidden(ExpenseApprovalsError):
    """
    Actor tried to approve (or be assigned to) their own claim.

    Deliberately not a ``Forbidden`` subclass: handlers catching ``Forbidden``
    must not swallow this case.
    """

    code = "self_approval_forbidden"


class NotFound(ExpenseApprovalsError):
    code = "not_found"


class Conflict(ExpenseApprovalsError):
    """Record no longer PENDING, or claim already left the expected state."""

    code = "conflict"


class ValidationFailed(ExpenseApprovalsError):
    code = "validation_failed"


class Unavailable(ExpenseApprovalsError):
    """Persistence collaborator could not be reached. Callers may retry."""

    code = "unavailable"
