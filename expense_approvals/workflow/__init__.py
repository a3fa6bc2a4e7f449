"""Expense approval workflow: approver assignment, decisions and status aggregation."""

from .assignment import aggregate_status, select_approvers
from .engine import ApprovalWorkflowEngine, DecisionResult, SubmissionResult

__all__ = [
    "ApprovalWorkflowEngine",
    "DecisionResult",
    "SubmissionResult",
    "aggregate_status",
    "select_approvers",
]
