from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from expense_approvals.models.expenses import ApprovalStatus, ClaimStatus


class ClaimCreate(BaseModel):
    title: str
    amount: Decimal
    currency: str = "USD"
    description: str | None = None
    # Create and submit in one call.
    submit: bool = False


class ClaimUpdate(BaseModel):
    title: str | None = None
    amount: Decimal | None = None
    currency: str | None = None
    description: str | None = None


class ApprovalRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    expense_id: int
    approver_id: int
    status: ApprovalStatus
    comments: str | None
    decided_at: datetime | None
    created_at: datetime


class ClaimOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    department_id: int | None
    title: str
    description: str | None
    amount: Decimal
    currency: str
    status: ClaimStatus
    created_at: datetime
    updated_at: datetime
    approvals: list[ApprovalRecordOut] = Field(default_factory=list)


class ClaimSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    department_id: int | None
    title: str
    amount: Decimal
    currency: str
    status: ClaimStatus


class PendingApprovalOut(ApprovalRecordOut):
    expense: ClaimSummaryOut


class DecisionIn(BaseModel):
    status: Literal["APPROVED", "REJECTED"]
    comments: str | None = None


class DecisionOut(BaseModel):
    approval: ApprovalRecordOut
    expense_status: ClaimStatus


class AssignApproverIn(BaseModel):
    approver_id: int


class BudgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    department_id: int
    name: str
    amount: Decimal
    period: str
