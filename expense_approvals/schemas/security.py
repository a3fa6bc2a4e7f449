from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from expense_approvals.authz.catalog import Role


class DepartmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: Role
    is_active: bool
    department: DepartmentOut | None


class UserUpdate(BaseModel):
    role: Role | None = None
    department_id: int | None = None
    is_active: bool | None = None


class PermissionsOut(BaseModel):
    role: Role
    permissions: list[str]
    capabilities: dict[str, Any]
