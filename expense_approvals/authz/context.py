from __future__ import annotations

from dataclasses import dataclass

from expense_approvals.authz.catalog import Permission, Role, role_permissions
from expense_approvals.errors import Unauthenticated


@dataclass(frozen=True)
class ActorContext:
    """
    Who is acting on this request.

    Supplied by the identity layer and treated as ground truth; the
    authorization functions never re-derive or default any of these fields.
    """

    user_id: int
    role: Role
    department_id: int | None
    is_active: bool = True

    @property
    def permissions(self) -> frozenset[Permission]:
        if not self.is_active:
            return frozenset()
        return role_permissions(self.role)

    def to_dict(self) -> dict[str, object]:
        return {
            "user_id": self.user_id,
            "role": self.role.value,
            "department_id": self.department_id,
            "is_active": self.is_active,
        }


def require_actor(actor: ActorContext | None) -> ActorContext:
    if actor is None:
        raise Unauthenticated("Authentication required")
    return actor
