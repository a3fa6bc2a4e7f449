"""Claims extracted from a validated access token."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    """``sub`` claim; matched against ``User.auth_subject``."""

    email: str | None = None
    """For logging/UI only; never used for authorization."""

    def to_dict(self) -> dict[str, object]:
        return {"subject": self.subject, "email": self.email}
