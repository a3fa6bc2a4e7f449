"""Token validation configuration. Secrets come from the environment, never from code."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class JwtConfig:
    """
    Shared-secret (HS256) validation settings.

    secret: signing secret of the identity provider's project.
    audience: expected ``aud``; hosted auth services use ``authenticated``.
    issuer: expected ``iss``; issuer check is skipped when None.
    leeway_seconds: tolerance for exp/nbf.
    """

    secret: str
    audience: str = "authenticated"
    issuer: str | None = None
    leeway_seconds: int = 60

    @classmethod
    def from_settings(cls, settings: Any) -> JwtConfig:
        if not settings.jwt_secret:
            raise ValueError("APP_JWT_SECRET must be set when the jwt auth provider is enabled")
        return cls(
            secret=settings.jwt_secret,
            audience=settings.jwt_audience,
            issuer=_strip_or_none(settings.jwt_issuer),
            leeway_seconds=settings.jwt_leeway_seconds,
        )


def _strip_or_none(s: str | None) -> str | None:
    if s is None:
        return None
    t = s.strip()
    return t if t else None
