"""
Validate a signed JWT access token and extract claims.

Before anything in the token is trusted we verify the signature, the
audience, the issuer (when configured) and exp/nbf. Role and department are
*not* read from the token: they come from the user profile, which is the
source of truth for authorization.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt

from .config import JwtConfig
from .context import TokenClaims

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Raised when token validation fails. Do not log the token."""


def _extract_claims(payload: dict[str, Any]) -> TokenClaims:
    subject = payload.get("sub")
    if subject is None or str(subject).strip() == "":
        raise ValidationError("Invalid token: missing subject")

    email = payload.get("email")
    return TokenClaims(subject=str(subject), email=str(email) if email is not None else None)


class JwtTokenValidator:
    def __init__(self, config: JwtConfig) -> None:
        self._config = config

    def validate_and_extract(self, token: str) -> TokenClaims:
        options = {
            "verify_signature": True,
            "verify_exp": True,
            "verify_nbf": True,
            "verify_aud": True,
            "verify_iss": self._config.issuer is not None,
            "require": ["exp", "sub"],
        }
        try:
            payload = jwt.decode(
                token,
                self._config.secret,
                algorithms=["HS256"],
                audience=self._config.audience,
                issuer=self._config.issuer,
                leeway=self._config.leeway_seconds,
                options=options,
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Token expired")
            raise ValidationError("Token expired") from e
        except jwt.InvalidIssuerError as e:
            logger.info("Token invalid issuer")
            raise ValidationError("Invalid token: issuer") from e
        except jwt.InvalidAudienceError as e:
            logger.info("Token invalid audience")
            raise ValidationError("Invalid token: audience") from e
        except jwt.InvalidTokenError as e:
            logger.info("Token invalid: %s", type(e).__name__)
            raise ValidationError("Invalid token") from e

        return _extract_claims(payload)


def validate_and_extract(token: str, config: JwtConfig) -> TokenClaims:
    """Convenience: validate a bearer token with a throwaway validator."""
    return JwtTokenValidator(config).validate_and_extract(token)
