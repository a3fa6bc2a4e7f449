"""
Bearer token validation for the identity provider's access tokens.

This package has no dependency on other app packages (db, security, workflow).
Use validate_and_extract() with a bearer token string to get TokenClaims.
"""

from .config import JwtConfig
from .context import TokenClaims
from .validator import JwtTokenValidator, ValidationError, validate_and_extract

__all__ = [
    "JwtConfig",
    "TokenClaims",
    "JwtTokenValidator",
    "ValidationError",
    "validate_and_extract",
]
