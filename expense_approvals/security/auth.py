from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_approvals.authz.context import ActorContext
from expense_approvals.errors import Unauthenticated
from expense_approvals.identity import JwtTokenValidator, ValidationError
from expense_approvals.models.security import User
from expense_approvals.security.config import SecurityConfig

logger = logging.getLogger(__name__)


def extract_bearer_token(request: Request, config: SecurityConfig) -> str | None:
    """
    Return the raw bearer token, or None when the header is absent.

    - Input: ``Authorization: Bearer <token>``
    - Malformed headers are a 400, not a silent anonymous request.
    """

    header_name = config.auth.authorization_header
    bearer_prefix = config.auth.bearer_prefix

    raw = request.headers.get(header_name)
    if not raw:
        logger.info("Missing Authorization header (auth required) path=%s method=%s", request.url.path, request.method)
        return None

    prefix = f"{bearer_prefix} "
    if not raw.startswith(prefix):
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Expected '{bearer_prefix} <token>'.",
        )

    token = raw[len(prefix) :].strip()
    if not token:
        logger.warning("Empty bearer token path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Missing token after '{bearer_prefix}'.",
        )
    return token


def resolve_user(db: Session, token: str, config: SecurityConfig, validator: JwtTokenValidator | None) -> User:
    """
    Map a bearer token to a user row.

    dummy provider: the token is the integer user id.
    jwt provider: the token is validated and its subject looked up.
    """

    if config.auth.provider == "dummy":
        try:
            user_id = int(token)
        except ValueError as exc:
            raise Unauthenticated("Invalid bearer token (expected integer user id)") from exc
        return load_user(db, user_id)

    if validator is None:
        raise RuntimeError("jwt auth provider configured without a token validator")
    try:
        claims = validator.validate_and_extract(token)
    except ValidationError as exc:
        raise Unauthenticated(str(exc)) from exc

    user = db.execute(select(User).where(User.auth_subject == claims.subject)).scalar_one_or_none()
    if user is None:
        raise Unauthenticated("User profile not found")
    return user


def load_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise Unauthenticated("Invalid user", user_id=user_id)
    return user


def actor_for(user: User) -> ActorContext:
    # Inactive users still get a context; every capability check denies them.
    return ActorContext(
        user_id=user.id,
        role=user.role,
        department_id=user.department_id,
        is_active=user.is_active,
    )
