from __future__ import annotations

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from expense_approvals.authz.context import ActorContext
from expense_approvals.authz.evaluator import check_any_permission
from expense_approvals.db.session import get_db
from expense_approvals.db.store import SqlApprovalStore
from expense_approvals.errors import Forbidden, Unauthenticated
from expense_approvals.notifications import LoggingNotifier
from expense_approvals.security.auth import actor_for, extract_bearer_token, resolve_user
from expense_approvals.security.config import SecurityConfig
from expense_approvals.settings import Settings, get_settings
from expense_approvals.workflow.engine import ApprovalWorkflowEngine

logger = logging.getLogger(__name__)


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Did app startup run?")
    return config


def get_actor(request: Request) -> ActorContext:
    actor = getattr(request.state, "actor", None)
    if actor is None:
        raise Unauthenticated("Authentication required")
    return actor


def get_store(db: Session = Depends(get_db)) -> SqlApprovalStore:
    return SqlApprovalStore(db)


def get_workflow(
    request: Request,
    store: SqlApprovalStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ApprovalWorkflowEngine:
    notifier = getattr(request.app.state, "notifier", None) or LoggingNotifier()
    # The SQL store is also the roster.
    return ApprovalWorkflowEngine.from_settings(store, store, notifier, settings)


def enforce_security(
    request: Request,
    config: SecurityConfig = Depends(get_security_config),
    db: Session = Depends(get_db),
) -> None:
    """
    Global security dependency (configuration-driven).

    Runs after routing, so decorator metadata on the endpoint is visible too.
    Performs the coarse capability check only; ownership and department rules
    are applied by the workflow engine against the actual resource.
    """

    path = request.url.path
    method = request.method.upper()

    rule = config.match(path, method)

    endpoint = request.scope.get("endpoint")
    decorator_permissions = set(getattr(endpoint, "__security_required_permissions__", set())) if endpoint else set()

    auth_required = rule.auth_required or bool(decorator_permissions)
    if not auth_required:
        return

    token = extract_bearer_token(request, config)
    if token is None:
        raise Unauthenticated("Authentication required")

    user = resolve_user(db, token, config, getattr(request.app.state, "token_validator", None))
    actor = actor_for(user)
    request.state.user = user
    request.state.actor = actor

    if not actor.is_active:
        logger.info("Inactive user denied user=%s path=%s method=%s", actor.user_id, path, method)
        raise Forbidden("Account is inactive", user_id=actor.user_id)

    required = set(rule.required_permissions) | decorator_permissions
    if required:
        check_any_permission(actor, required)
