from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from expense_approvals.db.init_db import init_db
from expense_approvals.db.session import get_sessionmaker
from expense_approvals.errors import (
    Conflict,
    ExpenseApprovalsError,
    Forbidden,
    NotFound,
    SelfApprovalForbidden,
    Unauthenticated,
    Unavailable,
    ValidationFailed,
)
from expense_approvals.identity import JwtConfig, JwtTokenValidator
from expense_approvals.logging_config import configure_app_logging
from expense_approvals.notifications import DatabaseNotifier, FanoutNotifier, LoggingNotifier, WebhookNotifier
from expense_approvals.routers import admin, approvals, budgets, expenses, health, me, notifications
from expense_approvals.security.config import load_security_config
from expense_approvals.security.dependencies import enforce_security
from expense_approvals.settings import Settings, get_settings

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[ExpenseApprovalsError], int] = {
    Unauthenticated: 401,
    Forbidden: 403,
    SelfApprovalForbidden: 403,
    NotFound: 404,
    Conflict: 409,
    ValidationFailed: 422,
    Unavailable: 503,
}


def build_notifier(settings: Settings) -> FanoutNotifier:
    notifiers: list = [LoggingNotifier(), DatabaseNotifier(get_sessionmaker())]
    if settings.notification_webhook_url:
        notifiers.append(WebhookNotifier(settings.notification_webhook_url, settings.notification_timeout_seconds))
    return FanoutNotifier(notifiers)


async def handle_domain_error(request: Request, exc: ExpenseApprovalsError) -> JSONResponse:
    status_code = STATUS_CODES.get(type(exc), 400)
    if status_code >= 500:
        logger.error("%s %s -> %s", request.method, request.url.path, exc.code)
    else:
        logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        config = load_security_config(settings.resolved_security_config_path())
        app.state.security_config = config
        logger.info("Loaded security config: %s", settings.resolved_security_config_path())
        if config.auth.provider == "jwt":
            app.state.token_validator = JwtTokenValidator(JwtConfig.from_settings(settings))

        app.state.notifier = build_notifier(settings)

        init_db()
        logger.info("Database initialized (tables ensured + seed if needed)")

        yield

    # Global dependency: every route passes the configured permission gate.
    app = FastAPI(title="Expense approvals", dependencies=[Depends(enforce_security)], lifespan=lifespan)
    app.add_exception_handler(ExpenseApprovalsError, handle_domain_error)

    app.include_router(health.router)
    app.include_router(me.router)
    app.include_router(expenses.router)
    app.include_router(approvals.router)
    app.include_router(budgets.router)
    app.include_router(notifications.router)
    app.include_router(admin.router)

    return app


app = create_app()
