from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Minimal logging configuration for this package.

    Notes:
    - Plain stdlib logging; uvicorn already configures handlers.
    - This mainly sets the level for ``expense_approvals.*`` loggers.
    - Set ``APP_LOG_LEVEL=DEBUG`` to see individual authorization decisions.
    """

    normalized = level.upper()
    logging.getLogger("expense_approvals").setLevel(normalized)
    # Ensure child loggers under expense_approvals.* inherit this level.
    logging.getLogger("expense_approvals").propagate = True
