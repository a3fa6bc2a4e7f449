from __future__ import annotations

from collections.abc import Callable

from expense_approvals.authz.catalog import Permission


def require_permissions(permissions: list[Permission]) -> Callable:
    """
    Decorator-style alternative to a YAML route rule.

    The decorator does NOT perform the check itself; it attaches metadata that
    the global security dependency reads after routing.
    """

    def decorator(fn: Callable) -> Callable:
        existing = set(getattr(fn, "__security_required_permissions__", set()))
        setattr(fn, "__security_required_permissions__", existing | set(permissions))
        return fn

    return decorator
