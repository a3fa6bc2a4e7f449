from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from expense_approvals.settings import get_settings


def build_engine(db_url: str) -> Engine:
    return create_engine(
        db_url,
        connect_args={"check_same_thread": False} if db_url.startswith("sqlite") else {},
    )


@lru_cache
def get_engine() -> Engine:
    return build_engine(get_settings().resolved_db_url())


@lru_cache
def get_sessionmaker() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autocommit=False, autoflush=False, class_=Session)


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session.

    Each request gets its own session; concurrent requests never share ORM
    state, and contended writes go through conditional UPDATEs in the store.
    """

    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
