from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_approvals.authz.catalog import Role
from expense_approvals.db.base import Base
from expense_approvals.db.session import get_engine, get_sessionmaker
from expense_approvals.models import expenses as _expenses  # noqa: F401  (register tables)
from expense_approvals.models.expenses import Budget
from expense_approvals.models.security import Department, User


def init_db() -> None:
    """
    Create tables + seed demo data.

    Small and deterministic so the approval flow can be tried without setup
    (dummy auth: ``Authorization: Bearer <user id>``).
    """

    Base.metadata.create_all(bind=get_engine())

    with get_sessionmaker()() as db:
        if _has_seed_data(db):
            return
        seed(db)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(Department.id).limit(1)).first() is not None


def seed(db: Session) -> None:
    sales = Department(name="Sales", code="SALES", description="Sales Department")
    eng = Department(name="Engineering", code="ENG", description="Engineering Department")
    fin = Department(name="Finance", code="FIN", description="Finance Department")
    db.add_all([sales, eng, fin])
    db.flush()

    db.add_all(
        [
            User(username="alice_admin", email="alice.admin@example.com", role=Role.ADMIN, department_id=fin.id),
            User(username="fran_finance", email="fran.finance@example.com", role=Role.FINANCE, department_id=fin.id),
            User(username="sam_sales_mgr", email="sam.mgr@example.com", role=Role.MANAGER, department_id=sales.id),
            User(username="erin_eng_mgr", email="erin.mgr@example.com", role=Role.MANAGER, department_id=eng.id),
            User(username="sid_sales", email="sid.sales@example.com", role=Role.EMPLOYEE, department_id=sales.id),
            User(username="ed_eng", email="ed.eng@example.com", role=Role.EMPLOYEE, department_id=eng.id),
        ]
    )

    db.add_all(
        [
            Budget(department_id=sales.id, name="Sales travel", amount=Decimal("20000.00"), period="QUARTERLY"),
            Budget(department_id=eng.id, name="Engineering tooling", amount=Decimal("15000.00"), period="QUARTERLY"),
        ]
    )

    db.commit()
