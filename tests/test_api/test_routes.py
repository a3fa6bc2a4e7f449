"""
End-to-end request tests: global security dependency, routers, error mapping.

The app runs without its lifespan (no seed, no file database); state is
wired by hand and ``get_db`` is pointed at the rolled-back test session.
"""
from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from expense_approvals.authz.catalog import Role
from expense_approvals.db.session import get_db
from expense_approvals.main import create_app
from expense_approvals.security.config import load_security_config

REPO_CONFIG = Path(__file__).resolve().parents[2] / "config" / "security_config.yaml"


@pytest.fixture
def client(db_session, notifier):
    app = create_app()
    app.state.security_config = load_security_config(REPO_CONFIG)
    app.state.notifier = notifier

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def people(make_user, departments):
    return {
        "employee": make_user(Role.EMPLOYEE, departments["sales"]),
        "manager": make_user(Role.MANAGER, departments["sales"]),
        "finance": make_user(Role.FINANCE, None),
        "admin": make_user(Role.ADMIN, None),
    }


def auth(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {user.id}"}


def test_health_is_public(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_missing_token_is_401(client):
    resp = client.get("/expenses")
    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthenticated"


def test_malformed_header_is_400(client):
    resp = client.get("/expenses", headers={"Authorization": "Token 1"})
    assert resp.status_code == 400


def test_unknown_user_is_401(client):
    resp = client.get("/expenses", headers={"Authorization": "Bearer 99999"})
    assert resp.status_code == 401


def test_inactive_user_is_403(client, make_user):
    inactive = make_user(Role.ADMIN, None, is_active=False)
    resp = client.get("/me", headers=auth(inactive))
    assert resp.status_code == 403


def test_me_and_capabilities(client, people):
    resp = client.get("/me", headers=auth(people["manager"]))
    assert resp.status_code == 200
    assert resp.json()["role"] == "MANAGER"
    assert resp.json()["department"]["code"] == "SALES"

    caps = client.get("/me/permissions", headers=auth(people["manager"])).json()
    assert "APPROVE_DEPARTMENT_EXPENSES" in caps["permissions"]
    assert caps["capabilities"]["show_approvals"] is True
    assert caps["capabilities"]["view_scope"] == "DEPARTMENT"


def test_route_gate_blocks_employee_from_approvals(client, people):
    resp = client.get("/approvals/pending", headers=auth(people["employee"]))
    assert resp.status_code == 403
    assert resp.json()["error"] == "forbidden"


def test_full_approval_flow(client, people, notifier):
    created = client.post(
        "/expenses",
        json={"title": "Client dinner", "amount": "1500", "submit": True},
        headers=auth(people["employee"]),
    )
    assert created.status_code == 201
    claim = created.json()
    assert claim["status"] == "PENDING"
    assert {a["approver_id"] for a in claim["approvals"]} == {people["manager"].id, people["finance"].id}

    pending = client.get("/approvals/pending", headers=auth(people["manager"])).json()
    assert [p["expense"]["id"] for p in pending] == [claim["id"]]

    first = client.post(
        f"/approvals/{pending[0]['id']}/decision",
        json={"status": "APPROVED", "comments": "ok"},
        headers=auth(people["manager"]),
    )
    assert first.status_code == 200
    assert first.json()["expense_status"] == "PENDING"

    again = client.post(
        f"/approvals/{pending[0]['id']}/decision",
        json={"status": "REJECTED", "comments": "changed my mind"},
        headers=auth(people["manager"]),
    )
    assert again.status_code == 409
    assert again.json()["error"] == "conflict"

    (finance_record,) = client.get("/approvals/pending", headers=auth(people["finance"])).json()
    final = client.post(
        f"/approvals/{finance_record['id']}/decision",
        json={"status": "APPROVED"},
        headers=auth(people["finance"]),
    )
    assert final.json()["expense_status"] == "APPROVED"
    assert "EXPENSE_APPROVED" in notifier.kinds_for(people["employee"].id)


def test_rejection_without_reason_is_422(client, people):
    claim = client.post(
        "/expenses", json={"title": "Taxi", "amount": "20", "submit": True}, headers=auth(people["employee"])
    ).json()
    record_id = claim["approvals"][0]["id"]

    resp = client.post(
        f"/approvals/{record_id}/decision", json={"status": "REJECTED"}, headers=auth(people["manager"])
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_failed"


def test_self_assignment_has_its_own_error(client, people):
    claim = client.post(
        "/expenses", json={"title": "Taxi", "amount": "20", "submit": True}, headers=auth(people["employee"])
    ).json()

    resp = client.post(
        f"/expenses/{claim['id']}/approvers",
        json={"approver_id": people["employee"].id},
        headers=auth(people["admin"]),
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == "self_approval_forbidden"


def test_admin_assigns_extra_approver(client, people, make_user, departments):
    claim = client.post(
        "/expenses", json={"title": "Taxi", "amount": "20", "submit": True}, headers=auth(people["employee"])
    ).json()

    resp = client.post(
        f"/expenses/{claim['id']}/approvers",
        json={"approver_id": people["finance"].id},
        headers=auth(people["admin"]),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["expense_id"] == claim["id"]
    assert body["approver_id"] == people["finance"].id
    assert body["status"] == "PENDING"

    eng_manager = make_user(Role.MANAGER, departments["eng"])
    resp = client.post(
        f"/expenses/{claim['id']}/approvers",
        json={"approver_id": eng_manager.id},
        headers=auth(people["admin"]),
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_failed"


def test_list_is_scoped_and_get_is_checked(client, people, make_user, departments):
    outsider = make_user(Role.EMPLOYEE, departments["eng"])
    claim = client.post("/expenses", json={"title": "Taxi", "amount": "20"}, headers=auth(people["employee"])).json()

    assert client.get("/expenses", headers=auth(outsider)).json() == []
    assert [c["id"] for c in client.get("/expenses", headers=auth(people["manager"])).json()] == [claim["id"]]
    assert client.get(f"/expenses/{claim['id']}", headers=auth(outsider)).status_code == 403
    assert client.get("/expenses/99999", headers=auth(people["finance"])).status_code == 404
    assert client.get("/expenses?status=DRAFT", headers=auth(people["finance"])).json()[0]["id"] == claim["id"]


def test_edit_and_delete_draft(client, people):
    claim = client.post("/expenses", json={"title": "Taxi", "amount": "20"}, headers=auth(people["employee"])).json()

    updated = client.put(f"/expenses/{claim['id']}", json={"title": "Cab"}, headers=auth(people["employee"]))
    assert updated.status_code == 200
    assert updated.json()["title"] == "Cab"

    assert client.delete(f"/expenses/{claim['id']}", headers=auth(people["employee"])).status_code == 204
    assert client.get(f"/expenses/{claim['id']}", headers=auth(people["employee"])).status_code == 404


def test_admin_user_listing_uses_decorator_permission(client, people):
    assert client.get("/admin/users", headers=auth(people["employee"])).status_code == 403
    users = client.get("/admin/users", headers=auth(people["admin"])).json()
    assert {u["username"] for u in users} >= {people["employee"].username, people["admin"].username}


def test_role_change_requires_role_permission(client, people):
    # FINANCE may view users but not change roles.
    resp = client.patch(
        f"/admin/users/{people['employee'].id}", json={"role": "ADMIN"}, headers=auth(people["finance"])
    )
    assert resp.status_code == 403

    resp = client.patch(
        f"/admin/users/{people['employee'].id}", json={"role": "MANAGER"}, headers=auth(people["admin"])
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "MANAGER"


def test_notifications_are_listed_marked_and_deleted_per_user(client, people, db_session):
    from expense_approvals.models.expenses import Notification

    employee, manager = people["employee"], people["manager"]
    mine = Notification(user_id=employee.id, kind="EXPENSE_APPROVED", title="Expense approved")
    also_mine = Notification(user_id=employee.id, kind="EXPENSE_SUBMITTED", title="Expense submitted")
    theirs = Notification(user_id=manager.id, kind="APPROVAL_REQUESTED", title="New expense approval required")
    db_session.add_all([mine, also_mine, theirs])
    db_session.commit()

    listed = client.get("/notifications", headers=auth(employee)).json()
    assert {n["id"] for n in listed} == {mine.id, also_mine.id}

    # Someone else's notification looks missing.
    assert client.patch(f"/notifications/{theirs.id}/read", headers=auth(employee)).status_code == 404
    assert client.delete(f"/notifications/{theirs.id}", headers=auth(employee)).status_code == 404

    read = client.patch(f"/notifications/{mine.id}/read", headers=auth(employee))
    assert read.status_code == 200
    assert read.json()["is_read"] is True

    unread = client.get("/notifications?unread_only=true", headers=auth(employee)).json()
    assert [n["id"] for n in unread] == [also_mine.id]

    assert client.patch("/notifications/read-all", headers=auth(employee)).json() == {"updated": 1}
    assert client.get("/notifications?unread_only=true", headers=auth(employee)).json() == []

    assert client.delete(f"/notifications/{mine.id}", headers=auth(employee)).status_code == 204
    assert [n["id"] for n in client.get("/notifications", headers=auth(manager)).json()] == [theirs.id]


def test_notifications_require_login(client):
    assert client.get("/notifications").status_code == 401
