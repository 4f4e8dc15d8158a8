# tests/test_ownership.py
# Cross-tenant isolation and cascade deletes, exercised over HTTP.

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from hourbook.extensions import db
from hourbook.models import Customer, Project, Task, User


def _chain(api, headers):
    cid = api.customer(headers)
    pid = api.project(headers, cid)["id"]
    tid = api.task(headers, cid, pid)["id"]
    return cid, pid, tid


def test_foreign_ids_are_not_found(client, owner, intruder, api):
    cid, pid, tid = _chain(api, owner)
    base = f"/api/customers/{cid}"

    attempts = [
        ("get", base, None),
        ("put", base, {"name": "Hijacked"}),
        ("delete", base, None),
        ("get", f"{base}/projects", None),
        ("post", f"{base}/projects", {"name": "Sneaky"}),
        ("put", f"{base}/projects/{pid}", {"name": "Hijacked"}),
        ("delete", f"{base}/projects/{pid}", None),
        ("get", f"{base}/projects/{pid}/tasks", None),
        ("post", f"{base}/projects/{pid}/tasks", {"name": "Sneaky"}),
        ("put", f"{base}/projects/{pid}/tasks/{tid}", {"name": "Hijacked"}),
        ("delete", f"{base}/projects/{pid}/tasks/{tid}", None),
        ("patch", f"{base}/projects/{pid}/tasks/order", {"order": [{"id": tid, "order": 9}]}),
        ("post", f"/api/invoices/customers/{cid}/projects/{pid}/preview", None),
        ("post", f"/api/invoices/customers/{cid}/projects/{pid}/pdf", None),
    ]
    for method, url, body in attempts:
        resp = getattr(client, method)(url, json=body, headers=intruder)
        assert resp.status_code == 404, (method, url, resp.get_json())
        assert resp.get_json()["code"] == "not_found"

    # Nothing leaked into the intruder's listing, nothing changed for the owner
    assert client.get("/api/customers", headers=intruder).get_json()["customers"] == []
    tasks = api.tasks(owner, cid, pid)
    assert [(t["id"], t["name"], t["order"]) for t in tasks] == [(tid, "Design", 0)]


def test_mismatched_parent_ids_are_not_found(client, owner, api):
    cid_a, pid_a, tid_a = _chain(api, owner)
    cid_b = api.customer(owner, name="Other Co")

    # Right owner, wrong parent: project A addressed under customer B
    resp = client.put(
        f"/api/customers/{cid_b}/projects/{pid_a}",
        json={"name": "Moved"},
        headers=owner,
    )
    assert resp.status_code == 404

    resp = client.get(f"/api/customers/{cid_b}/projects/{pid_a}/tasks/{tid_a}", headers=owner)
    assert resp.status_code == 404


def test_delete_customer_cascades(app, client, owner, api):
    cid = api.customer(owner)
    p1 = api.project(owner, cid)["id"]
    p2 = api.project(owner, cid, name="Second")["id"]
    t1 = api.task(owner, cid, p1)["id"]
    t2 = api.task(owner, cid, p2)["id"]
    keep_cid, keep_pid, keep_tid = _chain(api, owner)

    resp = client.delete(f"/api/customers/{cid}", headers=owner)
    assert resp.status_code == 200
    deleted = resp.get_json()["deleted"]
    assert deleted == {"id": cid, "projectIds": [p1, p2], "taskIds": [t1, t2]}

    assert client.get(f"/api/customers/{cid}", headers=owner).status_code == 404
    assert client.get(f"/api/customers/{cid}/projects/{p1}", headers=owner).status_code == 404
    assert client.get(f"/api/customers/{cid}/projects/{p2}/tasks/{t2}", headers=owner).status_code == 404

    with app.app_context():
        assert db.session.get(Customer, cid) is None
        assert db.session.execute(db.select(Project).filter_by(customer_id=cid)).first() is None
        assert db.session.execute(db.select(Task).where(Task.id.in_([t1, t2]))).first() is None
        # Sibling subtree untouched
        assert db.session.get(Task, keep_tid) is not None


def test_failed_customer_delete_leaves_everything_in_place(app, client, owner, api, monkeypatch):
    cid, pid, tid = _chain(api, owner)
    real_execute = db.session.execute

    def failing_execute(stmt, *args, **kwargs):
        # Tasks and projects are already gone inside the transaction when this fires
        if getattr(stmt, "is_delete", False) and stmt.table.name == "customers":
            raise OperationalError("DELETE FROM customers", {}, Exception("disk I/O error"))
        return real_execute(stmt, *args, **kwargs)

    monkeypatch.setattr(db.session, "execute", failing_execute)
    resp = client.delete(f"/api/customers/{cid}", headers=owner)
    monkeypatch.undo()

    assert resp.status_code == 500
    assert resp.get_json()["code"] == "internal_error"

    with app.app_context():
        assert db.session.get(Customer, cid) is not None
        assert db.session.get(Project, pid) is not None
        assert db.session.get(Task, tid) is not None
    assert [t["id"] for t in api.tasks(owner, cid, pid)] == [tid]


@pytest.mark.parametrize(
    "path",
    [
        "/api/customers/{big}",
        "/api/customers/1/projects/{big}",
        "/api/customers/1/projects/1/tasks/{big}",
    ],
)
def test_oversized_ids_are_not_found(client, owner, path):
    resp = client.get(path.format(big=2**70), headers=owner)
    assert resp.status_code == 404


def test_delete_project_cascades(app, client, owner, api):
    cid, pid, tid = _chain(api, owner)
    other = api.task(owner, cid, pid, name="Second")["id"]

    resp = client.delete(f"/api/customers/{cid}/projects/{pid}", headers=owner)
    assert resp.get_json()["deleted"] == {"id": pid, "customerId": cid, "taskIds": [tid, other]}

    with app.app_context():
        assert db.session.get(Project, pid) is None
        assert db.session.get(Task, tid) is None
        assert db.session.get(Customer, cid) is not None


def test_round_trip_leaves_nothing_reachable(app, client, api):
    resp = client.post(
        "/api/auth/register",
        json={"email": "Round@Trip.io", "password": "secret123", "firstName": "Rita", "lastName": "Trip"},
    )
    assert resp.status_code == 201
    user_id = resp.get_json()["user"]["id"]

    # Inactive until an admin activates the account
    resp = client.post("/api/auth/login", json={"email": "round@trip.io", "password": "secret123"})
    assert resp.status_code == 403

    with app.app_context():
        db.session.get(User, user_id).active = True
        db.session.commit()

    resp = client.post("/api/auth/login", json={"email": "round@trip.io", "password": "secret123"})
    assert resp.status_code == 200
    headers = {"Authorization": f"Bearer {resp.get_json()['token']}"}

    cid, pid, tid = _chain(api, headers)
    assert client.delete(f"/api/customers/{cid}", headers=headers).status_code == 200

    assert client.get("/api/customers", headers=headers).get_json()["customers"] == []
    assert client.get(f"/api/customers/{cid}", headers=headers).status_code == 404
    assert client.get(f"/api/customers/{cid}/projects/{pid}", headers=headers).status_code == 404
    assert client.get(f"/api/customers/{cid}/projects/{pid}/tasks/{tid}", headers=headers).status_code == 404
