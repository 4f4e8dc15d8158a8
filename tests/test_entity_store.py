# tests/test_entity_store.py
from __future__ import annotations

from hourbook.extensions import db
from hourbook.models import User


def test_create_customer_requires_name(client, owner):
    resp = client.post("/api/customers", json={"email": "a@b.co"}, headers=owner)

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["code"] == "validation_error"
    assert "name" in body["details"]


def test_create_customer_defaults(client, owner):
    resp = client.post("/api/customers", json={"name": "  Acme  "}, headers=owner)
    customer = resp.get_json()["customer"]

    assert customer["name"] == "Acme"
    assert customer["billingCity"] == ""
    assert customer["createdAt"] and customer["updatedAt"]


def test_update_customer_is_partial_but_needs_name(client, owner, api):
    cid = api.customer(owner, billingCity="Berlin", phone="123")

    resp = client.put(f"/api/customers/{cid}", json={"phone": "999"}, headers=owner)
    assert resp.status_code == 400

    resp = client.put(f"/api/customers/{cid}", json={"name": "Acme AG", "phone": "999"}, headers=owner)
    customer = resp.get_json()["customer"]
    assert (customer["name"], customer["phone"], customer["billingCity"]) == ("Acme AG", "999", "Berlin")


def test_list_customers_with_projects(client, owner, api):
    c1 = api.customer(owner, name="First")
    c2 = api.customer(owner, name="Second")
    api.project(owner, c1, name="P1")

    plain = client.get("/api/customers", headers=owner).get_json()["customers"]
    assert [c["id"] for c in plain] == [c1, c2]
    assert "projects" not in plain[0]

    nested = client.get("/api/customers?includeProjects=true", headers=owner).get_json()["customers"]
    assert [p["name"] for p in nested[0]["projects"]] == ["P1"]
    assert nested[1]["projects"] == []


def test_create_project_defaults_and_sequence(client, owner, api):
    cid = api.customer(owner)

    first = api.project(owner, cid)
    second = api.project(owner, cid, name="Second")

    assert first["pricingType"] == "HOURLY"
    assert first["hourlyRate"] == 0
    assert first["fixedPrice"] == 0
    assert first["invoiceDate"] is None
    assert (first["invoiceNumber"], second["invoiceNumber"]) == ("00001", "00002")


def test_explicit_invoice_number_does_not_consume_sequence(app, client, owner, api):
    cid = api.customer(owner)

    manual = api.project(owner, cid, invoiceNumber="MANUAL-7")
    auto = api.project(owner, cid, name="Auto")

    assert manual["invoiceNumber"] == "MANUAL-7"
    assert auto["invoiceNumber"] == "00001"
    with app.app_context():
        user = db.session.execute(db.select(User).filter_by(email="owner@example.com")).scalar_one()
        assert user.invoice_number == "00002"


def test_sequence_follows_profile_invoice_number(client, owner, api):
    resp = client.put(
        "/api/auth/profile",
        json={"firstName": "Olga", "lastName": "Owner", "invoiceNumber": "INV-0099"},
        headers=owner,
    )
    assert resp.status_code == 200

    cid = api.customer(owner)
    numbers = [api.project(owner, cid, name=f"P{i}")["invoiceNumber"] for i in range(2)]
    assert numbers == ["INV-0099", "INV-0100"]


def test_project_validation(client, owner, api):
    cid = api.customer(owner)
    url = f"/api/customers/{cid}/projects"

    assert client.post(url, json={"name": "X", "pricingType": "WEEKLY"}, headers=owner).status_code == 400
    assert client.post(url, json={"name": "X", "hourlyRate": -5}, headers=owner).status_code == 400
    assert client.post(url, json={"name": "X", "fixedPrice": "abc"}, headers=owner).status_code == 400
    assert client.post(url, json={"name": "X", "invoiceDate": "31.12.2025"}, headers=owner).status_code == 400
    assert client.post(url, json={"description": "no name"}, headers=owner).status_code == 400


def test_update_project_switches_pricing(client, owner, api):
    cid = api.customer(owner)
    project = api.project(owner, cid, hourlyRate=80)

    resp = client.put(
        f"/api/customers/{cid}/projects/{project['id']}",
        json={"name": "Renamed", "pricingType": "fixed", "fixedPrice": "1200.50"},
        headers=owner,
    )
    updated = resp.get_json()["project"]

    assert updated["pricingType"] == "FIXED"
    assert updated["fixedPrice"] == 1200.5
    # Inert price stays stored
    assert updated["hourlyRate"] == 80
    assert updated["invoiceNumber"] == project["invoiceNumber"]


def test_task_defaults_and_update(client, owner, api):
    cid = api.customer(owner)
    pid = api.project(owner, cid)["id"]

    task = api.task(owner, cid, pid)
    assert (task["estimatedHours"], task["completed"], task["order"], task["date"]) == (1, False, 0, None)

    resp = client.put(
        f"/api/customers/{cid}/projects/{pid}/tasks/{task['id']}",
        json={"name": "Design v2", "completed": True, "estimatedHours": 2.5, "date": "2026-02-01"},
        headers=owner,
    )
    updated = resp.get_json()["task"]
    assert (updated["name"], updated["completed"], updated["estimatedHours"], updated["date"]) == (
        "Design v2", True, 2.5, "2026-02-01",
    )


def test_list_projects_with_tasks_in_order(client, owner, api):
    cid = api.customer(owner)
    pid = api.project(owner, cid)["id"]
    late = api.task(owner, cid, pid, name="Late", order=5)["id"]
    early = api.task(owner, cid, pid, name="Early", order=1)["id"]
    tie = api.task(owner, cid, pid, name="Tie", order=5)["id"]

    projects = client.get(f"/api/customers/{cid}/projects?includeTasks=true", headers=owner).get_json()["projects"]
    assert [t["id"] for t in projects[0]["tasks"]] == [early, late, tie]


def test_delete_task(client, owner, api):
    cid = api.customer(owner)
    pid = api.project(owner, cid)["id"]
    tid = api.task(owner, cid, pid)["id"]

    resp = client.delete(f"/api/customers/{cid}/projects/{pid}/tasks/{tid}", headers=owner)
    assert resp.get_json()["deleted"] == {"id": tid, "projectId": pid}
    assert api.tasks(owner, cid, pid) == []

    again = client.delete(f"/api/customers/{cid}/projects/{pid}/tasks/{tid}", headers=owner)
    assert again.status_code == 404


def test_non_object_body_is_rejected(client, owner):
    resp = client.post("/api/customers", json=["not", "an", "object"], headers=owner)
    assert resp.status_code == 400


def test_amounts_beyond_stored_precision_are_rejected(client, owner, api):
    cid = api.customer(owner)
    pid = api.project(owner, cid, hourlyRate=100)["id"]
    tasks_url = f"/api/customers/{cid}/projects/{pid}/tasks"

    resp = client.post(tasks_url, json={"name": "Sub-cent", "estimatedHours": 0.125}, headers=owner)
    assert resp.status_code == 400
    assert "estimatedHours" in resp.get_json()["details"]

    task = api.task(owner, cid, pid, estimatedHours="0.25")
    assert task["estimatedHours"] == 0.25
    assert client.put(
        f"{tasks_url}/{task['id']}", json={"name": "Design", "estimatedHours": "1.005"}, headers=owner
    ).status_code == 400
    assert client.post(tasks_url, json={"name": "X", "estimatedHours": 1e9}, headers=owner).status_code == 400
    assert client.post(tasks_url, json={"name": "X", "order": 2**40}, headers=owner).status_code == 400

    projects_url = f"/api/customers/{cid}/projects"
    assert client.post(projects_url, json={"name": "X", "hourlyRate": "10.005"}, headers=owner).status_code == 400
    assert client.post(projects_url, json={"name": "X", "fixedPrice": 1e12}, headers=owner).status_code == 400

    preview = client.post(f"/api/invoices/customers/{cid}/projects/{pid}/preview", headers=owner).get_json()
    assert preview["table"]["subtotal"] == 25.0
