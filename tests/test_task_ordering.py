# tests/test_task_ordering.py
from __future__ import annotations

import pytest


def _reorder(client, headers, cid, pid, order):
    return client.patch(
        f"/api/customers/{cid}/projects/{pid}/tasks/order",
        json={"order": order},
        headers=headers,
    )


@pytest.fixture()
def project_with_tasks(owner, api):
    cid = api.customer(owner)
    pid = api.project(owner, cid)["id"]
    ids = [api.task(owner, cid, pid, name=f"Task {i}")["id"] for i in range(3)]
    return cid, pid, ids


def test_reorder_changes_listing(client, owner, api, project_with_tasks):
    cid, pid, (a, b, c) = project_with_tasks

    resp = _reorder(client, owner, cid, pid, [{"id": a, "order": 2}, {"id": c, "order": 1}])

    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "updated": [a, c], "skipped": []}
    # b keeps order 0; c (1) now precedes a (2)
    assert [t["id"] for t in api.tasks(owner, cid, pid)] == [b, c, a]


def test_reorder_skips_and_reports_foreign_ids(client, owner, intruder, api, project_with_tasks):
    cid, pid, (a, b, c) = project_with_tasks
    other_pid = api.project(owner, cid, name="Other")["id"]
    elsewhere = api.task(owner, cid, other_pid)["id"]

    foreign_cid = api.customer(intruder)
    foreign_pid = api.project(intruder, foreign_cid)["id"]
    foreign = api.task(intruder, foreign_cid, foreign_pid)["id"]

    resp = _reorder(
        client, owner, cid, pid,
        [{"id": foreign, "order": 0}, {"id": c, "order": -1}, {"id": elsewhere, "order": 0}, {"id": 99999, "order": 0}],
    )

    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "updated": [c], "skipped": [foreign, elsewhere, 99999]}
    assert [t["id"] for t in api.tasks(owner, cid, pid)] == [c, a, b]

    # Skipped tasks were not touched
    assert api.tasks(intruder, foreign_cid, foreign_pid)[0]["order"] == 0
    assert api.tasks(owner, cid, other_pid)[0]["order"] == 0


@pytest.mark.parametrize(
    "payload",
    [
        None,
        "1,2,3",
        {"id": 1, "order": 2},
        [{"id": 1}],
        [{"id": "1", "order": 2}],
        [{"id": 1, "order": True}],
        [7],
        [{"id": 1, "order": 2**40}],
        [{"id": 1, "order": -(2**40)}],
    ],
)
def test_reorder_rejects_malformed_body(client, owner, project_with_tasks, payload):
    cid, pid, _ = project_with_tasks

    resp = _reorder(client, owner, cid, pid, payload)

    assert resp.status_code == 400
    assert resp.get_json()["code"] == "validation_error"


def test_reorder_with_empty_list(client, owner, project_with_tasks):
    cid, pid, _ = project_with_tasks
    assert _reorder(client, owner, cid, pid, []).get_json() == {"success": True, "updated": [], "skipped": []}


def test_reorder_skips_ids_beyond_column_range(client, owner, project_with_tasks):
    cid, pid, (a, _, _) = project_with_tasks

    resp = _reorder(client, owner, cid, pid, [{"id": 2**70, "order": 1}, {"id": a, "order": 5}])

    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "updated": [a], "skipped": [2**70]}
