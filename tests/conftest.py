"""Pytest fixtures for hourbook: app on in-memory SQLite, test client, user/login helpers."""
from __future__ import annotations

import pytest

from hourbook import create_app
from hourbook.extensions import db
from hourbook.models import ROLE_USER, User
from hourbook.settings import TestConfig
from hourbook.utils.passwords import hash_password

PASSWORD = "secret123"


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
    # Requests push their own app context, so Flask-Login's per-request user
    # cache never leaks between calls made with different tokens.
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    def _make(email, password=PASSWORD, active=True, role=ROLE_USER, **fields) -> int:
        with app.app_context():
            user = User(
                email=email,
                password_hash=hash_password(password),
                first_name=fields.pop("first_name", "Test"),
                last_name=fields.pop("last_name", "User"),
                active=active,
                role=role,
                **fields,
            )
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make


@pytest.fixture()
def login(client):
    def _login(email, password=PASSWORD) -> dict:
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return {"Authorization": f"Bearer {resp.get_json()['token']}"}

    return _login


@pytest.fixture()
def owner(make_user, login):
    make_user("owner@example.com")
    return login("owner@example.com")


@pytest.fixture()
def intruder(make_user, login):
    make_user("intruder@example.com")
    return login("intruder@example.com")


class Api:
    """Thin helpers for building the customer -> project -> task chain over HTTP."""

    def __init__(self, client):
        self.client = client

    def customer(self, headers, name="Acme GmbH", **fields) -> int:
        resp = self.client.post("/api/customers", json={"name": name, **fields}, headers=headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["customer"]["id"]

    def project(self, headers, customer_id, name="Website relaunch", **fields) -> dict:
        resp = self.client.post(
            f"/api/customers/{customer_id}/projects",
            json={"name": name, **fields},
            headers=headers,
        )
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["project"]

    def task(self, headers, customer_id, project_id, name="Design", **fields) -> dict:
        resp = self.client.post(
            f"/api/customers/{customer_id}/projects/{project_id}/tasks",
            json={"name": name, **fields},
            headers=headers,
        )
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["task"]

    def tasks(self, headers, customer_id, project_id) -> list[dict]:
        resp = self.client.get(f"/api/customers/{customer_id}/projects/{project_id}/tasks", headers=headers)
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()["tasks"]


@pytest.fixture()
def api(client):
    return Api(client)
