# hourbook/routes.py
from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required
from sqlalchemy import text

from .extensions import db
from .services.entity_store import EntityStore
from .services.task_ordering import reorder_tasks
from .utils.parsing import json_body, query_flag

main = Blueprint("main", __name__)


def _store() -> EntityStore:
    return EntityStore(db.session, current_user.id)


# =========================================================
# Health
# =========================================================
@main.route("/health", methods=["GET"])
def health():
    db.session.execute(text("SELECT 1"))
    return jsonify({"status": "ok"})


# =========================================================
# Customers
# =========================================================
@main.route("/customers", methods=["GET"])
@login_required
def list_customers():
    customers = _store().list_customers(include_projects=query_flag("includeProjects"))
    return jsonify({"customers": customers})


@main.route("/customers", methods=["POST"])
@login_required
def create_customer():
    customer = _store().create_customer(json_body())
    return jsonify({"message": "Customer created successfully", "customer": customer}), 201


@main.route("/customers/<int:customer_id>", methods=["GET"])
@login_required
def get_customer(customer_id: int):
    return jsonify({"customer": _store().get_customer(customer_id)})


@main.route("/customers/<int:customer_id>", methods=["PUT"])
@login_required
def update_customer(customer_id: int):
    customer = _store().update_customer(customer_id, json_body())
    return jsonify({"message": "Customer updated successfully", "customer": customer})


@main.route("/customers/<int:customer_id>", methods=["DELETE"])
@login_required
def delete_customer(customer_id: int):
    deleted = _store().delete_customer(customer_id)
    return jsonify({"message": "Customer deleted successfully", "deleted": deleted})


# =========================================================
# Projects
# =========================================================
@main.route("/customers/<int:customer_id>/projects", methods=["GET"])
@login_required
def list_projects(customer_id: int):
    projects = _store().list_projects(customer_id, include_tasks=query_flag("includeTasks"))
    return jsonify({"projects": projects})


@main.route("/customers/<int:customer_id>/projects", methods=["POST"])
@login_required
def create_project(customer_id: int):
    project = _store().create_project(customer_id, json_body())
    return jsonify({"message": "Project created successfully", "project": project}), 201


@main.route("/customers/<int:customer_id>/projects/<int:project_id>", methods=["GET"])
@login_required
def get_project(customer_id: int, project_id: int):
    return jsonify({"project": _store().get_project(customer_id, project_id)})


@main.route("/customers/<int:customer_id>/projects/<int:project_id>", methods=["PUT"])
@login_required
def update_project(customer_id: int, project_id: int):
    project = _store().update_project(customer_id, project_id, json_body())
    return jsonify({"message": "Project updated successfully", "project": project})


@main.route("/customers/<int:customer_id>/projects/<int:project_id>", methods=["DELETE"])
@login_required
def delete_project(customer_id: int, project_id: int):
    deleted = _store().delete_project(customer_id, project_id)
    return jsonify({"message": "Project deleted successfully", "deleted": deleted})


# =========================================================
# Tasks
# =========================================================
@main.route("/customers/<int:customer_id>/projects/<int:project_id>/tasks", methods=["GET"])
@login_required
def list_tasks(customer_id: int, project_id: int):
    return jsonify({"tasks": _store().list_tasks(customer_id, project_id)})


@main.route("/customers/<int:customer_id>/projects/<int:project_id>/tasks", methods=["POST"])
@login_required
def create_task(customer_id: int, project_id: int):
    task = _store().create_task(customer_id, project_id, json_body())
    return jsonify({"message": "Task created successfully", "task": task}), 201


# "order" never matches the int converter, so this cannot shadow /tasks/<task_id>
@main.route("/customers/<int:customer_id>/projects/<int:project_id>/tasks/order", methods=["PATCH"])
@login_required
def reorder_project_tasks(customer_id: int, project_id: int):
    # {"order": [{"id": ..., "order": ...}, ...]}
    result = reorder_tasks(_store(), customer_id, project_id, json_body().get("order"))
    return jsonify(result)


@main.route("/customers/<int:customer_id>/projects/<int:project_id>/tasks/<int:task_id>", methods=["GET"])
@login_required
def get_task(customer_id: int, project_id: int, task_id: int):
    return jsonify({"task": _store().get_task(customer_id, project_id, task_id)})


@main.route("/customers/<int:customer_id>/projects/<int:project_id>/tasks/<int:task_id>", methods=["PUT"])
@login_required
def update_task(customer_id: int, project_id: int, task_id: int):
    task = _store().update_task(customer_id, project_id, task_id, json_body())
    return jsonify({"message": "Task updated successfully", "task": task})


@main.route("/customers/<int:customer_id>/projects/<int:project_id>/tasks/<int:task_id>", methods=["DELETE"])
@login_required
def delete_task(customer_id: int, project_id: int, task_id: int):
    deleted = _store().delete_task(customer_id, project_id, task_id)
    return jsonify({"message": "Task deleted successfully", "deleted": deleted})
