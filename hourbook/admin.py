# hourbook/admin.py
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user
from sqlalchemy import or_

from .errors import NotFoundOrDenied, ValidationError, atomic
from .extensions import db
from .models import ROLE_ADMIN, ROLES, User
from .utils.guards import admin_required
from .utils.parsing import INT_MAX, json_body, optional_bool

admin_bp = Blueprint("admin", __name__)


def _normalize_role(role: str) -> str:
    return (role or "").strip().lower()


# =========================================================
# Users: List / Search / Filter
# =========================================================
@admin_bp.route("/users", methods=["GET"])
@admin_required
def list_users():
    q = (request.args.get("q") or "").strip()
    role = _normalize_role(request.args.get("role") or "")
    status = (request.args.get("status") or "").strip().lower()
    page = request.args.get("page", 1, type=int)
    per_page = min(request.args.get("per_page", 50, type=int), 200)

    qry = User.query

    if q:
        like = f"%{q.lower()}%"
        qry = qry.filter(
            or_(
                db.func.lower(User.email).like(like),
                db.func.lower(User.first_name).like(like),
                db.func.lower(User.last_name).like(like),
                db.func.lower(User.company_name).like(like),
            )
        )

    if role:
        qry = qry.filter(User.role == role)

    if status in ("active", "inactive"):
        qry = qry.filter(User.active.is_(status == "active"))

    pagination = qry.order_by(User.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )

    return jsonify({
        "users": [u.admin_dict() for u in pagination.items],
        "page": pagination.page,
        "perPage": pagination.per_page,
        "total": pagination.total,
        "pages": pagination.pages,
    })


# =========================================================
# Users: Role / Activation
# =========================================================
@admin_bp.route("/users/<int:user_id>", methods=["PUT"])
@admin_required
def update_user(user_id: int):
    data = json_body()

    role = data.get("role")
    if role is not None:
        role = _normalize_role(role) if isinstance(role, str) else ""
        if role not in ROLES:
            message = f"role must be one of: {', '.join(sorted(ROLES))}"
            raise ValidationError(message, details={"role": message})
    active = optional_bool(data, "active", None)

    if role is None and active is None:
        raise ValidationError("No fields to update")

    if user_id == current_user.id and role is not None and role != ROLE_ADMIN:
        raise ValidationError(
            "Cannot remove your own admin role",
            details={"role": "Cannot remove your own admin role"},
        )

    user = db.session.get(User, user_id) if 0 < user_id <= INT_MAX else None
    if user is None:
        raise NotFoundOrDenied("User not found")

    with atomic(db.session, "Update user"):
        if role is not None:
            user.role = role
        if active is not None:
            user.active = active

    current_app.logger.info(
        "Admin %s updated user %s: role=%s active=%s",
        current_user.id, user.id, user.role, user.active,
    )
    return jsonify({"user": user.admin_dict()})
