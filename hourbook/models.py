# hourbook/models.py
from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal

from flask_login import UserMixin
from sqlalchemy import Enum as SAEnum

from .extensions import db


# Naive UTC everywhere; the columns are "timestamp without time zone".
def utcnow_naive() -> datetime:
    return datetime.utcnow()


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _num(value: Decimal | None) -> float:
    return float(value) if value is not None else 0.0


ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = {ROLE_USER, ROLE_ADMIN}


# =========================================================
# User (authentication + billing profile)
# =========================================================
class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    # Identity (always stored lowercase)
    email = db.Column(db.String(255), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    locale = db.Column(db.String(8), nullable=False, default="en")

    # Company / issuer profile printed in the invoice footer
    company_name = db.Column(db.String(200), nullable=False, default="")
    company_street = db.Column(db.String(200), nullable=False, default="")
    company_number = db.Column(db.String(30), nullable=False, default="")
    company_postal_code = db.Column(db.String(30), nullable=False, default="")
    company_city = db.Column(db.String(120), nullable=False, default="")
    company_state = db.Column(db.String(120), nullable=False, default="")
    company_country = db.Column(db.String(120), nullable=False, default="")
    company_phone = db.Column(db.String(60), nullable=False, default="")
    company_vat_id = db.Column(db.String(60), nullable=False, default="")

    # Bank details. IBAN never stored in plaintext when a key is configured.
    bank_name = db.Column(db.String(160), nullable=False, default="")
    bank_bic = db.Column(db.String(30), nullable=False, default="")
    bank_iban_cipher = db.Column(db.Text, nullable=False, default="")
    bank_iban_iv = db.Column(db.String(64), nullable=False, default="")
    bank_iban_tag = db.Column(db.String(64), nullable=False, default="")

    invoice_notes = db.Column(db.Text, nullable=False, default="")
    vat_percent = db.Column(db.Numeric(5, 2), nullable=False, default=Decimal("0"))

    # Running invoice sequence; advanced by the allocator
    invoice_number = db.Column(db.String(60), nullable=False, default="")

    role = db.Column(db.String(20), nullable=False, default=ROLE_USER)
    active = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.CheckConstraint("role in ('user','admin')", name="ck_users_role"),
        db.CheckConstraint("vat_percent >= 0", name="ck_users_vat_percent"),
    )

    @property
    def is_active(self) -> bool:
        return bool(self.active)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def summary_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
            "active": bool(self.active),
        }

    def admin_dict(self) -> dict:
        data = self.summary_dict()
        data["createdAt"] = _iso(self.created_at)
        data["updatedAt"] = _iso(self.updated_at)
        return data

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"


# =========================================================
# Customer
# =========================================================
class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = db.Column(db.String(200), nullable=False)
    contact_person = db.Column(db.String(160), nullable=False, default="")

    billing_street = db.Column(db.String(200), nullable=False, default="")
    billing_number = db.Column(db.String(30), nullable=False, default="")
    billing_postal_code = db.Column(db.String(30), nullable=False, default="")
    billing_city = db.Column(db.String(120), nullable=False, default="")
    billing_state = db.Column(db.String(120), nullable=False, default="")
    billing_country = db.Column(db.String(120), nullable=False, default="")

    email = db.Column(db.String(255), nullable=False, default="")
    phone = db.Column(db.String(60), nullable=False, default="")
    vat_number = db.Column(db.String(60), nullable=False, default="")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "contactPerson": self.contact_person,
            "billingStreet": self.billing_street,
            "billingNumber": self.billing_number,
            "billingPostalCode": self.billing_postal_code,
            "billingCity": self.billing_city,
            "billingState": self.billing_state,
            "billingCountry": self.billing_country,
            "email": self.email,
            "phone": self.phone,
            "vatNumber": self.vat_number,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Customer {self.id} {self.name}>"


# =========================================================
# Pricing Type (Enum)
# =========================================================
class PricingType(enum.Enum):
    HOURLY = "HOURLY"
    FIXED = "FIXED"


# =========================================================
# Project
# =========================================================
class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(
        db.Integer,
        db.ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Denormalized owner; always equal to the customer's user_id
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")

    pricing_type = db.Column(
        SAEnum(
            PricingType,
            name="pricing_type",
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=PricingType.HOURLY,
    )
    hourly_rate = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0"))
    fixed_price = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0"))

    # Snapshot of the user's sequence, frozen per project
    invoice_number = db.Column(db.String(60), nullable=False, default="")
    invoice_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    __table_args__ = (
        db.Index("ix_projects_user_customer", "user_id", "customer_id"),
    )

    @property
    def is_fixed(self) -> bool:
        return self.pricing_type == PricingType.FIXED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customerId": self.customer_id,
            "userId": self.user_id,
            "name": self.name,
            "description": self.description,
            "pricingType": self.pricing_type.value if self.pricing_type else PricingType.HOURLY.value,
            "hourlyRate": _num(self.hourly_rate),
            "fixedPrice": _num(self.fixed_price),
            "invoiceNumber": self.invoice_number,
            "invoiceDate": _iso(self.invoice_date),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Project {self.id} {self.name} {self.pricing_type}>"


# =========================================================
# Task
# =========================================================
class Task(db.Model):
    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Denormalized owner; always equal to the project's user_id
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = db.Column(db.String(255), nullable=False)
    estimated_hours = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("1"))
    completed = db.Column(db.Boolean, nullable=False, default=False)
    # "order" is reserved in SQL
    order = db.Column("order_num", db.Integer, nullable=False, default=0)
    date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    __table_args__ = (
        db.Index("ix_tasks_project_order", "project_id", "order_num", "id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "userId": self.user_id,
            "name": self.name,
            "estimatedHours": _num(self.estimated_hours),
            "completed": bool(self.completed),
            "order": self.order,
            "date": _iso(self.date),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Task {self.id} {self.name} #{self.order}>"


TASK_ORDERING = (Task.order.asc(), Task.id.asc())
