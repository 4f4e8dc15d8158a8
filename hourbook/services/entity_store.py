# hourbook/services/entity_store.py
"""
Owner-scoped CRUD for customers, projects and tasks.

An EntityStore is bound to one authenticated user. Reads filter on that
user at every level of the chain, writes go through the OwnershipGuard
first and then issue UPDATE/DELETE statements that repeat the full
ownership predicate, so a row that changed hands or vanished in between is
never touched. Records are returned as JSON-ready dicts.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..errors import NotFoundOrDenied, ValidationError, atomic
from ..models import TASK_ORDERING, Customer, PricingType, Project, Task, utcnow_naive
from ..utils.parsing import (
    MAX_HOURS,
    MISSING,
    is_missing,
    optional_bool,
    optional_date,
    optional_decimal,
    optional_int,
    optional_text,
    require_text,
)
from .invoice_numbers import allocate_invoice_number
from .ownership import OwnershipGuard

# JSON key -> column
CUSTOMER_TEXT_FIELDS = {
    "contactPerson": "contact_person",
    "billingStreet": "billing_street",
    "billingNumber": "billing_number",
    "billingPostalCode": "billing_postal_code",
    "billingCity": "billing_city",
    "billingState": "billing_state",
    "billingCountry": "billing_country",
    "email": "email",
    "phone": "phone",
    "vatNumber": "vat_number",
}


def parse_pricing_type(data: Mapping[str, Any], default: Any) -> Any:
    if "pricingType" not in data:
        return default
    raw = data.get("pricingType")
    try:
        return PricingType((raw or "").strip().upper())
    except (AttributeError, ValueError):
        message = "pricingType must be HOURLY or FIXED"
        raise ValidationError(message, details={"pricingType": message})


class EntityStore:
    def __init__(self, session: Session, user_id: int):
        self.session = session
        self.user_id = user_id
        self.guard = OwnershipGuard(session, user_id)

    # =========================================================
    # Internals
    # =========================================================
    def _scoped_update(self, model, criteria: list, values: dict) -> None:
        values["updated_at"] = utcnow_naive()
        result = self.session.execute(
            update(model)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Deleted (or re-owned) between the guard check and the write
            raise NotFoundOrDenied(f"{model.__name__} not found or access denied")

    def _project_tasks(self, project_ids: list[int]) -> dict[int, list[dict]]:
        grouped: dict[int, list[dict]] = {pid: [] for pid in project_ids}
        if not project_ids:
            return grouped
        tasks = self.session.execute(
            select(Task)
            .where(Task.project_id.in_(project_ids), Task.user_id == self.user_id)
            .order_by(*TASK_ORDERING)
        ).scalars()
        for task in tasks:
            grouped[task.project_id].append(task.to_dict())
        return grouped

    # =========================================================
    # Customers
    # =========================================================
    def list_customers(self, include_projects: bool = False) -> list[dict]:
        customers = self.session.execute(
            select(Customer).where(Customer.user_id == self.user_id).order_by(Customer.id.asc())
        ).scalars().all()
        records = [c.to_dict() for c in customers]

        if include_projects and records:
            projects = self.session.execute(
                select(Project)
                .where(
                    Project.customer_id.in_([c.id for c in customers]),
                    Project.user_id == self.user_id,
                )
                .order_by(Project.id.asc())
            ).scalars()
            by_customer: dict[int, list[dict]] = {c.id: [] for c in customers}
            for project in projects:
                by_customer[project.customer_id].append(project.to_dict())
            for record in records:
                record["projects"] = by_customer[record["id"]]

        return records

    def get_customer(self, customer_id: int) -> dict:
        return self.guard.customer(customer_id).to_dict()

    def create_customer(self, data: Mapping[str, Any]) -> dict:
        name = require_text(data, "name", "Customer name")
        fields = {col: optional_text(data, key, "") for key, col in CUSTOMER_TEXT_FIELDS.items()}

        customer = Customer(user_id=self.user_id, name=name, **fields)
        with atomic(self.session, "Create customer"):
            self.session.add(customer)
        return customer.to_dict()

    def update_customer(self, customer_id: int, data: Mapping[str, Any]) -> dict:
        self.guard.customer(customer_id)

        values: dict[str, Any] = {"name": require_text(data, "name", "Customer name")}
        for key, col in CUSTOMER_TEXT_FIELDS.items():
            value = optional_text(data, key)
            if not is_missing(value):
                values[col] = value

        with atomic(self.session, "Update customer"):
            self._scoped_update(
                Customer,
                [Customer.id == customer_id, Customer.user_id == self.user_id],
                values,
            )
        return self.guard.customer(customer_id).to_dict()

    def delete_customer(self, customer_id: int) -> dict:
        self.guard.customer(customer_id)

        owned_projects = (
            select(Project.id)
            .where(Project.customer_id == customer_id, Project.user_id == self.user_id)
            .order_by(Project.id)
        )

        with atomic(self.session, "Delete customer"):
            project_ids = list(self.session.execute(owned_projects).scalars())
            task_ids = list(self.session.execute(
                select(Task.id)
                .where(Task.project_id.in_(owned_projects), Task.user_id == self.user_id)
                .order_by(Task.id)
            ).scalars())

            # Bottom-up: tasks, projects, customer
            self.session.execute(
                delete(Task)
                .where(Task.project_id.in_(owned_projects), Task.user_id == self.user_id)
                .execution_options(synchronize_session=False)
            )
            self.session.execute(
                delete(Project)
                .where(Project.customer_id == customer_id, Project.user_id == self.user_id)
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(
                delete(Customer)
                .where(Customer.id == customer_id, Customer.user_id == self.user_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundOrDenied("Customer not found or access denied")

        return {"id": customer_id, "projectIds": project_ids, "taskIds": task_ids}

    # =========================================================
    # Projects
    # =========================================================
    def list_projects(self, customer_id: int, include_tasks: bool = False) -> list[dict]:
        self.guard.customer(customer_id)

        projects = self.session.execute(
            select(Project)
            .where(Project.customer_id == customer_id, Project.user_id == self.user_id)
            .order_by(Project.id.asc())
        ).scalars().all()
        records = [p.to_dict() for p in projects]

        if include_tasks and records:
            tasks = self._project_tasks([p.id for p in projects])
            for record in records:
                record["tasks"] = tasks[record["id"]]

        return records

    def get_project(self, customer_id: int, project_id: int) -> dict:
        return self.guard.project(customer_id, project_id).to_dict()

    def create_project(self, customer_id: int, data: Mapping[str, Any]) -> dict:
        self.guard.customer(customer_id)

        name = require_text(data, "name", "Project name")
        pricing_type = parse_pricing_type(data, PricingType.HOURLY)
        hourly_rate = optional_decimal(data, "hourlyRate", Decimal("0"))
        fixed_price = optional_decimal(data, "fixedPrice", Decimal("0"))
        description = optional_text(data, "description", "")
        invoice_date = optional_date(data, "invoiceDate", None)
        explicit_number = optional_text(data, "invoiceNumber", "")

        with atomic(self.session, "Create project"):
            # Explicit numbers bypass the sequence and do not consume a slot
            invoice_number = explicit_number or allocate_invoice_number(self.session, self.user_id)
            project = Project(
                customer_id=customer_id,
                user_id=self.user_id,
                name=name,
                description=description,
                pricing_type=pricing_type,
                hourly_rate=hourly_rate,
                fixed_price=fixed_price,
                invoice_number=invoice_number,
                invoice_date=invoice_date,
            )
            self.session.add(project)
        return project.to_dict()

    def update_project(self, customer_id: int, project_id: int, data: Mapping[str, Any]) -> dict:
        self.guard.project(customer_id, project_id)

        values: dict[str, Any] = {"name": require_text(data, "name", "Project name")}
        parsed = {
            "description": optional_text(data, "description"),
            "pricing_type": parse_pricing_type(data, MISSING),
            "hourly_rate": optional_decimal(data, "hourlyRate"),
            "fixed_price": optional_decimal(data, "fixedPrice"),
            "invoice_number": optional_text(data, "invoiceNumber"),
            "invoice_date": optional_date(data, "invoiceDate"),
        }
        values.update({col: v for col, v in parsed.items() if not is_missing(v)})

        with atomic(self.session, "Update project"):
            self._scoped_update(
                Project,
                [
                    Project.id == project_id,
                    Project.customer_id == customer_id,
                    Project.user_id == self.user_id,
                ],
                values,
            )
        return self.guard.project(customer_id, project_id).to_dict()

    def delete_project(self, customer_id: int, project_id: int) -> dict:
        self.guard.project(customer_id, project_id)

        with atomic(self.session, "Delete project"):
            task_ids = list(self.session.execute(
                select(Task.id)
                .where(Task.project_id == project_id, Task.user_id == self.user_id)
                .order_by(Task.id)
            ).scalars())
            self.session.execute(
                delete(Task)
                .where(Task.project_id == project_id, Task.user_id == self.user_id)
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(
                delete(Project)
                .where(
                    Project.id == project_id,
                    Project.customer_id == customer_id,
                    Project.user_id == self.user_id,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundOrDenied("Project not found or access denied")

        return {"id": project_id, "customerId": customer_id, "taskIds": task_ids}

    # =========================================================
    # Tasks
    # =========================================================
    def list_tasks(self, customer_id: int, project_id: int) -> list[dict]:
        self.guard.project(customer_id, project_id)
        return self._project_tasks([project_id])[project_id]

    def get_task(self, customer_id: int, project_id: int, task_id: int) -> dict:
        return self.guard.task(customer_id, project_id, task_id).to_dict()

    def create_task(self, customer_id: int, project_id: int, data: Mapping[str, Any]) -> dict:
        self.guard.project(customer_id, project_id)

        task = Task(
            project_id=project_id,
            user_id=self.user_id,
            name=require_text(data, "name", "Task name"),
            estimated_hours=optional_decimal(data, "estimatedHours", Decimal("1"), maximum=MAX_HOURS),
            completed=optional_bool(data, "completed", False),
            order=optional_int(data, "order", 0),
            date=optional_date(data, "date", None),
        )
        with atomic(self.session, "Create task"):
            self.session.add(task)
        return task.to_dict()

    def update_task(self, customer_id: int, project_id: int, task_id: int, data: Mapping[str, Any]) -> dict:
        self.guard.task(customer_id, project_id, task_id)

        values: dict[str, Any] = {"name": require_text(data, "name", "Task name")}
        parsed = {
            "estimated_hours": optional_decimal(data, "estimatedHours", maximum=MAX_HOURS),
            "completed": optional_bool(data, "completed"),
            "order": optional_int(data, "order"),
            "date": optional_date(data, "date"),
        }
        values.update({col: v for col, v in parsed.items() if not is_missing(v)})

        with atomic(self.session, "Update task"):
            self._scoped_update(
                Task,
                [
                    Task.id == task_id,
                    Task.project_id == project_id,
                    Task.user_id == self.user_id,
                ],
                values,
            )
        return self.guard.task(customer_id, project_id, task_id).to_dict()

    def delete_task(self, customer_id: int, project_id: int, task_id: int) -> dict:
        self.guard.task(customer_id, project_id, task_id)

        with atomic(self.session, "Delete task"):
            result = self.session.execute(
                delete(Task)
                .where(
                    Task.id == task_id,
                    Task.project_id == project_id,
                    Task.user_id == self.user_id,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundOrDenied("Task not found or access denied")

        return {"id": task_id, "projectId": project_id}
