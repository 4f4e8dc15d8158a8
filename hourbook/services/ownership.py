# hourbook/services/ownership.py
"""
Ownership checks for the customer -> project -> task chain.

Every lookup filters on the full chain of parent ids and on user_id at each
level; the denormalized user_id on projects/tasks is never trusted alone.
A missing row and a row owned by someone else raise the same
NotFoundOrDenied so callers cannot discover other users' ids.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import NotFoundOrDenied
from ..models import Customer, Project, Task
from ..utils.parsing import INT_MAX


class OwnershipGuard:
    def __init__(self, session: Session, user_id: int):
        self.session = session
        self.user_id = user_id

    def _one(self, stmt, label: str, *ids: int):
        if not all(0 < i <= INT_MAX for i in ids):
            raise NotFoundOrDenied(f"{label} not found or access denied")
        row = self.session.execute(stmt).scalars().first()
        if row is None:
            raise NotFoundOrDenied(f"{label} not found or access denied")
        return row

    def customer(self, customer_id: int) -> Customer:
        stmt = select(Customer).where(
            Customer.id == customer_id,
            Customer.user_id == self.user_id,
        )
        return self._one(stmt, "Customer", customer_id)

    def project(self, customer_id: int, project_id: int) -> Project:
        stmt = (
            select(Project)
            .join(Customer, Customer.id == Project.customer_id)
            .where(
                Project.id == project_id,
                Project.customer_id == customer_id,
                Project.user_id == self.user_id,
                Customer.user_id == self.user_id,
            )
        )
        return self._one(stmt, "Project", customer_id, project_id)

    def task(self, customer_id: int, project_id: int, task_id: int) -> Task:
        stmt = (
            select(Task)
            .join(Project, Project.id == Task.project_id)
            .join(Customer, Customer.id == Project.customer_id)
            .where(
                Task.id == task_id,
                Task.project_id == project_id,
                Task.user_id == self.user_id,
                Project.customer_id == customer_id,
                Project.user_id == self.user_id,
                Customer.user_id == self.user_id,
            )
        )
        return self._one(stmt, "Task", customer_id, project_id, task_id)
