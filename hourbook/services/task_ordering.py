# hourbook/services/task_ordering.py
from __future__ import annotations

from typing import Any

from flask import current_app
from sqlalchemy import update

from ..errors import ValidationError, atomic
from ..models import Task, utcnow_naive
from ..utils.parsing import INT_MAX, INT_MIN
from .entity_store import EntityStore


def _parse_items(items: Any) -> list[tuple[int, int]]:
    if not isinstance(items, list):
        raise ValidationError(
            "Order must be an array of task objects.",
            details={"order": "Expected a list of {id, order} objects"},
        )

    pairs: list[tuple[int, int]] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError("Order entries must be objects.", details={f"order[{index}]": "Expected an object"})
        task_id, rank = item.get("id"), item.get("order")
        if isinstance(task_id, bool) or isinstance(rank, bool) or not isinstance(task_id, int) or not isinstance(rank, int):
            raise ValidationError(
                "Order entries need integer id and order.",
                details={f"order[{index}]": "id and order must be integers"},
            )
        if not INT_MIN <= rank <= INT_MAX:
            raise ValidationError(
                "Order value is out of range.",
                details={f"order[{index}]": "order is out of range"},
            )
        pairs.append((task_id, rank))
    return pairs


def reorder_tasks(store: EntityStore, customer_id: int, project_id: int, items: Any) -> dict:
    """
    Apply [{id, order}, ...] to the project's tasks.

    The project is checked once; each task update is then scoped by
    (task id, project id, user id). Ids that do not belong to this
    project/user are skipped and reported rather than failing the batch.
    """
    pairs = _parse_items(items)
    store.guard.project(customer_id, project_id)

    updated: list[int] = []
    skipped: list[int] = []
    now = utcnow_naive()

    with atomic(store.session, "Reorder tasks"):
        for task_id, rank in pairs:
            if not 0 < task_id <= INT_MAX:
                skipped.append(task_id)
                continue
            result = store.session.execute(
                update(Task)
                .where(
                    Task.id == task_id,
                    Task.project_id == project_id,
                    Task.user_id == store.user_id,
                )
                .values(order=rank, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            (updated if result.rowcount else skipped).append(task_id)

    if skipped:
        current_app.logger.warning(
            "Task reorder for project %s skipped ids not in project: %s", project_id, skipped
        )

    return {"success": True, "updated": updated, "skipped": skipped}
