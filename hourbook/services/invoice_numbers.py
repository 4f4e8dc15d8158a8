# hourbook/services/invoice_numbers.py
"""
Per-user invoice number sequence.

The sequence is a free-form string ("00005", "INV-0099", "2024/07-A").
Incrementing keeps everything around the last run of digits and keeps the
run's zero padding; the run grows when the increment overflows it.
"""

from __future__ import annotations

import re

from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..errors import NotFoundOrDenied, StorageError
from ..models import User, utcnow_naive

SEED = "00001"
NO_DIGITS_SUFFIX = "-001"

_LAST_DIGIT_RUN = re.compile(r"^(.*?)(\d+)(\D*)$", re.DOTALL)


def increment_invoice_number(current: str | None) -> str:
    if not current or not current.strip():
        return SEED

    match = _LAST_DIGIT_RUN.match(current)
    if not match:
        return current + NO_DIGITS_SUFFIX

    prefix, digits, suffix = match.groups()
    return f"{prefix}{int(digits) + 1:0{len(digits)}d}{suffix}"


def allocate_invoice_number(session: Session, user_id: int, max_retries: int | None = None) -> str:
    """
    Issue the user's current invoice number and advance the sequence.

    Compare-and-swap: the UPDATE only applies if the stored value is still
    the one we read, so two concurrent allocations can never hand out the
    same number. Runs in the caller's transaction; the caller commits.

    A blank sequence is never issued as-is: the project gets SEED ("00001")
    and the user's sequence moves on to "00002".
    """
    if max_retries is None:
        max_retries = current_app.config.get("INVOICE_NUMBER_MAX_RETRIES", 5)

    for _ in range(max_retries):
        current = session.execute(
            select(User.invoice_number).where(User.id == user_id)
        ).scalar_one_or_none()
        if current is None:
            raise NotFoundOrDenied("User not found")

        issued = current if current.strip() else SEED
        following = increment_invoice_number(issued)

        result = session.execute(
            update(User)
            .where(User.id == user_id, User.invoice_number == current)
            .values(invoice_number=following, updated_at=utcnow_naive())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return issued

        current_app.logger.info("Invoice number for user %s changed concurrently; retrying", user_id)

    current_app.logger.error("Could not allocate invoice number for user %s after %s attempts", user_id, max_retries)
    raise StorageError()
