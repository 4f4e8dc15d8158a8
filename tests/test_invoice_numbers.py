# tests/test_invoice_numbers.py
from __future__ import annotations

import pytest

from hourbook.errors import NotFoundOrDenied, StorageError
from hourbook.extensions import db
from hourbook.models import User
from hourbook.services.invoice_numbers import allocate_invoice_number, increment_invoice_number


@pytest.mark.parametrize(
    "current, expected",
    [
        ("", "00001"),
        ("   ", "00001"),
        (None, "00001"),
        ("00005", "00006"),
        ("INV-0099", "INV-0100"),
        ("INV-9999", "INV-10000"),
        ("ABC", "ABC-001"),
        ("2024/07-A", "2024/08-A"),
        ("R12-final", "R13-final"),
    ],
)
def test_increment_invoice_number(current, expected):
    assert increment_invoice_number(current) == expected


def test_allocate_issues_current_value_and_advances(app, make_user):
    user_id = make_user("seq@example.com", invoice_number="INV-0099")

    with app.app_context():
        first = allocate_invoice_number(db.session, user_id)
        second = allocate_invoice_number(db.session, user_id)
        db.session.commit()

        assert (first, second) == ("INV-0099", "INV-0100")
        assert db.session.get(User, user_id).invoice_number == "INV-0101"


def test_allocate_from_blank_sequence_issues_seed(app, make_user):
    user_id = make_user("blank@example.com")

    with app.app_context():
        assert allocate_invoice_number(db.session, user_id) == "00001"
        db.session.commit()
        assert db.session.get(User, user_id).invoice_number == "00002"


def test_allocate_unknown_user(app):
    with app.app_context():
        with pytest.raises(NotFoundOrDenied):
            allocate_invoice_number(db.session, 4242)


def test_allocate_gives_up_when_sequence_keeps_moving(app, make_user, monkeypatch):
    user_id = make_user("busy@example.com", invoice_number="00010")

    with app.app_context():
        real_execute = db.session.execute

        def racing_execute(stmt, *args, **kwargs):
            # Another writer bumps the sequence between every read and write
            if getattr(stmt, "is_update", False) and stmt.table.name == "users":
                real_execute(
                    User.__table__.update()
                    .where(User.__table__.c.id == user_id)
                    .values(invoice_number=User.__table__.c.invoice_number + "x")
                )
            return real_execute(stmt, *args, **kwargs)

        monkeypatch.setattr(db.session, "execute", racing_execute)
        with pytest.raises(StorageError):
            allocate_invoice_number(db.session, user_id, max_retries=3)


def test_allocate_retries_after_one_concurrent_bump(app, make_user, monkeypatch):
    user_id = make_user("shared@example.com", invoice_number="00010")

    with app.app_context():
        real_execute = db.session.execute
        attempts = []

        def bump_once(stmt, *args, **kwargs):
            if getattr(stmt, "is_update", False) and stmt.table.name == "users":
                attempts.append(stmt)
                if len(attempts) == 1:
                    # Another request takes 00010 between our read and our write
                    real_execute(
                        User.__table__.update()
                        .where(User.__table__.c.id == user_id)
                        .values(invoice_number="00011")
                    )
            return real_execute(stmt, *args, **kwargs)

        monkeypatch.setattr(db.session, "execute", bump_once)
        issued = allocate_invoice_number(db.session, user_id)
        monkeypatch.undo()
        db.session.commit()

        assert len(attempts) == 2
        assert issued == "00011"
        assert db.session.get(User, user_id).invoice_number == "00012"
