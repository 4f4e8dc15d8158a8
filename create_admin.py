import os
import sys

from sqlalchemy import func, select

from hourbook import create_app
from hourbook.extensions import db
from hourbook.models import ROLE_ADMIN, User
from hourbook.utils.passwords import hash_password, validate_password

EMAIL = (os.environ.get("ADMIN_EMAIL") or "").strip().lower()
PASSWORD = os.environ.get("ADMIN_PASSWORD") or ""

if not EMAIL or not PASSWORD:
    sys.exit("Set ADMIN_EMAIL and ADMIN_PASSWORD.")

app = create_app()

with app.app_context():
    ok, msg = validate_password(PASSWORD, app.config["PASSWORD_MIN_LENGTH"])
    if not ok:
        sys.exit(msg)

    admin = db.session.execute(
        select(User).where(func.lower(User.email) == EMAIL)
    ).scalars().first()

    if admin is None:
        print("Creating admin user...")
        admin = User(
            email=EMAIL,
            first_name="Admin",
            last_name="User",
            password_hash=hash_password(PASSWORD),
        )
        db.session.add(admin)
    else:
        print("Promoting existing user to admin...")
        admin.password_hash = hash_password(PASSWORD)

    admin.role = ROLE_ADMIN
    admin.active = True
    db.session.commit()

    print("Admin ready:", EMAIL)
