# hourbook/utils/tokens.py
"""Bearer token issue / verification (HS256 JWT)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

ALGORITHM = "HS256"


def issue_token(user_id: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(hours=current_app.config["JWT_EXPIRES_HOURS"]),
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm=ALGORITHM)


def verify_token(token: str) -> int | None:
    """Return the user id carried by a valid token, None when invalid or expired."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, current_app.config["JWT_SECRET"], algorithms=[ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
