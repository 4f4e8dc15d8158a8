# hourbook/utils/guards.py

from __future__ import annotations

from functools import wraps
from typing import Callable, Any

from flask_login import login_required, current_user

from ..errors import Forbidden


def admin_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """
    Allow only admins.
    Unauthenticated callers get 401 (via login_required), everyone else 403.
    """
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not current_user.is_admin:
            raise Forbidden("Admin access required")
        return view(*args, **kwargs)

    return wrapped

