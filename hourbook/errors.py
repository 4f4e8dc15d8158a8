# hourbook/errors.py
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from flask import Flask, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from werkzeug.exceptions import HTTPException

from .extensions import db


# =========================================================
# Error taxonomy
# =========================================================
class AppError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid input"


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied"


class NotFoundOrDenied(AppError):
    """Raised for both missing rows and rows owned by someone else."""

    status_code = 404
    code = "not_found"
    default_message = "Not found or access denied"


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists"


class StorageError(AppError):
    """Persistence failure. The message sent to clients never carries driver detail."""

    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"


# =========================================================
# Helpers
# =========================================================
@contextmanager
def atomic(session: Session, action: str) -> Iterator[None]:
    """
    One transaction around the block: commit on success, rollback on any
    error. Database errors are logged and re-raised as StorageError.
    """
    try:
        yield
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        current_app.logger.exception("%s failed", action)
        raise StorageError() from exc
    except Exception:
        session.rollback()
        raise


# =========================================================
# Flask wiring
# =========================================================
def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AppError)
    def handle_app_error(e: AppError):
        if isinstance(e, StorageError) and e.__cause__ is None:
            current_app.logger.error("Storage error: %s", e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(e: SQLAlchemyError):
        db.session.rollback()
        current_app.logger.exception("Unhandled database error")
        return jsonify(StorageError().to_dict()), StorageError.status_code

    # ======================
    # Rate limit error handler
    # ======================
    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify({"error": "Too many requests. Please try again later.", "code": "rate_limited"}), 429

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        code = (e.name or "error").strip().lower().replace(" ", "_")
        return jsonify({"error": e.description or e.name, "code": code}), e.code or 500
