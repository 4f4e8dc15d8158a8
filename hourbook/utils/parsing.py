# hourbook/utils/parsing.py
"""
Request body parsing. Every helper either returns a clean value or raises
ValidationError naming the offending field.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from flask import request

from ..errors import ValidationError

MISSING = object()

# Column bounds: 32-bit INTEGER, NUMERIC(p, 2)
INT_MIN = -(2**31)
INT_MAX = 2**31 - 1
MAX_AMOUNT = Decimal("9999999999.99")
MAX_HOURS = Decimal("99999999.99")
MAX_PERCENT = Decimal("100")


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _fail(field: str, message: str):
    raise ValidationError(message, details={field: message})


def require_text(data: Mapping[str, Any], field: str, label: str | None = None) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        _fail(field, f"{label or field} is required")
    return value.strip()


def optional_text(data: Mapping[str, Any], field: str, default: Any = MISSING):
    if field not in data:
        return default
    value = data.get(field)
    if value is None:
        return ""
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        _fail(field, f"{field} must be text")
    return str(value).strip()


def optional_decimal(
    data: Mapping[str, Any],
    field: str,
    default: Any = MISSING,
    *,
    minimum: Decimal | None = Decimal("0"),
    maximum: Decimal | None = MAX_AMOUNT,
    places: int = 2,
):
    if field not in data:
        return default
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        return Decimal("0")
    if isinstance(value, bool):
        _fail(field, f"{field} must be a number")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        _fail(field, f"{field} must be a number")
    if not number.is_finite():
        _fail(field, f"{field} must be a number")
    if minimum is not None and number < minimum:
        _fail(field, f"{field} must be at least {minimum}")
    if maximum is not None and number > maximum:
        _fail(field, f"{field} must be at most {maximum}")
    if number != number.quantize(Decimal(1).scaleb(-places)):
        _fail(field, f"{field} allows at most {places} decimal places")
    return number


def optional_int(data: Mapping[str, Any], field: str, default: Any = MISSING):
    if field not in data:
        return default
    value = data.get(field)
    if isinstance(value, bool):
        _fail(field, f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        _fail(field, f"{field} must be an integer")
    if not INT_MIN <= number <= INT_MAX:
        _fail(field, f"{field} is out of range")
    return number


def optional_bool(data: Mapping[str, Any], field: str, default: Any = MISSING):
    if field not in data:
        return default
    value = data.get(field)
    if isinstance(value, bool):
        return value
    if value in (0, 1, "0", "1"):
        return bool(int(value))
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    _fail(field, f"{field} must be a boolean")


def optional_date(data: Mapping[str, Any], field: str, default: Any = MISSING):
    if field not in data:
        return default
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        # Accept full ISO timestamps too; only the calendar date is kept
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        _fail(field, f"{field} must be an ISO date (YYYY-MM-DD)")


def query_flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() == "true"


def is_missing(value: Any) -> bool:
    return value is MISSING
