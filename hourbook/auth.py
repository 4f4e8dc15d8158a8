# hourbook/auth.py
from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from .errors import Conflict, Forbidden, Unauthenticated, ValidationError, atomic
from .extensions import db, limiter, login_manager
from .models import User
from .services.invoicing import SUPPORTED_LOCALES
from .utils.encryption import get_field_cipher, mask_iban, normalize_iban
from .utils.parsing import MAX_PERCENT, MISSING, is_missing, json_body, optional_decimal, optional_text, require_text
from .utils.passwords import hash_password, is_valid_email, validate_password, verify_password
from .utils.tokens import issue_token, verify_token

auth = Blueprint("auth", __name__)

# JSON key -> column, shared by register and profile update
COMPANY_FIELDS = {
    "companyName": "company_name",
    "companyVatId": "company_vat_id",
    "companyStreet": "company_street",
    "companyNumber": "company_number",
    "companyPostalCode": "company_postal_code",
    "companyCity": "company_city",
    "companyState": "company_state",
    "companyCountry": "company_country",
    "companyPhone": "company_phone",
}

PROFILE_TEXT_FIELDS = {
    **COMPANY_FIELDS,
    "bankName": "bank_name",
    "bankBic": "bank_bic",
    "invoiceNotes": "invoice_notes",
    "invoiceNumber": "invoice_number",
}


# =========================================================
# Flask-Login: bearer token loader
# =========================================================
@login_manager.request_loader
def load_user_from_request(req):
    header = req.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None

    user_id = verify_token(token.strip())
    if user_id is None:
        return None

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    raise Unauthenticated("Invalid or missing access token")


# =========================================================
# Helpers
# =========================================================
def _find_by_email(email: str) -> User | None:
    return db.session.execute(
        select(User).where(func.lower(User.email) == email)
    ).scalars().first()


def _parse_locale(data, default):
    locale = optional_text(data, "locale", default)
    if is_missing(locale):
        return locale
    if locale not in SUPPORTED_LOCALES:
        message = f"locale must be one of: {', '.join(SUPPORTED_LOCALES)}"
        raise ValidationError(message, details={"locale": message})
    return locale


def _check_password_policy(field: str, password) -> None:
    ok, message = validate_password(password, current_app.config["PASSWORD_MIN_LENGTH"])
    if not ok:
        raise ValidationError(message, details={field: message})


def profile_dict(user: User) -> dict:
    """Owner-only view: carries the full decrypted IBAN."""
    cipher = get_field_cipher()
    iban = cipher.decrypt(user.bank_iban_cipher, user.bank_iban_iv, user.bank_iban_tag)

    data = user.summary_dict()
    data.update({key: getattr(user, col) for key, col in PROFILE_TEXT_FIELDS.items()})
    data.update({
        "locale": user.locale or "en",
        "vatPercent": float(user.vat_percent or 0),
        "bankIban": iban,
        "bankIbanMasked": mask_iban(iban),
        "encryptionAvailable": cipher.available,
    })
    return data


# =========================================================
# Register / Login
# =========================================================
@auth.route("/register", methods=["POST"])
@limiter.limit("10 per hour")
def register():
    data = json_body()

    email = require_text(data, "email", "Email").lower()
    password = data.get("password")
    first_name = require_text(data, "firstName", "First name")
    last_name = require_text(data, "lastName", "Last name")

    if not is_valid_email(email):
        raise ValidationError("Invalid email format", details={"email": "Invalid email format"})
    _check_password_policy("password", password)
    locale = _parse_locale(data, "en")

    if _find_by_email(email) is not None:
        raise Conflict("User already exists with this email")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        locale=locale,
        active=False,
        **{col: optional_text(data, key, "") for key, col in COMPANY_FIELDS.items()},
    )

    with atomic(db.session, "Register user"):
        db.session.add(user)
        # Flush so a concurrent duplicate email surfaces as IntegrityError, not StorageError
        try:
            db.session.flush()
        except IntegrityError:
            current_app.logger.info("Registration lost email race: %s", email)
            raise Conflict("User already exists with this email")

    current_app.logger.info("User registered (awaiting activation): id=%s email=%s", user.id, email)
    return jsonify({
        "message": "User created successfully (awaiting activation)",
        "user": profile_dict(user),
    }), 201


@auth.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    data = json_body()
    email = data.get("email")
    password = data.get("password")
    email = email.strip().lower() if isinstance(email, str) else ""
    password = password if isinstance(password, str) else ""

    if not email or not password:
        raise ValidationError(
            "Email and password are required",
            details={k: "required" for k, v in (("email", email), ("password", password)) if not v},
        )

    user = _find_by_email(email)
    if user is None or not verify_password(user.password_hash, password):
        current_app.logger.warning("Rejected login for %s", email)
        raise Unauthenticated("Invalid email or password")

    if not user.is_active:
        current_app.logger.warning("Login attempt on inactive account: id=%s", user.id)
        raise Forbidden("Account is not active")

    return jsonify({
        "message": "Login successful",
        "token": issue_token(user.id),
        "user": user.summary_dict(),
    })


# =========================================================
# Profile
# =========================================================
@auth.route("/profile", methods=["GET"])
@login_required
def get_profile():
    return jsonify({"user": profile_dict(current_user)})


@auth.route("/profile", methods=["PUT"])
@login_required
def update_profile():
    data = json_body()
    user = current_user._get_current_object()

    first_name = require_text(data, "firstName", "First name")
    last_name = require_text(data, "lastName", "Last name")
    parsed = {col: optional_text(data, key) for key, col in PROFILE_TEXT_FIELDS.items()}
    vat_percent = optional_decimal(data, "vatPercent", maximum=MAX_PERCENT)
    locale = _parse_locale(data, MISSING)
    iban = optional_text(data, "bankIban")

    with atomic(db.session, "Update profile"):
        user.first_name = first_name
        user.last_name = last_name
        for col, value in parsed.items():
            if not is_missing(value):
                setattr(user, col, value)
        if not is_missing(vat_percent):
            user.vat_percent = vat_percent
        if not is_missing(locale):
            user.locale = locale
        if not is_missing(iban):
            sealed = get_field_cipher().encrypt(normalize_iban(iban))
            user.bank_iban_cipher = sealed.cipher
            user.bank_iban_iv = sealed.iv
            user.bank_iban_tag = sealed.tag

    return jsonify({"message": "Profile updated successfully", "user": profile_dict(user)})


@auth.route("/change-password", methods=["PUT"])
@login_required
def change_password():
    data = json_body()
    current_password = data.get("currentPassword")
    new_password = data.get("newPassword")

    if not isinstance(current_password, str) or not current_password:
        raise ValidationError(
            "Current password and new password are required",
            details={"currentPassword": "required"},
        )
    _check_password_policy("newPassword", new_password)

    if not verify_password(current_user.password_hash, current_password):
        raise ValidationError(
            "Current password is incorrect",
            details={"currentPassword": "Current password is incorrect"},
        )

    with atomic(db.session, "Change password"):
        current_user.password_hash = hash_password(new_password)

    current_app.logger.info("Password changed: id=%s", current_user.id)
    return jsonify({"message": "Password updated successfully"})
