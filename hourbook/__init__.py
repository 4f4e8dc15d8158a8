# hourbook/__init__.py
from __future__ import annotations

from flask import Flask

from .settings import Config
from .extensions import db, migrate, login_manager, limiter


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    app.json.sort_keys = False

    # ======================
    # Initialize Extensions
    # ======================
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    # ======================
    # Import Models (CRITICAL)
    # ======================
    from . import models  # noqa: F401

    # ======================
    # IBAN field cipher (one per app)
    # ======================
    from .utils.encryption import FieldCipher

    cipher = FieldCipher.from_key(app.config.get("ENCRYPTION_KEY"))
    app.extensions["field_cipher"] = cipher
    if not cipher.available:
        app.logger.warning("ENCRYPTION_KEY not set; bank details will be stored unencrypted")

    # ======================
    # Register Blueprints
    # ======================
    from .routes import main
    from .auth import auth
    from .admin import admin_bp
    from .invoices import invoices

    app.register_blueprint(main, url_prefix="/api")
    app.register_blueprint(auth, url_prefix="/api/auth")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(invoices, url_prefix="/api/invoices")

    # ======================
    # Error handlers (JSON)
    # ======================
    from .errors import register_error_handlers

    register_error_handlers(app)

    return app
