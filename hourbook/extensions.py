from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# ======================
# Database
# ======================
db = SQLAlchemy()
migrate = Migrate()

# ======================
# Login Manager
# ======================
# API only: users are resolved from the bearer token on every request
# (see hourbook.auth.load_user_from_request), never from a session cookie.
login_manager = LoginManager()
login_manager.session_protection = None

# ======================
# Rate Limiter
# ======================
# Storage comes from RATELIMIT_STORAGE_URI (Redis in production, memory locally).
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
)
