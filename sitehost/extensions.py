"""
Deferred extension instances.

Created here, bound to the app in create_app() via init_app().
"""

from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
login_manager = LoginManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # no global limit, per-route only
    storage_uri="memory://",
)


@login_manager.unauthorized_handler
def unauthorized():
    """API callers get JSON, not a redirect to a login page."""
    return jsonify(ok=False, kind="unauthorized", error="Authentication required."), 401


@login_manager.request_loader
def load_user_from_request(request):
    """Resolve `Authorization: Bearer <token>` to a User.

    Imports lazily to avoid circular deps.
    """
    from sitehost.services.token_service import user_id_from_header
    from sitehost.models.user import User

    user_id = user_id_from_header(request.headers.get("Authorization", ""))
    if user_id is None:
        return None
    return db.session.get(User, user_id)
