"""API token helpers.

Tokens are signed user ids (itsdangerous, keyed by SECRET_KEY). The
management API only needs a verified owner id; issuing credentials is
left to whoever calls issue_token().
"""

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

TOKEN_SALT = "sitehost-api"


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(user_id):
    return _serializer().dumps({"uid": user_id})


def verify_token(token):
    """Return the user id inside a valid, unexpired token, else None."""
    max_age = current_app.config.get("API_TOKEN_MAX_AGE")
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except (SignatureExpired, BadSignature):
        return None
    if not isinstance(payload, dict):
        return None
    return payload.get("uid")


def user_id_from_header(header):
    """Parse an `Authorization: Bearer <token>` header value."""
    if not header or not header.startswith("Bearer "):
        return None
    token = header[7:].strip()
    return verify_token(token) if token else None
