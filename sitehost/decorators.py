"""
Custom route decorators for access control.

- owner_required: the caller presented a valid API token; exposes the
  verified owner id as g.owner_id. Ownership of the specific site is
  re-checked by the service layer inside every mutating operation.
"""

from functools import wraps

from flask import g
from flask_login import current_user, login_required


def owner_required(f):
    """Require a verified caller identity (Bearer token)."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        g.owner_id = current_user.id
        return f(*args, **kwargs)

    return decorated
