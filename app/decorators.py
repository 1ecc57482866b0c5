"""
Custom route decorators for access control.

Every decorator requires login first, then checks the caller's effective
role (see role_service.resolve_role):

- write_access_required: admin, editor or dispatcher.
- delete_access_required: admin only.
- admin_required: admin only (option tables, users, help copy).
- tab_required(tab): the role can see that tab (dispatchers have no
  prospects tab).

The resolved role is left on g.role for the view.
"""

from functools import wraps

from flask import abort, g
from flask_login import current_user, login_required

from app.services.role_service import permissions_for, resolve_role


def _permissions():
    g.role = resolve_role(current_user)
    return permissions_for(g.role)


def write_access_required(f):
    """Require login + a role that can create and edit records."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        if not _permissions()["can_write"]:
            abort(403)
        return f(*args, **kwargs)

    return decorated


def delete_access_required(f):
    """Require login + a role that can delete records."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        if not _permissions()["can_delete"]:
            abort(403)
        return f(*args, **kwargs)

    return decorated


def admin_required(f):
    """Require login + the admin role."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        if not _permissions()["can_admin"]:
            abort(403)
        return f(*args, **kwargs)

    return decorated


def tab_required(tab):
    """Require login + visibility of `tab` for the caller's role."""

    def decorator(f):
        @wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            if tab not in _permissions()["tabs"]:
                abort(403)
            return f(*args, **kwargs)

        return decorated

    return decorator
