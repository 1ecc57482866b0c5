"""Role resolution and the permissions each role carries.

The stored UserRole row is the source of truth; a user without one is a
viewer. Addresses in ADMIN_OVERRIDE_EMAILS are admins for the session no
matter what is stored, so an owner can never lock themselves out. The
override is never written back.
"""

import logging

from flask import current_app

from app.models.user import UserRole

logger = logging.getLogger(__name__)

ADMIN = "admin"
EDITOR = "editor"
DISPATCHER = "dispatcher"
VIEWER = "viewer"

ALL_TABS = [
    "dashboard",
    "bod_report",
    "performance",
    "recruiting",
    "prospects",
    "routes",
    "drivers",
    "documents",
    "admin",
]

# Record fields a viewer never sees.
FINANCIAL_FIELDS = {
    "forecast",
    "actual",
    "gross_margin",
    "final_gross_margin",
    "price",
    "commission",
    "pct_commission",
}


def is_override_email(email):
    """True for addresses that are always admin regardless of role rows."""
    overrides = current_app.config.get("ADMIN_OVERRIDE_EMAILS") or ()
    return (email or "").lower().strip() in {e.lower() for e in overrides}


def resolve_role(user):
    """Effective role for an authenticated user."""
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    if is_override_email(user.email):
        return ADMIN
    row = UserRole.query.filter_by(user_id=user.id).first()
    if row is None or row.role not in UserRole.ROLES:
        return VIEWER
    return row.role


def visible_tabs(role):
    tabs = []
    for tab in ALL_TABS:
        if tab == "prospects" and role == DISPATCHER:
            continue
        if tab == "admin" and role != ADMIN:
            continue
        tabs.append(tab)
    return tabs


def permissions_for(role):
    return {
        "role": role,
        "can_write": role in (ADMIN, EDITOR, DISPATCHER),
        "can_delete": role == ADMIN,
        "can_admin": role == ADMIN,
        "show_financials": role != VIEWER,
        "tabs": visible_tabs(role),
    }


def redact_financials(record, role):
    """Strip financial fields from a record dict (or list of them) for viewers."""
    if role != VIEWER:
        return record
    if isinstance(record, list):
        return [redact_financials(item, role) for item in record]
    if not isinstance(record, dict):
        return record
    out = {}
    for key, value in record.items():
        if key in FINANCIAL_FIELDS:
            continue
        if isinstance(value, (dict, list)):
            value = redact_financials(value, role)
        out[key] = value
    return out


def set_user_role(user_id, role):
    """Update the user's role row, inserting it when none exists."""
    from app.services import store

    updated = store.update_where("user_roles", {"role": role}, user_id=user_id)
    if not updated:
        store.insert_rows("user_roles", {"user_id": user_id, "role": role})
    logger.info(f"User {user_id} role set to {role}")
    return role
