"""Error types shared by the service layer.

Three failure families reach the user:

- ValidationError: caught before any write (missing field, bad file).
- StoreError: the database rejected a write, or could not be reached.
  Carries the store's raw message plus a hint for a few known codes.
- PermissionDenied: the current role may not run the command.

Nothing here retries.
"""

import logging

import requests
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

logger = logging.getLogger(__name__)

# SQLSTATE codes with a friendlier explanation.
CHECK_VIOLATION = "23514"
GENERATED_COLUMN = "428C9"
INSUFFICIENT_PRIVILEGE = "42501"
TRANSPORT = "transport"

HINTS = {
    CHECK_VIOLATION: (
        "A value is not allowed by a database constraint. Roles must be one "
        "of: admin, editor, viewer, dispatcher."
    ),
    GENERATED_COLUMN: (
        "Columns 'days_to_fill' or 'retention' are read-only in the database. "
        "Drop and re-add them as standard numeric columns."
    ),
    INSUFFICIENT_PRIVILEGE: "Permission Denied",
}


class ValidationError(ValueError):
    """Input rejected before reaching the store."""


class PermissionDenied(Exception):
    """The current role may not perform this command."""


class StoreError(Exception):
    """A write or read against the backing store failed."""

    def __init__(self, message, code=None, hint=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.hint = hint if hint is not None else HINTS.get(code)

    def to_dict(self):
        return {"error": self.message, "code": self.code, "hint": self.hint}


def _sqlstate(exc):
    """Best-effort SQLSTATE for a DBAPI error (psycopg2 pgcode, or sniffed)."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return code
    text = str(orig or exc)
    if "CHECK constraint failed" in text:
        return CHECK_VIOLATION
    return None


def translate(exc, action):
    """Map a low-level exception onto a StoreError.

    `action` is a short human phrase used in the message ("saving driver").
    """
    if isinstance(exc, StoreError):
        return exc
    if isinstance(exc, OperationalError) or isinstance(
        exc, requests.RequestException
    ):
        logger.error(f"Transport failure while {action}: {exc}")
        return StoreError(
            f"Could not reach the data store while {action}. Please try again.",
            code=TRANSPORT,
        )
    if isinstance(exc, (IntegrityError, DBAPIError)):
        code = _sqlstate(exc)
        raw = str(getattr(exc, "orig", None) or exc)
        logger.warning(f"Store rejected write while {action}: [{code}] {raw}")
        return StoreError(f"Error {action}: {raw}", code=code)
    logger.exception(f"Unexpected error while {action}")
    return StoreError(f"Error {action}: {exc}")
