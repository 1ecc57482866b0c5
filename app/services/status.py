"""Status vocabularies and the automatic transitions tied to them.

Contact statuses drive the `completed` flag. Driver statuses move on their
own when the two compliance flags change, and every status change stamps
an audit triple (from / to / date) on the driver row.

DriverEditSession reproduces the driver form's per-field behaviour on the
server, so a form submitted in one request lands the same way it would
have if each field had been edited in turn.
"""

from datetime import date
from enum import Enum as PyEnum


class ContactStatus(PyEnum):
    DISCOVERY = "Discovery"
    PROPOSAL = "Proposal"
    NEGOTIATION = "Negotiation"
    ON_HOLD = "On Hold"
    WON = "Won"
    LOST = "Lost"


class DriverStatus(PyEnum):
    RECRUITING = "Recruiting"
    VERIFICATIONS = "Verifications"
    COMPLIANT = "Compliant"
    ONBOARDED = "Onboarded"
    ASSIGNED = "Assigned"
    UNASSIGNED = "Unassigned"
    TERMINATED = "Terminated"
    REJECTED = "Rejected"


COMPLETED_CONTACT_STATUSES = {ContactStatus.WON.value, ContactStatus.LOST.value}
INACTIVE_DRIVER_STATUSES = {DriverStatus.TERMINATED.value, DriverStatus.REJECTED.value}

COMPLIANCE_FIELDS = ("paperwork_in", "drug_bg_check")
AUDIT_FIELDS = ("status_changed_from", "status_changed_to", "status_change_date")
YES = "Yes"
NO = "No"


def is_completed(status):
    return status in COMPLETED_CONTACT_STATUSES


def apply_contact_status(form, status):
    """Set status on a contact form dict and keep `completed` in step."""
    form["status"] = status
    form["completed"] = is_completed(status)
    return form


def compliance_status(current_status, paperwork_in, drug_bg_check):
    """Status implied by the compliance flags.

    Both flags Yes -> Compliant, otherwise Verifications. A driver who is
    already Assigned keeps that status.
    """
    if current_status == DriverStatus.ASSIGNED.value:
        return current_status
    if paperwork_in == YES and drug_bg_check == YES:
        return DriverStatus.COMPLIANT.value
    return DriverStatus.VERIFICATIONS.value


class DriverEditSession:
    """Working copy of one driver being edited.

    `original` is the persisted snapshot (dict). Each change() mirrors one
    form interaction; `state` holds the result.
    """

    def __init__(self, original=None):
        self.original = dict(original or {})
        self.state = dict(self.original)
        for flag in COMPLIANCE_FIELDS:
            if self.state.get(flag) is None:
                self.state[flag] = NO

    def change(self, field, value, today=None):
        today = today or date.today()
        value = None if value == "" else value
        previous = self.state
        state = dict(previous)
        state[field] = value

        if field in COMPLIANCE_FIELDS:
            flags = {
                flag: value if flag == field else (previous.get(flag) or NO)
                for flag in COMPLIANCE_FIELDS
            }
            state["status"] = compliance_status(
                previous.get("status"), flags["paperwork_in"], flags["drug_bg_check"]
            )

        if state.get("status") != DriverStatus.TERMINATED.value:
            state["reason_terminated"] = None
        if state.get("status") != DriverStatus.REJECTED.value:
            state["reason_rejected"] = None

        original_status = self.original.get("status")
        if state.get("status") != original_status:
            state["status_changed_from"] = original_status or DriverStatus.RECRUITING.value
            state["status_changed_to"] = state.get("status")
            state["status_change_date"] = today
        else:
            for name in AUDIT_FIELDS:
                state[name] = self.original.get(name)

        self.state = state
        return state

    def apply(self, patch, today=None):
        """Replay a submitted form: plain fields, then flags, then status.

        The status is replayed only when it differs from the stored one, so
        a whole record sent back unchanged keeps any compliance transition.
        Reason fields are replayed after the status so a Terminated or
        Rejected driver keeps the reason that came with it.
        """
        plain = [
            name for name in patch
            if name not in COMPLIANCE_FIELDS
            and name not in AUDIT_FIELDS
            and name not in ("status", "reason_terminated", "reason_rejected")
        ]
        for name in plain:
            self.change(name, patch[name], today)
        for name in COMPLIANCE_FIELDS:
            if name in patch and patch[name] != self.state.get(name):
                self.change(name, patch[name], today)
        if "status" in patch and patch["status"] != self.original.get("status"):
            self.change("status", patch["status"], today)
        for name in ("reason_terminated", "reason_rejected"):
            if name in patch:
                self.change(name, patch[name], today)
        return self.state
