"""CSV export of the opportunities listing.

One row per prospect in the order the listing produced them. A prospect
with no contacts gets its name and blanks. Line endings are "\n".
"""

import csv
import io
import logging
from datetime import date

from app.services.errors import ValidationError
from app.services.metrics import balance_of_year, deal_value, display_value, safe_number

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "opportunities_export.csv"

HEADERS = [
    "Opportunity Name",
    "Status",
    "Contact Name",
    "Contact Date",
    "Forecast",
    "Final Forecast",
    "Exp. Closing",
    "Actual Close Date",
    "Quote Due Date",
    "Est. Start",
    "Actual Start",
    "Probability",
    "GM%",
    "Final GM%",
    "GM$",
    "Bal of Year",
    "Notes",
]


def _round_half_up(value):
    """Math.round semantics (halves go toward +infinity)."""
    return int(value // 1 + (1 if value % 1 >= 0.5 else 0))


def gross_margin_dollars(contact):
    return _round_half_up(
        safe_number(contact.get("forecast")) * safe_number(contact.get("gross_margin")) / 100
    )


def balance_of_year_cell(contact, today):
    """Rounded balance of the deal value, or "N/A" outside the current year."""
    closing = contact.get("expected_closing")
    if not closing or str(closing)[:4] != str(today.year):
        return "N/A"
    return str(_round_half_up(balance_of_year(deal_value(contact), closing, today)))


def export_row(prospect, contact, today):
    if contact is None:
        return [prospect.get("name")] + [""] * (len(HEADERS) - 1)
    return [
        prospect.get("name"),
        contact.get("status"),
        contact.get("contact_name"),
        contact.get("contact_date"),
        contact.get("forecast"),
        contact.get("actual"),
        contact.get("expected_closing"),
        contact.get("actual_close_date"),
        contact.get("quote_due_date"),
        contact.get("start_date"),
        contact.get("actual_start_date"),
        contact.get("probability"),
        contact.get("gross_margin"),
        contact.get("final_gross_margin"),
        gross_margin_dollars(contact),
        balance_of_year_cell(contact, today),
        contact.get("notes"),
    ]


def opportunities_csv(entries, today=None):
    """Render listing entries ({prospect, contacts}) as CSV text."""
    if not entries:
        raise ValidationError("No data to export.")
    today = today or date.today()

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(HEADERS)
    for entry in entries:
        contacts = entry.get("contacts") or []
        row = export_row(entry["prospect"], contacts[0] if contacts else None, today)
        writer.writerow([display_value(cell) for cell in row])

    logger.info(f"Exported {len(entries)} opportunities to CSV")
    # No trailing newline after the last row.
    return buffer.getvalue().rstrip("\n")
