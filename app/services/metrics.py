"""Derived metrics — pure arithmetic over already-fetched rows.

Every function here accepts either an ORM row or a plain dict, never
touches the database, and returns a number (or None where a metric is
undefined). Dates may arrive as `date`, `datetime` or ISO strings.

Money fields come from forms and imports in loose formats ("$1,200.50"),
so numbers are sanitized before parsing.
"""

import calendar
import re
from datetime import date, datetime
from decimal import Decimal

# Leading decimal literal, after everything but digits, '.' and '-' is stripped.
_NUMBER_RE = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)")
_STRIP_RE = re.compile(r"[^0-9.\-]+")

DAY_SECONDS = 24 * 60 * 60


def field(row, name, default=None):
    """Read `name` from a mapping or an object."""
    if row is None:
        return default
    if isinstance(row, dict):
        return row.get(name, default)
    return getattr(row, name, default)


# ─── Numbers ───────────────────────────────────────────────

def parse_number(value):
    """Parse a loosely formatted number; None when nothing parses.

    "1,200.50" -> 1200.5, "$0.00" -> 0.0, "" -> None, "abc" -> None.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    match = _NUMBER_RE.match(_STRIP_RE.sub("", str(value)))
    if not match:
        return None
    return float(match.group(0))


def safe_number(value):
    """parse_number, defaulting to 0."""
    num = parse_number(value)
    return 0.0 if num is None else num


def deal_value(contact):
    """Actual if it parses (zero included), else forecast, else 0."""
    if contact is None:
        return 0.0
    actual = parse_number(field(contact, "actual"))
    if actual is not None:
        return actual
    forecast = parse_number(field(contact, "forecast"))
    return forecast if forecast is not None else 0.0


def margin_percent(contact):
    """final_gross_margin when set, else gross_margin, else 0."""
    if contact is None:
        return 0.0
    margin = field(contact, "final_gross_margin")
    if margin is None:
        margin = field(contact, "gross_margin")
    return safe_number(margin)


def margin_amount(contact):
    return deal_value(contact) * margin_percent(contact) / 100


def pct_commission(route):
    """Commission as a percentage of price; None unless both are non-zero."""
    price = parse_number(field(route, "price"))
    commission = parse_number(field(route, "commission"))
    if not price or not commission:
        return None
    return commission / price * 100


# ─── Dates ─────────────────────────────────────────────────

def parse_date(value):
    """Return a `datetime` (midnight for date-only values) or None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        pass
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d")
    except ValueError:
        return None


def _as_date(value):
    parsed = parse_date(value)
    return parsed.date() if parsed else None


def day_diff(start, end):
    """Whole days from start to end, rounded; None if either is missing."""
    start_dt, end_dt = parse_date(start), parse_date(end)
    if start_dt is None or end_dt is None:
        return None
    return round((end_dt - start_dt).total_seconds() / DAY_SECONDS)


def days_remaining_in_year(today):
    """Days from today through December 31, both inclusive."""
    end_of_year = date(today.year, 12, 31)
    if today > end_of_year:
        return 0
    return (end_of_year - today).days + 1


def balance_of_year(value, reference_date, today=None):
    """Straight-line share of an annual value left in the current year.

    0 unless reference_date falls in today's calendar year.
    """
    today = today or date.today()
    if isinstance(today, datetime):
        today = today.date()
    ref = _as_date(reference_date)
    if ref is None or ref.year != today.year:
        return 0.0
    return safe_number(value) / 365 * days_remaining_in_year(today)


def route_days_to_fill(route):
    """date_filled - date_assigned in days; None if unset or negative."""
    days = day_diff(field(route, "date_assigned"), field(route, "date_filled"))
    if days is None or days < 0:
        return None
    return days


def driver_days_to_fill(driver):
    """date_onboarded - date_added in days, clamped at 0."""
    days = day_diff(field(driver, "date_added"), field(driver, "date_onboarded"))
    if days is None:
        return None
    return max(days, 0)


def retention(driver, now=None):
    """Days from onboarding to termination (or now), clamped at 0."""
    onboarded = parse_date(field(driver, "date_onboarded"))
    if onboarded is None:
        return None
    terminated = field(driver, "date_terminated")
    if terminated:
        end = parse_date(terminated)
        if end is None:
            return None
    else:
        end = parse_date(now) if now is not None else datetime.now()
    days = round((end - onboarded).total_seconds() / DAY_SECONDS)
    return max(days, 0)


# ─── Reporting windows ─────────────────────────────────────

def _shift_month(year, month, delta):
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_bounds(year, month):
    """(first day, last day) of a calendar month."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def trailing_window(anchor):
    """Twelve whole months ending with the month containing `anchor`."""
    if isinstance(anchor, datetime):
        anchor = anchor.date()
    _, end = month_bounds(anchor.year, anchor.month)
    start_year, start_month = _shift_month(anchor.year, anchor.month, -11)
    return date(start_year, start_month, 1), end


def rolling_window(contacts, today=None):
    """Trailing 12-month window anchored on the latest close date in the data.

    The anchor is the latest actual_close_date / expected_closing across all
    contacts, or today when none are set, so historical data sets still
    produce a populated report.
    """
    dates = []
    for contact in contacts:
        for name in ("actual_close_date", "expected_closing"):
            parsed = _as_date(field(contact, name))
            if parsed:
                dates.append(parsed)
    anchor = max(dates) if dates else (today or date.today())
    return trailing_window(anchor)


def months_in_window(start):
    """The twelve (year, month) pairs starting at `start`."""
    return [_shift_month(start.year, start.month, i) for i in range(12)]


def in_window(value, start, end):
    parsed = _as_date(value)
    return parsed is not None and start <= parsed <= end


def display_value(value):
    """Render a value the way the browser UI shows it.

    Whole floats drop their ".0", dates render as ISO, None renders empty.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)
