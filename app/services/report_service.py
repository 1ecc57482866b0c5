"""Dashboards — read-only aggregates over prospects, contacts and drivers.

Everything here works on serialized rows (dicts) so the same functions
back both the API and the tests. Prospect-level figures always use the
prospect's latest contact.

Windows:
  - sales dashboard: the twelve months ending this month
  - management / monthly reports: the twelve months ending with the
    month of the latest close or expected-close date in the data
"""

from datetime import date

from app.services.metrics import (
    balance_of_year,
    deal_value,
    in_window,
    margin_percent,
    month_bounds,
    months_in_window,
    parse_date,
    rolling_window,
    safe_number,
    trailing_window,
)
from app.services.prospect_service import latest_contact
from app.services.status import INACTIVE_DRIVER_STATUSES, ContactStatus, DriverStatus

WON = ContactStatus.WON.value
LOST = ContactStatus.LOST.value


def with_latest_contact(prospects, contacts):
    """[(prospect, latest contact or None)] for every prospect."""
    by_prospect = {}
    for contact in contacts:
        by_prospect.setdefault(contact["prospect_id"], []).append(contact)
    return [(p, latest_contact(by_prospect.get(p["id"], []))) for p in prospects]


def _active(pairs):
    return [(p, c) for p, c in pairs if c and c.get("status") not in (WON, LOST)]


def _closed(pairs, status, start, end):
    return [
        (p, c) for p, c in pairs
        if c and c.get("status") == status and in_window(c.get("actual_close_date"), start, end)
    ]


def _pct(part, whole):
    return part / whole * 100 if whole > 0 else 0


def _forecast_margin(contact):
    return safe_number(contact.get("forecast")) * safe_number(contact.get("gross_margin")) / 100


def _value_margin(contact):
    return deal_value(contact) * margin_percent(contact) / 100


# ─── Sales dashboard ───────────────────────────────────────

def sales_dashboard(prospects, contacts, status_options, today=None):
    today = today or date.today()
    pairs = with_latest_contact(prospects, contacts)
    active = _active(pairs)
    start, end = trailing_window(today)
    won = [c for _, c in _closed(pairs, WON, start, end)]

    won_forecast = sum(safe_number(c.get("forecast")) for c in won)
    won_forecast_margin = sum(
        safe_number(c.get("forecast")) * margin_percent(c) / 100 for c in won
    )
    won_value = sum(deal_value(c) for c in won)
    won_value_margin = sum(_value_margin(c) for c in won)

    aggregates = {}
    for _, contact in active:
        bucket = aggregates.setdefault(
            contact.get("status"), {"count": 0, "total_forecast": 0.0, "total_margin": 0.0}
        )
        bucket["count"] += 1
        bucket["total_forecast"] += safe_number(contact.get("forecast"))
        bucket["total_margin"] += _forecast_margin(contact)
    funnel = [
        {"name": opt["name"], **aggregates.get(
            opt["name"], {"count": 0, "total_forecast": 0.0, "total_margin": 0.0}
        )}
        for opt in status_options
        if opt["name"] not in (WON, LOST)
    ]

    deadlines = []
    for prospect, contact in active:
        for field_name, label in (("quote_due_date", "Quote Due"), ("expected_closing", "Exp. Closing")):
            when = parse_date(contact.get(field_name))
            if when and when.date() >= today:
                deadlines.append({
                    "type": label,
                    "date": when.date().isoformat(),
                    "prospect_name": prospect["name"],
                })
    deadlines.sort(key=lambda d: d["date"])

    top = sorted(active, key=lambda pc: safe_number(pc[1].get("forecast")), reverse=True)[:5]

    return {
        "window": {"start": start.isoformat(), "end": end.isoformat()},
        "won_forecast": won_forecast,
        "won_forecast_margin": won_forecast_margin,
        "won_forecast_margin_pct": _pct(won_forecast_margin, won_forecast),
        "won_value": won_value,
        "won_value_margin": won_value_margin,
        "won_value_margin_pct": _pct(won_value_margin, won_value),
        "funnel": funnel,
        "upcoming_deadlines": deadlines[:5],
        "top_prospects": [
            {
                "name": p["name"],
                "forecast": safe_number(c.get("forecast")),
                "status": c.get("status"),
                "margin_amount": _forecast_margin(c),
            }
            for p, c in top
        ],
    }


# ─── Management (BOD) report ───────────────────────────────

def management_report(prospects, contacts, today=None):
    today = today or date.today()
    pairs = with_latest_contact(prospects, contacts)
    start, end = rolling_window(contacts, today)
    won = _closed(pairs, WON, start, end)
    active = _active(pairs)

    active_forecast = sum(safe_number(c.get("forecast")) for _, c in active)
    active_margin = sum(_forecast_margin(c) for _, c in active)
    balance_forecast = sum(
        balance_of_year(deal_value(c), c.get("expected_closing"), today) for _, c in active
    )
    balance_margin = sum(
        balance_of_year(deal_value(c), c.get("expected_closing"), today) * margin_percent(c) / 100
        for _, c in active
    )

    by_source = {}
    for _, contact in won:
        source = contact.get("source")
        if not source:
            continue
        bucket = by_source.setdefault(source, {"name": source, "count": 0, "value": 0.0})
        bucket["count"] += 1
        bucket["value"] += deal_value(contact)

    top_won = sorted(
        (
            {
                "name": p["name"],
                "value": deal_value(c),
                "close_date": c.get("actual_close_date") or "",
            }
            for p, c in won
        ),
        key=lambda row: row["value"],
        reverse=True,
    )[:5]

    return {
        "window": {"start": start.isoformat(), "end": end.isoformat()},
        "active_forecast": active_forecast,
        "active_margin": active_margin,
        "active_margin_pct": _pct(active_margin, active_forecast),
        "balance_of_year_forecast": balance_forecast,
        "balance_of_year_margin": balance_margin,
        "balance_of_year_margin_pct": _pct(balance_margin, balance_forecast),
        "performance_by_source": sorted(
            by_source.values(), key=lambda row: row["value"], reverse=True
        ),
        "top_won": top_won,
    }


# ─── Monthly performance ───────────────────────────────────

MONTH_TOTAL_FIELDS = (
    "won_count",
    "lost_count",
    "new_count",
    "won_revenue",
    "active_revenue",
    "won_margin_amount",
    "active_margin_amount",
    "won_balance_of_year",
    "active_balance_of_year",
)


def monthly_performance(prospects, contacts, today=None):
    today = today or date.today()
    pairs = with_latest_contact(prospects, contacts)
    start, end = rolling_window(contacts, today)
    won = _closed(pairs, WON, start, end)
    lost = _closed(pairs, LOST, start, end)
    active = _active(pairs)

    months = []
    for year, month in months_in_window(start):
        first, last = month_bounds(year, month)
        won_month = [c for _, c in won if in_window(c.get("actual_close_date"), first, last)]
        lost_month = [c for _, c in lost if in_window(c.get("actual_close_date"), first, last)]
        active_month = [c for _, c in active if in_window(c.get("expected_closing"), first, last)]
        new_month = [p for p in prospects if in_window(p.get("created_at"), first, last)]

        won_revenue = sum(deal_value(c) for c in won_month)
        won_margin = sum(_value_margin(c) for c in won_month)
        active_revenue = sum(deal_value(c) for c in active_month)
        active_margin = sum(_value_margin(c) for c in active_month)
        months.append({
            "month": first.strftime("%b %y"),
            "month_start": first.isoformat(),
            "won_count": len(won_month),
            "lost_count": len(lost_month),
            "new_count": len(new_month),
            "won_revenue": won_revenue,
            "active_revenue": active_revenue,
            "won_margin_amount": won_margin,
            "active_margin_amount": active_margin,
            "won_balance_of_year": sum(
                balance_of_year(deal_value(c), c.get("actual_close_date"), today)
                for c in won_month
            ),
            "active_balance_of_year": sum(
                balance_of_year(deal_value(c), c.get("expected_closing"), today)
                for c in active_month
            ),
            "won_margin_percent": _pct(won_margin, won_revenue),
            "active_margin_percent": _pct(active_margin, active_revenue),
        })

    totals = {name: sum(m[name] for m in months) for name in MONTH_TOTAL_FIELDS}
    totals["won_margin_percent"] = _pct(totals["won_margin_amount"], totals["won_revenue"])
    totals["active_margin_percent"] = _pct(
        totals["active_margin_amount"], totals["active_revenue"]
    )
    return {
        "window": {"start": start.isoformat(), "end": end.isoformat()},
        "months": months,
        "totals": totals,
    }


# ─── Recruiting ────────────────────────────────────────────

def recruiting_dashboard(drivers, status_options, today=None):
    today = today or date.today()
    counts = {}
    sources = {}
    for driver in drivers:
        status = driver.get("status") or "Unknown"
        counts[status] = counts.get(status, 0) + 1
        source = driver.get("source") or "Unknown"
        sources[source] = sources.get(source, 0) + 1

    pipeline = {DriverStatus.RECRUITING.value, DriverStatus.VERIFICATIONS.value}

    monthly = []
    for offset in range(5, -1, -1):
        index = today.year * 12 + today.month - 1 - offset
        first, last = month_bounds(index // 12, index % 12 + 1)
        monthly.append({
            "month": first.strftime("%b"),
            "month_start": first.isoformat(),
            "onboarded": sum(
                1 for d in drivers if in_window(d.get("date_onboarded"), first, last)
            ),
            "terminated": sum(
                1 for d in drivers if in_window(d.get("date_terminated"), first, last)
            ),
        })

    top_sources = sorted(
        ({"name": name, "count": count} for name, count in sources.items()),
        key=lambda row: row["count"],
        reverse=True,
    )[:5]

    return {
        "active_count": sum(
            1 for d in drivers if d.get("status") not in INACTIVE_DRIVER_STATUSES
        ),
        "in_pipeline": sum(1 for d in drivers if d.get("status") in pipeline),
        "compliant": counts.get(DriverStatus.COMPLIANT.value, 0),
        "assigned": counts.get(DriverStatus.ASSIGNED.value, 0),
        "funnel": [
            {"name": opt["name"], "count": counts.get(opt["name"], 0)}
            for opt in status_options
            if opt["name"] not in INACTIVE_DRIVER_STATUSES
        ],
        "monthly": monthly,
        "top_sources": top_sources,
    }
