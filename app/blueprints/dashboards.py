"""Dashboards blueprint — /dashboards/*

Read-only aggregates. Each endpoint maps to one tab; `?today=YYYY-MM-DD`
pins the reference date.

Route Map:
  GET /dashboards/sales          — Won KPIs, funnel, deadlines, top prospects
  GET /dashboards/management     — Board report over the rolling window
  GET /dashboards/performance    — Twelve monthly rows plus totals
  GET /dashboards/recruiting     — Driver pipeline and sources
"""

from datetime import date

from flask import Blueprint, g, jsonify, request

from app.decorators import tab_required
from app.services import report_service, store
from app.services.errors import ValidationError
from app.services.metrics import parse_date
from app.services.role_service import redact_financials

dashboards_bp = Blueprint("dashboards", __name__, url_prefix="/dashboards")


def _rows(collection, **kwargs):
    return [store.serialize(row) for row in store.list_rows(collection, **kwargs)]


def _today():
    raw = request.args.get("today")
    if not raw:
        return date.today()
    parsed = parse_date(raw)
    if parsed is None:
        raise ValidationError(f"Invalid date '{raw}'.")
    return parsed.date()


@dashboards_bp.route("/sales")
@tab_required("dashboard")
def sales():
    data = report_service.sales_dashboard(
        _rows("prospects", order_by="name"),
        _rows("contacts"),
        _rows("status_options"),
        today=_today(),
    )
    return jsonify(redact_financials(data, g.role))


@dashboards_bp.route("/management")
@tab_required("bod_report")
def management():
    data = report_service.management_report(
        _rows("prospects", order_by="name"), _rows("contacts"), today=_today()
    )
    return jsonify(redact_financials(data, g.role))


@dashboards_bp.route("/performance")
@tab_required("performance")
def performance():
    data = report_service.monthly_performance(
        _rows("prospects", order_by="name"), _rows("contacts"), today=_today()
    )
    return jsonify(redact_financials(data, g.role))


@dashboards_bp.route("/recruiting")
@tab_required("recruiting")
def recruiting():
    data = report_service.recruiting_dashboard(
        _rows("prospect_route_drivers", order_by="id"),
        _rows("driver_status_options"),
        today=_today(),
    )
    return jsonify(data)
