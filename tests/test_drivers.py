"""Tests for the driver service and the drivers blueprint.

Covers:
- Insert vs update by id sign
- Status rules replayed on save (compliance, audit triple, reasons)
- Derived days_to_fill / retention
- Listing search, filters, route labels and null-last sorting
- Delete is admin only
- "Call now" e-mail
"""

from datetime import date
from unittest.mock import patch

import pytest

from app.services import driver_service, store
from app.services.errors import ValidationError

TODAY = date(2024, 5, 1)


class TestSaveDriver:

    def test_insert_without_id(self, seed_data):
        row = driver_service.save_driver(
            {"driver_name": "Nina New", "city": "Waco", "prospect_route_id": ""}, today=TODAY
        )
        assert row.id is not None
        assert row.status == "Recruiting"
        assert row.prospect_route_id is None
        assert row.paperwork_in == "No"
        assert row.status_changed_from is None

    def test_insert_with_negative_id(self, seed_data):
        row = driver_service.save_driver({"id": -4, "driver_name": "Temp"}, today=TODAY)
        assert row.id > 0

    def test_insert_requires_name(self, seed_data):
        with pytest.raises(ValidationError):
            driver_service.save_driver({"city": "Waco"})

    def test_update_applies_compliance(self, seed_data):
        driver_id = seed_data["recruit_driver_id"]
        row = driver_service.save_driver(
            {"id": driver_id, "paperwork_in": "Yes", "drug_bg_check": "Yes"}, today=TODAY
        )
        assert row.status == "Compliant"
        assert row.status_changed_from == "Recruiting"
        assert row.status_changed_to == "Compliant"
        assert row.status_change_date == TODAY

    def test_update_keeps_reason_for_terminated(self, seed_data):
        driver_id = seed_data["assigned_driver_id"]
        row = driver_service.save_driver(
            {"id": driver_id, "status": "Terminated", "reason_terminated": "No Show",
             "date_terminated": "2024-02-10"},
            today=TODAY,
        )
        assert row.status == "Terminated"
        assert row.reason_terminated == "No Show"
        assert row.retention == 30
        assert row.days_to_fill == 10

    def test_update_missing_driver(self, seed_data):
        with pytest.raises(ValidationError):
            driver_service.save_driver({"id": 9999, "driver_name": "Ghost"})

    def test_derived_fields_cleared_without_onboarding(self, seed_data):
        row = driver_service.save_driver(
            {"id": seed_data["assigned_driver_id"], "date_onboarded": ""}, today=TODAY
        )
        assert row.days_to_fill is None
        assert row.retention is None

    def test_submitted_derived_values_ignored(self, seed_data):
        row = driver_service.save_driver(
            {"id": seed_data["assigned_driver_id"], "days_to_fill": 999, "retention": 999},
            today=TODAY,
        )
        assert row.days_to_fill == 10


class TestDriverListing:

    def _data(self):
        routes = [
            {"id": 1, "prospect_id": 1, "route_id_name": "Unassigned"},
            {"id": 2, "prospect_id": 2, "route_id_name": "R-1"},
        ]
        prospects = [{"id": 1, "name": "Unassigned"}, {"id": 2, "name": "Acme"}]
        drivers = [
            {"id": 1, "driver_name": "Cara", "city": "Dallas", "state": "TX",
             "status": "Assigned", "prospect_route_id": 2, "date_added": "2024-01-03"},
            {"id": 2, "driver_name": "Abe", "city": "Austin", "state": "TX",
             "status": "Onboarded", "prospect_route_id": 1, "date_added": None},
            {"id": 3, "driver_name": "Bo", "city": "Tulsa", "state": "OK",
             "status": "Terminated", "prospect_route_id": None, "date_added": "2024-01-01"},
        ]
        return drivers, routes, prospects

    def test_route_labels(self):
        rows = driver_service.driver_listing(*self._data(), sort="id", direction="ascending")
        assert [r["route"] for r in rows] == ["Acme - R-1", "Unassigned", "Unassigned"]

    def test_search_and_status(self):
        drivers, routes, prospects = self._data()
        rows = driver_service.driver_listing(drivers, routes, prospects, search="ok")
        assert [r["driver_name"] for r in rows] == ["Bo"]
        rows = driver_service.driver_listing(drivers, routes, prospects, status="Onboarded")
        assert [r["driver_name"] for r in rows] == ["Abe"]

    def test_hide_inactive(self):
        rows = driver_service.driver_listing(*self._data(), hide_inactive=True)
        assert "Bo" not in [r["driver_name"] for r in rows]

    def test_nulls_sort_last_both_ways(self):
        drivers, routes, prospects = self._data()
        asc = driver_service.driver_listing(
            drivers, routes, prospects, sort="date_added", direction="ascending"
        )
        desc = driver_service.driver_listing(
            drivers, routes, prospects, sort="date_added", direction="descending"
        )
        assert [r["driver_name"] for r in asc] == ["Bo", "Cara", "Abe"]
        assert [r["driver_name"] for r in desc] == ["Cara", "Bo", "Abe"]

    def test_sort_by_route_label(self):
        rows = driver_service.driver_listing(*self._data(), sort="route", direction="ascending")
        assert rows[0]["route"] == "Acme - R-1"


class TestDriverEmail:

    def test_body_and_subject(self):
        subject, body = driver_service.driver_email(
            {"driver_name": "Dan", "phone_number": "555", "city": "Dallas", "state": "TX"},
            "Acme - R-1",
        )
        assert subject == "CALL NOW! Driver Details: Dan"
        assert "Phone: 555" in body
        assert "Address: Dallas, TX" in body
        assert "Assigned Route: Acme - R-1" in body

    def test_new_driver_subject(self):
        subject, _ = driver_service.driver_email({}, "Unassigned")
        assert subject == "CALL NOW! Driver Details: New Driver"


class TestDriverEndpoints:

    def test_list(self, client, seed_data, login):
        login("viewer@routes.local")
        resp = client.get("/drivers?hide_inactive=true")
        assert resp.status_code == 200
        names = {r["driver_name"] for r in resp.get_json()}
        assert names == {"Dan Driver", "Rita Recruit"}

    def test_dispatcher_creates_and_edits(self, client, seed_data, login):
        login("dispatcher@routes.local")
        resp = client.post("/drivers", json={"driver_name": "Pat", "date_added": "2024-04-01"})
        assert resp.status_code == 201
        driver_id = resp.get_json()["id"]

        resp = client.put(f"/drivers/{driver_id}", json={"paperwork_in": "Yes"})
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "Verifications"

    def test_full_record_put_reaches_compliant(self, client, seed_data, login):
        login("dispatcher@routes.local")
        driver_id = seed_data["recruit_driver_id"]
        client.put(f"/drivers/{driver_id}", json={"paperwork_in": "Yes"})

        row = next(r for r in client.get("/drivers").get_json() if r["id"] == driver_id)
        assert row["status"] == "Verifications"
        row["paperwork_in"] = "Yes"
        row["drug_bg_check"] = "Yes"

        resp = client.put(f"/drivers/{driver_id}", json=row)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "Compliant"
        assert body["status_changed_from"] == "Verifications"

    def test_full_record_put_with_changed_status_wins(self, client, seed_data, login):
        login("dispatcher@routes.local")
        driver_id = seed_data["recruit_driver_id"]
        row = next(r for r in client.get("/drivers").get_json() if r["id"] == driver_id)
        row.update(paperwork_in="Yes", drug_bg_check="Yes", status="Rejected",
                   reason_rejected="Failed Drug Test")

        body = client.put(f"/drivers/{driver_id}", json=row).get_json()
        assert body["status"] == "Rejected"
        assert body["reason_rejected"] == "Failed Drug Test"

    def test_viewer_cannot_create(self, client, seed_data, login):
        login("viewer@routes.local")
        resp = client.post("/drivers", json={"driver_name": "Pat"})
        assert resp.status_code == 403

    def test_only_admin_deletes(self, client, seed_data, login):
        driver_id = seed_data["recruit_driver_id"]
        login("editor@routes.local")
        assert client.delete(f"/drivers/{driver_id}").status_code == 403

        login("admin@routes.local")
        assert client.delete(f"/drivers/{driver_id}").status_code == 200
        assert store.get_row("prospect_route_drivers", driver_id) is None

    def test_assign_and_unassign(self, client, seed_data, login):
        login("dispatcher@routes.local")
        driver_id = seed_data["recruit_driver_id"]
        resp = client.post(f"/drivers/{driver_id}/assign", json={"route_id": seed_data["route_id"]})
        assert resp.get_json()["status"] == "Assigned"

        resp = client.post(f"/drivers/{driver_id}/unassign")
        body = resp.get_json()
        assert body["status"] == "Onboarded"
        assert body["prospect_route_id"] == seed_data["unassigned_route_id"]

    def test_selectable(self, client, seed_data, login):
        login("dispatcher@routes.local")
        names = {d["driver_name"] for d in client.get("/drivers/selectable").get_json()}
        assert names == {"Rita Recruit"}

    def test_route_options_exclude_sentinel(self, client, seed_data, login):
        login("editor@routes.local")
        options = client.get("/drivers/route-options").get_json()
        assert options == [{"id": seed_data["route_id"], "name": "Acme Logistics - R-100"}]

    def test_email(self, client, seed_data, login):
        login("editor@routes.local")
        with patch("app.services.driver_service.send_email") as mock_send:
            resp = client.post(
                f"/drivers/{seed_data['assigned_driver_id']}/email",
                json={"recipient": "dispatch@example.com"},
            )
        assert resp.status_code == 200
        _, subject, body = mock_send.call_args[0]
        assert subject == "CALL NOW! Driver Details: Dan Driver"
        assert "Assigned Route: Acme Logistics - R-100" in body
