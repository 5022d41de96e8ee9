"""End-to-end tests through the HTTP API."""
import pytest
from sqlalchemy.exc import OperationalError

from app.api.deps import DEGRADED_HEADER
from app.services.derived_state import DerivedStateMaintainer
from app.services.reminders import ReminderRepository
from app.services.service_events import ServiceEventRepository

from conftest import auth_headers

CAMRY = {"make": "Toyota", "model": "Camry", "year": 2020, "current_mileage": 50000}


@pytest.fixture
def headers(user_id):
    return auth_headers(user_id)


@pytest.fixture
def other_headers(other_user_id):
    return auth_headers(other_user_id)


@pytest.fixture
def camry(client, headers):
    response = client.post("/api/vehicles", json=CAMRY, headers=headers)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def oil_change(client, headers, camry):
    response = client.post(f"/api/vehicles/{camry['id']}/services", headers=headers, json={
        "date": "2024-03-01",
        "mileage": 52000,
        "items": [{"type": "Motorolja", "cost": 500}, {"type": "Oljefilter", "cost": 150}],
    })
    assert response.status_code == 201
    return response.json()


class TestServiceHistoryFlow:
    """The full record-keeping flow of one vehicle."""

    def test_service_visit_updates_mileage_and_total(self, client, headers, camry, oil_change):
        assert oil_change["total_cost"] == 650
        assert [i["type"] for i in oil_change["items"]] == ["Motorolja", "Oljefilter"]

        vehicle = client.get(f"/api/vehicles/{camry['id']}", headers=headers).json()
        assert vehicle["current_mileage"] == 52000

    def test_deleting_an_item_lowers_total(self, client, headers, oil_change):
        oil_filter = next(i for i in oil_change["items"] if i["type"] == "Oljefilter")

        response = client.delete(f"/api/service-items/{oil_filter['id']}", headers=headers)
        assert response.status_code == 204

        event = client.get(f"/api/services/{oil_change['id']}", headers=headers).json()
        assert event["total_cost"] == 500

    def test_lower_reading_does_not_regress_mileage(self, client, headers, camry, oil_change):
        response = client.post(
            f"/api/vehicles/{camry['id']}/services",
            headers=headers,
            json={"date": "2023-10-01", "mileage": 51000},
        )
        assert response.status_code == 201

        vehicle = client.get(f"/api/vehicles/{camry['id']}", headers=headers).json()
        assert vehicle["current_mileage"] == 52000

    def test_blank_identifiers_never_conflict(self, client, headers):
        first = client.post("/api/vehicles", headers=headers, json={**CAMRY, "vin": "", "license_plate": None})
        second = client.post("/api/vehicles", headers=headers, json={**CAMRY, "license_plate": ""})
        assert first.status_code == 201
        assert second.status_code == 201
        assert second.json()["vin"] is None

    def test_deleting_vehicle_removes_its_history(self, client, headers, camry, oil_change):
        response = client.delete(f"/api/vehicles/{camry['id']}", headers=headers)
        assert response.status_code == 204

        response = client.get(f"/api/services/{oil_change['id']}", headers=headers)
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_history_lists_latest_first(self, client, headers, camry, oil_change):
        client.post(f"/api/vehicles/{camry['id']}/services", headers=headers,
                    json={"date": "2024-09-15", "mileage": 60000})
        history = client.get(f"/api/vehicles/{camry['id']}/services", headers=headers).json()
        assert [e["mileage"] for e in history] == [60000, 52000]

    def test_add_and_edit_item(self, client, headers, oil_change):
        created = client.post(f"/api/services/{oil_change['id']}/items", headers=headers,
                              json={"type": "Luftfilter", "cost": 250})
        assert created.status_code == 201

        edited = client.patch(f"/api/service-items/{created.json()['id']}", headers=headers, json={"cost": 300})
        assert edited.json()["cost"] == 300

        items = client.get(f"/api/services/{oil_change['id']}/items", headers=headers).json()
        assert len(items) == 3
        event = client.get(f"/api/services/{oil_change['id']}", headers=headers).json()
        assert event["total_cost"] == 950

    def test_quick_mileage_update(self, client, headers, camry):
        response = client.patch(f"/api/vehicles/{camry['id']}/mileage/61000", headers=headers)
        assert response.status_code == 200
        assert response.json()["current_mileage"] == 61000


class TestErrorResponses:
    """Errors come back as {"code", "message"} with the right status."""

    def test_unauthenticated(self, client):
        response = client.get("/api/vehicles")
        assert response.status_code == 401

    def test_foreign_vehicle_is_not_found(self, client, other_headers, camry):
        response = client.get(f"/api/vehicles/{camry['id']}", headers=other_headers)
        assert response.status_code == 404
        assert response.json() == {"code": "not_found", "message": "Vehicle not found"}

    def test_foreign_user_cannot_log_service(self, client, other_headers, camry):
        response = client.post(f"/api/vehicles/{camry['id']}/services", headers=other_headers,
                               json={"date": "2024-03-01", "mileage": 99999})
        assert response.status_code == 404

    def test_duplicate_vin(self, client, headers):
        client.post("/api/vehicles", headers=headers, json={**CAMRY, "vin": "JTEBU5JR2J5517128"})
        response = client.post("/api/vehicles", headers=headers, json={**CAMRY, "vin": "jtebu5jr2j5517128"})
        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "conflict"
        assert body["field"] == "vin"

    def test_missing_make(self, client, headers):
        response = client.post("/api/vehicles", headers=headers, json={"model": "Camry", "year": 2020})
        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "validation_error"
        assert body["field"] == "make"

    def test_year_out_of_range(self, client, headers):
        response = client.post("/api/vehicles", headers=headers, json={**CAMRY, "year": 1850})
        assert response.status_code == 422
        assert response.json()["field"] == "year"

    def test_negative_item_cost(self, client, headers, oil_change):
        response = client.post(f"/api/services/{oil_change['id']}/items", headers=headers,
                               json={"type": "Motorolja", "cost": -10})
        assert response.status_code == 422
        assert response.json()["field"] == "cost"

    def test_negative_quick_mileage(self, client, headers, camry):
        response = client.patch(f"/api/vehicles/{camry['id']}/mileage/-5", headers=headers)
        assert response.status_code == 422
        assert response.json()["field"] == "mileage"

    def test_reminder_without_trigger(self, client, headers, camry):
        response = client.post(f"/api/vehicles/{camry['id']}/reminders", headers=headers, json={"type": "Besiktning"})
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"


class TestDegradedConsistency:
    """A failed derived write is flagged on an otherwise successful response."""

    def test_header_set_when_propagation_fails(self, client, headers, camry, monkeypatch):
        def storage_down(self, vehicle_id, mileage):
            raise OperationalError("UPDATE", {}, Exception("database is locked"))

        monkeypatch.setattr(DerivedStateMaintainer, "_apply_mileage", storage_down)

        response = client.post(f"/api/vehicles/{camry['id']}/services", headers=headers,
                               json={"date": "2024-03-01", "mileage": 70000})

        assert response.status_code == 201
        assert response.headers[DEGRADED_HEADER] == "degraded"
        vehicle = client.get(f"/api/vehicles/{camry['id']}", headers=headers).json()
        assert vehicle["current_mileage"] == 50000

    def test_no_header_on_clean_write(self, client, headers, camry):
        response = client.post(f"/api/vehicles/{camry['id']}/services", headers=headers,
                               json={"date": "2024-03-01", "mileage": 70000})
        assert DEGRADED_HEADER not in response.headers


class TestReminderEndpoints:
    """Tests for reminder routes."""

    def test_create_complete_and_list(self, client, headers, camry):
        created = client.post(f"/api/vehicles/{camry['id']}/reminders", headers=headers, json={
            "type": "Motorolja", "due_mileage": 60000, "recurring": True, "interval_kilometers": 15000,
        })
        assert created.status_code == 201

        completed = client.post(f"/api/reminders/{created.json()['id']}/complete", headers=headers)
        assert completed.json()["is_completed"] is True

        reminders = client.get(f"/api/vehicles/{camry['id']}/reminders", headers=headers).json()
        assert len(reminders) == 2
        upcoming = next(r for r in reminders if not r["is_completed"])
        assert upcoming["due_mileage"] == 65000

    def test_due_lists_reminders_close_by_mileage(self, client, headers, camry):
        client.post(f"/api/vehicles/{camry['id']}/reminders", headers=headers,
                    json={"type": "Kamrem", "due_mileage": 50500})
        client.post(f"/api/vehicles/{camry['id']}/reminders", headers=headers,
                    json={"type": "Koppling", "due_mileage": 90000})

        due = client.get("/api/reminders/due", headers=headers).json()
        assert [r["type"] for r in due] == ["Kamrem"]
        assert due[0]["kilometers_until_due"] == 500

    def test_update_and_delete(self, client, headers, camry):
        created = client.post(f"/api/vehicles/{camry['id']}/reminders", headers=headers,
                              json={"type": "Besiktning", "due_date": "2025-05-31"}).json()

        updated = client.patch(f"/api/reminders/{created['id']}", headers=headers, json={"notes": "Bokad"})
        assert updated.json()["notes"] == "Bokad"

        assert client.delete(f"/api/reminders/{created['id']}", headers=headers).status_code == 204
        assert client.get(f"/api/reminders/{created['id']}", headers=headers).status_code == 404


class TestMiscEndpoints:
    """Tests for the categories list, health and auth."""

    def test_categories(self, client):
        response = client.get("/api/service-items/categories")
        assert response.status_code == 200
        names = [c["name"] for c in response.json()]
        assert "Oljeservice" in names

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["database"]["connected"] is True
        assert body["cache"]["status"] == "disabled"

    def test_register_login_me(self, client):
        registered = client.post("/api/auth/register", json={"email": "Disa@Example.com", "password": "hemligt123"})
        assert registered.status_code == 201

        login = client.post("/api/auth/login", json={"email": "disa@example.com", "password": "hemligt123"})
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["email"] == "disa@example.com"

    def test_short_password_rejected(self, client):
        response = client.post("/api/auth/register", json={"email": "erik@example.com", "password": "kort"})
        assert response.status_code == 400


def count_calls(monkeypatch, cls, name):
    calls = []
    original = getattr(cls, name)

    def counted(self, *args, **kwargs):
        calls.append(args)
        return original(self, *args, **kwargs)

    monkeypatch.setattr(cls, name, counted)
    return calls


class TestCachedReads:
    """A cache hit answers child lists without running the list query."""

    def test_service_history_hit_skips_query(self, cached_client, headers, camry, oil_change, monkeypatch):
        calls = count_calls(monkeypatch, ServiceEventRepository, "list")
        url = f"/api/vehicles/{camry['id']}/services"

        first = cached_client.get(url, headers=headers)
        second = cached_client.get(url, headers=headers)

        assert first.status_code == second.status_code == 200
        assert second.json() == first.json()
        assert len(calls) == 1

    def test_reminder_list_hit_skips_query(self, cached_client, headers, camry, monkeypatch):
        cached_client.post(f"/api/vehicles/{camry['id']}/reminders", headers=headers,
                           json={"type": "Besiktning", "due_mileage": 60000})
        calls = count_calls(monkeypatch, ReminderRepository, "list")
        url = f"/api/vehicles/{camry['id']}/reminders"

        cached_client.get(url, headers=headers)
        second = cached_client.get(url, headers=headers)

        assert [r["type"] for r in second.json()] == ["Besiktning"]
        assert len(calls) == 1

    def test_write_drops_cached_list(self, cached_client, headers, camry, oil_change):
        url = f"/api/vehicles/{camry['id']}/services"
        cached_client.get(url, headers=headers)

        cached_client.post(url, headers=headers, json={"date": "2024-09-15", "mileage": 60000})

        assert len(cached_client.get(url, headers=headers).json()) == 2

    def test_cached_list_still_checks_owner(self, cached_client, headers, other_headers, camry, oil_change):
        url = f"/api/vehicles/{camry['id']}/services"
        cached_client.get(url, headers=headers)

        response = cached_client.get(url, headers=other_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"
