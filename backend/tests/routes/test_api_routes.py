# backend/tests/routes/test_api_routes.py
"""
HTTP tests for the v1 API.

Requests run against the real services on an in-memory database; only the
session and the catalog cache dependencies are overridden.
"""

from datetime import date, timedelta

from fastapi import status
from fastapi.testclient import TestClient
import pytest

from clinicbook.api.dependencies import get_catalog_cache, get_db
from clinicbook.infrastructure.cache.catalog_cache import InMemoryCache
from clinicbook.main import app

API = "/api/v1"


def _next_monday() -> date:
    today = date.today()
    return today + timedelta(days=(7 - today.weekday()) % 7 or 7)


@pytest.fixture
def client(session_factory):
    cache = InMemoryCache()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog_cache] = lambda: cache
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(client):
    """Provider with a Monday schedule and a 30 minute service, set up through the API."""
    assert client.put(f"{API}/catalog/providers/dr-iyer", json={"name": "Dr. Kavya Iyer"}).status_code == 200
    response = client.put(
        f"{API}/catalog/services/consult",
        json={"name": "Consultation", "duration_minutes": 30, "price": "400.00"},
    )
    assert response.status_code == 200
    response = client.put(
        f"{API}/catalog/providers/dr-iyer/schedule/1",
        json={
            "start_time": "09:00",
            "end_time": "13:00",
            "break_start": "11:00",
            "break_end": "11:30",
        },
    )
    assert response.status_code == 200
    return {"provider_id": "dr-iyer", "service_id": "consult", "day": _next_monday()}


def _book(client, seeded, start_time="09:00", user_id="patient-1"):
    return client.post(
        f"{API}/appointments",
        json={
            "provider_id": seeded["provider_id"],
            "service_id": seeded["service_id"],
            "user_id": user_id,
            "appointment_date": seeded["day"].isoformat(),
            "start_time": start_time,
        },
    )


class TestCatalogRoutes:
    def test_service_response_shape(self, client, seeded):
        response = client.put(
            f"{API}/catalog/services/consult",
            json={"name": "Consultation", "duration_minutes": 30, "price": 450},
        )

        assert response.status_code == 200
        assert response.json()["price"] == "450.00"

    def test_schedule_rule_round_trip(self, client, seeded):
        response = client.get(f"{API}/catalog/providers/dr-iyer/schedule/1")

        assert response.status_code == 200
        body = response.json()
        assert body["start_time"] == "09:00"
        assert body["break_start"] == "11:00"

    def test_missing_schedule_is_404(self, client, seeded):
        response = client.get(f"{API}/catalog/providers/dr-iyer/schedule/3")

        assert response.status_code == 404
        assert response.json()["code"] == "SCHEDULE_NOT_FOUND"

    def test_break_without_end_is_rejected(self, client, seeded):
        response = client.put(
            f"{API}/catalog/providers/dr-iyer/schedule/2",
            json={"start_time": "09:00", "end_time": "13:00", "break_start": "11:00"},
        )
        assert response.status_code == 422


class TestSlotRoutes:
    def test_slots_for_a_working_day(self, client, seeded):
        response = client.get(
            f"{API}/providers/dr-iyer/slots",
            params={"date": seeded["day"].isoformat(), "service_id": "consult"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["slots"] == ["09:00", "09:30", "10:00", "10:30", "11:30", "12:00", "12:30"]
        assert body["date"] == seeded["day"].isoformat()

    def test_slots_for_a_day_off(self, client, seeded):
        response = client.get(
            f"{API}/providers/dr-iyer/slots",
            params={"date": (seeded["day"] + timedelta(days=1)).isoformat(), "service_id": "consult"},
        )
        assert response.status_code == 200
        assert response.json()["slots"] == []

    def test_unknown_service_is_404(self, client, seeded):
        response = client.get(
            f"{API}/providers/dr-iyer/slots",
            params={"date": seeded["day"].isoformat(), "service_id": "nope"},
        )

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "SERVICE_NOT_FOUND"
        assert body["status"] == 404
        assert body["instance"] == f"{API}/providers/dr-iyer/slots"


class TestAppointmentRoutes:
    def test_book_and_fetch(self, client, seeded):
        response = _book(client, seeded)

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["status"] == "pending"
        assert body["start_time"] == "09:00"
        assert body["end_time"] == "09:30"
        assert body["payment_amount"] == "0.00"

        fetched = client.get(f"{API}/appointments/{body['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["confirmation_number"] == body["confirmation_number"]

    def test_double_booking_is_409(self, client, seeded):
        assert _book(client, seeded, user_id="patient-1").status_code == 201

        response = _book(client, seeded, user_id="patient-2")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "SLOT_UNAVAILABLE"

    def test_unknown_fields_are_rejected(self, client, seeded):
        response = client.post(
            f"{API}/appointments",
            json={
                "provider_id": "dr-iyer",
                "service_id": "consult",
                "user_id": "patient-1",
                "appointment_date": seeded["day"].isoformat(),
                "start_time": "09:00",
                "discount": "100",
            },
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_bad_time_format_is_422(self, client, seeded):
        assert _book(client, seeded, start_time="9am").status_code == 422

    def test_lifecycle_over_http(self, client, seeded):
        appointment_id = _book(client, seeded).json()["id"]

        confirmed = client.post(f"{API}/appointments/{appointment_id}/confirm")
        assert confirmed.json()["status"] == "confirmed"

        moved = client.post(
            f"{API}/appointments/{appointment_id}/reschedule",
            json={"new_date": seeded["day"].isoformat(), "new_start_time": "10:00", "reason": "late"},
        )
        assert moved.status_code == 200
        assert moved.json()["start_time"] == "10:00"
        assert moved.json()["reschedule_count"] == 1

        history = client.get(f"{API}/appointments/{appointment_id}/history")
        assert history.json()[0]["from_start_time"] == "09:00"

        completed = client.post(
            f"{API}/appointments/{appointment_id}/complete", json={"actor_id": "dr-iyer"}
        )
        assert completed.json()["status"] == "completed"

    def test_invalid_transition_is_422(self, client, seeded):
        appointment_id = _book(client, seeded).json()["id"]

        response = client.post(f"{API}/appointments/{appointment_id}/no-show")

        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_STATUS_TRANSITION"

    def test_cancel_requires_initiator(self, client, seeded):
        appointment_id = _book(client, seeded).json()["id"]

        response = client.post(f"{API}/appointments/{appointment_id}/cancel", json={})
        assert response.status_code == 422

        response = client.post(
            f"{API}/appointments/{appointment_id}/cancel",
            json={"initiator": "patient-1", "reason": "  feeling better  "},
        )
        assert response.status_code == 200
        assert response.json()["cancellation_reason"] == "feeling better"

    def test_unknown_appointment_is_404(self, client):
        response = client.get(f"{API}/appointments/01HZZZZZZZZZZZZZZZZZZZZZZZ")
        assert response.status_code == 404
        assert response.json()["code"] == "APPOINTMENT_NOT_FOUND"


class TestPaymentRoutes:
    def test_deposit_refund_and_revenue(self, client, seeded):
        appointment_id = _book(client, seeded).json()["id"]

        paid = client.post(
            f"{API}/appointments/{appointment_id}/payments",
            json={"axis": "reservation", "amount": "400.00", "method": "card"},
        )
        assert paid.status_code == 201
        assert paid.json()["payment_status"] == "reservation_paid"

        early = client.post(f"{API}/appointments/{appointment_id}/refunds", json={"amount": "400"})
        assert early.status_code == 422
        assert early.json()["code"] == "PAYMENT_STATE_CONFLICT"

        refunded = client.post(
            f"{API}/appointments/{appointment_id}/refunds",
            json={"amount": "400", "force_cancel": True, "reason": "clinic closed"},
        )
        assert refunded.status_code == 200
        assert refunded.json()["status"] == "cancelled"
        assert refunded.json()["refund_amount"] == "400.00"

        ledger = client.get(f"{API}/appointments/{appointment_id}/payments").json()
        assert [row["kind"] for row in ledger] == ["payment", "refund"]

        revenue = client.get(f"{API}/payments/revenue", params={"date": seeded["day"].isoformat()})
        assert revenue.json()["net"] == "0.00"

    def test_refund_from_pending_is_rejected(self, client, seeded):
        appointment_id = _book(client, seeded).json()["id"]

        response = client.post(
            f"{API}/appointments/{appointment_id}/refunds",
            json={"amount": "100", "force_cancel": True},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "REFUND_FROM_PENDING"
        assert client.get(f"{API}/appointments/{appointment_id}").json()["status"] == "pending"

    def test_waive_service_payment(self, client, seeded):
        appointment_id = _book(client, seeded).json()["id"]
        client.post(f"{API}/appointments/{appointment_id}/confirm")

        response = client.post(
            f"{API}/appointments/{appointment_id}/service-payment/waive",
            json={"reason": "goodwill"},
        )

        assert response.status_code == 200
        assert response.json()["service_payment_status"] == "waived"

    def test_non_positive_amount_is_422(self, client, seeded):
        appointment_id = _book(client, seeded).json()["id"]

        response = client.post(
            f"{API}/appointments/{appointment_id}/payments",
            json={"axis": "reservation", "amount": "0"},
        )
        assert response.status_code == 422


class TestWaitlistRoutes:
    def test_join_cancel_and_promote(self, client, seeded):
        _book(client, seeded, start_time="09:00", user_id="patient-1")
        joined = client.post(
            f"{API}/waitlist",
            json={
                "provider_id": "dr-iyer",
                "service_id": "consult",
                "user_id": "patient-2",
                "preferred_date": seeded["day"].isoformat(),
                "preferred_time": "09:00",
            },
        )
        assert joined.status_code == 201
        entry_id = joined.json()["id"]

        nothing_free = client.post(
            f"{API}/waitlist/promote",
            json={
                "provider_id": "dr-iyer",
                "service_id": "consult",
                "slot_date": seeded["day"].isoformat(),
                "slot_time": "09:00",
            },
        )
        assert nothing_free.json() == {"promoted": False, "entry": None}

        cancelled = client.post(f"{API}/waitlist/{entry_id}/cancel")
        assert cancelled.json()["status"] == "cancelled"

    def test_cancellation_notifies_waiting_patient(self, client, seeded):
        appointment_id = _book(client, seeded, start_time="09:00", user_id="patient-1").json()["id"]
        entry_id = client.post(
            f"{API}/waitlist",
            json={
                "provider_id": "dr-iyer",
                "service_id": "consult",
                "user_id": "patient-2",
                "preferred_date": seeded["day"].isoformat(),
            },
        ).json()["id"]

        client.post(f"{API}/appointments/{appointment_id}/cancel", json={"initiator": "patient-1"})

        entry = client.get(f"{API}/waitlist/{entry_id}").json()
        assert entry["status"] == "notified"
        assert entry["offered_time"] == "09:00"


class TestOperationalRoutes:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"] == {"database": True, "cache": True}
        assert response.headers["Cache-Control"] == "no-store"

    def test_metrics_exposition(self, client, seeded):
        _book(client, seeded)

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "clinicbook_service_operations_total" in response.text
        assert "clinicbook_metrics_scrapes_total" in response.text
