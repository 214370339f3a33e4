"""
HTTP tests for the public booking and dashboard routes
"""

import unittest
from datetime import timedelta

from fastapi.testclient import TestClient

from appointly.database import get_db
from appointly.domain.booking.router import get_clock, get_notification_dispatcher
from appointly.main import app
from appointly.security_utils import create_jwt_token

from .factories import FixedClock, RecordingNotificationDispatcher, memory_session

SLOT = {"startTime": "2025-07-07T09:00:00", "endTime": "2025-07-07T09:30:00"}


def bearer(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_jwt_token({'sub': user_id}, timedelta(hours=1))}"}


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.db, self.engine = memory_session()
        self.clock = FixedClock()
        self.dispatcher = RecordingNotificationDispatcher()

        def override_get_db():
            yield self.db

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_clock] = lambda: self.clock
        app.dependency_overrides[get_notification_dispatcher] = lambda: self.dispatcher
        self.client = TestClient(app)

        self.owner = bearer("owner-1")
        response = self.client.post(
            "/business", json={"name": "Acme Studio", "username": "acme", "timezone": "UTC"}, headers=self.owner
        )
        self.assertEqual(response.status_code, 201, response.text)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.db.close()
        self.engine.dispose()

    def book(self, **overrides):
        body = {**SLOT, "clientName": "Jane Doe", "clientEmail": "jane@example.com", **overrides}
        return self.client.post("/public/business/acme/appointments", json=body)


class TestPublicBooking(ApiTestCase):
    """Tests for the unauthenticated booking flow."""

    def test_public_profile(self):
        response = self.client.get("/public/business/acme")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["business"]["name"], "Acme Studio")

    def test_availability_lists_seeded_schedule(self):
        response = self.client.get("/public/business/acme/availability", params={"date": "2025-07-07"})

        slots = response.json()["availableSlots"]
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(slots), 16)
        self.assertTrue(slots[0]["startTime"].startswith("2025-07-07T09:00:00"))

    def test_booking_and_double_booking(self):
        first = self.book()
        second = self.book(clientEmail="john@example.com")

        self.assertEqual(first.status_code, 201, first.text)
        self.assertEqual(set(first.json()), {"appointmentId", "token", "expiresAt"})
        self.assertEqual(second.status_code, 400)
        self.assertEqual(second.json()["error"], "slot_already_booked")
        self.assertEqual(self.dispatcher.kinds(), ["created"])

    def test_slot_outside_schedule(self):
        response = self.book(startTime="2025-07-06T09:00:00", endTime="2025-07-06T09:30:00")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "slot_unavailable")

    def test_malformed_request_is_rejected(self):
        response = self.book(clientEmail="not-an-email")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "validation_error")

    def test_mixed_offset_times_are_rejected(self):
        response = self.book(startTime="2025-07-07T09:00:00Z", endTime="2025-07-07T09:30:00")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "validation_error")
        self.assertEqual(self.dispatcher.kinds(), [])

    def test_mixed_offset_reschedule_is_rejected(self):
        booked = self.book().json()

        response = self.client.put(
            f"/public/appointments/{booked['appointmentId']}",
            json={"token": booked["token"], "startTime": "2025-07-07T10:00:00", "endTime": "2025-07-07T10:30:00+00:00"},
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "validation_error")

    def test_unknown_business(self):
        response = self.client.get("/public/business/nobody/availability", params={"date": "2025-07-07"})

        self.assertEqual(response.status_code, 404)

    def test_client_reschedule_and_cancel(self):
        booked = self.book().json()

        moved = self.client.put(
            f"/public/appointments/{booked['appointmentId']}",
            json={"token": booked["token"], "startTime": "2025-07-07T10:00:00", "endTime": "2025-07-07T10:30:00"},
        )
        self.assertEqual(moved.status_code, 200, moved.text)
        self.assertEqual(moved.json()["status"], "pending")

        stale = self.client.request(
            "DELETE", f"/public/appointments/{booked['appointmentId']}", json={"token": booked["token"]}
        )
        self.assertEqual(stale.status_code, 400)
        self.assertEqual(stale.json()["error"], "invalid_or_expired_token")

        cancelled = self.client.request(
            "DELETE", f"/public/appointments/{booked['appointmentId']}", json={"token": moved.json()["token"]}
        )
        self.assertEqual(cancelled.status_code, 200, cancelled.text)
        self.assertEqual(cancelled.json()["status"], "cancelled")
        self.assertEqual(self.dispatcher.kinds(), ["created", "rescheduled", "cancelled"])

    def test_client_cannot_confirm(self):
        booked = self.book().json()

        response = self.client.put(
            f"/public/appointments/{booked['appointmentId']}", json={"token": booked["token"], "status": "confirmed"}
        )

        self.assertEqual(response.status_code, 403)


class TestDashboard(ApiTestCase):
    """Tests for the owner-only routes."""

    def test_missing_token_is_unauthorized(self):
        self.assertEqual(self.client.get("/appointments").status_code, 401)

    def test_user_without_business_is_forbidden(self):
        response = self.client.get("/appointments", headers=bearer("someone-else"))

        self.assertEqual(response.status_code, 403)

    def test_owner_confirms_and_lists(self):
        booked = self.book().json()

        confirmed = self.client.put(
            f"/appointments/{booked['appointmentId']}", json={"status": "confirmed"}, headers=self.owner
        )
        listed = self.client.get("/appointments", params={"status": "confirmed"}, headers=self.owner)
        logs = self.client.get("/appointments/audit-logs", params={"entity": "appointment"}, headers=self.owner)

        self.assertEqual(confirmed.status_code, 200, confirmed.text)
        self.assertEqual([a["id"] for a in listed.json()], [booked["appointmentId"]])
        self.assertEqual([log["action"] for log in logs.json()["logs"]], ["update", "create"])

    def test_overlapping_rule_conflicts(self):
        response = self.client.post(
            "/schedules", json={"dayOfWeek": 1, "startTime": "16:00", "endTime": "18:00"}, headers=self.owner
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "overlapping_schedule")

    def test_closure_empties_availability(self):
        created = self.client.post("/schedules/exceptions", json={"date": "2025-07-07"}, headers=self.owner)
        duplicate = self.client.post("/schedules/exceptions", json={"date": "2025-07-07"}, headers=self.owner)
        slots = self.client.get("/public/business/acme/availability", params={"date": "2025-07-07"})

        self.assertEqual(created.status_code, 201, created.text)
        self.assertEqual(duplicate.status_code, 409)
        self.assertEqual(slots.json()["availableSlots"], [])
