"""
Tests for domain/booking/service.py

Slot claims, self-service tokens and the appointment state machine.
"""

import unittest
from datetime import date, datetime, time, timezone

from appointly.domain.availability.service import AvailabilityService
from appointly.domain.booking.service import (
    AppointmentChange,
    BookingService,
    BusinessActor,
    ClientActor,
    ClientInfo,
)
from appointly.domain.booking.state_machine import BUSINESS, CLIENT, check_transition
from appointly.domain.scope import Scope
from appointly.errors import (
    AuthorizationError,
    InvalidOrExpiredToken,
    InvalidStatusTransition,
    NotFoundError,
    SlotAlreadyBooked,
    SlotUnavailable,
    ValidationError,
)
from appointly.models import Appointment, AuditLog, TemporaryToken

from .factories import (
    FixedClock,
    RecordingNotificationDispatcher,
    create_appointment,
    create_business,
    create_exception,
    create_rule,
    create_worker,
    memory_session,
    owner_auth,
)

MONDAY = date(2025, 7, 7)
JANE = ClientInfo(name="Jane Doe", email="Jane@Example.com", phone="+1 555 0100")
JOHN = ClientInfo(name="John Roe", email="john@example.com")


def at(hour, minute=0):
    return datetime(2025, 7, 7, hour, minute)


class BookingTestCase(unittest.TestCase):
    def setUp(self):
        self.db, self.engine = memory_session()
        self.clock = FixedClock()
        self.dispatcher = RecordingNotificationDispatcher()
        self.business = create_business(self.db)
        create_rule(self.db, self.business, day_of_week=1, start=time(9), end=time(17), duration=30)
        self.scope = Scope(self.business.id)
        self.service = BookingService(self.db, self.dispatcher, now=self.clock)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def available_starts(self, scope=None):
        availability = AvailabilityService(self.db, now=self.clock)
        return [s.start_time for s in availability.get_availability(self.business, scope or self.scope, MONDAY)]

    def book(self, start=None, end=None, client=JANE, scope=None):
        return self.service.claim_slot(scope or self.scope, start or at(9), end or at(9, 30), client)


class TestClaimSlot(BookingTestCase):
    """Tests for claiming a slot."""

    def test_acme_booking_scenario(self):
        """Test that a booked slot disappears and a second claim on it fails."""
        appointment, token = self.book()

        self.assertEqual(appointment.status, "pending")
        self.assertEqual(appointment.client_email, "jane@example.com")
        self.assertEqual(len(token.token), 43)
        self.assertEqual(token.expires_at, datetime(2025, 7, 1, 12, 10))

        with self.assertRaises(SlotAlreadyBooked):
            self.book(client=JOHN)

        starts = self.available_starts()
        self.assertNotIn(at(9), starts)
        self.assertIn(at(9, 30), starts)
        self.assertEqual(self.db.query(Appointment).count(), 1)

    def test_claim_notifies_with_token(self):
        appointment, token = self.book()

        self.assertEqual(self.dispatcher.sent, [("created", appointment.id, "Acme Studio", token.token)])

    def test_claim_writes_audit_record(self):
        appointment, _ = self.book()

        log = self.db.query(AuditLog).one()
        self.assertEqual((log.action, log.entity, log.entity_id), ("create", "appointment", appointment.id))
        self.assertIsNone(log.user_id)

    def test_time_outside_the_schedule_is_unavailable(self):
        with self.assertRaises(SlotUnavailable):
            self.book(at(9, 10), at(9, 40))
        with self.assertRaises(SlotUnavailable):
            self.book(at(17), at(17, 30))

    def test_closed_day_is_unavailable(self):
        """Test that a closure exception empties the day even with a Monday rule."""
        create_exception(self.db, self.business, MONDAY, is_closed=True)

        self.assertEqual(self.available_starts(), [])
        with self.assertRaises(SlotUnavailable):
            self.book()

    def test_past_time_is_rejected(self):
        self.clock.current = datetime(2025, 7, 7, 10, 0)

        with self.assertRaises(ValidationError):
            self.book(at(9), at(9, 30))

    def test_mixed_offset_window_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.book(at(9).replace(tzinfo=timezone.utc), at(9, 30))
        self.assertEqual(self.db.query(Appointment).count(), 0)

    def test_started_slots_are_hidden(self):
        self.clock.current = datetime(2025, 7, 7, 10, 0)

        starts = self.available_starts()

        self.assertEqual(starts[0], at(10, 30))

    def test_invalid_client_details_are_rejected(self):
        with self.assertRaises(ValidationError):
            self.book(client=ClientInfo(name="Jane", email=""))
        with self.assertRaises(ValidationError):
            self.book(client=ClientInfo(name="x" * 101, email="jane@example.com"))
        with self.assertRaises(ValidationError):
            self.book(client=ClientInfo(name="Jane", email="jane@example.com", phone="call me maybe"))

    def test_overlapping_existing_appointment_blocks_claim(self):
        create_appointment(self.db, self.business, at(9, 15), at(9, 45))

        with self.assertRaises(SlotAlreadyBooked):
            self.book(at(9, 30), at(10))

    def test_notification_failure_does_not_undo_claim(self):
        self.service = BookingService(self.db, RecordingNotificationDispatcher(fail=True), now=self.clock)

        with self.assertLogs("appointly.domain.booking.service", level="ERROR"):
            appointment, _ = self.book()

        self.assertEqual(self.db.query(Appointment).filter(Appointment.id == appointment.id).count(), 1)

    def test_open_worker_claims_first_free_worker(self):
        """Test that claims without a worker go to the first worker with the slot free."""
        salon = create_business(self.db, username="salon", owner_user_id="owner-2")
        ana = create_worker(self.db, salon, name="Ana")
        bo = create_worker(self.db, salon, name="Bo")
        create_rule(self.db, salon, worker_id=ana.id)
        create_rule(self.db, salon, worker_id=bo.id)
        scope = Scope(salon.id)

        first, _ = self.book(scope=scope)
        second, _ = self.book(scope=scope, client=JOHN)

        self.assertEqual((first.worker_id, second.worker_id), (ana.id, bo.id))
        with self.assertRaises(SlotAlreadyBooked):
            self.book(scope=scope, client=ClientInfo(name="Third", email="third@example.com"))

    def test_unknown_business_is_not_found(self):
        with self.assertRaises(NotFoundError):
            self.book(scope=Scope(999))


class TestClientTokens(BookingTestCase):
    """Tests for token-gated client changes."""

    def test_reschedule_scenario(self):
        """Test that a client reschedule frees the old slot and uses the token."""
        appointment, token = self.book()

        result = self.service.transition(
            appointment.id,
            AppointmentChange(start_time=at(10), end_time=at(10, 30)),
            ClientActor(token=token.token),
        )

        starts = self.available_starts()
        self.assertIn(at(9), starts)
        self.assertNotIn(at(10), starts)
        self.assertEqual(result.appointment.status, "pending")
        self.assertEqual(result.appointment.start_time, at(10))
        self.db.refresh(token)
        self.assertTrue(token.used)
        self.assertIsNotNone(result.token)
        self.assertNotEqual(result.token.token, token.token)
        self.assertEqual(self.dispatcher.kinds(), ["created", "rescheduled"])

    def test_token_is_single_use(self):
        appointment, token = self.book()
        self.service.cancel_by_client(appointment.id, token.token)

        with self.assertRaises(InvalidOrExpiredToken):
            self.service.cancel_by_client(appointment.id, token.token)

    def test_expired_token_is_rejected(self):
        appointment, token = self.book()
        self.clock.advance(minutes=11)

        with self.assertRaises(InvalidOrExpiredToken):
            self.service.cancel_by_client(appointment.id, token.token)

    def test_wrong_token_is_rejected(self):
        appointment, _ = self.book()

        with self.assertRaises(InvalidOrExpiredToken):
            self.service.cancel_by_client(appointment.id, "not-the-token")

    def test_token_of_another_appointment_is_rejected(self):
        first, first_token = self.book()
        second, _ = self.book(at(10), at(10, 30), client=JOHN)

        with self.assertRaises(InvalidOrExpiredToken):
            self.service.cancel_by_client(second.id, first_token.token)

    def test_token_for_changed_email_is_rejected(self):
        appointment, token = self.book()
        appointment.client_email = "someone.else@example.com"
        self.db.commit()

        with self.assertRaises(InvalidOrExpiredToken):
            self.service.cancel_by_client(appointment.id, token.token)

    def test_client_cannot_confirm(self):
        appointment, token = self.book()

        with self.assertRaises(AuthorizationError):
            self.service.transition(appointment.id, AppointmentChange(status="confirmed"), ClientActor(token.token))

        self.db.refresh(token)
        self.assertFalse(token.used)
        self.assertEqual(self.db.get(Appointment, appointment.id).status, "pending")

    def test_client_cancel_notifies_and_audits(self):
        appointment, token = self.book()

        result = self.service.cancel_by_client(appointment.id, token.token)

        self.assertEqual(result.appointment.status, "cancelled")
        self.assertEqual(self.dispatcher.kinds(), ["created", "cancelled"])
        actions = [log.action for log in self.db.query(AuditLog).order_by(AuditLog.id)]
        self.assertEqual(actions, ["create", "cancel"])
        self.assertIn(at(9), self.available_starts())

    def test_client_reschedule_must_hit_a_slot(self):
        appointment, token = self.book()

        with self.assertRaises(SlotUnavailable):
            self.service.transition(
                appointment.id,
                AppointmentChange(start_time=at(10, 10), end_time=at(10, 40)),
                ClientActor(token.token),
            )

    def test_status_and_times_together_are_rejected(self):
        appointment, token = self.book()

        with self.assertRaises(ValidationError):
            self.service.transition(
                appointment.id,
                AppointmentChange(status="cancelled", start_time=at(10), end_time=at(10, 30)),
                ClientActor(token.token),
            )

    def test_half_a_reschedule_is_rejected(self):
        appointment, token = self.book()

        with self.assertRaises(ValidationError):
            self.service.transition(appointment.id, AppointmentChange(start_time=at(10)), ClientActor(token.token))

    def test_mixed_offset_reschedule_keeps_token(self):
        appointment, token = self.book()

        with self.assertRaises(ValidationError):
            self.service.transition(
                appointment.id,
                AppointmentChange(start_time=at(10), end_time=at(10, 30).replace(tzinfo=timezone.utc)),
                ClientActor(token.token),
            )

        self.db.refresh(token)
        self.assertFalse(token.used)
        self.assertEqual(appointment.start_time, at(9))


class TestBusinessTransitions(BookingTestCase):
    """Tests for owner-side status changes and moves."""

    def setUp(self):
        super().setUp()
        self.actor = BusinessActor(owner_auth(self.business))

    def test_confirm_then_cancel(self):
        appointment, _ = self.book()

        confirmed = self.service.transition(appointment.id, AppointmentChange(status="confirmed"), self.actor)
        cancelled = self.service.transition(appointment.id, AppointmentChange(status="cancelled"), self.actor)

        self.assertIsNone(confirmed.token)
        self.assertEqual(cancelled.appointment.status, "cancelled")
        self.assertEqual(self.dispatcher.kinds(), ["created", "confirmed", "cancelled"])
        logs = self.db.query(AuditLog).order_by(AuditLog.id).all()
        self.assertEqual([log.action for log in logs], ["create", "update", "cancel"])
        self.assertEqual(logs[1].user_id, "owner-1")

    def test_cancelled_appointment_cannot_be_confirmed(self):
        appointment, _ = self.book()
        self.service.transition(appointment.id, AppointmentChange(status="cancelled"), self.actor)

        with self.assertRaises(InvalidStatusTransition):
            self.service.transition(appointment.id, AppointmentChange(status="confirmed"), self.actor)

    def test_cancelled_appointment_cannot_be_moved(self):
        appointment, _ = self.book()
        self.service.transition(appointment.id, AppointmentChange(status="cancelled"), self.actor)

        with self.assertRaises(InvalidStatusTransition):
            self.service.transition(
                appointment.id, AppointmentChange(start_time=at(11), end_time=at(11, 30)), self.actor
            )

    def test_other_business_owner_is_forbidden(self):
        appointment, _ = self.book()
        other = create_business(self.db, username="other", owner_user_id="owner-2")

        with self.assertRaises(AuthorizationError):
            self.service.transition(
                appointment.id, AppointmentChange(status="confirmed"), BusinessActor(owner_auth(other))
            )

    def test_move_onto_booked_time_is_rejected(self):
        first, _ = self.book()
        self.book(at(10), at(10, 30), client=JOHN)

        with self.assertRaises(SlotAlreadyBooked):
            self.service.transition(first.id, AppointmentChange(start_time=at(10), end_time=at(10, 30)), self.actor)

    def test_move_resets_status_and_excludes_itself(self):
        appointment, _ = self.book()
        self.service.transition(appointment.id, AppointmentChange(status="confirmed"), self.actor)

        result = self.service.transition(
            appointment.id, AppointmentChange(start_time=at(9, 15), end_time=at(9, 45)), self.actor
        )

        self.assertEqual(result.appointment.status, "pending")
        self.assertEqual(result.appointment.start_time, at(9, 15))
        self.assertIsNotNone(result.token)
        self.assertEqual(self.dispatcher.kinds()[-1], "rescheduled")

    def test_missing_appointment_is_not_found(self):
        with self.assertRaises(NotFoundError):
            self.service.transition(999, AppointmentChange(status="confirmed"), self.actor)

    def test_listing_is_ordered_by_start(self):
        self.book(at(11), at(11, 30))
        self.book(at(9), at(9, 30), client=JOHN)

        appointments = self.service.list_appointments(owner_auth(self.business))

        self.assertEqual([a.start_time for a in appointments], [at(9), at(11)])
        self.assertEqual(self.db.query(TemporaryToken).count(), 2)


class TestStateMachine(unittest.TestCase):
    """Tests for the transition table."""

    def test_allowed_transitions(self):
        check_transition("pending", "confirmed", BUSINESS)
        check_transition("pending", "cancelled", BUSINESS)
        check_transition("pending", "cancelled", CLIENT)
        check_transition("confirmed", "cancelled", CLIENT)

    def test_rejected_transitions(self):
        with self.assertRaises(InvalidStatusTransition):
            check_transition("cancelled", "pending", BUSINESS)
        with self.assertRaises(InvalidStatusTransition):
            check_transition("confirmed", "confirmed", BUSINESS)
        with self.assertRaises(AuthorizationError):
            check_transition("pending", "confirmed", CLIENT)
        with self.assertRaises(ValidationError):
            check_transition("pending", "archived", BUSINESS)
