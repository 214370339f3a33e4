"""
Booking service - slot claims, status transitions and token-gated self-service

Every write runs in one transaction that first takes the business calendar
lock, then re-validates against live data, then writes. Notifications go out
only after the commit and never undo it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from sqlalchemy.orm import Session

from ...auth import AuthContext
from ...config import TOKEN_TTL_MINUTES
from ...errors import (
    AuthorizationError,
    InvalidOrExpiredToken,
    InvalidStatusTransition,
    NotFoundError,
    SlotAlreadyBooked,
    SlotUnavailable,
    ValidationError,
)
from ...models import Appointment, AuditLog, Business, TemporaryToken
from ...security_utils import constant_time_compare, generate_secure_token
from ...shared.transactions import write_transaction
from ...shared.validators import validate_client_name, validate_email, validate_phone
from ...utils.timezones import as_naive_utc, get_tz, local_date_of, to_utc_naive, utcnow
from ..audit.repository import AuditRepository
from ..availability.engine import Slot
from ..availability.service import AvailabilityService
from ..businesses.repository import BusinessRepository
from ..notifications.dispatcher import NotificationDispatcher
from ..scope import Scope
from .repository import AppointmentRepository, TokenRepository
from .state_machine import BUSINESS, CLIENT, can_reschedule, check_transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientInfo:
    name: str
    email: str
    phone: Optional[str] = None


@dataclass(frozen=True)
class AppointmentChange:
    """Either a status change or a move to new times, never both"""

    status: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


@dataclass(frozen=True)
class BusinessActor:
    auth: AuthContext


@dataclass(frozen=True)
class ClientActor:
    token: str


Actor = Union[BusinessActor, ClientActor]


@dataclass
class TransitionResult:
    appointment: Appointment
    token: Optional[TemporaryToken] = None  # Fresh self-service token after a reschedule


class BookingService:
    """Service layer for the booking state machine"""

    def __init__(
        self,
        db: Session,
        dispatcher: NotificationDispatcher,
        now: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.now = now
        self.availability = AvailabilityService(db, now=now)
        self.businesses = BusinessRepository()
        self.appointments = AppointmentRepository()
        self.tokens = TokenRepository()
        self.audit = AuditRepository()

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_offsets(start: datetime, end: datetime) -> None:
        if (start.tzinfo is None) != (end.tzinfo is None):
            raise ValidationError("startTime and endTime must both include a UTC offset or both omit it")

    def _validate_times(self, start: datetime, end: datetime) -> None:
        if start >= end:
            raise ValidationError("startTime must be before endTime")
        if start <= self.now():
            raise ValidationError("Cannot book a time in the past")

    @staticmethod
    def _validate_client(client: ClientInfo) -> ClientInfo:
        if not client.email:
            raise ValidationError("Email is required")
        try:
            return ClientInfo(
                name=validate_client_name(client.name),
                email=validate_email(client.email),
                phone=validate_phone(client.phone),
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

    def _matching_candidates(self, business: Business, scope: Scope, start: datetime, end: datetime) -> list[Slot]:
        """Schedule slots with exactly these bounds, ignoring existing bookings"""
        day = local_date_of(start, get_tz(business.timezone))
        candidates = [
            slot
            for slot in self.availability.candidate_slots(business, scope, day)
            if slot.start_time == start and slot.end_time == end
        ]
        if not candidates:
            raise SlotUnavailable()
        return candidates

    def _is_free(
        self, scope: Scope, start: datetime, end: datetime, exclude_appointment_id: Optional[int] = None
    ) -> bool:
        return not self.appointments.find_overlapping(self.db, scope, start, end, exclude_appointment_id)

    def _issue_token(self, appointment: Appointment) -> TemporaryToken:
        expires_at = self.now() + timedelta(minutes=TOKEN_TTL_MINUTES)
        return self.tokens.add(self.db, appointment, generate_secure_token(32), expires_at)

    def _consume_token(self, appointment: Appointment, presented: str) -> TemporaryToken:
        """
        Validate a client token and mark it used.

        Wrong, used, expired and email-mismatched tokens all fail the same way.
        """
        match = None
        for candidate in self.tokens.list_for_appointment(self.db, appointment.id):
            if presented and constant_time_compare(candidate.token, presented):
                match = candidate
        if (
            match is None
            or match.used
            or match.expires_at <= self.now()
            or match.client_email.lower() != appointment.client_email.lower()
        ):
            logger.warning(f"⚠️ Rejected self-service token for appointment {appointment.id}")
            raise InvalidOrExpiredToken()
        match.used = True
        return match

    def _notify(self, kind: str, appointment: Appointment, business: Business, token: Optional[str] = None) -> None:
        try:
            self.dispatcher.notify(kind, appointment, business.name, token)
        except Exception as e:
            logger.error(f"❌ Failed to dispatch {kind} notification for appointment {appointment.id}: {e}")

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------

    def claim_slot(
        self, scope: Scope, start_time: datetime, end_time: datetime, client: ClientInfo
    ) -> tuple[Appointment, TemporaryToken]:
        """
        Book one slot for an unauthenticated client.

        Raises SlotUnavailable when the bounds are not a slot of the schedule
        and SlotAlreadyBooked when every matching slot is taken. When the
        scope leaves the worker open, the first free matching worker's slot
        is taken.
        """
        business = self.businesses.get_by_id(self.db, scope.business_id)
        if not business:
            raise NotFoundError("Business not found")

        self._check_offsets(start_time, end_time)
        tz = get_tz(business.timezone)
        start = to_utc_naive(start_time, tz)
        end = to_utc_naive(end_time, tz)
        self._validate_times(start, end)
        client = self._validate_client(client)

        with write_transaction(self.db, "Claim slot"):
            self.businesses.lock(self.db, business.id)

            chosen = None
            for slot in self._matching_candidates(business, scope, start, end):
                if self._is_free(Scope(business.id, slot.branch_id, slot.worker_id), start, end):
                    chosen = slot
                    break
            if chosen is None:
                logger.info(f"🔒 Slot {start} already booked for business {business.id}")
                raise SlotAlreadyBooked()

            appointment = self.appointments.add(
                self.db,
                business_id=business.id,
                branch_id=chosen.branch_id,
                worker_id=chosen.worker_id,
                client_name=client.name,
                client_email=client.email,
                client_phone=client.phone,
                start_time=start,
                end_time=end,
                status="pending",
            )
            token = self._issue_token(appointment)
            self.audit.record(self.db, "create", "appointment", appointment.id, business.id)

        logger.info(f"✅ Appointment {appointment.id} booked for business {business.id} at {start} UTC")
        self._notify("created", appointment, business, token.token)
        return appointment, token

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(self, appointment_id: int, change: AppointmentChange, actor: Actor) -> TransitionResult:
        """
        Change an appointment's status or move it to new times.

        Business actors must own the appointment's business. Client actors
        present a self-service token, which is consumed by the change.
        """
        moving = change.start_time is not None or change.end_time is not None
        if change.status and moving:
            raise ValidationError("Change either the status or the times, not both")
        if not change.status and not moving:
            raise ValidationError("Provide a status or new startTime and endTime")
        if moving and (change.start_time is None or change.end_time is None):
            raise ValidationError("Both startTime and endTime are required to reschedule")
        if moving:
            self._check_offsets(change.start_time, change.end_time)

        appointment = self.appointments.get(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        business = appointment.business
        actor_kind = BUSINESS if isinstance(actor, BusinessActor) else CLIENT
        user_id = actor.auth.user_id if isinstance(actor, BusinessActor) else None

        if isinstance(actor, BusinessActor) and actor.auth.business_id != appointment.business_id:
            logger.warning(
                f"⚠️ User {actor.auth.user_id} tried to modify appointment {appointment.id} of another business"
            )
            raise AuthorizationError("Not allowed to modify this appointment")

        new_token = None
        with write_transaction(self.db, "Update appointment"):
            self.businesses.lock(self.db, business.id)
            self.db.refresh(appointment)

            if isinstance(actor, ClientActor):
                self._consume_token(appointment, actor.token)

            if change.status:
                check_transition(appointment.status, change.status, actor_kind)
                appointment.status = change.status
                kind = change.status
                action = "cancel" if change.status == "cancelled" else "update"
            else:
                if not can_reschedule(appointment.status):
                    raise InvalidStatusTransition("Cancelled appointments cannot be rescheduled")
                tz = get_tz(business.timezone)
                start = to_utc_naive(change.start_time, tz)
                end = to_utc_naive(change.end_time, tz)
                self._validate_times(start, end)

                own_scope = Scope(business.id, appointment.branch_id, appointment.worker_id)
                if actor_kind == CLIENT:
                    self._matching_candidates(business, own_scope, start, end)
                if not self._is_free(own_scope, start, end, exclude_appointment_id=appointment.id):
                    raise SlotAlreadyBooked()

                appointment.start_time = start
                appointment.end_time = end
                appointment.status = "pending"
                new_token = self._issue_token(appointment)
                kind = "rescheduled"
                action = "update"

            self.audit.record(self.db, action, "appointment", appointment.id, business.id, user_id)

        logger.info(f"✅ Appointment {appointment.id} {kind} by {actor_kind}")
        self._notify(kind, appointment, business, new_token.token if new_token else None)
        return TransitionResult(appointment=appointment, token=new_token)

    def cancel_by_client(self, appointment_id: int, token: str) -> TransitionResult:
        return self.transition(appointment_id, AppointmentChange(status="cancelled"), ClientActor(token=token))

    # ------------------------------------------------------------------
    # Business views
    # ------------------------------------------------------------------

    def list_appointments(
        self,
        auth: AuthContext,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        branch_id: Optional[int] = None,
        worker_id: Optional[int] = None,
    ) -> list[Appointment]:
        return self.appointments.list_for_business(
            self.db, auth.business_id, status, as_naive_utc(start), as_naive_utc(end), branch_id, worker_id
        )

    def list_audit_logs(
        self,
        auth: AuthContext,
        entity: Optional[str] = None,
        entity_id: Optional[int] = None,
        action: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[AuditLog]:
        return self.audit.list_logs(
            self.db, auth.business_id, entity, entity_id, action, as_naive_utc(start), as_naive_utc(end)
        )
