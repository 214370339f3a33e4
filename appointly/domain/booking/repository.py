"""Booking repository - Database operations for appointments and temporary tokens"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, TemporaryToken
from ..scope import Scope, intersecting_scope_filters


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get(db: Session, appointment_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.business))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def find_overlapping(
        db: Session,
        scope: Scope,
        start_time: datetime,
        end_time: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> list[Appointment]:
        """Non-cancelled appointments of an intersecting scope whose [start, end) meets the given range"""
        query = db.query(Appointment).filter(
            *intersecting_scope_filters(Appointment, scope),
            Appointment.status != "cancelled",
            Appointment.start_time < end_time,
            Appointment.end_time > start_time,
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.order_by(Appointment.start_time, Appointment.id).all()

    @staticmethod
    def add(db: Session, **appointment_data) -> Appointment:
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def list_for_business(
        db: Session,
        business_id: int,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        branch_id: Optional[int] = None,
        worker_id: Optional[int] = None,
        limit: int = 100,
    ) -> list[Appointment]:
        query = db.query(Appointment).filter(Appointment.business_id == business_id)
        if status:
            query = query.filter(Appointment.status == status)
        if start:
            query = query.filter(Appointment.start_time >= start)
        if end:
            query = query.filter(Appointment.start_time < end)
        if branch_id is not None:
            query = query.filter(Appointment.branch_id == branch_id)
        if worker_id is not None:
            query = query.filter(Appointment.worker_id == worker_id)
        return query.order_by(Appointment.start_time, Appointment.id).limit(limit).all()

    @staticmethod
    def starting_between(db: Session, business_id: int, start: datetime, end: datetime) -> list[Appointment]:
        """Pending and confirmed appointments of a business starting in [start, end)"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.business_id == business_id,
                Appointment.status.in_(("pending", "confirmed")),
                Appointment.start_time >= start,
                Appointment.start_time < end,
            )
            .order_by(Appointment.start_time)
            .all()
        )


class TokenRepository:
    """Repository for temporary self-service tokens"""

    @staticmethod
    def add(db: Session, appointment: Appointment, token: str, expires_at: datetime) -> TemporaryToken:
        temporary_token = TemporaryToken(
            token=token,
            appointment_id=appointment.id,
            client_email=appointment.client_email,
            expires_at=expires_at,
            used=False,
        )
        db.add(temporary_token)
        db.flush()
        return temporary_token

    @staticmethod
    def list_for_appointment(db: Session, appointment_id: int) -> list[TemporaryToken]:
        return (
            db.query(TemporaryToken)
            .filter(TemporaryToken.appointment_id == appointment_id)
            .order_by(TemporaryToken.id)
            .all()
        )

    @staticmethod
    def delete_dead(db: Session, now: datetime, grace: timedelta = timedelta(0)) -> int:
        """Remove used tokens and tokens expired more than ``grace`` ago"""
        deleted = (
            db.query(TemporaryToken)
            .filter(or_(TemporaryToken.used.is_(True), TemporaryToken.expires_at < now - grace))
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted
