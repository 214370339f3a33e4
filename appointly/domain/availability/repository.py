"""Availability repository - Precomputed slot cache storage"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import PrecomputedDay, PrecomputedSlot
from ..scope import Scope, exact_scope_filters
from .engine import Slot


class SlotCacheRepository:
    """Repository for the precomputed slot cache"""

    @staticmethod
    def get_day_marker(db: Session, scope: Scope, day: date) -> Optional[PrecomputedDay]:
        return (
            db.query(PrecomputedDay)
            .filter(*exact_scope_filters(PrecomputedDay, scope), PrecomputedDay.date == day)
            .order_by(PrecomputedDay.computed_at.desc())
            .first()
        )

    @staticmethod
    def get_slots(db: Session, scope: Scope, day: date) -> list[PrecomputedSlot]:
        return (
            db.query(PrecomputedSlot)
            .filter(*exact_scope_filters(PrecomputedSlot, scope), PrecomputedSlot.date == day)
            .order_by(PrecomputedSlot.start_time, PrecomputedSlot.id)
            .all()
        )

    @staticmethod
    def replace_day(db: Session, scope: Scope, day: date, slots: list[Slot], computed_at: datetime) -> None:
        """Swap the cached rows of one (scope, date) for ``slots`` (caller commits)"""
        db.query(PrecomputedSlot).filter(
            *exact_scope_filters(PrecomputedSlot, scope), PrecomputedSlot.date == day
        ).delete(synchronize_session=False)
        db.query(PrecomputedDay).filter(
            *exact_scope_filters(PrecomputedDay, scope), PrecomputedDay.date == day
        ).delete(synchronize_session=False)

        db.add_all(
            PrecomputedSlot(
                business_id=scope.business_id,
                branch_id=scope.branch_id,
                worker_id=scope.worker_id,
                date=day,
                start_time=slot.start_time,
                end_time=slot.end_time,
                slot_branch_id=slot.branch_id,
                slot_worker_id=slot.worker_id,
            )
            for slot in slots
        )
        db.add(
            PrecomputedDay(
                business_id=scope.business_id,
                branch_id=scope.branch_id,
                worker_id=scope.worker_id,
                date=day,
                computed_at=computed_at,
            )
        )

    @staticmethod
    def purge_before(db: Session, business_id: int, day: date) -> int:
        """Drop cached rows for dates before ``day`` (caller commits)"""
        deleted = (
            db.query(PrecomputedSlot)
            .filter(PrecomputedSlot.business_id == business_id, PrecomputedSlot.date < day)
            .delete(synchronize_session=False)
        )
        db.query(PrecomputedDay).filter(
            PrecomputedDay.business_id == business_id, PrecomputedDay.date < day
        ).delete(synchronize_session=False)
        return deleted

    @staticmethod
    def invalidate(db: Session, business_id: int, day: Optional[date] = None) -> int:
        """
        Drop a business's cached slots after a schedule change (caller commits).

        With ``day`` only that date is dropped, otherwise every date. Dropped
        (scope, date) pairs are computed live until the next refresh.
        """
        slots = db.query(PrecomputedSlot).filter(PrecomputedSlot.business_id == business_id)
        days = db.query(PrecomputedDay).filter(PrecomputedDay.business_id == business_id)
        if day is not None:
            slots = slots.filter(PrecomputedSlot.date == day)
            days = days.filter(PrecomputedDay.date == day)
        deleted = slots.delete(synchronize_session=False)
        days.delete(synchronize_session=False)
        return deleted
