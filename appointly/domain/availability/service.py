"""Availability service - loads calendar data and serves bookable slots"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...config import SLOT_CACHE_MAX_AGE_MINUTES
from ...errors import NotFoundError
from ...models import Business
from ...utils.timezones import day_of_week, get_tz, local_day_bounds, utcnow
from ..booking.repository import AppointmentRepository
from ..businesses.repository import BusinessRepository
from ..schedules.repository import ScheduleRepository
from ..scope import Scope
from . import engine
from .engine import Slot
from .repository import SlotCacheRepository

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Service layer for slot computation and the precomputed slot cache"""

    def __init__(self, db: Session, now: Callable[[], datetime] = utcnow):
        self.db = db
        self.now = now
        self.businesses = BusinessRepository()
        self.schedules = ScheduleRepository()
        self.appointments = AppointmentRepository()
        self.cache = SlotCacheRepository()

    def get_business_by_username(self, username: str) -> Business:
        business = self.businesses.get_by_username(self.db, username)
        if not business:
            raise NotFoundError("Business not found")
        return business

    def resolve_scope(self, business: Business, branch_id: Optional[int], worker_id: Optional[int]) -> Scope:
        """Query scope within ``business``; unknown branch or worker ids are not found"""
        if branch_id is not None and not self.businesses.get_branch(self.db, business.id, branch_id):
            raise NotFoundError("Branch not found")
        if worker_id is not None and not self.businesses.get_worker(self.db, business.id, worker_id):
            raise NotFoundError("Worker not found")
        return Scope(business.id, branch_id, worker_id)

    def _inputs(self, business: Business, scope: Scope, day: date):
        tz = get_tz(business.timezone)
        rules = self.schedules.rules_for_query(self.db, scope, day_of_week(day))
        exceptions = self.schedules.exceptions_for_query(self.db, scope, day)
        worker_names = self.businesses.worker_names(self.db, business.id)
        return tz, rules, exceptions, worker_names

    def _active_appointments(self, business: Business, scope: Scope, day: date):
        day_start, day_end = local_day_bounds(day, get_tz(business.timezone))
        return self.appointments.find_overlapping(self.db, scope, day_start, day_end)

    def candidate_slots(self, business: Business, scope: Scope, day: date) -> list[Slot]:
        """Slots the schedule offers on ``day`` before existing bookings are removed"""
        tz, rules, exceptions, worker_names = self._inputs(business, scope, day)
        return engine.candidate_slots(scope, day, rules, exceptions, tz, worker_names)

    def compute_slots(self, business: Business, scope: Scope, day: date) -> list[Slot]:
        """Live computation straight from rules, exceptions and appointments"""
        candidates = self.candidate_slots(business, scope, day)
        return engine.exclude_booked(candidates, self._active_appointments(business, scope, day))

    def _cached_slots(self, business: Business, scope: Scope, day: date) -> Optional[list[Slot]]:
        marker = self.cache.get_day_marker(self.db, scope, day)
        if marker is None:
            return None
        if self.now() - marker.computed_at > timedelta(minutes=SLOT_CACHE_MAX_AGE_MINUTES):
            logger.debug(f"Cache for business {business.id} on {day} is stale, computing live")
            return None

        worker_names = self.businesses.worker_names(self.db, business.id)
        cached = [
            Slot(
                start_time=row.start_time,
                end_time=row.end_time,
                worker_id=row.slot_worker_id,
                worker_name=worker_names.get(row.slot_worker_id),
                branch_id=row.slot_branch_id,
            )
            for row in self.cache.get_slots(self.db, scope, day)
        ]
        # Bookings made since the last refresh still have to disappear
        return engine.order_slots(engine.exclude_booked(cached, self._active_appointments(business, scope, day)))

    def get_availability(self, business: Business, scope: Scope, day: date) -> list[Slot]:
        """
        Bookable slots for the public booking page.

        Served from the precomputed cache when that (scope, date) was
        materialised recently, otherwise computed live. Slots that already
        started are hidden.
        """
        slots = self._cached_slots(business, scope, day)
        if slots is None:
            slots = self.compute_slots(business, scope, day)
        now = self.now()
        return [s for s in slots if s.start_time > now]
