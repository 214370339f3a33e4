"""
Precomputed slot refresh

Rebuilds the slot cache for every business over the configured horizon. Each
(scope, date) is recomputed and replaced in its own short transaction so the
job never holds a calendar lock for long and a failure only loses one day.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import SLOT_CACHE_HORIZON_DAYS
from ...models import Business
from ...utils.timezones import get_tz, local_today, utcnow
from ..businesses.repository import BusinessRepository
from ..schedules.repository import ScheduleRepository
from ..scope import Scope
from .repository import SlotCacheRepository
from .service import AvailabilityService

logger = logging.getLogger(__name__)


def scopes_to_refresh(db: Session, business: Business, today) -> list[Scope]:
    """Business-wide scope plus every distinct scope used by its rules and upcoming exceptions"""
    scopes = {Scope(business.id)}
    scopes.update(ScheduleRepository.distinct_rule_scopes(db, business.id))
    scopes.update(ScheduleRepository.distinct_exception_scopes(db, business.id, today))
    return sorted(
        scopes, key=lambda s: (s.branch_id is not None, s.branch_id or 0, s.worker_id is not None, s.worker_id or 0)
    )


def refresh_business(
    db: Session,
    business: Business,
    now: Optional[datetime] = None,
    horizon_days: int = SLOT_CACHE_HORIZON_DAYS,
) -> dict:
    """Recompute [today, today + horizon) for one business; today is taken in its timezone"""
    now = now or utcnow()
    service = AvailabilityService(db, now=lambda: now)
    cache = SlotCacheRepository()
    today = local_today(get_tz(business.timezone), now)

    purged = cache.purge_before(db, business.id, today)
    db.commit()

    refreshed = 0
    failed = 0
    for scope in scopes_to_refresh(db, business, today):
        for offset in range(horizon_days):
            day = today + timedelta(days=offset)
            try:
                slots = service.compute_slots(business, scope, day)
                cache.replace_day(db, scope, day, slots, computed_at=now)
                db.commit()
                refreshed += 1
            except SQLAlchemyError as e:
                db.rollback()
                failed += 1
                logger.error(f"❌ Slot refresh failed for {scope} on {day}: {e.__class__.__name__}: {e}")

    return {"business_id": business.id, "days_refreshed": refreshed, "days_failed": failed, "slots_purged": purged}


def refresh_precomputed_slots(
    db: Session, now: Optional[datetime] = None, horizon_days: int = SLOT_CACHE_HORIZON_DAYS
) -> list[dict]:
    """Refresh the slot cache of every business"""
    now = now or utcnow()
    results = []
    for business in BusinessRepository.list_all(db):
        result = refresh_business(db, business, now=now, horizon_days=horizon_days)
        logger.info(
            f"📅 Refreshed slots for business {business.id}: "
            f"{result['days_refreshed']} day(s), {result['days_failed']} failure(s)"
        )
        results.append(result)
    return results
