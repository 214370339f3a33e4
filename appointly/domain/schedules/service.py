"""Schedule service - Business logic for weekly rules and date exceptions"""

import logging
from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import AuthContext
from ...errors import DuplicateException, NotFoundError, OverlappingSchedule, ValidationError
from ...models import ExceptionRule, ScheduleRule
from ...shared.transactions import write_transaction
from ..audit.repository import AuditRepository
from ..availability.repository import SlotCacheRepository
from ..businesses.repository import BusinessRepository
from ..scope import Scope
from .repository import ScheduleRepository
from .schemas import (
    ExceptionRuleCreate,
    ScheduleRuleCreate,
    ScheduleRuleUpdate,
    WeeklyScheduleReplace,
    check_slot_duration,
)

logger = logging.getLogger(__name__)

# Seeded at onboarding: Monday-Friday 09:00-17:00, 30 minute slots
DEFAULT_WORKING_DAYS = (1, 2, 3, 4, 5)
DEFAULT_START_TIME = time(9, 0)
DEFAULT_END_TIME = time(17, 0)
DEFAULT_SLOT_DURATION = 30


def validate_rule_window(start_time: time, end_time: time, slot_duration_minutes: int) -> None:
    if start_time >= end_time:
        raise ValidationError("Start time must be before end time")
    try:
        check_slot_duration(slot_duration_minutes)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def seed_default_schedule(db: Session, business_id: int) -> list[ScheduleRule]:
    """Stage the default weekly schedule for a new business (caller commits)"""
    return [
        ScheduleRepository.add_rule(
            db,
            business_id=business_id,
            day_of_week=day,
            start_time=DEFAULT_START_TIME,
            end_time=DEFAULT_END_TIME,
            slot_duration_minutes=DEFAULT_SLOT_DURATION,
        )
        for day in DEFAULT_WORKING_DAYS
    ]


class ScheduleService:
    """Service layer for schedule management"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ScheduleRepository()
        self.businesses = BusinessRepository()
        self.audit = AuditRepository()
        self.cache = SlotCacheRepository()

    def _scope(self, auth: AuthContext, branch_id: Optional[int], worker_id: Optional[int]) -> Scope:
        """Scope inside the caller's business; unknown branch or worker ids are not found"""
        business_id = auth.business_id
        if branch_id is not None and not self.businesses.get_branch(self.db, business_id, branch_id):
            raise NotFoundError("Branch not found")
        if worker_id is not None and not self.businesses.get_worker(self.db, business_id, worker_id):
            raise NotFoundError("Worker not found")
        return Scope(business_id, branch_id, worker_id)

    def _check_overlap(
        self, scope: Scope, day_of_week: int, start_time: time, end_time: time, exclude_rule_id: Optional[int] = None
    ) -> None:
        existing = self.repo.find_overlapping_rule(
            self.db, scope, day_of_week, start_time, end_time, exclude_rule_id
        )
        if existing:
            logger.warning(
                f"⚠️ Rule {start_time}-{end_time} on day {day_of_week} overlaps rule {existing.id} "
                f"({existing.start_time}-{existing.end_time}) for business {scope.business_id}"
            )
            raise OverlappingSchedule()

    # ------------------------------------------------------------------
    # Weekly rules
    # ------------------------------------------------------------------

    def list_rules(self, auth: AuthContext, day_of_week: Optional[int] = None) -> list[ScheduleRule]:
        return self.repo.list_rules(self.db, auth.business_id, day_of_week)

    def get_rule(self, rule_id: int, auth: AuthContext) -> ScheduleRule:
        rule = self.repo.get_rule(self.db, rule_id, auth.business_id)
        if not rule:
            raise NotFoundError("Schedule rule not found")
        return rule

    def create_rule(self, data: ScheduleRuleCreate, auth: AuthContext) -> ScheduleRule:
        """Create a weekly rule, rejecting overlaps within the same scope and weekday"""
        validate_rule_window(data.startTime, data.endTime, data.slotDurationMinutes)
        scope = self._scope(auth, data.branchId, data.workerId)

        with write_transaction(self.db, "Create schedule rule"):
            self.businesses.lock(self.db, scope.business_id)
            self._check_overlap(scope, data.dayOfWeek, data.startTime, data.endTime)
            rule = self.repo.add_rule(
                self.db,
                business_id=scope.business_id,
                branch_id=scope.branch_id,
                worker_id=scope.worker_id,
                day_of_week=data.dayOfWeek,
                start_time=data.startTime,
                end_time=data.endTime,
                slot_duration_minutes=data.slotDurationMinutes,
            )
            self.audit.record(self.db, "create", "schedule_rule", rule.id, scope.business_id, auth.user_id)
            self.cache.invalidate(self.db, scope.business_id)

        logger.info(f"📅 Schedule rule {rule.id} created for business {scope.business_id}")
        return rule

    def update_rule(self, rule_id: int, data: ScheduleRuleUpdate, auth: AuthContext) -> ScheduleRule:
        with write_transaction(self.db, "Update schedule rule"):
            self.businesses.lock(self.db, auth.business_id)
            rule = self.get_rule(rule_id, auth)

            day_of_week = data.dayOfWeek if data.dayOfWeek is not None else rule.day_of_week
            start_time = data.startTime or rule.start_time
            end_time = data.endTime or rule.end_time
            duration = data.slotDurationMinutes or rule.slot_duration_minutes
            validate_rule_window(start_time, end_time, duration)

            scope = Scope(rule.business_id, rule.branch_id, rule.worker_id)
            self._check_overlap(scope, day_of_week, start_time, end_time, exclude_rule_id=rule.id)

            rule.day_of_week = day_of_week
            rule.start_time = start_time
            rule.end_time = end_time
            rule.slot_duration_minutes = duration
            self.audit.record(self.db, "update", "schedule_rule", rule.id, rule.business_id, auth.user_id)
            self.cache.invalidate(self.db, rule.business_id)

        self.db.refresh(rule)
        return rule

    def delete_rule(self, rule_id: int, auth: AuthContext) -> dict:
        with write_transaction(self.db, "Delete schedule rule"):
            self.businesses.lock(self.db, auth.business_id)
            rule = self.get_rule(rule_id, auth)
            self.db.delete(rule)
            self.audit.record(self.db, "delete", "schedule_rule", rule_id, auth.business_id, auth.user_id)
            self.cache.invalidate(self.db, auth.business_id)
        return {"message": "Schedule rule deleted"}

    def replace_weekly_schedule(self, data: WeeklyScheduleReplace, auth: AuthContext) -> list[ScheduleRule]:
        """Replace every rule of the listed weekdays in one scope with a single window per day"""
        validate_rule_window(data.startTime, data.endTime, data.slotDurationMinutes)
        scope = self._scope(auth, data.branchId, data.workerId)

        with write_transaction(self.db, "Replace weekly schedule"):
            self.businesses.lock(self.db, scope.business_id)
            removed = self.repo.delete_rules_for_scope(self.db, scope, data.days)
            rules = [
                self.repo.add_rule(
                    self.db,
                    business_id=scope.business_id,
                    branch_id=scope.branch_id,
                    worker_id=scope.worker_id,
                    day_of_week=day,
                    start_time=data.startTime,
                    end_time=data.endTime,
                    slot_duration_minutes=data.slotDurationMinutes,
                )
                for day in data.days
            ]
            for rule in rules:
                self.audit.record(self.db, "create", "schedule_rule", rule.id, scope.business_id, auth.user_id)
            self.cache.invalidate(self.db, scope.business_id)

        logger.info(
            f"📅 Weekly schedule replaced for business {scope.business_id}: "
            f"{removed} rule(s) removed, {len(rules)} created"
        )
        return rules

    # ------------------------------------------------------------------
    # Date exceptions
    # ------------------------------------------------------------------

    def list_exceptions(
        self, auth: AuthContext, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[ExceptionRule]:
        return self.repo.list_exceptions(self.db, auth.business_id, start_date, end_date)

    def create_exception(self, data: ExceptionRuleCreate, auth: AuthContext) -> ExceptionRule:
        """Create a closure or custom window; at most one per scope and date"""
        if not data.isClosed:
            if data.startTime is None or data.endTime is None or data.startTime >= data.endTime:
                raise ValidationError("A custom window needs a start time before its end time")
        scope = self._scope(auth, data.branchId, data.workerId)

        with write_transaction(self.db, "Create schedule exception"):
            self.businesses.lock(self.db, scope.business_id)
            if self.repo.get_exception_for_scope(self.db, scope, data.date):
                raise DuplicateException()
            exception = self.repo.add_exception(
                self.db,
                business_id=scope.business_id,
                branch_id=scope.branch_id,
                worker_id=scope.worker_id,
                date=data.date,
                is_closed=data.isClosed,
                start_time=None if data.isClosed else data.startTime,
                end_time=None if data.isClosed else data.endTime,
            )
            self.audit.record(self.db, "create", "schedule_exception", exception.id, scope.business_id, auth.user_id)
            self.cache.invalidate(self.db, scope.business_id, exception.date)

        logger.info(
            f"📅 Exception {exception.id} on {exception.date} "
            f"({'closed' if exception.is_closed else 'custom window'}) for business {scope.business_id}"
        )
        return exception

    def delete_exception(self, exception_id: int, auth: AuthContext) -> dict:
        with write_transaction(self.db, "Delete schedule exception"):
            self.businesses.lock(self.db, auth.business_id)
            exception = self.repo.get_exception(self.db, exception_id, auth.business_id)
            if not exception:
                raise NotFoundError("Schedule exception not found")
            day = exception.date
            self.db.delete(exception)
            self.audit.record(self.db, "delete", "schedule_exception", exception_id, auth.business_id, auth.user_id)
            self.cache.invalidate(self.db, auth.business_id, day)
        return {"message": "Schedule exception deleted"}
