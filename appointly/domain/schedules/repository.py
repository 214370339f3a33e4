"""Schedule repository - Database operations for weekly rules and date exceptions"""

from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Session

from ...models import ExceptionRule, ScheduleRule
from ..scope import Scope, exact_scope_filters, intersecting_scope_filters


class ScheduleRepository:
    """Repository for schedule rule and exception database operations"""

    # Weekly rules
    @staticmethod
    def list_rules(db: Session, business_id: int, day_of_week: Optional[int] = None) -> list[ScheduleRule]:
        query = db.query(ScheduleRule).filter(ScheduleRule.business_id == business_id)
        if day_of_week is not None:
            query = query.filter(ScheduleRule.day_of_week == day_of_week)
        return query.order_by(ScheduleRule.day_of_week, ScheduleRule.start_time, ScheduleRule.id).all()

    @staticmethod
    def rules_for_query(db: Session, scope: Scope, day_of_week: int) -> list[ScheduleRule]:
        """Rules of one weekday applicable to a query scope"""
        return (
            db.query(ScheduleRule)
            .filter(*intersecting_scope_filters(ScheduleRule, scope), ScheduleRule.day_of_week == day_of_week)
            .order_by(ScheduleRule.start_time, ScheduleRule.id)
            .all()
        )

    @staticmethod
    def get_rule(db: Session, rule_id: int, business_id: int) -> Optional[ScheduleRule]:
        return (
            db.query(ScheduleRule)
            .filter(ScheduleRule.id == rule_id, ScheduleRule.business_id == business_id)
            .first()
        )

    @staticmethod
    def find_overlapping_rule(
        db: Session,
        scope: Scope,
        day_of_week: int,
        start_time: time,
        end_time: time,
        exclude_rule_id: Optional[int] = None,
    ) -> Optional[ScheduleRule]:
        """First rule of the exact same scope and weekday whose [start, end) intersects the given window"""
        query = db.query(ScheduleRule).filter(
            *exact_scope_filters(ScheduleRule, scope),
            ScheduleRule.day_of_week == day_of_week,
            ScheduleRule.start_time < end_time,
            ScheduleRule.end_time > start_time,
        )
        if exclude_rule_id is not None:
            query = query.filter(ScheduleRule.id != exclude_rule_id)
        return query.first()

    @staticmethod
    def add_rule(db: Session, **rule_data) -> ScheduleRule:
        """Stage a rule in the current transaction"""
        rule = ScheduleRule(**rule_data)
        db.add(rule)
        db.flush()
        return rule

    @staticmethod
    def delete_rules_for_scope(db: Session, scope: Scope, days: Optional[list[int]] = None) -> int:
        query = db.query(ScheduleRule).filter(*exact_scope_filters(ScheduleRule, scope))
        if days is not None:
            query = query.filter(ScheduleRule.day_of_week.in_(days))
        return query.delete(synchronize_session=False)

    @staticmethod
    def distinct_rule_scopes(db: Session, business_id: int) -> list[Scope]:
        rows = (
            db.query(ScheduleRule.branch_id, ScheduleRule.worker_id)
            .filter(ScheduleRule.business_id == business_id)
            .distinct()
            .all()
        )
        return [Scope(business_id, branch_id, worker_id) for branch_id, worker_id in rows]

    # Date exceptions
    @staticmethod
    def list_exceptions(
        db: Session,
        business_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[ExceptionRule]:
        query = db.query(ExceptionRule).filter(ExceptionRule.business_id == business_id)
        if start_date:
            query = query.filter(ExceptionRule.date >= start_date)
        if end_date:
            query = query.filter(ExceptionRule.date <= end_date)
        return query.order_by(ExceptionRule.date, ExceptionRule.id).all()

    @staticmethod
    def exceptions_for_query(db: Session, scope: Scope, day: date) -> list[ExceptionRule]:
        """Exceptions on ``day`` whose scope intersects the query scope"""
        return (
            db.query(ExceptionRule)
            .filter(*intersecting_scope_filters(ExceptionRule, scope), ExceptionRule.date == day)
            .all()
        )

    @staticmethod
    def get_exception(db: Session, exception_id: int, business_id: int) -> Optional[ExceptionRule]:
        return (
            db.query(ExceptionRule)
            .filter(ExceptionRule.id == exception_id, ExceptionRule.business_id == business_id)
            .first()
        )

    @staticmethod
    def get_exception_for_scope(db: Session, scope: Scope, day: date) -> Optional[ExceptionRule]:
        return (
            db.query(ExceptionRule)
            .filter(*exact_scope_filters(ExceptionRule, scope), ExceptionRule.date == day)
            .first()
        )

    @staticmethod
    def add_exception(db: Session, **exception_data) -> ExceptionRule:
        exception = ExceptionRule(**exception_data)
        db.add(exception)
        db.flush()
        return exception

    @staticmethod
    def distinct_exception_scopes(db: Session, business_id: int, start_date: date) -> list[Scope]:
        rows = (
            db.query(ExceptionRule.branch_id, ExceptionRule.worker_id)
            .filter(ExceptionRule.business_id == business_id, ExceptionRule.date >= start_date)
            .distinct()
            .all()
        )
        return [Scope(business_id, branch_id, worker_id) for branch_id, worker_id in rows]
