"""
Availability engine - pure slot computation

Turns weekly schedule rules, date exceptions and existing appointments into the
bookable slots of one calendar day. Nothing here touches the database; the
service layer loads rows and hands them in.

Steps for a (scope, date) query:

1. collect the weekday rules applicable to the query scope and group them by
   their effective scope (rule value, else query value)
2. pick the most specific exception of each group; a closure empties the group,
   a custom window replaces the group's weekly windows for that date
3. tile every window with the group's slot duration
4. drop tiles intersecting a non-cancelled appointment of an intersecting scope
5. order by start time, then worker (unassigned first), collapsing duplicates
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

import pytz

from ...config import DEFAULT_SLOT_DURATION_MINUTES
from ...utils.timezones import day_of_week, local_to_utc
from ..scope import Scope, scopes_intersect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    start_time: datetime  # naive UTC
    end_time: datetime  # naive UTC
    worker_id: Optional[int] = None
    worker_name: Optional[str] = None
    branch_id: Optional[int] = None

    def key(self) -> tuple:
        return (self.start_time, self.end_time, self.worker_id)


@dataclass
class _Group:
    """Rules and windows sharing one effective scope"""

    scope: Scope
    rules: list
    exception: Optional[object] = None


def rule_applies(rule_branch_id, rule_worker_id, query: Scope) -> bool:
    """A set query value matches rules with that value or with no value"""
    if query.branch_id is not None and rule_branch_id not in (None, query.branch_id):
        return False
    if query.worker_id is not None and rule_worker_id not in (None, query.worker_id):
        return False
    return True


def is_well_formed_rule(rule) -> bool:
    if rule.start_time is None or rule.end_time is None or rule.start_time >= rule.end_time:
        logger.warning(
            f"⚠️ Skipping schedule rule {getattr(rule, 'id', None)}: "
            f"start {rule.start_time} is not before end {rule.end_time}"
        )
        return False
    if not rule.slot_duration_minutes or rule.slot_duration_minutes <= 0:
        logger.warning(
            f"⚠️ Skipping schedule rule {getattr(rule, 'id', None)}: "
            f"invalid slot duration {rule.slot_duration_minutes}"
        )
        return False
    return True


def is_well_formed_exception(exception) -> bool:
    if exception.is_closed:
        return True
    if exception.start_time is None or exception.end_time is None or exception.start_time >= exception.end_time:
        logger.warning(
            f"⚠️ Ignoring exception {getattr(exception, 'id', None)} on {exception.date}: "
            f"custom window {exception.start_time}-{exception.end_time} is empty"
        )
        return False
    return True


def most_specific_exception(exceptions: Iterable, effective: Scope):
    """
    Most specific exception covering ``effective``.

    An exception covers a scope when each of its branch/worker fields equals
    the scope's value or is unset. Worker-level beats branch-level beats
    business-wide.
    """
    best = None
    best_rank = None
    for exception in exceptions:
        if exception.branch_id is not None and exception.branch_id != effective.branch_id:
            continue
        if exception.worker_id is not None and exception.worker_id != effective.worker_id:
            continue
        rank = (exception.worker_id is not None, exception.branch_id is not None)
        if best_rank is None or rank > best_rank:
            best, best_rank = exception, rank
    return best


def tile(window_start: datetime, window_end: datetime, duration_minutes: int) -> list[tuple[datetime, datetime]]:
    """Cut [start, end) into back-to-back tiles; a trailing partial tile is dropped"""
    step = timedelta(minutes=duration_minutes)
    tiles = []
    cursor = window_start
    while cursor + step <= window_end:
        tiles.append((cursor, cursor + step))
        cursor += step
    return tiles


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def _group_rules(query: Scope, day: date, rules: Sequence) -> dict[Scope, _Group]:
    weekday = day_of_week(day)
    groups: dict[Scope, _Group] = {}
    for rule in rules:
        if rule.business_id != query.business_id or rule.day_of_week != weekday:
            continue
        if not rule_applies(rule.branch_id, rule.worker_id, query):
            continue
        if not is_well_formed_rule(rule):
            continue
        effective = query.narrowed(rule.branch_id, rule.worker_id)
        groups.setdefault(effective, _Group(scope=effective, rules=[])).rules.append(rule)
    return groups


def _attach_exceptions(query: Scope, day: date, groups: dict[Scope, _Group], exceptions: Sequence) -> None:
    usable = [
        e
        for e in exceptions
        if e.business_id == query.business_id
        and e.date == day
        and rule_applies(e.branch_id, e.worker_id, query)
        and is_well_formed_exception(e)
    ]
    applied = set()
    for group in groups.values():
        group.exception = most_specific_exception(usable, group.scope)
        if group.exception is not None:
            applied.add(id(group.exception))

    # A custom window on a day with no covering rule opens its own calendar
    for exception in usable:
        if exception.is_closed or id(exception) in applied:
            continue
        effective = query.narrowed(exception.branch_id, exception.worker_id)
        if effective not in groups:
            groups[effective] = _Group(scope=effective, rules=[], exception=exception)


def _group_windows(group: _Group, day: date, tz) -> list[tuple[datetime, datetime, int]]:
    exception = group.exception
    if exception is not None and exception.is_closed:
        return []
    if exception is not None:
        durations = [r.slot_duration_minutes for r in group.rules]
        duration = min(durations) if durations else DEFAULT_SLOT_DURATION_MINUTES
        return [(local_to_utc(day, exception.start_time, tz), local_to_utc(day, exception.end_time, tz), duration)]
    return [
        (local_to_utc(day, r.start_time, tz), local_to_utc(day, r.end_time, tz), r.slot_duration_minutes)
        for r in group.rules
    ]


def order_slots(slots: Iterable[Slot]) -> list[Slot]:
    """Sort by start, then worker id with unassigned first; collapse duplicates"""
    ordered = sorted(
        slots,
        key=lambda s: (s.start_time, s.worker_id is not None, s.worker_id or 0, s.end_time),
    )
    seen = set()
    result = []
    for slot in ordered:
        if slot.key() in seen:
            continue
        seen.add(slot.key())
        result.append(slot)
    return result


def candidate_slots(
    query: Scope,
    day: date,
    rules: Sequence,
    exceptions: Sequence,
    tz: pytz.tzinfo.BaseTzInfo,
    worker_names: Optional[dict[int, str]] = None,
) -> list[Slot]:
    """Every slot the schedule offers on ``day`` before existing bookings are removed"""
    worker_names = worker_names or {}
    groups = _group_rules(query, day, rules)
    _attach_exceptions(query, day, groups, exceptions)

    slots = []
    for group in groups.values():
        for window_start, window_end, duration in _group_windows(group, day, tz):
            for start, end in tile(window_start, window_end, duration):
                slots.append(
                    Slot(
                        start_time=start,
                        end_time=end,
                        worker_id=group.scope.worker_id,
                        worker_name=worker_names.get(group.scope.worker_id),
                        branch_id=group.scope.branch_id,
                    )
                )
    return order_slots(slots)


def exclude_booked(slots: Iterable[Slot], appointments: Sequence) -> list[Slot]:
    """Drop slots intersecting any non-cancelled appointment of an intersecting scope"""
    active = [a for a in appointments if a.status != "cancelled"]
    free = []
    for slot in slots:
        blocked = any(
            overlaps(slot.start_time, slot.end_time, a.start_time, a.end_time)
            and scopes_intersect(slot.branch_id, slot.worker_id, a.branch_id, a.worker_id)
            for a in active
        )
        if not blocked:
            free.append(slot)
    return free


def compute_slots(
    query: Scope,
    day: date,
    rules: Sequence,
    exceptions: Sequence,
    appointments: Sequence,
    tz: pytz.tzinfo.BaseTzInfo,
    worker_names: Optional[dict[int, str]] = None,
) -> list[Slot]:
    """Bookable slots for ``query`` on the business-local ``day``"""
    return exclude_booked(candidate_slots(query, day, rules, exceptions, tz, worker_names), appointments)
