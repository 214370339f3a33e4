"""Schedule router - FastAPI endpoints for weekly rules and date exceptions"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import AuthContext, get_business_owner
from ...database import get_db
from .schemas import (
    ExceptionRuleCreate,
    ExceptionRuleResponse,
    ScheduleRuleCreate,
    ScheduleRuleResponse,
    ScheduleRuleUpdate,
    WeeklyScheduleReplace,
    exception_to_response,
    rule_to_response,
)
from .service import ScheduleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedules", tags=["Schedules"])


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


# ============================================================================
# WEEKLY RULES
# ============================================================================


@router.get("", response_model=list[ScheduleRuleResponse])
async def list_rules(
    dayOfWeek: Optional[int] = Query(None, ge=0, le=6),
    auth: AuthContext = Depends(get_business_owner),
    service: ScheduleService = Depends(get_schedule_service),
):
    """List the weekly schedule rules of the current business"""
    return [rule_to_response(r) for r in service.list_rules(auth, dayOfWeek)]


@router.post("", response_model=ScheduleRuleResponse, status_code=201)
async def create_rule(
    data: ScheduleRuleCreate,
    auth: AuthContext = Depends(get_business_owner),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create a weekly rule (409 when it overlaps another rule of the same scope and weekday)"""
    return rule_to_response(service.create_rule(data, auth))


@router.put("/weekly", response_model=list[ScheduleRuleResponse])
async def replace_weekly_schedule(
    data: WeeklyScheduleReplace,
    auth: AuthContext = Depends(get_business_owner),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Replace the rules of the listed weekdays with one window each"""
    return [rule_to_response(r) for r in service.replace_weekly_schedule(data, auth)]


@router.put("/{rule_id}", response_model=ScheduleRuleResponse)
async def update_rule(
    rule_id: int,
    data: ScheduleRuleUpdate,
    auth: AuthContext = Depends(get_business_owner),
    service: ScheduleService = Depends(get_schedule_service),
):
    return rule_to_response(service.update_rule(rule_id, data, auth))


@router.delete("/{rule_id}")
async def delete_rule(
    rule_id: int,
    auth: AuthContext = Depends(get_business_owner),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.delete_rule(rule_id, auth)


# ============================================================================
# DATE EXCEPTIONS
# ============================================================================


@router.get("/exceptions", response_model=list[ExceptionRuleResponse])
async def list_exceptions(
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    auth: AuthContext = Depends(get_business_owner),
    service: ScheduleService = Depends(get_schedule_service),
):
    """List date exceptions, optionally within a date range"""
    return [exception_to_response(e) for e in service.list_exceptions(auth, startDate, endDate)]


@router.post("/exceptions", response_model=ExceptionRuleResponse, status_code=201)
async def create_exception(
    data: ExceptionRuleCreate,
    auth: AuthContext = Depends(get_business_owner),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Close a date or replace its weekly window (409 when the scope already has one that day)"""
    return exception_to_response(service.create_exception(data, auth))


@router.delete("/exceptions/{exception_id}")
async def delete_exception(
    exception_id: int,
    auth: AuthContext = Depends(get_business_owner),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.delete_exception(exception_id, auth)
