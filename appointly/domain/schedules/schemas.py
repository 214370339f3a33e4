"""Schedule domain schemas - Pydantic models for validation"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

MIN_SLOT_DURATION = 5
MAX_SLOT_DURATION = 120
SLOT_DURATION_STEP = 5


def check_slot_duration(v: int) -> int:
    if v < MIN_SLOT_DURATION or v > MAX_SLOT_DURATION or v % SLOT_DURATION_STEP:
        raise ValueError(
            f"Slot duration must be between {MIN_SLOT_DURATION} and {MAX_SLOT_DURATION} "
            f"minutes in steps of {SLOT_DURATION_STEP}"
        )
    return v


class ScheduleRuleCreate(BaseModel):
    """Schema for creating a weekly schedule rule"""

    branchId: Optional[int] = None
    workerId: Optional[int] = None
    dayOfWeek: int = Field(ge=0, le=6)  # 0=Sunday
    startTime: time
    endTime: time
    slotDurationMinutes: int = 30

    @field_validator("slotDurationMinutes")
    @classmethod
    def validate_duration(cls, v):
        return check_slot_duration(v)

    @model_validator(mode="after")
    def validate_window(self):
        if self.startTime >= self.endTime:
            raise ValueError("startTime must be before endTime")
        return self


class ScheduleRuleUpdate(BaseModel):
    """Schema for updating a weekly schedule rule"""

    dayOfWeek: Optional[int] = Field(default=None, ge=0, le=6)
    startTime: Optional[time] = None
    endTime: Optional[time] = None
    slotDurationMinutes: Optional[int] = None

    @field_validator("slotDurationMinutes")
    @classmethod
    def validate_duration(cls, v):
        if v is not None:
            return check_slot_duration(v)
        return v


class WeeklyScheduleReplace(BaseModel):
    """Replace the rules of the given weekdays with one window each"""

    branchId: Optional[int] = None
    workerId: Optional[int] = None
    days: list[int] = Field(min_length=1)
    startTime: time
    endTime: time
    slotDurationMinutes: int = 30

    @field_validator("days")
    @classmethod
    def validate_days(cls, v):
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("Days must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))

    @field_validator("slotDurationMinutes")
    @classmethod
    def validate_duration(cls, v):
        return check_slot_duration(v)

    @model_validator(mode="after")
    def validate_window(self):
        if self.startTime >= self.endTime:
            raise ValueError("startTime must be before endTime")
        return self


class ScheduleRuleResponse(BaseModel):
    """Schema for schedule rule response"""

    id: int
    branchId: Optional[int] = None
    workerId: Optional[int] = None
    dayOfWeek: int
    startTime: time
    endTime: time
    slotDurationMinutes: int


class ExceptionRuleCreate(BaseModel):
    """Schema for creating a date exception (closure or custom window)"""

    branchId: Optional[int] = None
    workerId: Optional[int] = None
    date: date
    isClosed: bool = True
    startTime: Optional[time] = None
    endTime: Optional[time] = None

    @model_validator(mode="after")
    def validate_window(self):
        if self.isClosed:
            return self
        if self.startTime is None or self.endTime is None:
            raise ValueError("startTime and endTime are required for a custom window")
        if self.startTime >= self.endTime:
            raise ValueError("startTime must be before endTime")
        return self


class ExceptionRuleResponse(BaseModel):
    """Schema for exception rule response"""

    id: int
    branchId: Optional[int] = None
    workerId: Optional[int] = None
    date: date
    isClosed: bool
    startTime: Optional[time] = None
    endTime: Optional[time] = None


def rule_to_response(rule) -> ScheduleRuleResponse:
    return ScheduleRuleResponse(
        id=rule.id,
        branchId=rule.branch_id,
        workerId=rule.worker_id,
        dayOfWeek=rule.day_of_week,
        startTime=rule.start_time,
        endTime=rule.end_time,
        slotDurationMinutes=rule.slot_duration_minutes,
    )


def exception_to_response(exception) -> ExceptionRuleResponse:
    return ExceptionRuleResponse(
        id=exception.id,
        branchId=exception.branch_id,
        workerId=exception.worker_id,
        date=exception.date,
        isClosed=exception.is_closed,
        startTime=exception.start_time,
        endTime=exception.end_time,
    )
