"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...models import APPOINTMENT_STATUSES
from ...shared.validators import validate_client_name, validate_email, validate_phone


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored naive UTC -> aware UTC for responses"""
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


def check_same_offset_style(start: datetime, end: datetime) -> None:
    """Both times carry a UTC offset or neither does; mixed pairs are ambiguous"""
    if (start.tzinfo is None) != (end.tzinfo is None):
        raise ValueError("startTime and endTime must both include a UTC offset or both omit it")


class SlotResponse(BaseModel):
    startTime: datetime
    endTime: datetime
    workerId: Optional[int] = None
    workerName: Optional[str] = None


class AvailabilityResponse(BaseModel):
    availableSlots: list[SlotResponse]


class AppointmentCreate(BaseModel):
    """Public booking request. Naive times are read in the business timezone."""

    branchId: Optional[int] = None
    workerId: Optional[int] = None
    startTime: datetime
    endTime: datetime
    clientName: str
    clientEmail: str
    clientPhone: Optional[str] = None

    @field_validator("clientName")
    @classmethod
    def validate_name(cls, v):
        return validate_client_name(v)

    @field_validator("clientEmail")
    @classmethod
    def validate_client_email(cls, v):
        return validate_email(v)

    @field_validator("clientPhone")
    @classmethod
    def validate_client_phone(cls, v):
        if v:
            return validate_phone(v)
        return v

    @model_validator(mode="after")
    def validate_window(self):
        check_same_offset_style(self.startTime, self.endTime)
        if self.startTime >= self.endTime:
            raise ValueError("startTime must be before endTime")
        return self


class AppointmentCreatedResponse(BaseModel):
    appointmentId: int
    token: str
    expiresAt: datetime


class AppointmentUpdate(BaseModel):
    """Business-side change: a status or new times"""

    status: Optional[str] = None
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in APPOINTMENT_STATUSES:
            raise ValueError(f"Status must be one of {', '.join(APPOINTMENT_STATUSES)}")
        return v

    @model_validator(mode="after")
    def validate_times(self):
        if self.startTime is not None and self.endTime is not None:
            check_same_offset_style(self.startTime, self.endTime)
        return self


class ClientAppointmentUpdate(AppointmentUpdate):
    """Client self-service change, authorised by the emailed token"""

    token: str = Field(min_length=1)


class ClientCancelRequest(BaseModel):
    token: str = Field(min_length=1)


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    businessId: int
    branchId: Optional[int] = None
    workerId: Optional[int] = None
    clientName: str
    clientEmail: str
    clientPhone: Optional[str] = None
    startTime: datetime
    endTime: datetime
    status: str
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    token: Optional[str] = None  # Fresh self-service token after a reschedule


class AuditLogResponse(BaseModel):
    id: int
    action: str
    entity: str
    entityId: int
    userId: Optional[str] = None
    createdAt: Optional[datetime] = None


class AuditLogListResponse(BaseModel):
    logs: list[AuditLogResponse]


def slot_to_response(slot) -> SlotResponse:
    return SlotResponse(
        startTime=as_utc(slot.start_time),
        endTime=as_utc(slot.end_time),
        workerId=slot.worker_id,
        workerName=slot.worker_name,
    )


def appointment_to_response(appointment, token: Optional[str] = None) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        businessId=appointment.business_id,
        branchId=appointment.branch_id,
        workerId=appointment.worker_id,
        clientName=appointment.client_name,
        clientEmail=appointment.client_email,
        clientPhone=appointment.client_phone,
        startTime=as_utc(appointment.start_time),
        endTime=as_utc(appointment.end_time),
        status=appointment.status,
        createdAt=appointment.created_at,
        updatedAt=appointment.updated_at,
        token=token,
    )


def audit_log_to_response(log) -> AuditLogResponse:
    return AuditLogResponse(
        id=log.id,
        action=log.action,
        entity=log.entity,
        entityId=log.entity_id,
        userId=log.user_id,
        createdAt=log.created_at,
    )
