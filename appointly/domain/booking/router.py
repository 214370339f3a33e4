"""Booking router - public booking endpoints and the business appointment dashboard"""

import logging
from datetime import date, datetime
from typing import Callable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import AuthContext, get_business_owner
from ...database import get_db
from ...utils.timezones import utcnow
from ..availability.service import AvailabilityService
from ..notifications.dispatcher import NotificationDispatcher, QueueNotificationDispatcher
from .schemas import (
    AppointmentCreate,
    AppointmentCreatedResponse,
    AppointmentResponse,
    AppointmentUpdate,
    AuditLogListResponse,
    AvailabilityResponse,
    ClientAppointmentUpdate,
    ClientCancelRequest,
    appointment_to_response,
    as_utc,
    audit_log_to_response,
    slot_to_response,
)
from .service import (
    AppointmentChange,
    BookingService,
    BusinessActor,
    ClientActor,
    ClientInfo,
)

logger = logging.getLogger(__name__)

public_router = APIRouter(prefix="/public", tags=["Public"])
router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_clock() -> Callable[[], datetime]:
    """Source of the current time (naive UTC)"""
    return utcnow


def get_notification_dispatcher(background_tasks: BackgroundTasks) -> NotificationDispatcher:
    return QueueNotificationDispatcher(background_tasks)


def get_booking_service(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, dispatcher, now=clock)


def get_availability_service(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db, now=clock)


# ============================================================================
# PUBLIC BOOKING
# ============================================================================


@public_router.get("/business/{username}/availability", response_model=AvailabilityResponse)
async def get_availability(
    username: str,
    date: date = Query(...),
    branchId: Optional[int] = Query(None),
    workerId: Optional[int] = Query(None),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Bookable slots of a business for one local date"""
    business = service.get_business_by_username(username)
    scope = service.resolve_scope(business, branchId, workerId)
    slots = service.get_availability(business, scope, date)
    return AvailabilityResponse(availableSlots=[slot_to_response(s) for s in slots])


@public_router.post("/business/{username}/appointments", response_model=AppointmentCreatedResponse, status_code=201)
async def create_appointment(
    username: str,
    data: AppointmentCreate,
    availability: AvailabilityService = Depends(get_availability_service),
    service: BookingService = Depends(get_booking_service),
):
    """Book a slot; the returned token lets the client manage the appointment for a short time"""
    business = availability.get_business_by_username(username)
    scope = availability.resolve_scope(business, data.branchId, data.workerId)
    appointment, token = service.claim_slot(
        scope,
        data.startTime,
        data.endTime,
        ClientInfo(name=data.clientName, email=data.clientEmail, phone=data.clientPhone),
    )
    return AppointmentCreatedResponse(
        appointmentId=appointment.id, token=token.token, expiresAt=as_utc(token.expires_at)
    )


@public_router.put("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment_by_client(
    appointment_id: int,
    data: ClientAppointmentUpdate,
    service: BookingService = Depends(get_booking_service),
):
    """Client reschedule or cancel, authorised by the emailed token"""
    result = service.transition(
        appointment_id,
        AppointmentChange(status=data.status, start_time=data.startTime, end_time=data.endTime),
        ClientActor(token=data.token),
    )
    return appointment_to_response(result.appointment, result.token.token if result.token else None)


@public_router.delete("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def cancel_appointment_by_client(
    appointment_id: int,
    data: ClientCancelRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Client cancellation, authorised by the emailed token"""
    result = service.cancel_by_client(appointment_id, data.token)
    return appointment_to_response(result.appointment)


# ============================================================================
# BUSINESS DASHBOARD
# ============================================================================


@router.get("", response_model=list[AppointmentResponse])
async def list_appointments(
    status: Optional[str] = Query(None),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    branchId: Optional[int] = Query(None),
    workerId: Optional[int] = Query(None),
    auth: AuthContext = Depends(get_business_owner),
    service: BookingService = Depends(get_booking_service),
):
    """Appointments of the current business ordered by start time"""
    appointments = service.list_appointments(auth, status, startDate, endDate, branchId, workerId)
    return [appointment_to_response(a) for a in appointments]


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    entity: Optional[str] = Query(None),
    entityId: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    auth: AuthContext = Depends(get_business_owner),
    service: BookingService = Depends(get_booking_service),
):
    """Most recent audit records of the current business (at most 100)"""
    logs = service.list_audit_logs(auth, entity, entityId, action, startDate, endDate)
    return AuditLogListResponse(logs=[audit_log_to_response(log) for log in logs])


@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    auth: AuthContext = Depends(get_business_owner),
    service: BookingService = Depends(get_booking_service),
):
    """Confirm, cancel or move an appointment of the current business"""
    result = service.transition(
        appointment_id,
        AppointmentChange(status=data.status, start_time=data.startTime, end_time=data.endTime),
        BusinessActor(auth=auth),
    )
    return appointment_to_response(result.appointment, result.token.token if result.token else None)
