"""Appointments API router."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.core.enums import AppointmentStatusEnum
from app.modules.appointments.schemas import (
    AppointmentBookingRead,
    AppointmentCancelRequest,
    AppointmentCreate,
    AppointmentRead,
    AppointmentRescheduleRequest,
    AppointmentStatusUpdate,
    CheckInRead,
    CheckInRequest,
    QueueEntryRead,
    QueueRead,
)
from app.modules.appointments.service import AppointmentService, BookingResult, get_appointment_service
from app.modules.identity.service import get_current_user
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _booking_response(result: BookingResult) -> AppointmentBookingRead:
    read = AppointmentBookingRead.model_validate(result.appointment)
    return read.model_copy(update={"warnings": result.warnings})


@router.post("", response_model=AppointmentBookingRead, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
    current_user=Depends(get_current_user),
) -> AppointmentBookingRead:
    """Book appointment if the slot has free capacity."""
    result = await service.create_appointment(payload, current_user)
    return _booking_response(result)


@router.get("", response_model=Page[AppointmentRead])
async def list_appointments(
    doctor_id: UUID | None = Query(default=None),
    patient_id: UUID | None = Query(default=None),
    appointment_date: date | None = Query(default=None, alias="date"),
    appointment_status: AppointmentStatusEnum | None = Query(default=None, alias="status"),
    pagination=Depends(get_pagination_params),
    service: AppointmentService = Depends(get_appointment_service),
    current_user=Depends(get_current_user),
) -> Page[AppointmentRead]:
    """List appointments ordered by date and time."""
    items, total = await service.list_appointments(
        current_user,
        doctor_id=doctor_id,
        patient_id=patient_id,
        appointment_date=appointment_date,
        status=appointment_status,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    serialized = [AppointmentRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/queue", response_model=QueueRead)
async def get_queue(
    queue_date: date | None = Query(default=None, alias="date"),
    doctor_id: UUID | None = Query(default=None),
    pagination=Depends(get_pagination_params),
    service: AppointmentService = Depends(get_appointment_service),
    current_user=Depends(get_current_user),
) -> QueueRead:
    """Daily patient queue; defaults to today."""
    resolved_date, entries, total = await service.get_queue(
        current_user,
        queue_date=queue_date,
        doctor_id=doctor_id,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    items = [
        QueueEntryRead(**AppointmentRead.model_validate(entry.appointment).model_dump(), queue_token=entry.queue_token)
        for entry in entries
    ]
    return QueueRead(
        queue_date=resolved_date,
        items=items,
        total=total,
        limit=pagination.limit,
        offset=pagination.offset,
    )


@router.get("/today", response_model=Page[AppointmentRead])
async def list_today_appointments(
    doctor_id: UUID | None = Query(default=None),
    pagination=Depends(get_pagination_params),
    service: AppointmentService = Depends(get_appointment_service),
    current_user=Depends(get_current_user),
) -> Page[AppointmentRead]:
    """Today's appointments that were not cancelled."""
    items, total = await service.list_today(
        current_user,
        doctor_id=doctor_id,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    serialized = [AppointmentRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/{appointment_id}", response_model=AppointmentRead)
async def get_appointment(
    appointment_id: UUID,
    service: AppointmentService = Depends(get_appointment_service),
    current_user=Depends(get_current_user),
) -> AppointmentRead:
    """Get one appointment."""
    appointment = await service.get_appointment(appointment_id, current_user)
    return AppointmentRead.model_validate(appointment)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentBookingRead)
async def reschedule_appointment(
    appointment_id: UUID,
    payload: AppointmentRescheduleRequest,
    service: AppointmentService = Depends(get_appointment_service),
    current_user=Depends(get_current_user),
) -> AppointmentBookingRead:
    """Move appointment to another slot."""
    result = await service.reschedule_appointment(appointment_id, payload, current_user)
    return _booking_response(result)


@router.post("/{appointment_id}/cancel", response_model=AppointmentRead)
async def cancel_appointment(
    appointment_id: UUID,
    payload: AppointmentCancelRequest,
    service: AppointmentService = Depends(get_appointment_service),
    current_user=Depends(get_current_user),
) -> AppointmentRead:
    """Cancel appointment and free its seat."""
    appointment = await service.cancel_appointment(appointment_id, payload, current_user)
    return AppointmentRead.model_validate(appointment)


@router.patch("/{appointment_id}/status", response_model=AppointmentRead)
async def update_appointment_status(
    appointment_id: UUID,
    payload: AppointmentStatusUpdate,
    service: AppointmentService = Depends(get_appointment_service),
    current_user=Depends(get_current_user),
) -> AppointmentRead:
    """Change appointment status."""
    appointment = await service.update_status(appointment_id, payload, current_user)
    return AppointmentRead.model_validate(appointment)


@router.post("/{appointment_id}/check-in", response_model=CheckInRead)
async def check_in_appointment(
    appointment_id: UUID,
    payload: CheckInRequest,
    service: AppointmentService = Depends(get_appointment_service),
    current_user=Depends(get_current_user),
) -> CheckInRead:
    """Check patient in and return the queue position."""
    result = await service.check_in(appointment_id, payload, current_user)
    return CheckInRead(
        appointment=AppointmentRead.model_validate(result.appointment),
        queue_position=result.queue_position,
    )
