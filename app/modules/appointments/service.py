"""Appointment business logic layer with the slot capacity guard."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, time
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import INACTIVE_APPOINTMENT_STATUSES, QUEUE_APPOINTMENT_STATUSES, AppointmentStatusEnum
from app.core.metrics import APPOINTMENTS_BOOKED_TOTAL, SLOT_CONFLICTS_TOTAL
from app.modules.appointments.models import Appointment
from app.modules.appointments.repository import AppointmentRepository
from app.modules.appointments.schemas import (
    AppointmentCancelRequest,
    AppointmentCreate,
    AppointmentRescheduleRequest,
    AppointmentStatusUpdate,
    CheckInRequest,
)
from app.modules.audit.repository import AuditRepository
from app.modules.clinic.models import Doctor
from app.modules.clinic.repository import ClinicRepository
from app.modules.identity.models import User
from app.modules.identity.service import (
    STAFF_MANAGER_ROLES,
    ensure_hospital_access,
    resolve_hospital_scope,
)
from app.modules.leaves.repository import LeaveRepository
from app.modules.scheduling.repository import SchedulingRepository
from app.modules.scheduling.service import load_day_rules
from app.modules.scheduling.slots import find_rule_for_time, leave_blocks_time
from app.shared.exceptions import (
    ConflictException,
    NotFoundException,
    SlotConflictException,
    UnauthorizedException,
)
from app.shared.utils import format_hhmm, truncate_to_minute, utc_now, utc_today

logger = logging.getLogger(__name__)

WARNING_OUTSIDE_AVAILABILITY = "outside_availability_window"
WARNING_DOCTOR_ON_LEAVE = "doctor_on_leave"

# Capacity used when the requested time is not covered by any rule.
DEFAULT_SLOT_CAPACITY = 1

NON_RESCHEDULABLE_STATUSES = (*INACTIVE_APPOINTMENT_STATUSES, AppointmentStatusEnum.COMPLETED)

_PRE_VISIT_TARGETS = frozenset(
    {
        AppointmentStatusEnum.CONFIRMED,
        AppointmentStatusEnum.IN_PROGRESS,
        AppointmentStatusEnum.COMPLETED,
        AppointmentStatusEnum.NO_SHOW,
    }
)

# Targets reachable through a plain status update from each status.
ALLOWED_STATUS_TRANSITIONS: dict[AppointmentStatusEnum, frozenset[AppointmentStatusEnum]] = {
    AppointmentStatusEnum.SCHEDULED: _PRE_VISIT_TARGETS,
    AppointmentStatusEnum.POSTPONED: _PRE_VISIT_TARGETS,
    AppointmentStatusEnum.CONFIRMED: frozenset(
        {AppointmentStatusEnum.IN_PROGRESS, AppointmentStatusEnum.COMPLETED, AppointmentStatusEnum.NO_SHOW}
    ),
    AppointmentStatusEnum.IN_PROGRESS: frozenset({AppointmentStatusEnum.COMPLETED}),
    AppointmentStatusEnum.NO_SHOW: frozenset({AppointmentStatusEnum.CONFIRMED}),
    AppointmentStatusEnum.COMPLETED: frozenset(),
    AppointmentStatusEnum.CANCELLED: frozenset(),
}

# Check-in confirms bookings that are still waiting; later statuses keep theirs.
CHECK_IN_CONFIRMS = (AppointmentStatusEnum.SCHEDULED, AppointmentStatusEnum.POSTPONED)


@dataclass(slots=True)
class BookingResult:
    """Appointment produced by a booking operation plus caller-facing warnings."""

    appointment: Appointment
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CheckInResult:
    appointment: Appointment
    queue_position: int | None


@dataclass(slots=True)
class QueueEntry:
    appointment: Appointment
    queue_token: int


class AppointmentService:
    """Booking ledger service."""

    def __init__(
        self,
        appointment_repository: AppointmentRepository,
        scheduling_repository: SchedulingRepository,
        leave_repository: LeaveRepository,
        clinic_repository: ClinicRepository,
        audit_repository: AuditRepository,
    ) -> None:
        self.appointment_repository = appointment_repository
        self.scheduling_repository = scheduling_repository
        self.leave_repository = leave_repository
        self.clinic_repository = clinic_repository
        self.audit_repository = audit_repository

    async def _get_doctor(self, doctor_id: UUID) -> Doctor:
        doctor = await self.clinic_repository.get_doctor_by_id(doctor_id)
        if doctor is None:
            raise NotFoundException("Doctor not found")
        return doctor

    async def _get_managed_appointment(self, appointment_id: UUID, actor: User) -> tuple[Appointment, Doctor]:
        appointment = await self.appointment_repository.get_appointment_by_id(appointment_id, for_update=True)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        ensure_hospital_access(actor, appointment.hospital_id)

        doctor = await self._get_doctor(appointment.doctor_id)
        is_own_doctor = doctor.user_id is not None and doctor.user_id == actor.id
        if actor.role.name not in STAFF_MANAGER_ROLES and not is_own_doctor:
            raise UnauthorizedException("You cannot manage this appointment")
        return appointment, doctor

    async def _assess_slot(
        self,
        doctor: Doctor,
        appointment_date: date,
        appointment_time: time,
    ) -> tuple[int, list[str]]:
        """Return slot capacity and warnings for a requested time.

        Times outside every rule window, or inside approved leave, are still
        bookable (front-desk overrides); they are only reported back.
        """
        warnings: list[str] = []
        rules = await load_day_rules(self.scheduling_repository, doctor, appointment_date)
        rule = find_rule_for_time(rules, appointment_time)
        if rule is None:
            warnings.append(WARNING_OUTSIDE_AVAILABILITY)
            capacity = DEFAULT_SLOT_CAPACITY
        else:
            capacity = rule.max_appointments_per_slot

        leave = await self.leave_repository.get_approved_leave(doctor.id, appointment_date)
        if leave_blocks_time(leave, appointment_time):
            warnings.append(WARNING_DOCTOR_ON_LEAVE)
        return capacity, warnings

    async def _reserve_slot(
        self,
        doctor: Doctor,
        appointment_date: date,
        appointment_time: time,
        capacity: int,
        operation: str,
    ) -> None:
        reserved = await self.appointment_repository.reserve_slot(
            doctor_id=doctor.id,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            capacity=capacity,
        )
        if not reserved:
            SLOT_CONFLICTS_TOTAL.labels(operation=operation).inc()
            logger.info(
                "Slot conflict for doctor %s at %s %s (capacity %s)",
                doctor.id,
                appointment_date.isoformat(),
                format_hhmm(appointment_time),
                capacity,
            )
            raise SlotConflictException("Time slot capacity reached")
        APPOINTMENTS_BOOKED_TOTAL.labels(operation=operation).inc()

    async def _release_slot(self, appointment: Appointment) -> None:
        await self.appointment_repository.release_slot(
            doctor_id=appointment.doctor_id,
            appointment_date=appointment.appointment_date,
            appointment_time=truncate_to_minute(appointment.appointment_time),
        )

    async def create_appointment(self, payload: AppointmentCreate, actor: User) -> BookingResult:
        """Book a doctor for a patient at an exact date and time."""
        if actor.role.name not in STAFF_MANAGER_ROLES:
            raise UnauthorizedException("Only staff managers can book appointments")

        doctor = await self._get_doctor(payload.doctor_id)
        ensure_hospital_access(actor, doctor.hospital_id)

        patient = await self.clinic_repository.get_patient_by_id(payload.patient_id)
        if patient is None:
            raise NotFoundException("Patient not found")
        if patient.hospital_id != doctor.hospital_id:
            raise UnauthorizedException("Doctor and patient must belong to the same hospital")

        capacity, warnings = await self._assess_slot(doctor, payload.appointment_date, payload.appointment_time)
        await self._reserve_slot(
            doctor,
            payload.appointment_date,
            payload.appointment_time,
            capacity,
            operation="create",
        )

        appointment = await self.appointment_repository.create_appointment(
            hospital_id=doctor.hospital_id,
            doctor_id=doctor.id,
            patient_id=patient.id,
            appointment_date=payload.appointment_date,
            appointment_time=payload.appointment_time,
            reason=payload.reason,
            notes=payload.notes,
            created_by_user_id=actor.id,
        )
        await self.audit_repository.create_outbox_event(
            aggregate_type="appointment",
            aggregate_id=str(appointment.id),
            event_type="appointment.created",
            payload={
                "appointment_id": str(appointment.id),
                "doctor_id": str(doctor.id),
                "patient_id": str(patient.id),
                "appointment_date": payload.appointment_date.isoformat(),
                "appointment_time": format_hhmm(payload.appointment_time),
                "warnings": warnings,
            },
            hospital_id=doctor.hospital_id,
            actor_id=actor.id,
        )
        return BookingResult(appointment=appointment, warnings=warnings)

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        payload: AppointmentRescheduleRequest,
        actor: User,
    ) -> BookingResult:
        """Move an active appointment to a new slot and mark it postponed."""
        appointment, doctor = await self._get_managed_appointment(appointment_id, actor)
        if appointment.status in NON_RESCHEDULABLE_STATUSES:
            raise ConflictException(f"Appointment in status {appointment.status} cannot be rescheduled")

        old_date = appointment.appointment_date
        old_time = truncate_to_minute(appointment.appointment_time)
        capacity, warnings = await self._assess_slot(doctor, payload.new_date, payload.new_time)

        # The appointment already holds a seat at its own slot.
        if (payload.new_date, payload.new_time) != (old_date, old_time):
            await self._reserve_slot(doctor, payload.new_date, payload.new_time, capacity, operation="reschedule")
            await self._release_slot(appointment)

        now = utc_now()
        audit_line = (
            f"[{now:%Y-%m-%d %H:%M} UTC] Rescheduled from {old_date.isoformat()} {format_hhmm(old_time)} "
            f"to {payload.new_date.isoformat()} {format_hhmm(payload.new_time)}"
        )
        if payload.reason:
            audit_line = f"{audit_line}: {payload.reason}"
        appointment.notes = f"{appointment.notes}\n{audit_line}" if appointment.notes else audit_line
        appointment.appointment_date = payload.new_date
        appointment.appointment_time = payload.new_time
        appointment.status = AppointmentStatusEnum.POSTPONED
        await self.appointment_repository.save(appointment)

        await self.audit_repository.create_outbox_event(
            aggregate_type="appointment",
            aggregate_id=str(appointment.id),
            event_type="appointment.rescheduled",
            payload={
                "appointment_id": str(appointment.id),
                "doctor_id": str(appointment.doctor_id),
                "from_date": old_date.isoformat(),
                "from_time": format_hhmm(old_time),
                "to_date": payload.new_date.isoformat(),
                "to_time": format_hhmm(payload.new_time),
            },
            hospital_id=appointment.hospital_id,
            actor_id=actor.id,
        )
        return BookingResult(appointment=appointment, warnings=warnings)

    async def cancel_appointment(
        self,
        appointment_id: UUID,
        payload: AppointmentCancelRequest,
        actor: User,
    ) -> Appointment:
        """Cancel appointment; the row is kept for audit and analytics."""
        appointment, _ = await self._get_managed_appointment(appointment_id, actor)
        if appointment.status == AppointmentStatusEnum.CANCELLED:
            raise ConflictException("Appointment already cancelled")

        if appointment.status not in INACTIVE_APPOINTMENT_STATUSES:
            await self._release_slot(appointment)

        appointment.status = AppointmentStatusEnum.CANCELLED
        appointment.cancellation_reason = payload.reason
        await self.appointment_repository.save(appointment)

        await self.audit_repository.create_outbox_event(
            aggregate_type="appointment",
            aggregate_id=str(appointment.id),
            event_type="appointment.cancelled",
            payload={
                "appointment_id": str(appointment.id),
                "doctor_id": str(appointment.doctor_id),
                "reason": payload.reason,
            },
            hospital_id=appointment.hospital_id,
            actor_id=actor.id,
        )
        return appointment

    async def update_status(
        self,
        appointment_id: UUID,
        payload: AppointmentStatusUpdate,
        actor: User,
    ) -> Appointment:
        """Move appointment through check-in, consultation, completion or no-show."""
        appointment, doctor = await self._get_managed_appointment(appointment_id, actor)
        previous = appointment.status
        if previous == payload.status:
            return appointment
        if payload.status not in ALLOWED_STATUS_TRANSITIONS.get(previous, frozenset()):
            raise ConflictException(f"Appointment in status {previous} cannot move to {payload.status}")

        was_active = previous not in INACTIVE_APPOINTMENT_STATUSES
        becomes_active = payload.status not in INACTIVE_APPOINTMENT_STATUSES
        slot_time = truncate_to_minute(appointment.appointment_time)
        if was_active and not becomes_active:
            await self._release_slot(appointment)
        elif becomes_active and not was_active:
            capacity, _ = await self._assess_slot(doctor, appointment.appointment_date, slot_time)
            await self._reserve_slot(doctor, appointment.appointment_date, slot_time, capacity, operation="reinstate")

        appointment.status = payload.status
        await self.appointment_repository.save(appointment)

        await self.audit_repository.create_outbox_event(
            aggregate_type="appointment",
            aggregate_id=str(appointment.id),
            event_type="appointment.status.changed",
            payload={
                "appointment_id": str(appointment.id),
                "from_status": str(previous),
                "to_status": str(payload.status),
            },
            hospital_id=appointment.hospital_id,
            actor_id=actor.id,
        )
        return appointment

    async def check_in(self, appointment_id: UUID, payload: CheckInRequest, actor: User) -> CheckInResult:
        """Mark patient arrival and report their place in the doctor's queue."""
        appointment, _ = await self._get_managed_appointment(appointment_id, actor)
        previous = appointment.status
        if previous not in QUEUE_APPOINTMENT_STATUSES:
            raise ConflictException(f"Cannot check in an appointment with status {previous}")

        check_in_line = f"Checked in at {utc_now():%H:%M}"
        if payload.note and payload.note.strip():
            check_in_line = f"{check_in_line} - {payload.note.strip()}"
        existing_notes = (appointment.notes or "").strip()
        appointment.notes = f"{existing_notes}\n{check_in_line}" if existing_notes else check_in_line
        if previous in CHECK_IN_CONFIRMS:
            appointment.status = AppointmentStatusEnum.CONFIRMED
        await self.appointment_repository.save(appointment)

        await self.audit_repository.create_outbox_event(
            aggregate_type="appointment",
            aggregate_id=str(appointment.id),
            event_type="appointment.checked_in",
            payload={
                "appointment_id": str(appointment.id),
                "doctor_id": str(appointment.doctor_id),
                "from_status": str(previous),
                "to_status": str(appointment.status),
            },
            hospital_id=appointment.hospital_id,
            actor_id=actor.id,
        )
        queue_position = await self.appointment_repository.get_queue_position(appointment)
        logger.info("Appointment %s checked in, queue position %s", appointment.id, queue_position)
        return CheckInResult(appointment=appointment, queue_position=queue_position)

    async def get_queue(
        self,
        actor: User,
        queue_date: date | None,
        doctor_id: UUID | None,
        limit: int,
        offset: int,
    ) -> tuple[date, list[QueueEntry], int]:
        """Return the waiting and in-room patients of a day with queue tokens.

        Tokens number the queue from 1 in slot order and keep counting across
        pages.
        """
        queue_date = queue_date or utc_today()
        items, total = await self.appointment_repository.list_day_appointments(
            appointment_date=queue_date,
            statuses=QUEUE_APPOINTMENT_STATUSES,
            hospital_id=resolve_hospital_scope(actor),
            doctor_id=doctor_id,
            limit=limit,
            offset=offset,
        )
        entries = [QueueEntry(appointment=item, queue_token=offset + index + 1) for index, item in enumerate(items)]
        return queue_date, entries, total

    async def list_today(
        self,
        actor: User,
        doctor_id: UUID | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Appointment], int]:
        """List today's appointments that were not cancelled."""
        statuses = tuple(status for status in AppointmentStatusEnum if status != AppointmentStatusEnum.CANCELLED)
        return await self.appointment_repository.list_day_appointments(
            appointment_date=utc_today(),
            statuses=statuses,
            hospital_id=resolve_hospital_scope(actor),
            doctor_id=doctor_id,
            limit=limit,
            offset=offset,
        )

    async def get_appointment(self, appointment_id: UUID, actor: User) -> Appointment:
        """Return one appointment in the actor's scope."""
        appointment = await self.appointment_repository.get_appointment_by_id(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        ensure_hospital_access(actor, appointment.hospital_id)
        return appointment

    async def list_appointments(
        self,
        actor: User,
        doctor_id: UUID | None,
        patient_id: UUID | None,
        appointment_date: date | None,
        status: AppointmentStatusEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Appointment], int]:
        """List appointments of the actor's hospital ordered by date and time."""
        return await self.appointment_repository.list_appointments(
            hospital_id=resolve_hospital_scope(actor),
            doctor_id=doctor_id,
            patient_id=patient_id,
            appointment_date=appointment_date,
            status=status,
            limit=limit,
            offset=offset,
        )


async def get_appointment_service(session: AsyncSession = Depends(get_db_session)) -> AppointmentService:
    """Dependency provider for appointment service."""
    return AppointmentService(
        appointment_repository=AppointmentRepository(session),
        scheduling_repository=SchedulingRepository(session),
        leave_repository=LeaveRepository(session),
        clinic_repository=ClinicRepository(session),
        audit_repository=AuditRepository(session),
    )
