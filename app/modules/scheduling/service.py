"""Scheduling business logic layer."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.modules.appointments.repository import AppointmentRepository
from app.modules.audit.repository import AuditRepository
from app.modules.clinic.models import Doctor
from app.modules.clinic.repository import ClinicRepository
from app.modules.identity.models import User
from app.modules.identity.service import ADMIN_ROLES, ensure_hospital_access, resolve_hospital_scope
from app.modules.leaves.repository import LeaveRepository
from app.modules.scheduling.models import DoctorAvailabilityRule
from app.modules.scheduling.repository import SchedulingRepository
from app.modules.scheduling.schemas import (
    AvailabilityRulesReplace,
    AvailabilitySummaryRead,
    AvailableDoctorsRead,
    DaySlotsRead,
    SlotRead,
)
from app.modules.scheduling.slots import (
    WindowRule,
    apply_leave_overlay,
    day_of_week,
    generate_slots,
    resolve_availability,
    rules_for_day,
)
from app.shared.exceptions import NotFoundException, UnauthorizedException
from app.shared.utils import format_hhmm, utc_now, utc_today

settings = get_settings()


async def load_day_rules(
    repository: SchedulingRepository,
    doctor: Doctor,
    target_date: date,
) -> list[WindowRule]:
    """Resolve the window rules that apply to a doctor on a calendar date."""
    weekday = day_of_week(target_date)
    explicit_rules = await repository.list_active_rules_for_day(doctor.id, weekday)
    availability = resolve_availability(explicit_rules, doctor)
    return rules_for_day(
        availability,
        weekday,
        legacy_slot_duration_minutes=settings.legacy_slot_duration_minutes,
        legacy_default_from=settings.legacy_default_available_from,
        legacy_default_to=settings.legacy_default_available_to,
    )


class SchedulingService:
    """Doctor availability and slot service."""

    def __init__(
        self,
        scheduling_repository: SchedulingRepository,
        leave_repository: LeaveRepository,
        clinic_repository: ClinicRepository,
        appointment_repository: AppointmentRepository,
        audit_repository: AuditRepository,
    ) -> None:
        self.scheduling_repository = scheduling_repository
        self.leave_repository = leave_repository
        self.clinic_repository = clinic_repository
        self.appointment_repository = appointment_repository
        self.audit_repository = audit_repository

    async def _get_doctor_in_scope(self, doctor_id: UUID, actor: User) -> Doctor:
        doctor = await self.clinic_repository.get_doctor_by_id(doctor_id)
        if doctor is None:
            raise NotFoundException("Doctor not found")
        ensure_hospital_access(actor, doctor.hospital_id)
        return doctor

    async def list_rules(self, doctor_id: UUID, actor: User) -> list[DoctorAvailabilityRule]:
        """List every stored rule of a doctor, active or not."""
        doctor = await self._get_doctor_in_scope(doctor_id, actor)
        return await self.scheduling_repository.list_rules(doctor.id)

    async def save_rules(
        self,
        doctor_id: UUID,
        payload: AvailabilityRulesReplace,
        actor: User,
    ) -> list[DoctorAvailabilityRule]:
        """Replace the doctor's whole weekly rule set."""
        doctor = await self._get_doctor_in_scope(doctor_id, actor)
        is_owner = doctor.user_id is not None and doctor.user_id == actor.id
        if actor.role.name not in ADMIN_ROLES and not is_owner:
            raise UnauthorizedException("Only admin or the doctor can change availability")

        values = [rule.model_dump() for rule in payload.rules]
        rules = await self.scheduling_repository.replace_rules(doctor.id, values)

        await self.audit_repository.create_outbox_event(
            aggregate_type="doctor_availability",
            aggregate_id=str(doctor.id),
            event_type="availability.rules.replaced",
            payload={
                "doctor_id": str(doctor.id),
                "rules": [
                    {
                        **value,
                        "start_time": format_hhmm(value["start_time"]),
                        "end_time": format_hhmm(value["end_time"]),
                    }
                    for value in values
                ],
            },
            hospital_id=doctor.hospital_id,
            actor_id=actor.id,
        )
        return rules

    async def list_slots(self, doctor_id: UUID, target_date: date, actor: User) -> DaySlotsRead:
        """Compute bookable slots of a doctor for one date."""
        doctor = await self._get_doctor_in_scope(doctor_id, actor)

        rules = await load_day_rules(self.scheduling_repository, doctor, target_date)
        booked_counts = await self.appointment_repository.count_active_by_time(doctor.id, target_date)
        leave = await self.leave_repository.get_approved_leave(doctor.id, target_date)

        slots = apply_leave_overlay(generate_slots(rules, booked_counts), leave)
        return DaySlotsRead(
            doctor_id=doctor.id,
            date=target_date,
            day_of_week=day_of_week(target_date),
            on_leave=leave is not None,
            slots=[SlotRead.model_validate(slot) for slot in slots],
        )

    async def available_doctor_ids(self, target_date: date, actor: User) -> AvailableDoctorsRead:
        """Doctors with working hours on the date, minus approved full-day leave."""
        hospital_id = resolve_hospital_scope(actor)
        weekday = day_of_week(target_date)

        doctor_ids = await self.scheduling_repository.list_doctor_ids_with_rules_on_day(weekday, hospital_id)
        on_leave = await self.leave_repository.list_doctor_ids_on_full_day_leave(target_date, doctor_ids)
        return AvailableDoctorsRead(
            date=target_date,
            day_of_week=weekday,
            doctor_ids=[doctor_id for doctor_id in doctor_ids if doctor_id not in on_leave],
        )

    async def availability_summary(self, actor: User) -> AvailabilitySummaryRead:
        """Return rule and leave counts for the actor's hospital (or all)."""
        if actor.role.name not in ADMIN_ROLES:
            raise UnauthorizedException("Only admin can view availability summary")

        hospital_id = resolve_hospital_scope(actor)
        doctors_total = await self.clinic_repository.count_doctors(hospital_id)
        by_day = await self.scheduling_repository.count_active_rules_by_day(hospital_id)
        leave_counts = await self.leave_repository.count_approved_leaves(hospital_id, utc_today())

        histogram = {day: by_day.get(day, 0) for day in range(7)}
        return AvailabilitySummaryRead(
            generated_at=utc_now(),
            hospital_id=hospital_id,
            doctors_total=doctors_total,
            active_rules_total=sum(histogram.values()),
            active_rules_by_day_of_week=histogram,
            leaves_approved_total=leave_counts["total"],
            leaves_approved_today=leave_counts["today"],
            leaves_approved_upcoming=leave_counts["upcoming"],
        )


async def get_scheduling_service(session: AsyncSession = Depends(get_db_session)) -> SchedulingService:
    """Dependency provider for scheduling service."""
    return SchedulingService(
        scheduling_repository=SchedulingRepository(session),
        leave_repository=LeaveRepository(session),
        clinic_repository=ClinicRepository(session),
        appointment_repository=AppointmentRepository(session),
        audit_repository=AuditRepository(session),
    )
