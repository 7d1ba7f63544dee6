"""Appointment repository layer."""

from __future__ import annotations

from datetime import date, time
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import INACTIVE_APPOINTMENT_STATUSES, QUEUE_APPOINTMENT_STATUSES, AppointmentStatusEnum
from app.modules.appointments.models import Appointment, AppointmentSlotOccupancy
from app.shared.utils import truncate_to_minute, utc_now


class AppointmentRepository:
    """DB operations for the booking ledger."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_appointment(
        self,
        hospital_id: UUID,
        doctor_id: UUID,
        patient_id: UUID,
        appointment_date: date,
        appointment_time: time,
        reason: str | None,
        notes: str | None,
        created_by_user_id: UUID | None,
    ) -> Appointment:
        appointment = Appointment(
            hospital_id=hospital_id,
            doctor_id=doctor_id,
            patient_id=patient_id,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            status=AppointmentStatusEnum.SCHEDULED,
            reason=reason,
            notes=notes,
            created_by_user_id=created_by_user_id,
        )
        self.session.add(appointment)
        await self.session.flush()
        return appointment

    async def get_appointment_by_id(self, appointment_id: UUID, *, for_update: bool = False) -> Appointment | None:
        stmt = select(Appointment).where(Appointment.id == appointment_id)
        if for_update:
            stmt = stmt.with_for_update()
        return await self.session.scalar(stmt)

    async def list_appointments(
        self,
        hospital_id: UUID | None,
        doctor_id: UUID | None,
        patient_id: UUID | None,
        appointment_date: date | None,
        status: AppointmentStatusEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Appointment], int]:
        base_stmt: Select[tuple[Appointment]] = select(Appointment)
        if hospital_id is not None:
            base_stmt = base_stmt.where(Appointment.hospital_id == hospital_id)
        if doctor_id is not None:
            base_stmt = base_stmt.where(Appointment.doctor_id == doctor_id)
        if patient_id is not None:
            base_stmt = base_stmt.where(Appointment.patient_id == patient_id)
        if appointment_date is not None:
            base_stmt = base_stmt.where(Appointment.appointment_date == appointment_date)
        if status is not None:
            base_stmt = base_stmt.where(Appointment.status == status)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = (
            base_stmt.order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            .limit(limit)
            .offset(offset)
        )
        items = list((await self.session.scalars(stmt)).all())
        return items, total

    async def list_day_appointments(
        self,
        appointment_date: date,
        statuses: tuple[AppointmentStatusEnum, ...],
        hospital_id: UUID | None,
        doctor_id: UUID | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Appointment], int]:
        """Appointments of one day in arrival order: slot time, then booking time."""
        base_stmt: Select[tuple[Appointment]] = select(Appointment).where(
            Appointment.appointment_date == appointment_date,
            Appointment.status.in_(statuses),
        )
        if hospital_id is not None:
            base_stmt = base_stmt.where(Appointment.hospital_id == hospital_id)
        if doctor_id is not None:
            base_stmt = base_stmt.where(Appointment.doctor_id == doctor_id)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = (
            base_stmt.order_by(Appointment.appointment_time.asc(), Appointment.created_at.asc())
            .limit(limit)
            .offset(offset)
        )
        items = list((await self.session.scalars(stmt)).all())
        return items, total

    async def get_queue_position(self, appointment: Appointment) -> int | None:
        stmt = (
            select(Appointment.id)
            .where(
                Appointment.doctor_id == appointment.doctor_id,
                Appointment.appointment_date == appointment.appointment_date,
                Appointment.status.in_(QUEUE_APPOINTMENT_STATUSES),
            )
            .order_by(Appointment.appointment_time.asc(), Appointment.created_at.asc())
        )
        queue_ids = list((await self.session.scalars(stmt)).all())
        if appointment.id not in queue_ids:
            return None
        return queue_ids.index(appointment.id) + 1

    async def count_active_by_time(self, doctor_id: UUID, appointment_date: date) -> dict[time, int]:
        stmt = (
            select(Appointment.appointment_time, func.count())
            .where(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == appointment_date,
                Appointment.status.not_in(INACTIVE_APPOINTMENT_STATUSES),
            )
            .group_by(Appointment.appointment_time)
        )
        counts: dict[time, int] = {}
        for appointment_time, count in (await self.session.execute(stmt)).all():
            key = truncate_to_minute(appointment_time)
            counts[key] = counts.get(key, 0) + int(count)
        return counts

    async def reserve_slot(
        self,
        doctor_id: UUID,
        appointment_date: date,
        appointment_time: time,
        capacity: int,
    ) -> bool:
        """Take one seat of the slot unless it already holds ``capacity`` bookings."""
        if capacity < 1:
            return False
        stmt = pg_insert(AppointmentSlotOccupancy).values(
            doctor_id=doctor_id,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            booked_count=1,
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_appointment_slot_occupancy_slot",
            set_={
                "booked_count": AppointmentSlotOccupancy.booked_count + 1,
                "updated_at": utc_now(),
            },
            where=AppointmentSlotOccupancy.booked_count < capacity,
        ).returning(AppointmentSlotOccupancy.booked_count)
        booked_count = await self.session.scalar(stmt)
        return booked_count is not None

    async def release_slot(self, doctor_id: UUID, appointment_date: date, appointment_time: time) -> None:
        stmt = (
            update(AppointmentSlotOccupancy)
            .where(
                AppointmentSlotOccupancy.doctor_id == doctor_id,
                AppointmentSlotOccupancy.appointment_date == appointment_date,
                AppointmentSlotOccupancy.appointment_time == appointment_time,
                AppointmentSlotOccupancy.booked_count > 0,
            )
            .values(booked_count=AppointmentSlotOccupancy.booked_count - 1, updated_at=utc_now())
        )
        await self.session.execute(stmt)

    async def save(self, appointment: Appointment) -> Appointment:
        await self.session.flush()
        return appointment
