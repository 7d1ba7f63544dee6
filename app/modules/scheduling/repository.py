"""Scheduling repository layer."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.clinic.models import Doctor
from app.modules.scheduling.models import DoctorAvailabilityRule


class SchedulingRepository:
    """DB access for doctor availability rules."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_rules(self, doctor_id: UUID) -> list[DoctorAvailabilityRule]:
        stmt = (
            select(DoctorAvailabilityRule)
            .where(DoctorAvailabilityRule.doctor_id == doctor_id)
            .order_by(DoctorAvailabilityRule.day_of_week.asc(), DoctorAvailabilityRule.start_time.asc())
        )
        return list((await self.session.scalars(stmt)).all())

    async def list_active_rules_for_day(self, doctor_id: UUID, day_of_week: int) -> list[DoctorAvailabilityRule]:
        stmt = (
            select(DoctorAvailabilityRule)
            .where(
                DoctorAvailabilityRule.doctor_id == doctor_id,
                DoctorAvailabilityRule.day_of_week == day_of_week,
                DoctorAvailabilityRule.is_active.is_(True),
            )
            .order_by(DoctorAvailabilityRule.start_time.asc())
        )
        return list((await self.session.scalars(stmt)).all())

    async def replace_rules(
        self,
        doctor_id: UUID,
        rules: Sequence[dict[str, Any]],
    ) -> list[DoctorAvailabilityRule]:
        await self.session.execute(
            delete(DoctorAvailabilityRule).where(DoctorAvailabilityRule.doctor_id == doctor_id),
        )
        created = [DoctorAvailabilityRule(doctor_id=doctor_id, **values) for values in rules]
        self.session.add_all(created)
        await self.session.flush()
        return created

    def _active_rules_in_scope(self, hospital_id: UUID | None) -> Select:
        stmt = (
            select(DoctorAvailabilityRule)
            .join(Doctor, Doctor.id == DoctorAvailabilityRule.doctor_id)
            .where(DoctorAvailabilityRule.is_active.is_(True), Doctor.is_active.is_(True))
        )
        if hospital_id is not None:
            stmt = stmt.where(Doctor.hospital_id == hospital_id)
        return stmt

    async def list_doctor_ids_with_rules_on_day(
        self,
        day_of_week: int,
        hospital_id: UUID | None,
    ) -> list[UUID]:
        rules = self._active_rules_in_scope(hospital_id).where(
            DoctorAvailabilityRule.day_of_week == day_of_week,
        ).subquery()
        stmt = select(rules.c.doctor_id).distinct().order_by(rules.c.doctor_id)
        return list((await self.session.scalars(stmt)).all())

    async def count_active_rules_by_day(self, hospital_id: UUID | None) -> dict[int, int]:
        rules = self._active_rules_in_scope(hospital_id).subquery()
        stmt = select(rules.c.day_of_week, func.count()).group_by(rules.c.day_of_week)
        rows = (await self.session.execute(stmt)).all()
        return {int(day): int(count) for day, count in rows}
