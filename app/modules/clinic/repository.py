"""Clinic directory repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.clinic.models import Doctor, Patient


class ClinicRepository:
    """Read access to doctors and patients owned by the records service."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_doctor_by_id(self, doctor_id: UUID) -> Doctor | None:
        stmt = select(Doctor).where(Doctor.id == doctor_id)
        return await self.session.scalar(stmt)

    async def get_patient_by_id(self, patient_id: UUID) -> Patient | None:
        stmt = select(Patient).where(Patient.id == patient_id)
        return await self.session.scalar(stmt)

    async def count_doctors(self, hospital_id: UUID | None) -> int:
        stmt = select(func.count(Doctor.id)).where(Doctor.is_active.is_(True))
        if hospital_id is not None:
            stmt = stmt.where(Doctor.hospital_id == hospital_id)
        return int((await self.session.scalar(stmt)) or 0)
