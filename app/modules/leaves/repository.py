"""Doctor leave repository layer."""

from __future__ import annotations

from datetime import date, time
from uuid import UUID

from sqlalchemy import Select, case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import LeaveStatusEnum
from app.modules.leaves.models import DoctorLeave
from app.shared.exceptions import ConflictException


class LeaveRepository:
    """DB operations for doctor leave register."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_leave(
        self,
        doctor_id: UUID,
        hospital_id: UUID,
        leave_date: date,
        reason: str | None,
        is_full_day: bool,
        start_time: time | None,
        end_time: time | None,
    ) -> DoctorLeave:
        leave = DoctorLeave(
            doctor_id=doctor_id,
            hospital_id=hospital_id,
            leave_date=leave_date,
            reason=reason,
            is_full_day=is_full_day,
            start_time=start_time,
            end_time=end_time,
            status=LeaveStatusEnum.PENDING,
        )
        self.session.add(leave)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            # A concurrent request registered leave for the same doctor and date.
            raise ConflictException("Leave already exists for this date") from exc
        return leave

    async def get_leave_by_id(self, leave_id: UUID, *, for_update: bool = False) -> DoctorLeave | None:
        stmt = select(DoctorLeave).where(DoctorLeave.id == leave_id)
        if for_update:
            stmt = stmt.with_for_update()
        return await self.session.scalar(stmt)

    async def get_leave_for_date(self, doctor_id: UUID, leave_date: date) -> DoctorLeave | None:
        stmt = select(DoctorLeave).where(
            DoctorLeave.doctor_id == doctor_id,
            DoctorLeave.leave_date == leave_date,
        )
        return await self.session.scalar(stmt)

    async def get_approved_leave(self, doctor_id: UUID, leave_date: date) -> DoctorLeave | None:
        stmt = select(DoctorLeave).where(
            DoctorLeave.doctor_id == doctor_id,
            DoctorLeave.leave_date == leave_date,
            DoctorLeave.status == LeaveStatusEnum.APPROVED,
        )
        return await self.session.scalar(stmt)

    async def list_leaves(
        self,
        hospital_id: UUID | None,
        doctor_id: UUID | None,
        date_from: date | None,
        date_to: date | None,
        status: LeaveStatusEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[DoctorLeave], int]:
        base_stmt: Select[tuple[DoctorLeave]] = select(DoctorLeave)
        if hospital_id is not None:
            base_stmt = base_stmt.where(DoctorLeave.hospital_id == hospital_id)
        if doctor_id is not None:
            base_stmt = base_stmt.where(DoctorLeave.doctor_id == doctor_id)
        if date_from is not None:
            base_stmt = base_stmt.where(DoctorLeave.leave_date >= date_from)
        if date_to is not None:
            base_stmt = base_stmt.where(DoctorLeave.leave_date <= date_to)
        if status is not None:
            base_stmt = base_stmt.where(DoctorLeave.status == status)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(DoctorLeave.leave_date.asc()).limit(limit).offset(offset)
        items = list((await self.session.scalars(stmt)).all())
        return items, total

    async def list_doctor_ids_on_full_day_leave(self, leave_date: date, doctor_ids: list[UUID]) -> set[UUID]:
        if not doctor_ids:
            return set()
        stmt = select(DoctorLeave.doctor_id).where(
            DoctorLeave.leave_date == leave_date,
            DoctorLeave.status == LeaveStatusEnum.APPROVED,
            DoctorLeave.is_full_day.is_(True),
            DoctorLeave.doctor_id.in_(doctor_ids),
        )
        return set((await self.session.scalars(stmt)).all())

    async def count_approved_leaves(self, hospital_id: UUID | None, today: date) -> dict[str, int]:
        stmt = select(
            func.count(),
            func.coalesce(func.sum(case((DoctorLeave.leave_date == today, 1), else_=0)), 0),
            func.coalesce(func.sum(case((DoctorLeave.leave_date > today, 1), else_=0)), 0),
        ).where(DoctorLeave.status == LeaveStatusEnum.APPROVED)
        if hospital_id is not None:
            stmt = stmt.where(DoctorLeave.hospital_id == hospital_id)
        total, today_count, upcoming = (await self.session.execute(stmt)).one()
        return {"total": int(total), "today": int(today_count), "upcoming": int(upcoming)}

    async def delete_leave(self, leave: DoctorLeave) -> None:
        await self.session.delete(leave)
        await self.session.flush()

    async def save(self, leave: DoctorLeave) -> DoctorLeave:
        await self.session.flush()
        return leave
