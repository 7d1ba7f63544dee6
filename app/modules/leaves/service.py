"""Doctor leave business logic layer."""

from __future__ import annotations

import logging
from datetime import date, datetime
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import LeaveStatusEnum
from app.modules.audit.repository import AuditRepository
from app.modules.clinic.models import Doctor
from app.modules.clinic.repository import ClinicRepository
from app.modules.identity.models import User
from app.modules.identity.service import (
    ADMIN_ROLES,
    STAFF_MANAGER_ROLES,
    ensure_hospital_access,
    resolve_hospital_scope,
)
from app.modules.leaves.models import DoctorLeave
from app.modules.leaves.repository import LeaveRepository
from app.modules.leaves.schemas import LeaveCreate
from app.shared.exceptions import ConflictException, NotFoundException, UnauthorizedException
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)


def decide_leave(
    leave: DoctorLeave,
    decision: LeaveStatusEnum,
    approver_id: UUID,
    owner_user_id: UUID | None,
    decided_at: datetime,
) -> DoctorLeave:
    """Move pending leave to approved or rejected.

    A leave is decided exactly once and never by the doctor it belongs to.
    """
    if decision not in (LeaveStatusEnum.APPROVED, LeaveStatusEnum.REJECTED):
        raise ConflictException(f"Leave cannot be moved to {decision}")
    if leave.status != LeaveStatusEnum.PENDING:
        raise ConflictException("Leave request has already been decided")
    if owner_user_id is not None and owner_user_id == approver_id:
        raise UnauthorizedException("Doctors cannot decide their own leave")

    leave.status = decision
    leave.approved_by_user_id = approver_id
    leave.approval_date = decided_at
    return leave


class LeaveService:
    """Doctor leave register service."""

    def __init__(
        self,
        leave_repository: LeaveRepository,
        clinic_repository: ClinicRepository,
        audit_repository: AuditRepository,
    ) -> None:
        self.leave_repository = leave_repository
        self.clinic_repository = clinic_repository
        self.audit_repository = audit_repository

    async def _get_doctor_in_scope(self, doctor_id: UUID, actor: User) -> Doctor:
        doctor = await self.clinic_repository.get_doctor_by_id(doctor_id)
        if doctor is None:
            raise NotFoundException("Doctor not found")
        ensure_hospital_access(actor, doctor.hospital_id)
        return doctor

    async def _get_leave_in_scope(self, leave_id: UUID, actor: User, *, for_update: bool = False) -> DoctorLeave:
        leave = await self.leave_repository.get_leave_by_id(leave_id, for_update=for_update)
        if leave is None:
            raise NotFoundException("Leave not found")
        ensure_hospital_access(actor, leave.hospital_id)
        return leave

    async def create_leave(self, payload: LeaveCreate, actor: User) -> DoctorLeave:
        """Register a pending leave request."""
        doctor = await self._get_doctor_in_scope(payload.doctor_id, actor)
        is_own_leave = doctor.user_id is not None and doctor.user_id == actor.id
        if actor.role.name not in STAFF_MANAGER_ROLES and not is_own_leave:
            raise UnauthorizedException("Only staff managers or the doctor can request leave")

        existing = await self.leave_repository.get_leave_for_date(doctor.id, payload.leave_date)
        if existing is not None:
            raise ConflictException("Leave already exists for this date")

        leave = await self.leave_repository.create_leave(
            doctor_id=doctor.id,
            hospital_id=doctor.hospital_id,
            leave_date=payload.leave_date,
            reason=payload.reason,
            is_full_day=payload.is_full_day,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )
        await self.audit_repository.create_outbox_event(
            aggregate_type="doctor_leave",
            aggregate_id=str(leave.id),
            event_type="leave.requested",
            payload={
                "leave_id": str(leave.id),
                "doctor_id": str(doctor.id),
                "leave_date": payload.leave_date.isoformat(),
                "is_full_day": payload.is_full_day,
            },
            hospital_id=doctor.hospital_id,
            actor_id=actor.id,
        )
        return leave

    async def _decide(self, leave_id: UUID, decision: LeaveStatusEnum, actor: User) -> DoctorLeave:
        if actor.role.name not in ADMIN_ROLES:
            raise UnauthorizedException("Only admin can decide leave requests")

        leave = await self._get_leave_in_scope(leave_id, actor, for_update=True)
        doctor = await self.clinic_repository.get_doctor_by_id(leave.doctor_id)
        owner_user_id = doctor.user_id if doctor is not None else None

        decide_leave(leave, decision, actor.id, owner_user_id, utc_now())
        await self.leave_repository.save(leave)
        logger.info("Leave %s for doctor %s %s by %s", leave.id, leave.doctor_id, decision, actor.id)

        await self.audit_repository.create_outbox_event(
            aggregate_type="doctor_leave",
            aggregate_id=str(leave.id),
            event_type=f"leave.{decision}",
            payload={
                "leave_id": str(leave.id),
                "doctor_id": str(leave.doctor_id),
                "leave_date": leave.leave_date.isoformat(),
                "decided_by": str(actor.id),
            },
            hospital_id=leave.hospital_id,
            actor_id=actor.id,
        )
        return leave

    async def approve_leave(self, leave_id: UUID, actor: User) -> DoctorLeave:
        """Approve pending leave; affects only future slot queries."""
        return await self._decide(leave_id, LeaveStatusEnum.APPROVED, actor)

    async def reject_leave(self, leave_id: UUID, actor: User) -> DoctorLeave:
        """Reject pending leave."""
        return await self._decide(leave_id, LeaveStatusEnum.REJECTED, actor)

    async def delete_leave(self, leave_id: UUID, actor: User) -> None:
        """Remove a leave record."""
        if actor.role.name not in STAFF_MANAGER_ROLES:
            raise UnauthorizedException("Only staff managers can delete leave")
        leave = await self._get_leave_in_scope(leave_id, actor)
        await self.leave_repository.delete_leave(leave)

    async def list_leaves(
        self,
        actor: User,
        doctor_id: UUID | None,
        date_from: date | None,
        date_to: date | None,
        status: LeaveStatusEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[DoctorLeave], int]:
        """List leave in the actor's hospital scope."""
        hospital_id = resolve_hospital_scope(actor)
        if doctor_id is not None:
            await self._get_doctor_in_scope(doctor_id, actor)
        return await self.leave_repository.list_leaves(
            hospital_id=hospital_id,
            doctor_id=doctor_id,
            date_from=date_from,
            date_to=date_to,
            status=status,
            limit=limit,
            offset=offset,
        )

    async def check_leave(self, doctor_id: UUID, leave_date: date, actor: User) -> DoctorLeave | None:
        """Return the doctor's leave record for a date, whatever its status."""
        await self._get_doctor_in_scope(doctor_id, actor)
        return await self.leave_repository.get_leave_for_date(doctor_id, leave_date)


async def get_leave_service(session: AsyncSession = Depends(get_db_session)) -> LeaveService:
    """Dependency provider for leave service."""
    return LeaveService(
        leave_repository=LeaveRepository(session),
        clinic_repository=ClinicRepository(session),
        audit_repository=AuditRepository(session),
    )
