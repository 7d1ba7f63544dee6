"""Doctor leave API router."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from app.core.enums import LeaveStatusEnum
from app.modules.identity.service import get_current_user
from app.modules.leaves.schemas import LeaveCheckRead, LeaveCreate, LeaveRead
from app.modules.leaves.service import LeaveService, get_leave_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/doctor-leaves", tags=["doctor-leaves"])


@router.post("", response_model=LeaveRead, status_code=status.HTTP_201_CREATED)
async def create_leave(
    payload: LeaveCreate,
    service: LeaveService = Depends(get_leave_service),
    current_user=Depends(get_current_user),
) -> LeaveRead:
    """Request leave for a doctor."""
    leave = await service.create_leave(payload, current_user)
    return LeaveRead.model_validate(leave)


@router.get("", response_model=Page[LeaveRead])
async def list_leaves(
    doctor_id: UUID | None = Query(default=None),
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    leave_status: LeaveStatusEnum | None = Query(default=None, alias="status"),
    pagination=Depends(get_pagination_params),
    service: LeaveService = Depends(get_leave_service),
    current_user=Depends(get_current_user),
) -> Page[LeaveRead]:
    """List leave ordered by date."""
    items, total = await service.list_leaves(
        current_user,
        doctor_id=doctor_id,
        date_from=date_from,
        date_to=date_to,
        status=leave_status,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    serialized = [LeaveRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/check", response_model=LeaveCheckRead)
async def check_leave(
    doctor_id: UUID = Query(),
    leave_date: date = Query(alias="date"),
    service: LeaveService = Depends(get_leave_service),
    current_user=Depends(get_current_user),
) -> LeaveCheckRead:
    """Check whether a doctor has leave on a date."""
    leave = await service.check_leave(doctor_id, leave_date, current_user)
    return LeaveCheckRead(
        on_leave=leave is not None,
        leave=LeaveRead.model_validate(leave) if leave is not None else None,
    )


@router.post("/{leave_id}/approve", response_model=LeaveRead)
async def approve_leave(
    leave_id: UUID,
    service: LeaveService = Depends(get_leave_service),
    current_user=Depends(get_current_user),
) -> LeaveRead:
    """Approve pending leave."""
    leave = await service.approve_leave(leave_id, current_user)
    return LeaveRead.model_validate(leave)


@router.post("/{leave_id}/reject", response_model=LeaveRead)
async def reject_leave(
    leave_id: UUID,
    service: LeaveService = Depends(get_leave_service),
    current_user=Depends(get_current_user),
) -> LeaveRead:
    """Reject pending leave."""
    leave = await service.reject_leave(leave_id, current_user)
    return LeaveRead.model_validate(leave)


@router.delete("/{leave_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leave(
    leave_id: UUID,
    service: LeaveService = Depends(get_leave_service),
    current_user=Depends(get_current_user),
) -> Response:
    """Delete leave record."""
    await service.delete_leave(leave_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
