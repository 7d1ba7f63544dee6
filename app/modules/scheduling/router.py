"""Scheduling API router."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.modules.identity.service import get_current_user
from app.modules.scheduling.schemas import (
    AvailabilityRuleRead,
    AvailabilityRulesReplace,
    AvailabilitySummaryRead,
    AvailableDoctorsRead,
    DaySlotsRead,
)
from app.modules.scheduling.service import SchedulingService, get_scheduling_service

router = APIRouter(prefix="/scheduling", tags=["scheduling"])


@router.get("/doctors/{doctor_id}/rules", response_model=list[AvailabilityRuleRead])
async def list_rules(
    doctor_id: UUID,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> list[AvailabilityRuleRead]:
    """List weekly availability rules of a doctor."""
    rules = await service.list_rules(doctor_id, current_user)
    return [AvailabilityRuleRead.model_validate(rule) for rule in rules]


@router.put("/doctors/{doctor_id}/rules", response_model=list[AvailabilityRuleRead])
async def save_rules(
    doctor_id: UUID,
    payload: AvailabilityRulesReplace,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> list[AvailabilityRuleRead]:
    """Replace weekly availability rules of a doctor."""
    rules = await service.save_rules(doctor_id, payload, current_user)
    return [AvailabilityRuleRead.model_validate(rule) for rule in rules]


@router.get("/doctors/{doctor_id}/slots", response_model=DaySlotsRead)
async def list_slots(
    doctor_id: UUID,
    target_date: date = Query(alias="date"),
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> DaySlotsRead:
    """List slots of a doctor for a date."""
    return await service.list_slots(doctor_id, target_date, current_user)


@router.get("/available-doctors", response_model=AvailableDoctorsRead)
async def available_doctors(
    target_date: date = Query(alias="date"),
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> AvailableDoctorsRead:
    """List doctors working on a date."""
    return await service.available_doctor_ids(target_date, current_user)


@router.get("/summary", response_model=AvailabilitySummaryRead)
async def availability_summary(
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> AvailabilitySummaryRead:
    """Availability dashboard rollup."""
    return await service.availability_summary(current_user)
