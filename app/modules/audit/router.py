"""Audit API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.modules.audit.schemas import OutboxEventRead
from app.modules.audit.service import AuditService, get_audit_service
from app.modules.identity.service import get_current_user
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/events", response_model=Page[OutboxEventRead])
async def list_events(
    aggregate_type: str | None = Query(default=None, max_length=128),
    aggregate_id: str | None = Query(default=None, max_length=128),
    pagination=Depends(get_pagination_params),
    service: AuditService = Depends(get_audit_service),
    current_user=Depends(get_current_user),
) -> Page[OutboxEventRead]:
    """List scheduling events, e.g. every rule-set replacement of a doctor."""
    items, total = await service.list_events(
        current_user,
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    serialized = [OutboxEventRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)
