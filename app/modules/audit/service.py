"""Audit trail business logic layer."""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.modules.audit.models import OutboxEvent
from app.modules.audit.repository import AuditRepository
from app.modules.identity.models import User
from app.modules.identity.service import ADMIN_ROLES, resolve_hospital_scope
from app.shared.exceptions import UnauthorizedException


class AuditService:
    """Read access to the scheduling audit trail."""

    def __init__(self, repository: AuditRepository) -> None:
        self.repository = repository

    async def list_events(
        self,
        actor: User,
        aggregate_type: str | None,
        aggregate_id: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[OutboxEvent], int]:
        """List events of the actor's hospital, newest first (admin only)."""
        if actor.role.name not in ADMIN_ROLES:
            raise UnauthorizedException("Only admin can view the audit trail")
        return await self.repository.list_events(
            hospital_id=resolve_hospital_scope(actor),
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            limit=limit,
            offset=offset,
        )


async def get_audit_service(session: AsyncSession = Depends(get_db_session)) -> AuditService:
    """Dependency provider for audit service."""
    return AuditService(AuditRepository(session))
