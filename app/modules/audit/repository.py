"""Outbox repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.audit.models import OutboxEvent


class AuditRepository:
    """DB operations for the outbox."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_outbox_event(
        self,
        aggregate_type: str,
        aggregate_id: str,
        event_type: str,
        payload: dict,
        hospital_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> OutboxEvent:
        event = OutboxEvent(
            hospital_id=hospital_id,
            actor_id=actor_id,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            event_type=event_type,
            payload=payload,
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def list_events(
        self,
        hospital_id: UUID | None,
        aggregate_type: str | None,
        aggregate_id: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[OutboxEvent], int]:
        base_stmt: Select[tuple[OutboxEvent]] = select(OutboxEvent)
        if hospital_id is not None:
            base_stmt = base_stmt.where(OutboxEvent.hospital_id == hospital_id)
        if aggregate_type is not None:
            base_stmt = base_stmt.where(OutboxEvent.aggregate_type == aggregate_type)
        if aggregate_id is not None:
            base_stmt = base_stmt.where(OutboxEvent.aggregate_id == aggregate_id)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(OutboxEvent.occurred_at.desc()).limit(limit).offset(offset)
        items = list((await self.session.scalars(stmt)).all())
        return items, total
