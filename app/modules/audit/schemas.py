"""Outbox schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class OutboxEventRead(BaseModel):
    """Outbox event response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    hospital_id: UUID | None
    actor_id: UUID | None
    aggregate_type: str
    aggregate_id: str
    event_type: str
    payload: dict
    occurred_at: datetime
