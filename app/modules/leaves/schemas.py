"""Doctor leave schemas."""

from __future__ import annotations

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from app.core.enums import LeaveStatusEnum
from app.shared.utils import format_hhmm, truncate_to_minute


class LeaveCreate(BaseModel):
    """Create leave request.

    Full-day leave ignores any submitted time bounds; partial-day leave needs
    both bounds with ``end_time`` after ``start_time``.
    """

    doctor_id: UUID
    leave_date: date
    reason: str | None = Field(default=None, max_length=512)
    is_full_day: bool = True
    start_time: time | None = None
    end_time: time | None = None

    @model_validator(mode="after")
    def validate_window(self) -> "LeaveCreate":
        if self.is_full_day:
            self.start_time = None
            self.end_time = None
            return self
        if self.start_time is None or self.end_time is None:
            raise ValueError("Partial-day leave requires both start_time and end_time")
        self.start_time = truncate_to_minute(self.start_time)
        self.end_time = truncate_to_minute(self.end_time)
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class LeaveRead(BaseModel):
    """Leave response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    doctor_id: UUID
    hospital_id: UUID
    leave_date: date
    reason: str | None
    is_full_day: bool
    start_time: time | None
    end_time: time | None
    status: LeaveStatusEnum
    approved_by_user_id: UUID | None
    approval_date: datetime | None
    created_at: datetime
    updated_at: datetime

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: time | None) -> str | None:
        return format_hhmm(value) if value is not None else None


class LeaveCheckRead(BaseModel):
    """Whether a doctor has a leave record on a date."""

    on_leave: bool
    leave: LeaveRead | None
