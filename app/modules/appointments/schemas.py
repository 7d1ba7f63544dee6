"""Appointment schemas."""

from __future__ import annotations

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from app.core.enums import AppointmentStatusEnum
from app.shared.utils import format_hhmm, truncate_to_minute

# Statuses reachable through a plain status update; cancel and reschedule
# have dedicated operations.
UPDATABLE_STATUSES = (
    AppointmentStatusEnum.CONFIRMED,
    AppointmentStatusEnum.IN_PROGRESS,
    AppointmentStatusEnum.COMPLETED,
    AppointmentStatusEnum.NO_SHOW,
)


class AppointmentCreate(BaseModel):
    """Book appointment request."""

    doctor_id: UUID
    patient_id: UUID
    appointment_date: date
    appointment_time: time
    reason: str | None = Field(default=None, max_length=512)
    notes: str | None = Field(default=None, max_length=4000)

    @field_validator("appointment_time")
    @classmethod
    def drop_seconds(cls, value: time) -> time:
        return truncate_to_minute(value)


class AppointmentRescheduleRequest(BaseModel):
    """Move appointment to another date/time."""

    new_date: date
    new_time: time
    reason: str | None = Field(default=None, max_length=512)

    @field_validator("new_time")
    @classmethod
    def drop_seconds(cls, value: time) -> time:
        return truncate_to_minute(value)


class AppointmentCancelRequest(BaseModel):
    """Cancel appointment request."""

    reason: str | None = Field(default=None, max_length=512)


class AppointmentStatusUpdate(BaseModel):
    """Change appointment status."""

    status: AppointmentStatusEnum

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: AppointmentStatusEnum) -> AppointmentStatusEnum:
        if value not in UPDATABLE_STATUSES:
            allowed = ", ".join(status.value for status in UPDATABLE_STATUSES)
            raise ValueError(f"status must be one of: {allowed}")
        return value


class AppointmentRead(BaseModel):
    """Appointment response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    hospital_id: UUID
    doctor_id: UUID
    patient_id: UUID
    created_by_user_id: UUID | None
    appointment_date: date
    appointment_time: time
    status: AppointmentStatusEnum
    reason: str | None
    notes: str | None
    cancellation_reason: str | None
    created_at: datetime
    updated_at: datetime

    @field_serializer("appointment_time")
    def serialize_time(self, value: time) -> str:
        return format_hhmm(value)


class AppointmentBookingRead(AppointmentRead):
    """Appointment returned from booking operations with non-fatal warnings."""

    warnings: list[str] = Field(default_factory=list)


class CheckInRequest(BaseModel):
    """Front-desk check-in with an optional note."""

    note: str | None = Field(default=None, max_length=512)


class CheckInRead(BaseModel):
    """Checked-in appointment and its place in the doctor's queue for the day."""

    appointment: AppointmentRead
    queue_position: int | None


class QueueEntryRead(AppointmentRead):
    """Appointment in a daily queue with its token number."""

    queue_token: int


class QueueRead(BaseModel):
    """Daily queue page."""

    queue_date: date
    items: list[QueueEntryRead]
    total: int
    limit: int
    offset: int
