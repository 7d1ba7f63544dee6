"""Scheduling schemas."""

from __future__ import annotations

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from app.shared.utils import format_hhmm, truncate_to_minute


class AvailabilityRuleIn(BaseModel):
    """One weekly availability window submitted for a doctor."""

    day_of_week: int = Field(ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: time
    end_time: time
    slot_duration_minutes: int = Field(default=30, ge=1, le=24 * 60)
    buffer_minutes: int = Field(default=0, ge=0, le=24 * 60)
    max_appointments_per_slot: int = Field(default=1, ge=1)
    notes: str | None = Field(default=None, max_length=2000)
    is_active: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def drop_seconds(cls, value: time) -> time:
        return truncate_to_minute(value)

    @model_validator(mode="after")
    def validate_window(self) -> "AvailabilityRuleIn":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AvailabilityRulesReplace(BaseModel):
    """Full replacement of a doctor's weekly rule set."""

    rules: list[AvailabilityRuleIn] = Field(default_factory=list, max_length=200)


class AvailabilityRuleRead(BaseModel):
    """Availability rule response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    doctor_id: UUID
    day_of_week: int
    start_time: time
    end_time: time
    slot_duration_minutes: int
    buffer_minutes: int
    max_appointments_per_slot: int
    notes: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: time) -> str:
        return format_hhmm(value)


class SlotRead(BaseModel):
    """Generated slot response schema."""

    model_config = ConfigDict(from_attributes=True)

    time: time
    available: bool
    capacity: int
    slot_duration_minutes: int
    buffer_minutes: int

    @field_serializer("time")
    def serialize_time(self, value: time) -> str:
        return format_hhmm(value)


class DaySlotsRead(BaseModel):
    """Slots of one doctor for one calendar date."""

    doctor_id: UUID
    date: date
    day_of_week: int
    on_leave: bool
    slots: list[SlotRead]


class AvailableDoctorsRead(BaseModel):
    """Doctors that have working hours on a date and no full-day leave."""

    date: date
    day_of_week: int
    doctor_ids: list[UUID]


class AvailabilitySummaryRead(BaseModel):
    """Availability rollup for operational dashboards."""

    generated_at: datetime
    hospital_id: UUID | None
    doctors_total: int
    active_rules_total: int
    active_rules_by_day_of_week: dict[int, int]
    leaves_approved_total: int
    leaves_approved_today: int
    leaves_approved_upcoming: int
