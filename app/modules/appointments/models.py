"""Appointment ORM models."""

from __future__ import annotations

from datetime import date, time
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Enum as SAEnum, ForeignKey, Index, Integer, String, Text, Time
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin
from app.core.enums import AppointmentStatusEnum

if TYPE_CHECKING:
    from app.modules.clinic.models import Doctor, Patient


class Appointment(BaseModelMixin, Base):
    """Booked visit of a patient with a doctor."""

    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_doctor_slot", "doctor_id", "appointment_date", "appointment_time"),
    )

    hospital_id: Mapped[UUID] = mapped_column(
        ForeignKey("hospitals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    doctor_id: Mapped[UUID] = mapped_column(ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False)
    # Patients with booking history cannot be deleted on their own; the
    # occupancy counters are only released through cancel or no-show.
    patient_id: Mapped[UUID] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    created_by_user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    appointment_time: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[AppointmentStatusEnum] = mapped_column(
        SAEnum(AppointmentStatusEnum, name="appointment_status_enum", native_enum=False),
        default=AppointmentStatusEnum.SCHEDULED,
        nullable=False,
        index=True,
    )
    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(512), nullable=True)

    doctor: Mapped["Doctor"] = relationship()
    patient: Mapped["Patient"] = relationship()


class AppointmentSlotOccupancy(BaseModelMixin, Base):
    """Number of active appointments at one exact doctor/date/time.

    Reservations increment ``booked_count`` with a single conditional upsert,
    which makes the capacity check and the reservation one atomic step.
    """

    __tablename__ = "appointment_slot_occupancy"
    __table_args__ = (
        UniqueConstraint(
            "doctor_id",
            "appointment_date",
            "appointment_time",
            name="uq_appointment_slot_occupancy_slot",
        ),
        CheckConstraint("booked_count >= 0", name="booked_count_non_negative"),
    )

    doctor_id: Mapped[UUID] = mapped_column(ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False)
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    appointment_time: Mapped[time] = mapped_column(Time, nullable=False)
    booked_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
