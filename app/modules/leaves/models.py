"""Doctor leave ORM models."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Enum as SAEnum, ForeignKey, String, Time
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin
from app.core.enums import LeaveStatusEnum

if TYPE_CHECKING:
    from app.modules.clinic.models import Doctor


class DoctorLeave(BaseModelMixin, Base):
    """Leave request of one doctor for one calendar date."""

    __tablename__ = "doctor_leaves"
    __table_args__ = (
        UniqueConstraint("doctor_id", "leave_date", name="uq_doctor_leaves_doctor_id_leave_date"),
        CheckConstraint(
            "is_full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND end_time > start_time)",
            name="partial_day_window",
        ),
    )

    doctor_id: Mapped[UUID] = mapped_column(
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    hospital_id: Mapped[UUID] = mapped_column(
        ForeignKey("hospitals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    leave_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    is_full_day: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    status: Mapped[LeaveStatusEnum] = mapped_column(
        SAEnum(LeaveStatusEnum, name="leave_status_enum", native_enum=False),
        default=LeaveStatusEnum.PENDING,
        nullable=False,
        index=True,
    )
    approved_by_user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approval_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    doctor: Mapped["Doctor"] = relationship()
