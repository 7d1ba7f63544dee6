"""Clinic directory ORM models.

Hospitals, doctors and patients are owned by the clinic records service; the
scheduling service keeps the columns it needs for tenant scoping and for the
legacy daily availability of doctors without explicit weekly rules.
"""

from __future__ import annotations

from datetime import time
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Time
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin

if TYPE_CHECKING:
    from app.modules.identity.models import User
    from app.modules.scheduling.models import DoctorAvailabilityRule


class Hospital(BaseModelMixin, Base):
    """Tenant hospital or clinic."""

    __tablename__ = "hospitals"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    users: Mapped[list["User"]] = relationship(back_populates="hospital")
    doctors: Mapped[list["Doctor"]] = relationship(back_populates="hospital")


class Doctor(BaseModelMixin, Base):
    """Doctor profile with legacy daily availability fields."""

    __tablename__ = "doctors"

    hospital_id: Mapped[UUID] = mapped_column(
        ForeignKey("hospitals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    specialization: Mapped[str | None] = mapped_column(String(255), nullable=True)
    available_days: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    available_from: Mapped[time | None] = mapped_column(Time, nullable=True)
    available_to: Mapped[time | None] = mapped_column(Time, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    hospital: Mapped[Hospital] = relationship(back_populates="doctors")
    user: Mapped["User | None"] = relationship(back_populates="doctor_profile")
    availability_rules: Mapped[list["DoctorAvailabilityRule"]] = relationship(
        back_populates="doctor",
        cascade="all, delete-orphan",
    )


class Patient(BaseModelMixin, Base):
    """Patient registered with a hospital."""

    __tablename__ = "patients"

    hospital_id: Mapped[UUID] = mapped_column(
        ForeignKey("hospitals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
