"""Core enums used across modules."""

from enum import StrEnum


class RoleEnum(StrEnum):
    """System roles."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    RECEPTIONIST = "receptionist"
    DOCTOR = "doctor"


class AppointmentStatusEnum(StrEnum):
    """Appointment lifecycle status."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    POSTPONED = "postponed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that do not occupy slot capacity.
INACTIVE_APPOINTMENT_STATUSES = (AppointmentStatusEnum.CANCELLED, AppointmentStatusEnum.NO_SHOW)

# Statuses of patients still waiting for or inside the consultation room.
QUEUE_APPOINTMENT_STATUSES = (
    AppointmentStatusEnum.SCHEDULED,
    AppointmentStatusEnum.POSTPONED,
    AppointmentStatusEnum.CONFIRMED,
    AppointmentStatusEnum.IN_PROGRESS,
)


class LeaveStatusEnum(StrEnum):
    """Doctor leave approval status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
