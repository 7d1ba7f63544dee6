"""Initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


role_enum = sa.Enum("super_admin", "admin", "receptionist", "doctor", name="role_enum", native_enum=False)
leave_status_enum = sa.Enum("pending", "approved", "rejected", name="leave_status_enum", native_enum=False)
appointment_status_enum = sa.Enum(
    "scheduled",
    "confirmed",
    "in_progress",
    "completed",
    "postponed",
    "cancelled",
    "no_show",
    name="appointment_status_enum",
    native_enum=False,
)


def _id_col() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_col() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_col() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    op.create_table(
        "roles",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", role_enum, nullable=False),
        sa.UniqueConstraint("name", name="uq_roles_name"),
    )

    op.create_table(
        "hospitals",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "users",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("role_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("hospital_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], name="fk_users_role_id_roles", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["hospital_id"], ["hospitals.id"], name="fk_users_hospital_id_hospitals", ondelete="SET NULL"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=False)
    op.create_index("ix_users_hospital_id", "users", ["hospital_id"], unique=False)

    op.create_table(
        "doctors",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("hospital_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("specialization", sa.String(length=255), nullable=True),
        sa.Column("available_days", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("available_from", sa.Time(), nullable=True),
        sa.Column("available_to", sa.Time(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["hospital_id"], ["hospitals.id"], name="fk_doctors_hospital_id_hospitals", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_doctors_user_id_users", ondelete="SET NULL"),
        sa.UniqueConstraint("user_id", name="uq_doctors_user_id"),
    )
    op.create_index("ix_doctors_hospital_id", "doctors", ["hospital_id"], unique=False)

    op.create_table(
        "patients",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("hospital_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.ForeignKeyConstraint(["hospital_id"], ["hospitals.id"], name="fk_patients_hospital_id_hospitals", ondelete="CASCADE"),
    )
    op.create_index("ix_patients_hospital_id", "patients", ["hospital_id"], unique=False)

    op.create_table(
        "doctor_availability_rules",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("day_of_week", sa.SmallInteger(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("slot_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("buffer_minutes", sa.Integer(), nullable=False),
        sa.Column("max_appointments_per_slot", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(
            ["doctor_id"],
            ["doctors.id"],
            name="fk_doctor_availability_rules_doctor_id_doctors",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_doctor_availability_rules_day_of_week_range"),
        sa.CheckConstraint("end_time > start_time", name="ck_doctor_availability_rules_window_order"),
        sa.CheckConstraint("slot_duration_minutes >= 1", name="ck_doctor_availability_rules_slot_duration_positive"),
        sa.CheckConstraint("buffer_minutes >= 0", name="ck_doctor_availability_rules_buffer_non_negative"),
        sa.CheckConstraint("max_appointments_per_slot >= 1", name="ck_doctor_availability_rules_capacity_positive"),
    )
    op.create_index("ix_doctor_availability_rules_doctor_id", "doctor_availability_rules", ["doctor_id"], unique=False)
    op.create_index("ix_doctor_availability_rules_day_of_week", "doctor_availability_rules", ["day_of_week"], unique=False)

    op.create_table(
        "doctor_leaves",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("hospital_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("leave_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(length=512), nullable=True),
        sa.Column("is_full_day", sa.Boolean(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("status", leave_status_enum, nullable=False),
        sa.Column("approved_by_user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("approval_date", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], name="fk_doctor_leaves_doctor_id_doctors", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["hospital_id"], ["hospitals.id"], name="fk_doctor_leaves_hospital_id_hospitals", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["approved_by_user_id"],
            ["users.id"],
            name="fk_doctor_leaves_approved_by_user_id_users",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("doctor_id", "leave_date", name="uq_doctor_leaves_doctor_id_leave_date"),
        sa.CheckConstraint(
            "is_full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND end_time > start_time)",
            name="ck_doctor_leaves_partial_day_window",
        ),
    )
    op.create_index("ix_doctor_leaves_doctor_id", "doctor_leaves", ["doctor_id"], unique=False)
    op.create_index("ix_doctor_leaves_hospital_id", "doctor_leaves", ["hospital_id"], unique=False)
    op.create_index("ix_doctor_leaves_leave_date", "doctor_leaves", ["leave_date"], unique=False)
    op.create_index("ix_doctor_leaves_status", "doctor_leaves", ["status"], unique=False)

    op.create_table(
        "appointments",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("hospital_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("patient_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_by_user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.Time(), nullable=False),
        sa.Column("status", appointment_status_enum, nullable=False),
        sa.Column("reason", sa.String(length=512), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=512), nullable=True),
        sa.ForeignKeyConstraint(["hospital_id"], ["hospitals.id"], name="fk_appointments_hospital_id_hospitals", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], name="fk_appointments_doctor_id_doctors", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], name="fk_appointments_patient_id_patients"),
        sa.ForeignKeyConstraint(
            ["created_by_user_id"],
            ["users.id"],
            name="fk_appointments_created_by_user_id_users",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_appointments_hospital_id", "appointments", ["hospital_id"], unique=False)
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"], unique=False)
    op.create_index("ix_appointments_appointment_date", "appointments", ["appointment_date"], unique=False)
    op.create_index("ix_appointments_status", "appointments", ["status"], unique=False)
    op.create_index(
        "ix_appointments_doctor_slot",
        "appointments",
        ["doctor_id", "appointment_date", "appointment_time"],
        unique=False,
    )

    op.create_table(
        "appointment_slot_occupancy",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.Time(), nullable=False),
        sa.Column("booked_count", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["doctor_id"],
            ["doctors.id"],
            name="fk_appointment_slot_occupancy_doctor_id_doctors",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "doctor_id",
            "appointment_date",
            "appointment_time",
            name="uq_appointment_slot_occupancy_slot",
        ),
        sa.CheckConstraint("booked_count >= 0", name="ck_appointment_slot_occupancy_booked_count_non_negative"),
    )

    op.create_table(
        "outbox_events",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("hospital_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("aggregate_type", sa.String(length=128), nullable=False),
        sa.Column("aggregate_id", sa.String(length=128), nullable=False),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["hospital_id"], ["hospitals.id"], name="fk_outbox_events_hospital_id_hospitals", ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], name="fk_outbox_events_actor_id_users", ondelete="SET NULL"),
    )
    op.create_index("ix_outbox_events_hospital_id", "outbox_events", ["hospital_id"], unique=False)
    op.create_index("ix_outbox_events_aggregate_type", "outbox_events", ["aggregate_type"], unique=False)
    op.create_index("ix_outbox_events_aggregate_id", "outbox_events", ["aggregate_id"], unique=False)
    op.create_index("ix_outbox_events_event_type", "outbox_events", ["event_type"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_outbox_events_event_type", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_id", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_type", table_name="outbox_events")
    op.drop_index("ix_outbox_events_hospital_id", table_name="outbox_events")
    op.drop_table("outbox_events")

    op.drop_table("appointment_slot_occupancy")

    op.drop_index("ix_appointments_doctor_slot", table_name="appointments")
    op.drop_index("ix_appointments_status", table_name="appointments")
    op.drop_index("ix_appointments_appointment_date", table_name="appointments")
    op.drop_index("ix_appointments_patient_id", table_name="appointments")
    op.drop_index("ix_appointments_hospital_id", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("ix_doctor_leaves_status", table_name="doctor_leaves")
    op.drop_index("ix_doctor_leaves_leave_date", table_name="doctor_leaves")
    op.drop_index("ix_doctor_leaves_hospital_id", table_name="doctor_leaves")
    op.drop_index("ix_doctor_leaves_doctor_id", table_name="doctor_leaves")
    op.drop_table("doctor_leaves")

    op.drop_index("ix_doctor_availability_rules_day_of_week", table_name="doctor_availability_rules")
    op.drop_index("ix_doctor_availability_rules_doctor_id", table_name="doctor_availability_rules")
    op.drop_table("doctor_availability_rules")

    op.drop_index("ix_patients_hospital_id", table_name="patients")
    op.drop_table("patients")

    op.drop_index("ix_doctors_hospital_id", table_name="doctors")
    op.drop_table("doctors")

    op.drop_index("ix_users_hospital_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    op.drop_table("hospitals")
    op.drop_table("roles")
