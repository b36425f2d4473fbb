"""Initial schema: users, sessions, reservations with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users table: members, trainers and admins
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'member'")),
        sa.Column("membership_type", sa.String(20), nullable=False, server_default=sa.text("'standard'")),
        sa.Column("membership_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("guest_passes_remaining", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "personal_training_sessions_remaining", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        *_timestamps(),
        sa.CheckConstraint("guest_passes_remaining >= 0", name="check_guest_passes_non_negative"),
        sa.CheckConstraint(
            "personal_training_sessions_remaining >= 0", name="check_training_sessions_non_negative"
        ),
        sa.CheckConstraint("role IN ('member', 'trainer', 'admin')", name="check_user_role"),
        sa.CheckConstraint(
            "membership_type IN ('standard', 'premium', 'elite')", name="check_membership_type"
        ),
        sa.CheckConstraint(
            "membership_status IN ('active', 'inactive', 'expired', 'pending')",
            name="check_membership_status",
        ),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_membership_type", "users", ["membership_type"])

    # Sessions table
    op.create_table(
        "sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(8), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, server_default=sa.text("60")),
        sa.Column("max_capacity", sa.Integer(), nullable=False),
        sa.Column("current_bookings", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("price", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("location", sa.String(100), nullable=False, server_default=sa.text("'Main Gym Area'")),
        sa.Column("difficulty", sa.String(20), nullable=False, server_default=sa.text("'intermediate'")),
        sa.Column("trainer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("max_capacity >= 1", name="check_max_capacity_positive"),
        sa.CheckConstraint("current_bookings >= 0", name="check_current_bookings_non_negative"),
        sa.CheckConstraint("current_bookings <= max_capacity", name="check_bookings_lte_capacity"),
        sa.CheckConstraint("price >= 0", name="check_session_price_non_negative"),
        sa.CheckConstraint("duration BETWEEN 15 AND 180", name="check_session_duration"),
        sa.CheckConstraint(
            "type IN ('group', 'private-coach', 'private-session')", name="check_session_type"
        ),
    )
    op.create_index("ix_sessions_id", "sessions", ["id"])
    op.create_index("ix_sessions_trainer_id", "sessions", ["trainer_id"])
    # Listings and "upcoming" both order by start time
    op.create_index("ix_sessions_starts_at", "sessions", ["starts_at"])
    op.create_index("ix_sessions_type_active", "sessions", ["type", "is_active"])

    # Reservations table
    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "session_id", sa.Integer(), sa.ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("booking_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("payment_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("benefit_consumed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("cancellation_reason", sa.String(200), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("attendance", sa.String(20), nullable=True),
        sa.Column("check_in_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_out_time", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        # One reservation per member per session, enforced by the database
        sa.UniqueConstraint("user_id", "session_id", name="uq_user_session_reservation"),
        sa.CheckConstraint("payment_amount >= 0", name="check_payment_amount_non_negative"),
        sa.CheckConstraint(
            "status IN ('confirmed', 'pending', 'cancelled', 'completed')", name="check_reservation_status"
        ),
        sa.CheckConstraint(
            "attendance IS NULL OR attendance IN ('attended', 'no-show', 'cancelled')",
            name="check_reservation_attendance",
        ),
    )
    op.create_index("ix_reservations_id", "reservations", ["id"])
    op.create_index("ix_reservations_user_id", "reservations", ["user_id"])
    op.create_index("ix_reservations_session_id", "reservations", ["session_id"])
    op.create_index("ix_reservations_user_booking_date", "reservations", ["user_id", "booking_date"])
    op.create_index("ix_reservations_status", "reservations", ["status"])


def downgrade() -> None:
    op.drop_table("reservations")
    op.drop_table("sessions")
    op.drop_table("users")
