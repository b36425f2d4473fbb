"""
Training session model with capacity tracking.

Key design decisions:
- `current_bookings` is a denormalized counter, written only through
  services/capacity.py with conditional UPDATEs
- CHECK constraints keep 0 <= current_bookings <= max_capacity even if a
  code path forgets the conditional update
- `starts_at` is computed once from date + time so the cancellation window
  never re-parses the free-text time
- `version` is bumped on every counter change
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    Float,
    Boolean,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from gym_booking.db.base import Base, TimestampMixin, UTCDateTime

SESSION_TYPES = ("group", "private-coach", "private-session")
PRIVATE_SESSION_TYPES = ("private-coach", "private-session")
DIFFICULTIES = ("beginner", "intermediate", "advanced")


class TrainingSession(Base, TimestampMixin):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(8), nullable=False)  # "h:mm AM"
    starts_at = Column(UTCDateTime, nullable=False)
    duration = Column(Integer, nullable=False, default=60)  # minutes
    max_capacity = Column(Integer, nullable=False)
    current_bookings = Column(Integer, nullable=False, default=0)
    price = Column(Float, nullable=False, default=0.0)
    description = Column(String(500), nullable=True)
    location = Column(String(100), nullable=False, default="Main Gym Area")
    difficulty = Column(String(20), nullable=False, default="intermediate")
    trainer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    version = Column(Integer, nullable=False, default=1)

    trainer = relationship("User", lazy="raise")
    reservations = relationship("Reservation", back_populates="session", lazy="raise")

    __table_args__ = (
        CheckConstraint("max_capacity >= 1", name="check_max_capacity_positive"),
        CheckConstraint("current_bookings >= 0", name="check_current_bookings_non_negative"),
        CheckConstraint("current_bookings <= max_capacity", name="check_bookings_lte_capacity"),
        CheckConstraint("price >= 0", name="check_session_price_non_negative"),
        CheckConstraint("duration BETWEEN 15 AND 180", name="check_session_duration"),
        CheckConstraint(
            "type IN ('group', 'private-coach', 'private-session')",
            name="check_session_type",
        ),
        Index("ix_sessions_starts_at", "starts_at"),
        Index("ix_sessions_type_active", "type", "is_active"),
    )

    @property
    def available_slots(self) -> int:
        return max(0, self.max_capacity - self.current_bookings)

    @property
    def is_full(self) -> bool:
        return self.current_bookings >= self.max_capacity

    @property
    def is_private(self) -> bool:
        return self.type in PRIVATE_SESSION_TYPES

    def __repr__(self) -> str:
        return (
            f"<TrainingSession(id={self.id}, name={self.name}, "
            f"booked={self.current_bookings}/{self.max_capacity})>"
        )
