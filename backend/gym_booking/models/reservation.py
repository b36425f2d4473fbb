"""
Reservation model linking one member to one training session.

Key design decisions:
- Unique constraint on (user_id, session_id): a member can hold at most one
  reservation per session, ever; a second attempt is rejected
- Cancellation and attendance are recorded in place, rows are never deleted
- `benefit_consumed` records that an included training session paid for the
  booking, so cancellation knows exactly what to give back
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from gym_booking.db.base import Base, TimestampMixin, UTCDateTime, utcnow

RESERVATION_STATUSES = ("confirmed", "pending", "cancelled", "completed")
ATTENDANCE_OUTCOMES = ("attended", "no-show", "cancelled")


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    session_id = Column(
        Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    booking_date = Column(UTCDateTime, nullable=False, default=utcnow)
    status = Column(String(20), nullable=False, default="confirmed")

    is_paid = Column(Boolean, nullable=False, default=False)
    payment_amount = Column(Float, nullable=False, default=0.0)
    benefit_consumed = Column(Boolean, nullable=False, default=False)

    notes = Column(String(500), nullable=True)
    cancellation_reason = Column(String(200), nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    attendance = Column(String(20), nullable=True)
    check_in_time = Column(UTCDateTime, nullable=True)
    check_out_time = Column(UTCDateTime, nullable=True)

    user = relationship("User", back_populates="reservations", foreign_keys=[user_id], lazy="raise")
    session = relationship("TrainingSession", back_populates="reservations", lazy="raise")

    __table_args__ = (
        UniqueConstraint("user_id", "session_id", name="uq_user_session_reservation"),
        CheckConstraint("payment_amount >= 0", name="check_payment_amount_non_negative"),
        CheckConstraint(
            "status IN ('confirmed', 'pending', 'cancelled', 'completed')",
            name="check_reservation_status",
        ),
        CheckConstraint(
            "attendance IS NULL OR attendance IN ('attended', 'no-show', 'cancelled')",
            name="check_reservation_attendance",
        ),
        Index("ix_reservations_user_booking_date", "user_id", "booking_date"),
        Index("ix_reservations_status", "status"),
    )

    @property
    def lifecycle_state(self) -> str:
        """
        confirmed -> cancelled | attended | no-show; the targets are terminal.
        Attendance is stored alongside a still-confirmed status.
        """
        if self.status == "cancelled":
            return "cancelled"
        if self.attendance in ("attended", "no-show"):
            return self.attendance
        return self.status

    @property
    def is_open(self) -> bool:
        return self.lifecycle_state == "confirmed"

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, user={self.user_id}, "
            f"session={self.session_id}, state={self.lifecycle_state})>"
        )
