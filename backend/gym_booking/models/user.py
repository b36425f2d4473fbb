"""
Member model: identity, role, membership tier and benefit counters.

Benefit counters are guarded by CHECK constraints; only the booking and
cancellation engines (and the admin benefit reset) change them.
"""

from sqlalchemy import Column, Integer, String, Boolean, CheckConstraint
from sqlalchemy.orm import relationship

from gym_booking.db.base import Base, TimestampMixin

ROLES = ("member", "trainer", "admin")
STAFF_ROLES = ("trainer", "admin")
MEMBERSHIP_TIERS = ("standard", "premium", "elite")
MEMBERSHIP_STATUSES = ("active", "inactive", "expired", "pending")


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    role = Column(String(20), nullable=False, default="member")

    membership_type = Column(String(20), nullable=False, default="standard", index=True)
    membership_status = Column(String(20), nullable=False, default="pending")
    guest_passes_remaining = Column(Integer, nullable=False, default=0)
    personal_training_sessions_remaining = Column(Integer, nullable=False, default=0)

    reservations = relationship(
        "Reservation",
        back_populates="user",
        foreign_keys="Reservation.user_id",
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint("guest_passes_remaining >= 0", name="check_guest_passes_non_negative"),
        CheckConstraint(
            "personal_training_sessions_remaining >= 0",
            name="check_training_sessions_non_negative",
        ),
        CheckConstraint("role IN ('member', 'trainer', 'admin')", name="check_user_role"),
        CheckConstraint(
            "membership_type IN ('standard', 'premium', 'elite')",
            name="check_membership_type",
        ),
        CheckConstraint(
            "membership_status IN ('active', 'inactive', 'expired', 'pending')",
            name="check_membership_status",
        ),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, tier={self.membership_type})>"
