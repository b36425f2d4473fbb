"""
Capability checks. Handlers and services ask these instead of comparing
role strings themselves.
"""

from gym_booking.core.exceptions import ForbiddenError
from gym_booking.models.reservation import Reservation
from gym_booking.models.user import User


def can_cancel(actor: User, reservation: Reservation) -> bool:
    return actor.is_admin or reservation.user_id == actor.id


def can_view_reservation(actor: User, reservation: Reservation) -> bool:
    return actor.is_admin or reservation.user_id == actor.id


def can_mark_attendance(actor: User) -> bool:
    return actor.is_staff


def can_manage_sessions(actor: User) -> bool:
    return actor.is_admin


def can_manage_members(actor: User) -> bool:
    return actor.is_admin


def require(allowed: bool, action: str) -> None:
    if not allowed:
        raise ForbiddenError(f"Not authorized to {action}", details={"action": action})
