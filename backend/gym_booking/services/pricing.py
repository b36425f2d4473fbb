"""
Membership-tier pricing for session bookings.

Pure functions only: the booking engine asks for a quote before it writes
anything, and asks again if the member's included training sessions ran out
between the quote and the commit.
"""

from dataclasses import dataclass

from gym_booking.core.config import get_settings
from gym_booking.models.session import PRIVATE_SESSION_TYPES

INCLUDED_GROUP_TIERS = ("premium", "elite")


@dataclass(frozen=True)
class BookingQuote:
    is_paid: bool
    payment_amount: float
    consumes_training_session: bool = False


def quote_booking(
    membership_type: str,
    session_type: str,
    price: float,
    training_sessions_remaining: int,
) -> BookingQuote:
    """
    Private sessions are charged at session price, except for elite members
    who still have included training sessions (one is consumed). Group
    classes are included for premium and elite, charged for standard.
    """
    if session_type in PRIVATE_SESSION_TYPES:
        if membership_type == "elite" and training_sessions_remaining > 0:
            return BookingQuote(is_paid=True, payment_amount=0.0, consumes_training_session=True)
        return BookingQuote(is_paid=False, payment_amount=price)

    if membership_type in INCLUDED_GROUP_TIERS:
        return BookingQuote(is_paid=True, payment_amount=0.0)
    return BookingQuote(is_paid=False, payment_amount=price)


def initial_benefits(membership_type: str) -> dict:
    """Counters granted at registration and restored by an admin reset."""
    settings = get_settings()
    if membership_type == "elite":
        return {
            "guest_passes_remaining": settings.ELITE_GUEST_PASSES,
            "personal_training_sessions_remaining": settings.ELITE_TRAINING_SESSIONS,
        }
    if membership_type == "premium":
        return {
            "guest_passes_remaining": settings.PREMIUM_GUEST_PASSES,
            "personal_training_sessions_remaining": 0,
        }
    return {"guest_passes_remaining": 0, "personal_training_sessions_remaining": 0}
