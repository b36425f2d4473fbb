"""
Booking engine: reserve a spot in a training session.

Flow:
  1. Validate (session exists and is active, not full, no earlier
     reservation for this member/session pair).
  2. Quote the price from the member's tier (services/pricing.py).
  3. Commit through a BookingTransaction. Everything happens in one
     database transaction:
       - compare-and-increment the session counter (capacity race guard)
       - spend an included training session if the quote says so
       - insert the reservation (UNIQUE(user_id, session_id) guards the
         duplicate race)
     Any failure rolls the whole transaction back.

There is no server-side retry. A member who loses the race for the last
spot gets a 409 and can try again.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gym_booking.core.exceptions import ConflictError, GymBookingError, InvalidStateError, NotFoundError
from gym_booking.core.logging import get_logger
from gym_booking.core.metrics import record_benefit, record_reservation_attempt, reservation_latency
from gym_booking.models.reservation import Reservation
from gym_booking.models.session import TrainingSession
from gym_booking.models.user import User
from gym_booking.services import capacity
from gym_booking.services.pricing import BookingQuote, quote_booking

logger = get_logger(__name__)


@dataclass
class BookingResult:
    reservation: Reservation
    member: User

    @property
    def personal_training_sessions_remaining(self) -> int:
        return self.member.personal_training_sessions_remaining


class BookingTransaction:
    """
    The write half of a booking. `commit()` either leaves a confirmed
    reservation with the session counter and benefit counters updated, or
    raises after `rollback()` has undone every write it made.
    """

    def __init__(self, db: AsyncSession, member: User, session: TrainingSession, quote: BookingQuote):
        self.db = db
        self.member = member
        self.session = session
        self.quote = quote
        # ids survive rollback(), which expires the ORM instances
        self.session_id = session.id
        self.member_id = member.id

    async def commit(self) -> Reservation:
        try:
            reservation = await self._apply()
            await self.db.commit()
        except IntegrityError as e:
            await self.rollback()
            raise ConflictError(
                "You already have a reservation for this session",
                error_code="DUPLICATE_RESERVATION",
                details={"session_id": self.session_id},
            ) from e
        except Exception:
            await self.rollback()
            raise

        await self.db.refresh(reservation)
        await self.db.refresh(self.session)
        await self.db.refresh(self.member)
        return reservation

    async def rollback(self) -> None:
        await self.db.rollback()

    async def _apply(self) -> Reservation:
        if not await capacity.try_increment_bookings(self.db, self.session_id):
            logger.info("reservation_capacity_race_lost", session_id=self.session_id, user_id=self.member_id)
            raise ConflictError(
                "Session is at maximum capacity",
                error_code="SESSION_FULL",
                details={"session_id": self.session_id},
            )

        quote = self.quote
        if quote.consumes_training_session:
            if await capacity.try_consume_training_session(self.db, self.member_id):
                record_benefit("training_session", consumed=True)
            else:
                # Spent by a concurrent booking after we quoted
                quote = quote_booking(self.member.membership_type, self.session.type, self.session.price, 0)
        self.quote = quote

        reservation = Reservation(
            user_id=self.member_id,
            session_id=self.session_id,
            status="confirmed",
            is_paid=quote.is_paid,
            payment_amount=quote.payment_amount,
            benefit_consumed=quote.consumes_training_session,
        )
        self.db.add(reservation)
        await self.db.flush()
        return reservation


async def _load_fresh(db: AsyncSession, model, entity_id: int):
    # populate_existing: counters may have moved since the identity map saw the row
    result = await db.execute(
        select(model).where(model.id == entity_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def reserve_session(db: AsyncSession, member_id: int, session_id: int) -> BookingResult:
    session: Optional[TrainingSession] = await _load_fresh(db, TrainingSession, session_id)
    if not session:
        record_reservation_attempt("not_found")
        raise NotFoundError("Session", session_id)

    if not session.is_active:
        record_reservation_attempt("inactive")
        raise InvalidStateError(
            "Session is not active",
            error_code="SESSION_INACTIVE",
            details={"session_id": session_id},
        )

    if session.is_full:
        record_reservation_attempt("full")
        logger.warning(
            "reservation_failed_full",
            session_id=session_id,
            capacity=session.max_capacity,
            booked=session.current_bookings,
        )
        raise ConflictError(
            "Session is at maximum capacity",
            error_code="SESSION_FULL",
            details={"session_id": session_id, "max_capacity": session.max_capacity},
        )

    member: Optional[User] = await _load_fresh(db, User, member_id)
    if not member:
        raise NotFoundError("Member", member_id)

    existing = await db.execute(
        select(Reservation.id).where(
            Reservation.user_id == member_id,
            Reservation.session_id == session_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        record_reservation_attempt("duplicate")
        raise ConflictError(
            "You already have a reservation for this session",
            error_code="DUPLICATE_RESERVATION",
            details={"session_id": session_id},
        )

    quote = quote_booking(
        member.membership_type,
        session.type,
        session.price,
        member.personal_training_sessions_remaining,
    )

    txn = BookingTransaction(db, member, session, quote)
    try:
        with reservation_latency.time():
            reservation = await txn.commit()
    except ConflictError as e:
        record_reservation_attempt("full" if e.error_code == "SESSION_FULL" else "duplicate")
        raise
    except GymBookingError:
        record_reservation_attempt("error")
        raise

    record_reservation_attempt("success")
    logger.info(
        "reservation_created",
        reservation_id=reservation.id,
        user_id=member_id,
        session_id=session_id,
        is_paid=reservation.is_paid,
        payment_amount=reservation.payment_amount,
        benefit_consumed=reservation.benefit_consumed,
        booked=session.current_bookings,
        capacity=session.max_capacity,
    )
    return BookingResult(reservation=reservation, member=member)
