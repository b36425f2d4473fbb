"""
Cancellation engine and attendance marking.

A reservation leaves `confirmed` exactly once. Every transition is a
conditional UPDATE on (status='confirmed' AND attendance IS NULL), so two
concurrent cancels (or a cancel racing an attendance mark) cannot both win,
and the session counter is released at most once.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gym_booking.core.exceptions import InvalidStateError, NotFoundError, PolicyViolationError, ForbiddenError
from gym_booking.core.logging import get_logger
from gym_booking.core.metrics import record_attendance, record_benefit, record_cancellation
from gym_booking.models.reservation import Reservation
from gym_booking.models.session import TrainingSession
from gym_booking.models.user import User
from gym_booking.services import capacity, policies
from gym_booking.services.schedule import ensure_cancellable

logger = get_logger(__name__)


async def _get_reservation(db: AsyncSession, reservation_id: int) -> Reservation:
    result = await db.execute(
        select(Reservation)
        .where(Reservation.id == reservation_id)
        .execution_options(populate_existing=True)
    )
    reservation = result.scalar_one_or_none()
    if not reservation:
        raise NotFoundError("Reservation", reservation_id)
    return reservation


def _open_reservation_clause(reservation_id: int):
    return (
        Reservation.id == reservation_id,
        Reservation.status == "confirmed",
        Reservation.attendance.is_(None),
    )


def _not_open(reservation: Reservation, action: str) -> InvalidStateError:
    return InvalidStateError(
        f"Only confirmed reservations can be {action}",
        error_code="RESERVATION_NOT_CONFIRMED",
        details={"reservation_id": reservation.id, "state": reservation.lifecycle_state},
    )


async def cancel_reservation(
    db: AsyncSession,
    reservation_id: int,
    actor: User,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Reservation:
    now = now or datetime.now(timezone.utc)
    reservation = await _get_reservation(db, reservation_id)

    if not policies.can_cancel(actor, reservation):
        record_cancellation("forbidden")
        raise ForbiddenError(
            "Not authorized to cancel this reservation",
            details={"reservation_id": reservation_id},
        )

    if not reservation.is_open:
        record_cancellation("invalid_state")
        raise _not_open(reservation, "cancelled")

    session = await db.get(TrainingSession, reservation.session_id, populate_existing=True)
    if not session:
        raise NotFoundError("Session", reservation.session_id)

    try:
        lead_hours = ensure_cancellable(session.starts_at, now)
    except PolicyViolationError:
        record_cancellation("window_closed")
        logger.info(
            "cancellation_rejected_window",
            reservation_id=reservation_id,
            session_id=session.id,
            starts_at=session.starts_at.isoformat(),
        )
        raise

    session_id, member_id = session.id, reservation.user_id
    refund = reservation.benefit_consumed
    try:
        result = await db.execute(
            update(Reservation)
            .where(*_open_reservation_clause(reservation_id))
            .values(
                status="cancelled",
                cancelled_at=now,
                cancelled_by=actor.id,
                cancellation_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            record_cancellation("invalid_state")
            raise InvalidStateError(
                "Reservation was changed by another request",
                error_code="RESERVATION_NOT_CONFIRMED",
                details={"reservation_id": reservation_id},
            )

        if not await capacity.release_booking(db, session_id):
            logger.warning("session_counter_already_zero", session_id=session_id)

        if refund:
            await capacity.refund_training_session(db, member_id)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if refund:
        record_benefit("training_session", consumed=False)
    record_cancellation("success")

    await db.refresh(reservation)
    await db.refresh(session)
    logger.info(
        "reservation_cancelled",
        reservation_id=reservation_id,
        session_id=session_id,
        user_id=member_id,
        cancelled_by=actor.id,
        training_session_refunded=refund,
        hours_before_start=round(lead_hours, 2),
    )
    return reservation


async def _mark(db: AsyncSession, reservation_id: int, actor: User, outcome: str, now: datetime) -> Reservation:
    policies.require(policies.can_mark_attendance(actor), "record attendance")
    reservation = await _get_reservation(db, reservation_id)
    if not reservation.is_open:
        raise _not_open(reservation, "marked as " + outcome)

    values = {"attendance": outcome}
    if outcome == "attended":
        values["check_in_time"] = now

    result = await db.execute(
        update(Reservation)
        .where(*_open_reservation_clause(reservation_id))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise InvalidStateError(
            "Reservation was changed by another request",
            error_code="RESERVATION_NOT_CONFIRMED",
            details={"reservation_id": reservation_id},
        )
    await db.commit()
    await db.refresh(reservation)

    record_attendance(outcome)
    logger.info("attendance_recorded", reservation_id=reservation_id, outcome=outcome, marked_by=actor.id)
    return reservation


async def mark_attended(db: AsyncSession, reservation_id: int, actor: User, now: Optional[datetime] = None) -> Reservation:
    return await _mark(db, reservation_id, actor, "attended", now or datetime.now(timezone.utc))


async def mark_no_show(db: AsyncSession, reservation_id: int, actor: User, now: Optional[datetime] = None) -> Reservation:
    return await _mark(db, reservation_id, actor, "no-show", now or datetime.now(timezone.utc))


async def check_out(db: AsyncSession, reservation_id: int, actor: User, now: Optional[datetime] = None) -> Reservation:
    """Stamp the check-out time of a member who was checked in."""
    policies.require(policies.can_mark_attendance(actor), "record attendance")
    reservation = await _get_reservation(db, reservation_id)
    if reservation.attendance != "attended":
        raise InvalidStateError(
            "Only attended reservations can be checked out",
            error_code="NOT_CHECKED_IN",
            details={"reservation_id": reservation_id, "state": reservation.lifecycle_state},
        )
    if reservation.check_out_time is not None:
        raise InvalidStateError(
            "Reservation is already checked out",
            error_code="ALREADY_CHECKED_OUT",
            details={"reservation_id": reservation_id},
        )

    reservation.check_out_time = now or datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(reservation)
    logger.info("reservation_checked_out", reservation_id=reservation_id, marked_by=actor.id)
    return reservation
