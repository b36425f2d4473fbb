"""
Reservation queries and admin reporting.
Lifecycle changes live in booking_service and cancellation_service.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from gym_booking.core.exceptions import ForbiddenError, NotFoundError
from gym_booking.core.logging import get_logger
from gym_booking.models.reservation import Reservation
from gym_booking.models.user import User
from gym_booking.services import policies

logger = get_logger(__name__)


async def get_user_reservations(
    db: AsyncSession,
    user_id: int,
    status: Optional[str] = None,
    limit: int = 20,
) -> tuple[list[Reservation], int]:
    query = select(Reservation).where(Reservation.user_id == user_id)
    if status:
        query = query.where(Reservation.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(Reservation.booking_date.desc()).limit(limit)
    )
    return list(result.scalars().all()), total


async def get_reservation(db: AsyncSession, reservation_id: int, actor: User) -> Reservation:
    result = await db.execute(
        select(Reservation)
        .where(Reservation.id == reservation_id)
        .execution_options(populate_existing=True)
    )
    reservation = result.scalar_one_or_none()
    if not reservation:
        raise NotFoundError("Reservation", reservation_id)
    if not policies.can_view_reservation(actor, reservation):
        raise ForbiddenError(
            "Not authorized to access this reservation",
            details={"reservation_id": reservation_id},
        )
    return reservation


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


async def list_reservations(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 50,
    status: Optional[str] = None,
    session_id: Optional[int] = None,
    user_id: Optional[int] = None,
    is_paid: Optional[bool] = None,
    booking_day: Optional[date] = None,
) -> tuple[list[Reservation], int]:
    """Admin listing with filters, newest booking first."""
    query = select(Reservation)
    if status:
        query = query.where(Reservation.status == status)
    if session_id is not None:
        query = query.where(Reservation.session_id == session_id)
    if user_id is not None:
        query = query.where(Reservation.user_id == user_id)
    if is_paid is not None:
        query = query.where(Reservation.is_paid.is_(is_paid))
    if booking_day is not None:
        start, end = _day_bounds(booking_day)
        query = query.where(Reservation.booking_date >= start, Reservation.booking_date < end)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(Reservation.booking_date.desc(), Reservation.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def get_reservation_stats(db: AsyncSession) -> dict:
    rows = await db.execute(
        select(Reservation.status, func.count()).group_by(Reservation.status)
    )
    breakdown = {status: count for status, count in rows.all()}

    async def _count(*criteria) -> int:
        return (await db.execute(select(func.count(Reservation.id)).where(*criteria))).scalar()

    total = sum(breakdown.values())
    paid = await _count(Reservation.is_paid.is_(True))
    attended = await _count(Reservation.attendance == "attended")
    marked = await _count(
        Reservation.status.in_(("confirmed", "completed")),
        Reservation.attendance.in_(("attended", "no-show")),
    )

    return {
        "total_reservations": total,
        "confirmed_reservations": breakdown.get("confirmed", 0),
        "cancelled_reservations": breakdown.get("cancelled", 0),
        "paid_reservations": paid,
        "attended_reservations": attended,
        "attendance_rate": round(attended / marked * 100) if marked else 0,
        "breakdown": breakdown,
    }


async def get_revenue_stats(
    db: AsyncSession,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> dict:
    """Totals over paid reservations, optionally limited to a booking-date range."""
    query = select(
        func.coalesce(func.sum(Reservation.payment_amount), 0.0),
        func.count(Reservation.id),
        func.coalesce(func.avg(Reservation.payment_amount), 0.0),
    ).where(Reservation.is_paid.is_(True))
    if start is not None:
        query = query.where(Reservation.booking_date >= start)
    if end is not None:
        query = query.where(Reservation.booking_date <= end)

    total_revenue, paid_count, avg_payment = (await db.execute(query)).one()
    return {
        "total_revenue": round(float(total_revenue), 2),
        "total_paid_reservations": paid_count,
        "avg_payment": round(float(avg_payment), 2),
    }


async def update_payment_status(
    db: AsyncSession,
    reservation_id: int,
    is_paid: bool,
    payment_amount: Optional[float] = None,
) -> Reservation:
    result = await db.execute(select(Reservation).where(Reservation.id == reservation_id))
    reservation = result.scalar_one_or_none()
    if not reservation:
        raise NotFoundError("Reservation", reservation_id)

    reservation.is_paid = is_paid
    if payment_amount is not None:
        reservation.payment_amount = payment_amount
    await db.commit()
    await db.refresh(reservation)

    logger.info(
        "reservation_payment_updated",
        reservation_id=reservation_id,
        is_paid=is_paid,
        payment_amount=reservation.payment_amount,
    )
    return reservation
