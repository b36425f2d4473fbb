"""
Training session CRUD, listings and stats.

current_bookings is never written here; it belongs to the capacity counter.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from gym_booking.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from gym_booking.core.logging import get_logger
from gym_booking.models.reservation import Reservation
from gym_booking.models.session import TrainingSession
from gym_booking.models.user import User
from gym_booking.schemas.session import SessionCreate, SessionUpdate
from gym_booking.services import capacity
from gym_booking.services.schedule import normalize_session_time, session_starts_at

logger = get_logger(__name__)


async def _validate_trainer(db: AsyncSession, trainer_id: Optional[int]) -> None:
    if trainer_id is None:
        return
    trainer = await db.get(User, trainer_id)
    if not trainer or trainer.role != "trainer":
        raise ValidationError("Invalid trainer selected", details={"trainer_id": trainer_id})


async def create_session(db: AsyncSession, data: SessionCreate) -> TrainingSession:
    await _validate_trainer(db, data.trainer_id)

    starts_at = session_starts_at(data.date, data.time)
    if starts_at <= datetime.now(timezone.utc):
        raise ValidationError(
            "Session must start in the future",
            details={"starts_at": starts_at.isoformat()},
        )

    session = TrainingSession(
        **data.model_dump(exclude={"time"}),
        time=normalize_session_time(data.time),
        starts_at=starts_at,
        current_bookings=0,
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)

    logger.info(
        "session_created",
        session_id=session.id,
        name=session.name,
        type=session.type,
        capacity=session.max_capacity,
        starts_at=session.starts_at.isoformat(),
    )
    return session


async def get_session(db: AsyncSession, session_id: int) -> TrainingSession:
    """Always reads the row; booking counters must be current."""
    result = await db.execute(
        select(TrainingSession)
        .where(TrainingSession.id == session_id)
        .execution_options(populate_existing=True)
    )
    session = result.scalar_one_or_none()
    if not session:
        raise NotFoundError("Session", session_id)
    return session


async def count_confirmed_reservations(db: AsyncSession, session_id: int) -> int:
    result = await db.execute(
        select(func.count(Reservation.id)).where(
            Reservation.session_id == session_id,
            Reservation.status == "confirmed",
        )
    )
    return result.scalar()


async def list_sessions(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    session_type: Optional[str] = None,
    day: Optional[date] = None,
    difficulty: Optional[str] = None,
    trainer_id: Optional[int] = None,
) -> tuple[list[TrainingSession], int]:
    query = select(TrainingSession).where(TrainingSession.is_active.is_(True))
    if session_type:
        query = query.where(TrainingSession.type == session_type)
    if day:
        query = query.where(TrainingSession.date == day)
    if difficulty:
        query = query.where(TrainingSession.difficulty == difficulty)
    if trainer_id is not None:
        query = query.where(TrainingSession.trainer_id == trainer_id)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()

    result = await db.execute(
        query.order_by(TrainingSession.starts_at.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def upcoming_sessions(db: AsyncSession, limit: int = 10) -> list[TrainingSession]:
    result = await db.execute(
        select(TrainingSession)
        .where(
            TrainingSession.is_active.is_(True),
            TrainingSession.starts_at >= datetime.now(timezone.utc),
        )
        .order_by(TrainingSession.starts_at.asc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def update_session(db: AsyncSession, session_id: int, data: SessionUpdate) -> TrainingSession:
    session = await get_session(db, session_id)
    changes = data.model_dump(exclude_unset=True)

    if "trainer_id" in changes:
        await _validate_trainer(db, changes["trainer_id"])

    new_capacity = changes.pop("max_capacity", None)
    if new_capacity is not None and new_capacity != session.max_capacity:
        if not await capacity.try_resize_capacity(db, session_id, new_capacity):
            await db.rollback()
            raise ValidationError(
                "Maximum capacity cannot be lower than current bookings",
                details={"max_capacity": new_capacity},
            )

    if "date" in changes or "time" in changes:
        day = changes.get("date", session.date)
        time_str = changes.get("time", session.time)
        changes["time"] = normalize_session_time(time_str)
        changes["starts_at"] = session_starts_at(day, time_str)

    for field, value in changes.items():
        setattr(session, field, value)

    await db.commit()
    session = await get_session(db, session_id)
    logger.info("session_updated", session_id=session_id, fields=sorted(data.model_dump(exclude_unset=True)))
    return session


async def delete_session(db: AsyncSession, session_id: int) -> dict:
    """
    Refused while confirmed reservations exist. A session any reservation
    ever referenced is deactivated; one nobody booked is removed.
    """
    session = await get_session(db, session_id)

    active = await count_confirmed_reservations(db, session_id)
    if active > 0:
        raise InvalidStateError(
            f"Cannot delete session. {active} active reservations exist.",
            error_code="SESSION_HAS_RESERVATIONS",
            details={"session_id": session_id, "confirmed_reservations": active},
        )

    referenced = (
        await db.execute(select(func.count(Reservation.id)).where(Reservation.session_id == session_id))
    ).scalar()

    if referenced:
        session.is_active = False
        await db.commit()
        logger.info("session_deactivated", session_id=session_id)
        return {"session_id": session_id, "deleted": False, "deactivated": True}

    await db.execute(delete(TrainingSession).where(TrainingSession.id == session_id))
    await db.commit()
    logger.info("session_deleted", session_id=session_id)
    return {"session_id": session_id, "deleted": True, "deactivated": False}


async def get_session_stats(db: AsyncSession) -> dict:
    rows = await db.execute(
        select(
            TrainingSession.type,
            func.count(TrainingSession.id),
            func.coalesce(func.sum(TrainingSession.current_bookings), 0),
            func.avg(TrainingSession.max_capacity),
        ).group_by(TrainingSession.type)
    )
    breakdown = [
        {
            "type": session_type,
            "count": count,
            "total_bookings": int(bookings),
            "avg_capacity": round(float(avg_capacity or 0), 2),
        }
        for session_type, count, bookings, avg_capacity in rows.all()
    ]

    total = (
        await db.execute(select(func.count(TrainingSession.id)).where(TrainingSession.is_active.is_(True)))
    ).scalar()
    upcoming = (
        await db.execute(
            select(func.count(TrainingSession.id)).where(
                TrainingSession.is_active.is_(True),
                TrainingSession.starts_at >= datetime.now(timezone.utc),
            )
        )
    ).scalar()

    return {"total_sessions": total, "upcoming_sessions": upcoming, "breakdown": breakdown}
