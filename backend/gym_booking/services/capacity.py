"""
Atomic counters on sessions and members.

CONCURRENCY STRATEGY: conditional UPDATE (compare-and-increment)
================================================================

Problem:
  Two members try to book the last spot simultaneously.
  Both read current_bookings=9 of 10, both write 10, both succeed.
  Result: the counter says 10 but 11 reservations exist.

Solution:
  The capacity check and the increment are one statement:

    UPDATE sessions
       SET current_bookings = current_bookings + 1, version = version + 1
     WHERE id = :id AND is_active AND current_bookings < max_capacity

  rows_affected == 0 means the session filled up (or was deactivated)
  after we looked at it. Under READ COMMITTED the second writer blocks on the
  row lock and re-evaluates the WHERE clause against the committed row, so
  it cannot slip past the limit. CHECK constraints on the table are the
  final safety net.

  Decrements carry a `current_bookings > 0` guard, and benefit counters use
  the same pattern with `remaining > 0`.

Nothing outside the booking and cancellation engines calls these.
"""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from gym_booking.models.session import TrainingSession
from gym_booking.models.user import User


async def try_increment_bookings(db: AsyncSession, session_id: int) -> bool:
    """Take one spot. False when the session is full or inactive."""
    result = await db.execute(
        update(TrainingSession)
        .where(
            TrainingSession.id == session_id,
            TrainingSession.is_active.is_(True),
            TrainingSession.current_bookings < TrainingSession.max_capacity,
        )
        .values(
            current_bookings=TrainingSession.current_bookings + 1,
            version=TrainingSession.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def release_booking(db: AsyncSession, session_id: int) -> bool:
    """Give one spot back, never below zero. False if already at zero."""
    result = await db.execute(
        update(TrainingSession)
        .where(
            TrainingSession.id == session_id,
            TrainingSession.current_bookings > 0,
        )
        .values(
            current_bookings=TrainingSession.current_bookings - 1,
            version=TrainingSession.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def try_consume_training_session(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(
        update(User)
        .where(
            User.id == user_id,
            User.personal_training_sessions_remaining > 0,
        )
        .values(
            personal_training_sessions_remaining=User.personal_training_sessions_remaining - 1,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def refund_training_session(db: AsyncSession, user_id: int) -> None:
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(
            personal_training_sessions_remaining=User.personal_training_sessions_remaining + 1,
        )
        .execution_options(synchronize_session=False)
    )


async def try_resize_capacity(db: AsyncSession, session_id: int, max_capacity: int) -> bool:
    """Change max_capacity only if it still covers the bookings already taken."""
    result = await db.execute(
        update(TrainingSession)
        .where(
            TrainingSession.id == session_id,
            TrainingSession.current_bookings <= max_capacity,
        )
        .values(max_capacity=max_capacity, version=TrainingSession.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
