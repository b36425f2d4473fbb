"""
Administrative member operations that touch benefit counters.

Counters are never replenished automatically; an admin resets them to the
tier allowance (e.g. at the start of a billing month).
"""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from gym_booking.core.exceptions import NotFoundError
from gym_booking.core.logging import get_logger
from gym_booking.models.user import User
from gym_booking.services.pricing import initial_benefits

logger = get_logger(__name__)


async def reset_benefits(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("Member", user_id)

    allowance = initial_benefits(user.membership_type)
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(**allowance)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(user)

    logger.info("member_benefits_reset", user_id=user_id, membership_type=user.membership_type, **allowance)
    return user
