"""
Member administration.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gym_booking.db.session import get_db
from gym_booking.models.user import User
from gym_booking.schemas.user import UserResponse
from gym_booking.services.member_service import reset_benefits
from gym_booking.core.security import require_admin

router = APIRouter(prefix="/members", tags=["Members"])


@router.put("/{user_id}/benefits/reset", response_model=UserResponse)
async def reset_member_benefits(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Restore guest passes and training sessions to the member's tier allowance."""
    return await reset_benefits(db, user_id)
