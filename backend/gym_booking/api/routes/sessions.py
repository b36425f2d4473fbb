"""
Training session endpoints. Listings are cached in Redis; anything that
moves a booking counter or edits a session drops the cached listings.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gym_booking.db.session import get_db
from gym_booking.models.user import User
from gym_booking.schemas.session import (
    SessionCreate,
    SessionUpdate,
    SessionResponse,
    SessionDetailResponse,
    SessionListResponse,
    SessionDeleteResponse,
    SessionStatsResponse,
)
from gym_booking.schemas.reservation import ReservationResponse, ReserveSessionResponse
from gym_booking.services import session_service
from gym_booking.services.booking_service import reserve_session
from gym_booking.services.cache_service import (
    get_cached_sessions,
    set_cached_sessions,
    invalidate_session_cache,
    make_session_list_key,
)
from gym_booking.core.security import get_current_user, require_admin
from gym_booking.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.get("/", response_model=SessionListResponse)
async def list_sessions_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session_type: Optional[str] = Query(None, alias="type"),
    day: Optional[date] = Query(None, alias="date"),
    difficulty: Optional[str] = Query(None),
    trainer_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """
    List active sessions ordered by start time.
    Cached in Redis; invalidated whenever bookings or sessions change.
    """
    key = make_session_list_key(page, page_size, session_type, day.isoformat() if day else None, difficulty, trainer_id)
    cached = await get_cached_sessions(key)
    if cached:
        logger.info("sessions_list_cache_hit", page=page)
        cached["cached"] = True
        return SessionListResponse(**cached)

    sessions, total = await session_service.list_sessions(
        db, page, page_size, session_type=session_type, day=day, difficulty=difficulty, trainer_id=trainer_id
    )
    response_data = {
        "sessions": [SessionResponse.model_validate(s).model_dump(mode="json") for s in sessions],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_sessions(key, response_data)
    return SessionListResponse(**response_data)


@router.get("/upcoming", response_model=list[SessionResponse])
async def upcoming_sessions_endpoint(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    return await session_service.upcoming_sessions(db, limit)


@router.get("/admin/stats", response_model=SessionStatsResponse)
async def session_stats_endpoint(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await session_service.get_session_stats(db)


@router.get("/{session_id}", response_model=SessionDetailResponse)
async def get_session_endpoint(session_id: int, db: AsyncSession = Depends(get_db)):
    """Single session with live counters. Never cached."""
    session = await session_service.get_session(db, session_id)
    confirmed = await session_service.count_confirmed_reservations(db, session_id)
    return SessionDetailResponse(
        session=SessionResponse.model_validate(session),
        confirmed_reservations=confirmed,
    )


@router.post("/", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session_endpoint(
    data: SessionCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    session = await session_service.create_session(db, data)
    await invalidate_session_cache()
    return session


@router.put("/{session_id}", response_model=SessionResponse)
async def update_session_endpoint(
    session_id: int,
    data: SessionUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    session = await session_service.update_session(db, session_id, data)
    await invalidate_session_cache()
    return session


@router.delete("/{session_id}", response_model=SessionDeleteResponse)
async def delete_session_endpoint(
    session_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await session_service.delete_session(db, session_id)
    await invalidate_session_cache()
    return result


@router.post(
    "/{session_id}/reserve",
    response_model=ReserveSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def reserve_session_endpoint(
    session_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve a spot. Full sessions and repeat reservations get a 409.
    """
    result = await reserve_session(db, user.id, session_id)
    await invalidate_session_cache()
    session = await session_service.get_session(db, session_id)
    return ReserveSessionResponse(
        reservation=ReservationResponse.model_validate(result.reservation),
        session=SessionResponse.model_validate(session),
        user={"personal_training_sessions_remaining": result.personal_training_sessions_remaining},
    )
