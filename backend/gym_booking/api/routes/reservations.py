"""
Reservation endpoints: member views, cancellation, attendance and admin reporting.
"""

import math
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gym_booking.db.session import get_db
from gym_booking.models.user import User
from gym_booking.schemas.reservation import (
    CancelReservationRequest,
    PaymentUpdateRequest,
    ReservationListResponse,
    ReservationPageResponse,
    ReservationResponse,
    ReservationStatsResponse,
    RevenueStatsResponse,
)
from gym_booking.services import cancellation_service, reservation_service
from gym_booking.services.cache_service import invalidate_session_cache
from gym_booking.core.security import get_current_user, require_admin, require_staff

router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.get("/me", response_model=ReservationListResponse)
async def my_reservations(
    status: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get all reservations for the authenticated member."""
    reservations, total = await reservation_service.get_user_reservations(db, user.id, status, limit)
    return ReservationListResponse(
        reservations=[ReservationResponse.model_validate(r) for r in reservations],
        total=total,
    )


@router.get("/admin/all", response_model=ReservationPageResponse)
async def all_reservations(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    status: Optional[str] = Query(None),
    session_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    is_paid: Optional[bool] = Query(None),
    booking_date: Optional[date] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    reservations, total = await reservation_service.list_reservations(
        db,
        page=page,
        page_size=page_size,
        status=status,
        session_id=session_id,
        user_id=user_id,
        is_paid=is_paid,
        booking_day=booking_date,
    )
    return ReservationPageResponse(
        reservations=[ReservationResponse.model_validate(r) for r in reservations],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size),
    )


@router.get("/admin/stats", response_model=ReservationStatsResponse)
async def reservation_stats(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await reservation_service.get_reservation_stats(db)


@router.get("/admin/revenue", response_model=RevenueStatsResponse)
async def revenue_stats(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await reservation_service.get_revenue_stats(db, start_date, end_date)


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await reservation_service.get_reservation(db, reservation_id, user)


@router.put("/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: int,
    body: Optional[CancelReservationRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Cancel a confirmed reservation. Members may cancel their own, admins any
    member's, and both only up to CANCELLATION_WINDOW_HOURS before the session
    starts.
    """
    reason = body.reason if body else None
    reservation = await cancellation_service.cancel_reservation(db, reservation_id, user, reason=reason)
    await invalidate_session_cache()
    return reservation


@router.put("/{reservation_id}/attend", response_model=ReservationResponse)
async def mark_attended(
    reservation_id: int,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await cancellation_service.mark_attended(db, reservation_id, staff)


@router.put("/{reservation_id}/no-show", response_model=ReservationResponse)
async def mark_no_show(
    reservation_id: int,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await cancellation_service.mark_no_show(db, reservation_id, staff)


@router.put("/{reservation_id}/check-out", response_model=ReservationResponse)
async def check_out(
    reservation_id: int,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await cancellation_service.check_out(db, reservation_id, staff)


@router.put("/{reservation_id}/payment", response_model=ReservationResponse)
async def update_payment(
    reservation_id: int,
    body: PaymentUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await reservation_service.update_payment_status(
        db, reservation_id, body.is_paid, body.payment_amount
    )
