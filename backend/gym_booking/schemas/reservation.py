"""
Pydantic schemas for reservation request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from gym_booking.schemas.session import SessionResponse


class ReservationResponse(BaseModel):
    id: int
    user_id: int
    session_id: int
    booking_date: datetime
    status: str
    lifecycle_state: str
    is_paid: bool
    payment_amount: float
    benefit_consumed: bool
    attendance: Optional[str]
    notes: Optional[str]
    cancellation_reason: Optional[str]
    cancelled_at: Optional[datetime]
    cancelled_by: Optional[int]
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]

    model_config = {"from_attributes": True}


class MemberBenefits(BaseModel):
    personal_training_sessions_remaining: int


class ReserveSessionResponse(BaseModel):
    reservation: ReservationResponse
    session: SessionResponse
    user: MemberBenefits


class CancelReservationRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=200)


class PaymentUpdateRequest(BaseModel):
    is_paid: bool
    payment_amount: Optional[float] = Field(None, ge=0)


class ReservationListResponse(BaseModel):
    reservations: list[ReservationResponse]
    total: int


class ReservationPageResponse(BaseModel):
    reservations: list[ReservationResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class ReservationStatsResponse(BaseModel):
    total_reservations: int
    confirmed_reservations: int
    cancelled_reservations: int
    paid_reservations: int
    attended_reservations: int
    attendance_rate: int
    breakdown: dict[str, int]


class RevenueStatsResponse(BaseModel):
    total_revenue: float
    total_paid_reservations: int
    avg_payment: float
