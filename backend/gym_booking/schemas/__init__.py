from gym_booking.schemas.user import UserCreate, UserResponse, UserLogin, Token
from gym_booking.schemas.session import SessionCreate, SessionUpdate, SessionResponse, SessionListResponse
from gym_booking.schemas.reservation import (
    ReservationResponse,
    ReserveSessionResponse,
    CancelReservationRequest,
    PaymentUpdateRequest,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "SessionCreate", "SessionUpdate", "SessionResponse", "SessionListResponse",
    "ReservationResponse", "ReserveSessionResponse", "CancelReservationRequest", "PaymentUpdateRequest",
]
