"""
Pydantic schemas for training session request/response validation.
"""

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from gym_booking.services.schedule import normalize_session_time

SessionType = Literal["group", "private-coach", "private-session"]
Difficulty = Literal["beginner", "intermediate", "advanced"]


class SessionCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    type: SessionType
    date: dt.date
    time: str = Field(..., examples=["9:00 AM"])
    duration: int = Field(default=60, ge=15, le=180)
    max_capacity: int = Field(..., ge=1, le=500)
    price: float = Field(default=0.0, ge=0)
    description: Optional[str] = Field(None, max_length=500)
    location: str = Field(default="Main Gym Area", max_length=100)
    difficulty: Difficulty = "intermediate"
    trainer_id: Optional[int] = None

    @field_validator("time")
    @classmethod
    def _valid_time(cls, value: str) -> str:
        return normalize_session_time(value)


class SessionUpdate(BaseModel):
    """Partial update. Booking counters are not editable."""

    name: Optional[str] = Field(None, min_length=3, max_length=100)
    type: Optional[SessionType] = None
    date: Optional[dt.date] = None
    time: Optional[str] = None
    duration: Optional[int] = Field(None, ge=15, le=180)
    max_capacity: Optional[int] = Field(None, ge=1, le=500)
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    difficulty: Optional[Difficulty] = None
    trainer_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("time")
    @classmethod
    def _valid_time(cls, value: Optional[str]) -> Optional[str]:
        return normalize_session_time(value) if value is not None else value

    @model_validator(mode="after")
    def _no_null_required_fields(self) -> "SessionUpdate":
        # Only description and trainer_id may be cleared
        cleared = sorted(
            field for field in self.model_fields_set
            if getattr(self, field) is None and field not in ("description", "trainer_id")
        )
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(cleared)}")
        return self


class SessionResponse(BaseModel):
    id: int
    name: str
    type: str
    date: dt.date
    time: str
    starts_at: dt.datetime
    duration: int
    max_capacity: int
    current_bookings: int
    available_slots: int
    is_full: bool
    price: float
    description: Optional[str]
    location: str
    difficulty: str
    trainer_id: Optional[int]
    is_active: bool
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class SessionDetailResponse(BaseModel):
    session: SessionResponse
    confirmed_reservations: int


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class SessionDeleteResponse(BaseModel):
    session_id: int
    deleted: bool
    deactivated: bool


class SessionTypeStats(BaseModel):
    type: str
    count: int
    total_bookings: int
    avg_capacity: float


class SessionStatsResponse(BaseModel):
    total_sessions: int
    upcoming_sessions: int
    breakdown: list[SessionTypeStats]
