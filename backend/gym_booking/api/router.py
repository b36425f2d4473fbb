"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from gym_booking.api.routes import auth, sessions, reservations, members

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(sessions.router)
api_router.include_router(reservations.router)
api_router.include_router(members.router)
