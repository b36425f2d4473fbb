"""
Exception handlers that render domain errors as
{"error": <code>, "message": <text>, "details": {...}}.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from gym_booking.core.exceptions import GymBookingError
from gym_booking.core.logging import get_logger

logger = get_logger(__name__)


def error_body(error_code: str, message: str, details: dict = None) -> dict:
    return {"error": error_code, "message": message, "details": details or {}}


async def gym_booking_error_handler(request: Request, exc: GymBookingError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "request_rejected",
        error_code=exc.error_code,
        status_code=exc.status_code,
        message=exc.message,
        details=exc.details,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error_code, exc.message, exc.details),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("integrity_error", error=str(exc.orig))
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body("CONFLICT", "Request conflicts with existing data"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GymBookingError, gym_booking_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
