"""
Domain exceptions for the reservation core.

Services raise these; api/errors.py turns them into
{"error": <code>, "message": <text>, "details": {...}} responses.
"""

from typing import Any, Dict, Optional


class GymBookingError(Exception):
    """Base class. Subclasses set the HTTP status and default error code."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(GymBookingError):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        if identifier is not None:
            message = f"{resource} {identifier} not found"
            details = {"resource": resource, "identifier": identifier}
        else:
            message = f"{resource} not found"
            details = {"resource": resource}
        super().__init__(message, details=details)


class ConflictError(GymBookingError):
    """Session full, duplicate reservation, or a lost capacity race."""

    status_code = 409
    error_code = "CONFLICT"


class InvalidStateError(GymBookingError):
    """Operation not allowed from the entity's current state."""

    status_code = 400
    error_code = "INVALID_STATE"


class ForbiddenError(GymBookingError):
    status_code = 403
    error_code = "FORBIDDEN"


class PolicyViolationError(GymBookingError):
    status_code = 400
    error_code = "POLICY_VIOLATION"


class ValidationError(GymBookingError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class MalformedInputError(GymBookingError):
    """Stored data the service cannot interpret, e.g. a bad session time."""

    status_code = 500
    error_code = "CONFIGURATION_ERROR"


class MalformedTimeError(MalformedInputError, ValueError):
    def __init__(self, value: Any):
        super().__init__(
            f"Invalid session time {value!r}, expected format like '9:00 AM'",
            details={"time": value},
        )
