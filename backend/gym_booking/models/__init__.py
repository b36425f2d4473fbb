from gym_booking.models.user import User
from gym_booking.models.session import TrainingSession
from gym_booking.models.reservation import Reservation

__all__ = ["User", "TrainingSession", "Reservation"]
