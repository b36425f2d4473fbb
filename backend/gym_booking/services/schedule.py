"""
Session time handling.

Sessions are scheduled as a calendar day plus a 12-hour clock string
("9:00 AM"). The string is parsed once, when a session is created or
rescheduled, into an absolute UTC `starts_at`; the cancellation window is
then a plain timestamp comparison.
"""

import re
from datetime import date, datetime, time, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from gym_booking.core.config import get_settings
from gym_booking.core.exceptions import MalformedInputError, MalformedTimeError, PolicyViolationError

_TIME_RE = re.compile(r"^(0?[1-9]|1[0-2]):([0-5][0-9]) ?([AaPp][Mm])$")


def parse_session_time(value: str) -> time:
    """
    Parse "h:mm AM/PM" (one or two digit hour) into a time of day.

    12 AM is midnight, 12 PM is noon, any other PM hour gets +12.
    Raises MalformedTimeError for anything else.
    """
    if not isinstance(value, str):
        raise MalformedTimeError(value)
    match = _TIME_RE.match(value.strip())
    if not match:
        raise MalformedTimeError(value)

    hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if meridiem == "AM" and hour == 12:
        hour = 0
    elif meridiem == "PM" and hour != 12:
        hour += 12
    return time(hour, minute)


def format_session_time(value: time) -> str:
    meridiem = "AM" if value.hour < 12 else "PM"
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {meridiem}"


def normalize_session_time(value: str) -> str:
    """'09:05 pm' -> '9:05 PM'"""
    return format_session_time(parse_session_time(value))


def gym_timezone() -> tzinfo:
    name = get_settings().GYM_TIMEZONE
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise MalformedInputError(
            f"Unknown gym timezone {name!r}", details={"timezone": name}
        ) from e


def session_starts_at(day: date, time_str: str, tz: Optional[tzinfo] = None) -> datetime:
    """Absolute start (UTC) of a session held on `day` at local `time_str`."""
    local = datetime.combine(day, parse_session_time(time_str), tzinfo=tz or gym_timezone())
    return local.astimezone(timezone.utc)


def hours_until(starts_at: datetime, now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    if starts_at.tzinfo is None:
        starts_at = starts_at.replace(tzinfo=timezone.utc)
    return (starts_at - now).total_seconds() / 3600


def ensure_cancellable(
    starts_at: datetime,
    now: Optional[datetime] = None,
    window_hours: Optional[float] = None,
) -> float:
    """
    Raise PolicyViolationError when the session starts in less than
    `window_hours`. A session exactly `window_hours` away can still be
    cancelled. Returns the remaining lead time in hours.
    """
    if window_hours is None:
        window_hours = get_settings().CANCELLATION_WINDOW_HOURS
    remaining = hours_until(starts_at, now)
    if remaining < window_hours:
        raise PolicyViolationError(
            f"Reservation can only be cancelled up to {window_hours:g} hours before the session",
            error_code="CANCELLATION_WINDOW_CLOSED",
            details={"hours_until_session": round(remaining, 2), "window_hours": window_hours},
        )
    return remaining
