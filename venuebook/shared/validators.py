"""Shared validation utilities"""

import re

_TIME_RE = re.compile(r"^([01]?[0-9]|2[0-4]):([0-5][0-9])$")

MINUTES_PER_DAY = 24 * 60


def validate_time_string(value: str, allow_end_of_day: bool = False) -> str:
    """
    Validate a wall-clock time and normalize it to zero-padded HH:MM.

    Args:
        value: Time string such as "9:30" or "20:00"
        allow_end_of_day: Accept the 24:00 end-of-day sentinel

    Returns:
        Normalized time string ("09:30")

    Raises:
        ValueError: If the time is malformed or out of range
    """
    if not isinstance(value, str):
        raise ValueError("Time must be a string in HH:MM format")

    match = _TIME_RE.match(value.strip())
    if not match:
        raise ValueError("Invalid time format. Use HH:MM (e.g., 20:00)")

    hours, minutes = int(match.group(1)), int(match.group(2))
    total = hours * 60 + minutes
    if total > MINUTES_PER_DAY:
        raise ValueError("Time must not be later than 24:00")
    if total == MINUTES_PER_DAY and not allow_end_of_day:
        raise ValueError("24:00 is only valid as an end time")

    return f"{hours:02d}:{minutes:02d}"
