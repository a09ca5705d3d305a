"""Time parsing and calendar-date arithmetic for the scheduling engine.

Two conventions hold everywhere in the engine:

* Wall-clock times are ``HH:MM`` strings. An end time of local midnight is
  stored as ``24:00`` so that it sorts after every start time of the same
  date. UI controls cannot express ``24:00``; they go through
  :func:`to_input_time` / :func:`to_storage_time` at the boundary.
* Date keys are *local* calendar dates. Anything that carries a timestamp is
  projected with :func:`to_local_date` and nothing else, so a booking at
  01:00 in Bangkok never lands on the previous UTC day.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Union

from dateutil import parser as date_parser
from dateutil import tz

from ...config import LOCAL_TIMEZONE
from ...shared.errors import ValidationError
from ...shared.validators import MINUTES_PER_DAY, validate_time_string

END_OF_DAY = "24:00"


def to_storage_time(value: str, is_end_time: bool) -> str:
    """Map a UI end time of 00:00 onto the 24:00 end-of-day sentinel"""
    if is_end_time and value == "00:00":
        return END_OF_DAY
    return value


def to_input_time(value: str) -> str:
    """Map the 24:00 sentinel back to 00:00 for controls that cannot show it"""
    if value == END_OF_DAY:
        return "00:00"
    return value


def parse_time(value, field: str = "time", allow_end_of_day: bool = False) -> str:
    """
    Validate an H:MM / HH:MM string and return it zero-padded.

    24:00 is accepted only when ``allow_end_of_day`` is set, and 24:MM with
    MM > 0 is never valid.
    """
    try:
        return validate_time_string(value, allow_end_of_day=allow_end_of_day)
    except ValueError as e:
        raise ValidationError(f"{field}: {e}", field=field) from e


def to_minutes(value: str) -> int:
    """Minutes since local midnight; 24:00 -> 1440"""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def from_minutes(total: int) -> str:
    if total < 0 or total > MINUTES_PER_DAY:
        raise ValidationError("Time range must stay within a single day", field="endTime")
    return f"{total // 60:02d}:{total % 60:02d}"


def normalize_range(start_time, end_time, start_field: str = "startTime", end_field: str = "endTime"):
    """
    Validate a same-day [start, end) range and return canonical strings.

    The end passes through :func:`to_storage_time`, so a UI value of 00:00
    becomes 24:00. Multi-day spans are rejected: model them as two dated slots.
    """
    start = parse_time(start_time, start_field)
    end = to_storage_time(parse_time(end_time, end_field, allow_end_of_day=True), True)
    if to_minutes(start) >= to_minutes(end):
        raise ValidationError("End time must be after start time", field=end_field)
    return start, end


def ranges_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open overlap; touching ranges (22:00-24:00 / 24:00-...) do not overlap"""
    return start_a < end_b and start_b < end_a


def add_minutes(value: str, minutes: int) -> str:
    return from_minutes(to_minutes(value) + minutes)


def _local_zone():
    zone = tz.gettz(LOCAL_TIMEZONE)
    if zone is None:
        raise RuntimeError(f"Unknown LOCAL_TIMEZONE: {LOCAL_TIMEZONE}")
    return zone


def to_local_date(value: Union[date, datetime, str]) -> date:
    """
    Project anything date-like onto the local calendar date.

    Aware datetimes (and ISO strings carrying an offset or ``Z``) are converted
    to LOCAL_TIMEZONE first; naive values are taken as already local.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(_local_zone())
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = date_parser.isoparse(value.strip())
        except ValueError as e:
            raise ValidationError(f"Invalid date: {value}", field="date") from e
        return to_local_date(parsed)
    raise ValidationError(f"Invalid date: {value!r}", field="date")


def local_today() -> date:
    return datetime.now(_local_zone()).date()


def local_now() -> datetime:
    """Naive local wall-clock datetime, comparable with combined date + HH:MM"""
    return datetime.now(_local_zone()).replace(tzinfo=None)


def month_bounds(year: int, month: int) -> tuple:
    if not 1 <= month <= 12:
        raise ValidationError("Invalid month", field="month")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def month_days(year: int, month: int) -> list:
    """One local date per day 1..daysInMonth"""
    return list(date_range(*month_bounds(year, month)))


def week_days(anchor: date) -> list:
    """The Monday-start week containing ``anchor``"""
    monday = anchor - timedelta(days=anchor.weekday())
    return [monday + timedelta(days=i) for i in range(7)]


def date_range(start: date, end: date) -> Iterator[date]:
    """Inclusive local date iterator"""
    if end < start:
        raise ValidationError("End date must not be before start date", field="endDate")
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def resolve_view_range(view: str, start: date, end: Optional[date] = None) -> tuple:
    """Date range for a month/week/day view anchored at ``start``"""
    if end is not None:
        return start, end
    if view == "month":
        return month_bounds(start.year, start.month)
    if view == "week":
        days = week_days(start)
        return days[0], days[-1]
    if view == "day":
        return start, start
    raise ValidationError(f"Invalid view: {view}", field="view")
