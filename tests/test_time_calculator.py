"""Time normalizer: HH:MM parsing, the 24:00 sentinel and local-date projection"""

from datetime import date, datetime, timezone

import pytest

from venuebook.domain.scheduling.time_calculator import (
    END_OF_DAY,
    date_range,
    month_days,
    normalize_range,
    parse_time,
    ranges_overlap,
    resolve_view_range,
    to_input_time,
    to_local_date,
    to_minutes,
    to_storage_time,
    week_days,
)
from venuebook.shared.errors import ValidationError


@pytest.mark.parametrize("value", ["00:00", "09:30", "18:00", "23:59", "12:05"])
def test_storage_then_input_returns_the_ui_value(value):
    assert to_input_time(to_storage_time(value, True)) == value


def test_midnight_end_is_stored_as_end_of_day():
    assert to_storage_time("00:00", True) == END_OF_DAY
    assert to_storage_time("00:00", False) == "00:00"
    assert to_input_time("24:00") == "00:00"


def test_parse_time_zero_pads():
    assert parse_time("9:05") == "09:05"


@pytest.mark.parametrize("value", ["24:30", "25:00", "9:5", "ab:cd", "", "12:60"])
def test_parse_time_rejects_malformed_values(value):
    with pytest.raises(ValidationError):
        parse_time(value, allow_end_of_day=True)


def test_end_of_day_only_allowed_for_end_times():
    assert parse_time("24:00", allow_end_of_day=True) == "24:00"
    with pytest.raises(ValidationError) as exc:
        parse_time("24:00", field="startTime")
    assert exc.value.field == "startTime"


def test_normalize_range_maps_midnight_end():
    assert normalize_range("22:00", "00:00") == ("22:00", "24:00")


def test_normalize_range_rejects_inverted_range():
    with pytest.raises(ValidationError) as exc:
        normalize_range("22:00", "21:00")
    assert exc.value.field == "endTime"


def test_to_minutes_handles_sentinel():
    assert to_minutes("24:00") == 1440
    assert to_minutes("01:30") == 90


def test_touching_ranges_do_not_overlap():
    assert not ranges_overlap(1320, 1440, 1440, 1560)
    assert ranges_overlap(1200, 1440, 1320, 1440)


def test_aware_datetime_projects_to_bangkok_date():
    # 18:30 UTC is 01:30 the next day in Bangkok
    instant = datetime(2025, 3, 1, 18, 30, tzinfo=timezone.utc)
    assert to_local_date(instant) == date(2025, 3, 2)


def test_iso_string_with_offset_projects_to_local_date():
    assert to_local_date("2025-03-01T18:30:00Z") == date(2025, 3, 2)
    assert to_local_date("2025-03-01") == date(2025, 3, 1)


def test_invalid_date_string_raises():
    with pytest.raises(ValidationError):
        to_local_date("not-a-date")


def test_month_days_covers_every_day():
    days = month_days(2024, 2)
    assert len(days) == 29
    assert days[0] == date(2024, 2, 1)
    assert days[-1] == date(2024, 2, 29)


def test_week_days_start_on_monday():
    days = week_days(date(2025, 3, 13))  # Thursday
    assert days[0] == date(2025, 3, 10)
    assert days[-1] == date(2025, 3, 16)


def test_date_range_is_inclusive():
    assert list(date_range(date(2025, 1, 30), date(2025, 2, 1))) == [
        date(2025, 1, 30),
        date(2025, 1, 31),
        date(2025, 2, 1),
    ]


def test_resolve_view_range():
    anchor = date(2025, 3, 13)
    assert resolve_view_range("month", anchor) == (date(2025, 3, 1), date(2025, 3, 31))
    assert resolve_view_range("week", anchor) == (date(2025, 3, 10), date(2025, 3, 16))
    assert resolve_view_range("day", anchor) == (anchor, anchor)
    with pytest.raises(ValidationError):
        resolve_view_range("year", anchor)
