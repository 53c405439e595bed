import datetime as dt
from zoneinfo import ZoneInfo

import pytest

from packages.core.reminders.errors import InvalidScheduleError
from packages.core.reminders.recurrence import (
    local_instant,
    next_occurrence,
    parse_time_of_day,
    resolve_timezone,
)


UTC = dt.timezone.utc


def _utc(*args):
    return dt.datetime(*args, tzinfo=UTC)


def test_daily_later_today():
    result = next_occurrence("09:00", "daily", "UTC", _utc(2026, 3, 2, 8, 0))
    assert result == _utc(2026, 3, 2, 9, 0)


def test_daily_rolls_to_tomorrow_when_time_passed():
    result = next_occurrence("09:00", "daily", "UTC", _utc(2026, 3, 2, 9, 0))
    assert result == _utc(2026, 3, 3, 9, 0)


def test_requires_one_minute_margin():
    result = next_occurrence("09:00", "daily", "UTC", _utc(2026, 3, 2, 8, 59, 30))
    assert result == _utc(2026, 3, 3, 9, 0)


def test_weekdays_skip_weekend():
    # 2026-03-06 is a Friday.
    result = next_occurrence("09:00", "weekdays", "UTC", _utc(2026, 3, 6, 10, 0))
    assert result == _utc(2026, 3, 9, 9, 0)
    assert result.weekday() == 0


def test_spring_forward_keeps_local_time():
    # DST starts in New York on 2026-03-08.
    before = next_occurrence("09:00", "daily", "America/New_York", _utc(2026, 3, 7, 12, 0))
    after = next_occurrence("09:00", "daily", "America/New_York", _utc(2026, 3, 7, 15, 0))
    assert before == _utc(2026, 3, 7, 14, 0)
    assert after == _utc(2026, 3, 8, 13, 0)
    assert after - before == dt.timedelta(hours=23)


def test_fall_back_keeps_local_time():
    # DST ends in New York on 2026-11-01.
    result = next_occurrence("09:00", "daily", "America/New_York", _utc(2026, 10, 31, 14, 0))
    assert result == _utc(2026, 11, 1, 14, 0)
    local = result.astimezone(ZoneInfo("America/New_York"))
    assert (local.hour, local.minute) == (9, 0)


def test_nonexistent_local_time_skips_the_day():
    result = next_occurrence("02:30", "daily", "America/New_York", _utc(2026, 3, 7, 8, 0))
    assert result == _utc(2026, 3, 9, 6, 30)


def test_ambiguous_local_time_uses_first_occurrence():
    result = next_occurrence("01:30", "daily", "America/New_York", _utc(2026, 10, 31, 12, 0))
    assert result == _utc(2026, 11, 1, 5, 30)


def test_weekly_anchors_to_weekday():
    anchor = dt.date(2026, 3, 2)  # Monday
    result = next_occurrence("09:00", "weekly", "UTC", _utc(2026, 3, 4, 12, 0), anchor=anchor)
    assert result == _utc(2026, 3, 9, 9, 0)


def test_weekly_without_anchor_uses_reference_day():
    result = next_occurrence("09:00", "weekly", "UTC", _utc(2026, 3, 4, 12, 0))
    assert result == _utc(2026, 3, 11, 9, 0)


def test_monthly_clamps_to_short_month():
    anchor = dt.date(2026, 1, 31)
    result = next_occurrence("09:00", "monthly", "UTC", _utc(2026, 2, 1, 0, 0), anchor=anchor)
    assert result == _utc(2026, 2, 28, 9, 0)


def test_monthly_moves_to_next_month_after_anchor_day():
    anchor = dt.date(2026, 1, 15)
    result = next_occurrence("09:00", "monthly", "UTC", _utc(2026, 3, 15, 10, 0), anchor=anchor)
    assert result == _utc(2026, 4, 15, 9, 0)


@pytest.mark.parametrize("timezone", ["America/New_York", "Europe/London", "Asia/Kolkata", "UTC"])
@pytest.mark.parametrize("pattern", ["daily", "weekdays"])
def test_result_matches_local_time_and_pattern(timezone, pattern):
    tz = ZoneInfo(timezone)
    reference = _utc(2026, 1, 1, 0, 0)
    for _ in range(60):
        result = next_occurrence("07:45", pattern, timezone, reference)
        local = result.astimezone(tz)
        assert result > reference
        assert local.strftime("%H:%M") == "07:45"
        if pattern == "weekdays":
            assert local.weekday() < 5
        reference += dt.timedelta(hours=149)


@pytest.mark.parametrize("value", ["25:00", "9am", "09:60", "", None, "9:5"])
def test_invalid_time_of_day(value):
    with pytest.raises(InvalidScheduleError):
        parse_time_of_day(value)


def test_single_digit_hour_accepted():
    assert parse_time_of_day("7:05") == (7, 5)


def test_unknown_timezone():
    with pytest.raises(InvalidScheduleError):
        next_occurrence("09:00", "daily", "Mars/Olympus_Mons", _utc(2026, 3, 2, 8, 0))
    with pytest.raises(InvalidScheduleError):
        resolve_timezone("")


def test_unknown_recurrence():
    with pytest.raises(InvalidScheduleError):
        next_occurrence("09:00", "hourly", "UTC", _utc(2026, 3, 2, 8, 0))


def test_naive_reference_rejected():
    with pytest.raises(InvalidScheduleError):
        next_occurrence("09:00", "daily", "UTC", dt.datetime(2026, 3, 2, 8, 0))


def test_local_instant_returns_none_in_gap():
    tz = ZoneInfo("America/New_York")
    assert local_instant(dt.date(2026, 3, 8), 2, 30, tz) is None
    assert local_instant(dt.date(2026, 3, 8), 3, 30, tz) == _utc(2026, 3, 8, 7, 30)
