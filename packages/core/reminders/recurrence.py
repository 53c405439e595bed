"""Next-occurrence computation for recurring reminders.

A recurring reminder is a local wall-clock time plus a day pattern. The
absolute instant for a local (date, hour, minute) is resolved through
``zoneinfo`` and verified by converting back, so the UTC offset in effect
on each candidate date is used rather than the offset at the reference
instant. Dates on which the wall-clock time does not exist (spring-forward
gap) are skipped; ambiguous times (fall-back overlap) resolve to their
first occurrence, so each local date yields at most one instant.
"""

from __future__ import annotations

import calendar
import datetime as dt
import re
from typing import Iterator, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidScheduleError
from .models import (
    RECURRENCE_DAILY,
    RECURRENCE_MONTHLY,
    RECURRENCE_WEEKDAYS,
    RECURRENCE_WEEKLY,
    RECURRENCES,
)
from .timeutil import ensure_aware, utc_now

MIN_LEAD = dt.timedelta(minutes=1)
# Candidate dates examined before giving up; covers a weekend plus a DST gap.
MAX_CANDIDATE_DAYS = 8

_TIME_OF_DAY_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_time_of_day(value: Optional[str]) -> Tuple[int, int]:
    if not value or not isinstance(value, str):
        raise InvalidScheduleError("time_of_day is required (HH:MM)")
    match = _TIME_OF_DAY_RE.match(value.strip())
    if match is None:
        raise InvalidScheduleError(f"Invalid time_of_day: {value!r} (expected HH:MM)")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidScheduleError(f"Invalid time_of_day: {value!r} (out of range)")
    return hour, minute


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    if not name or not isinstance(name, str):
        raise InvalidScheduleError("timezone is required")
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidScheduleError(f"Unknown timezone: {name}") from exc


def is_valid_timezone(name: Optional[str]) -> bool:
    try:
        resolve_timezone(name)
    except InvalidScheduleError:
        return False
    return True


def parse_anchor_date(value: Optional[str]) -> Optional[dt.date]:
    if not value:
        return None
    try:
        return dt.date.fromisoformat(value.strip())
    except ValueError as exc:
        raise InvalidScheduleError(f"Invalid anchor_date: {value!r}") from exc


def local_instant(day: dt.date, hour: int, minute: int, tz: ZoneInfo) -> Optional[dt.datetime]:
    """Return the UTC instant showing ``hour:minute`` on ``day`` in ``tz``.

    Returns None when that wall-clock time is skipped on ``day``.
    """
    local = dt.datetime(day.year, day.month, day.day, hour, minute, tzinfo=tz, fold=0)
    instant = local.astimezone(dt.timezone.utc)
    check = instant.astimezone(tz)
    if (check.date(), check.hour, check.minute) != (day, hour, minute):
        return None
    return instant


def _month_day(year: int, month: int, day: int) -> dt.date:
    last = calendar.monthrange(year, month)[1]
    return dt.date(year, month, min(day, last))


def _candidate_days(
    recurrence: str, start: dt.date, anchor: dt.date
) -> Iterator[dt.date]:
    if recurrence == RECURRENCE_DAILY:
        day = start
        while True:
            yield day
            day += dt.timedelta(days=1)
    elif recurrence == RECURRENCE_WEEKDAYS:
        day = start
        while True:
            if day.weekday() < 5:
                yield day
            day += dt.timedelta(days=1)
    elif recurrence == RECURRENCE_WEEKLY:
        day = start + dt.timedelta(days=(anchor.weekday() - start.weekday()) % 7)
        while True:
            yield day
            day += dt.timedelta(days=7)
    elif recurrence == RECURRENCE_MONTHLY:
        year, month = start.year, start.month
        while True:
            day = _month_day(year, month, anchor.day)
            if day >= start:
                yield day
            month += 1
            if month > 12:
                year, month = year + 1, 1
    else:
        raise InvalidScheduleError(f"Unknown recurrence: {recurrence}")


def next_occurrence(
    time_of_day: str,
    recurrence: str,
    timezone: str,
    reference: Optional[dt.datetime] = None,
    anchor: Optional[dt.date] = None,
) -> dt.datetime:
    """Earliest instant at least one minute after ``reference`` matching the pattern.

    ``weekly`` repeats on the weekday of ``anchor`` and ``monthly`` on its
    day of month (clamped to short months). Without an anchor the local date
    of ``reference`` is used. The result is an aware UTC datetime.
    """
    hour, minute = parse_time_of_day(time_of_day)
    tz = resolve_timezone(timezone)
    if recurrence not in RECURRENCES:
        raise InvalidScheduleError(f"Unknown recurrence: {recurrence}")
    reference = ensure_aware(reference) if reference is not None else utc_now()

    earliest = reference + MIN_LEAD
    start = earliest.astimezone(tz).date()
    anchor = anchor or reference.astimezone(tz).date()

    days = _candidate_days(recurrence, start, anchor)
    for _ in range(MAX_CANDIDATE_DAYS):
        day = next(days)
        instant = local_instant(day, hour, minute, tz)
        if instant is not None and instant >= earliest:
            return instant
    raise InvalidScheduleError(
        f"No occurrence of {time_of_day} ({recurrence}) found in {timezone}"
    )
