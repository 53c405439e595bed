from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional

from ..storage.base import ReminderState

SCHEDULE_ONCE = "once"
SCHEDULE_RECURRING = "recurring"
SCHEDULE_RANDOM = "random"
SCHEDULE_TYPES: FrozenSet[str] = frozenset(
    {SCHEDULE_ONCE, SCHEDULE_RECURRING, SCHEDULE_RANDOM}
)

RECURRENCE_DAILY = "daily"
RECURRENCE_WEEKDAYS = "weekdays"
RECURRENCE_WEEKLY = "weekly"
RECURRENCE_MONTHLY = "monthly"
RECURRENCES: FrozenSet[str] = frozenset(
    {RECURRENCE_DAILY, RECURRENCE_WEEKDAYS, RECURRENCE_WEEKLY, RECURRENCE_MONTHLY}
)

STATUS_ACTIVE = "active"
STATUS_PAUSED = "paused"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
STATUSES: FrozenSet[str] = frozenset(
    {STATUS_ACTIVE, STATUS_PAUSED, STATUS_CONFIRMED, STATUS_CANCELLED}
)

DEFAULT_SHORT_CODE = "REM"

Reminder = ReminderState


@dataclass(frozen=True)
class ReminderIntent:
    """Structured reminder request produced by the intake layer."""

    message: str
    schedule_type: str = SCHEDULE_ONCE
    fire_at: Optional[str] = None
    time_of_day: Optional[str] = None
    recurrence: Optional[str] = None
    anchor_date: Optional[str] = None
    window_start: Optional[str] = None
    window_end: Optional[str] = None
    fuzzy: Optional[bool] = None
    fuzzy_minutes: Optional[int] = None
    nag: bool = False
    nag_interval_minutes: Optional[int] = None
    short_code: Optional[str] = None


@dataclass(frozen=True)
class TransitionResult:
    reminder: ReminderState
    changed: bool
    warning: Optional[str] = None
