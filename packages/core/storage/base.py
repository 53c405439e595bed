from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable


class DuplicateShortCodeError(ValueError):
    """Raised when an insert collides with an existing short code."""

    def __init__(self, short_code: str) -> None:
        super().__init__(f"Short code already in use: {short_code}")
        self.short_code = short_code


@dataclass(frozen=True)
class ReminderState:
    id: str
    short_code: str
    message: str
    schedule_type: str
    next_fire_at: str
    recurrence: Optional[str]
    time_of_day: Optional[str]
    anchor_date: Optional[str]
    fuzzy_minutes: int
    window_start: Optional[str]
    window_end: Optional[str]
    nag_enabled: bool
    nag_interval: int
    nag_count: int
    status: str
    created_at: str
    updated_at: str
    last_fired_at: Optional[str] = None


@runtime_checkable
class ReminderStore(Protocol):
    def create(self, reminder: ReminderState) -> None:
        """Persist a new reminder. Raises DuplicateShortCodeError on a code clash."""

    def get(self, reminder_id: str) -> Optional[ReminderState]:
        """Return reminder by id."""

    def get_by_short_code(self, code: str) -> Optional[ReminderState]:
        """Return reminder by short code, compared case-insensitively."""

    def get_due(self, now_iso: str) -> List[ReminderState]:
        """Active reminders whose next_fire_at is at or before now and not yet fired."""

    def get_nag_candidates(self, max_attempts: Optional[int] = None) -> List[ReminderState]:
        """Active, nag-enabled reminders that fired and are under the attempt limit.

        The nag interval is not checked here; callers filter on it.
        """

    def mark_fired(
        self, reminder_id: str, now_iso: str, next_fire_at: Optional[str] = None
    ) -> None:
        """Set last_fired_at and increment nag_count.

        With ``next_fire_at`` the reminder is re-armed in the same write:
        the new fire time is stored and nag_count ends at 0.
        """

    def set_next_fire(self, reminder_id: str, next_fire_at: str) -> None:
        """Persist a new next_fire_at and reset nag_count."""

    def reset_nag_count(self, reminder_id: str) -> None:
        """Reset nag_count without touching the schedule."""

    def set_status(self, reminder_id: str, status: str) -> None:
        """Update the lifecycle status."""

    def list_active(self) -> List[ReminderState]:
        """Active reminders ordered by next_fire_at."""

    def list_recurring_active(self) -> List[ReminderState]:
        """Active reminders with schedule_type 'recurring'."""

    def get_timezone(self) -> str:
        """Return the timezone used for recurrence computation."""

    def set_timezone(self, timezone: str) -> None:
        """Persist the timezone setting."""
