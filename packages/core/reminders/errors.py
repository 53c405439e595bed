from __future__ import annotations

from typing import Optional


class ReminderError(Exception):
    """Base class for reminder scheduling errors."""


class InvalidScheduleError(ReminderError, ValueError):
    """Malformed time-of-day, unknown timezone or inconsistent schedule fields."""


class NotFoundError(ReminderError, LookupError):
    def __init__(self, code: str) -> None:
        super().__init__(f"No reminder found with code {code}")
        self.code = code


class DeliveryError(ReminderError):
    def __init__(self, reminder_id: str, reason: Optional[str] = None) -> None:
        message = f"Delivery failed for reminder {reminder_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.reminder_id = reminder_id


class TickError(ReminderError):
    def __init__(self, reminder_id: str, stage: str) -> None:
        super().__init__(f"Processing reminder {reminder_id} failed during {stage}")
        self.reminder_id = reminder_id
        self.stage = stage
