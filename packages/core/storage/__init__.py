from .base import DuplicateShortCodeError, ReminderState, ReminderStore
from .sqlite import SQLiteReminderStore

__all__ = [
    "DuplicateShortCodeError",
    "ReminderState",
    "ReminderStore",
    "SQLiteReminderStore",
]
