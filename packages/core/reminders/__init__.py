from .errors import (
    DeliveryError,
    InvalidScheduleError,
    NotFoundError,
    ReminderError,
    TickError,
)
from .jitter import apply_jitter, pick_in_window
from .models import Reminder, ReminderIntent, TransitionResult
from .recurrence import next_occurrence
from .service import (
    acknowledge,
    allocate_short_code,
    cancel,
    create_reminder,
    list_active,
    nag_due,
    pause,
    recalculate_all_recurring,
    resume,
    set_timezone,
)

__all__ = [
    "DeliveryError",
    "InvalidScheduleError",
    "NotFoundError",
    "Reminder",
    "ReminderError",
    "ReminderIntent",
    "TickError",
    "TransitionResult",
    "acknowledge",
    "allocate_short_code",
    "apply_jitter",
    "cancel",
    "create_reminder",
    "list_active",
    "nag_due",
    "next_occurrence",
    "pause",
    "pick_in_window",
    "recalculate_all_recurring",
    "resume",
    "set_timezone",
]
