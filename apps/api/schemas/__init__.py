from .reminders import (
    CommandRequest,
    CommandResponse,
    ReminderCreateRequest,
    ReminderResponse,
    TimezoneRequest,
    TimezoneResponse,
    TransitionResponse,
)

__all__ = [
    "CommandRequest",
    "CommandResponse",
    "ReminderCreateRequest",
    "ReminderResponse",
    "TimezoneRequest",
    "TimezoneResponse",
    "TransitionResponse",
]
