from .reminders import router as reminders_router
from .settings import router as settings_router

__all__ = [
    "reminders_router",
    "settings_router",
]
