from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import FastAPI

try:
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
except Exception:  # pragma: no cover - optional dependency resolution
    FastAPIInstrumentor = None

from apps.api.observability import init_observability
from apps.api.reminders_scheduler import start_scheduler
from apps.api.routes import reminders as reminders_routes
from apps.api.routes.reminders import commands_router
from apps.api.routes.reminders import router as reminders_router
from apps.api.routes.settings import router as settings_router
from packages.core.logging_config import configure_logging
from packages.core.reminders.scheduler import ReminderScheduler


configure_logging()

tracing = init_observability()
app = FastAPI(title="Nagbot Reminder API")
if tracing and FastAPIInstrumentor is not None:
    FastAPIInstrumentor.instrument_app(app)
elif tracing:
    logging.getLogger("nagbot.api").warning(
        "OpenTelemetry FastAPI instrumentation not available. "
        "Install the tracing extra to trace requests."
    )
app.include_router(reminders_router)
app.include_router(settings_router)
app.include_router(commands_router)

_SCHEDULER: Optional[ReminderScheduler] = None


@app.on_event("startup")
async def _start_reminder_scheduler() -> None:
    global _SCHEDULER
    if os.getenv("REMINDERS_SCHEDULER_ENABLED", "true").lower() != "true":
        return
    if _SCHEDULER is not None:
        return
    _SCHEDULER = start_scheduler(reminders_routes._store(), reminders_routes._config())


@app.on_event("shutdown")
async def _stop_reminder_scheduler() -> None:
    global _SCHEDULER
    if _SCHEDULER is None:
        return
    scheduler, _SCHEDULER = _SCHEDULER, None
    scheduler.stop()
    await scheduler.drain()
