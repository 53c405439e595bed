from __future__ import annotations

import logging
from typing import Optional

from apps.api.notifications import build_delivery
from packages.core.reminders.config import SchedulerConfig
from packages.core.reminders.scheduler import DeliveryCallback, ReminderScheduler
from packages.core.storage.base import ReminderStore


logger = logging.getLogger("nagbot.api")


def start_scheduler(
    store: ReminderStore,
    config: SchedulerConfig,
    deliver: Optional[DeliveryCallback] = None,
) -> ReminderScheduler:
    scheduler = ReminderScheduler(store, deliver or build_delivery(), config)
    scheduler.start()
    logger.info("reminder_scheduler_ready timezone=%s", store.get_timezone())
    return scheduler
