from __future__ import annotations

import asyncio
import datetime as dt
import logging
import random
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler

try:
    from opentelemetry import trace
except Exception:  # pragma: no cover - optional dependency resolution
    trace = None

from ..storage.base import ReminderState, ReminderStore
from .config import SchedulerConfig
from .errors import DeliveryError, TickError
from .models import SCHEDULE_RECURRING
from .service import compute_next_fire, nag_due
from .timeutil import ensure_aware, to_iso, utc_now


logger = logging.getLogger("nagbot.scheduler")

JOB_ID = "reminder_tick"

DeliveryCallback = Callable[[str], Awaitable[Optional[bool]]]


@dataclass
class TickReport:
    started_at: str
    fired: List[str] = field(default_factory=list)
    nagged: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def _dismiss_hint(reminder: ReminderState) -> str:
    return f"Reply /done {reminder.short_code} to dismiss"


def build_fire_message(reminder: ReminderState) -> str:
    message = f"Reminder: {reminder.message}"
    if reminder.nag_enabled or reminder.schedule_type == SCHEDULE_RECURRING:
        message = f"{message}\n{_dismiss_hint(reminder)}"
    return message


def build_nag_message(reminder: ReminderState) -> str:
    return f"Still waiting: {reminder.message}\n{_dismiss_hint(reminder)}"


class ReminderScheduler:
    """Periodic driver that delivers due reminders and nags unacknowledged ones.

    ``start``/``stop`` manage a single APScheduler interval job. The job only
    spawns ``tick`` as a task owned by this object, so shutting APScheduler
    down never cancels a tick in progress; ``drain`` awaits such a tick.
    ``tick`` may also be awaited directly. An in-flight flag makes
    overlapping calls return ``None`` without doing any work.
    """

    def __init__(
        self,
        store: ReminderStore,
        deliver: DeliveryCallback,
        config: SchedulerConfig,
        scheduler_factory: Callable[[], Any] = AsyncIOScheduler,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._store = store
        self._deliver = deliver
        self._config = config
        self._scheduler_factory = scheduler_factory
        self._rng = rng
        self._scheduler: Optional[Any] = None
        self._ticking = False
        self._tasks: Set[asyncio.Task] = set()
        self._tracer = trace.get_tracer("nagbot.scheduler") if trace else None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    @property
    def ticking(self) -> bool:
        return self._ticking

    def start(self) -> None:
        if self._scheduler is not None:
            return
        scheduler = self._scheduler_factory()
        scheduler.add_job(
            self._spawn_tick,
            "interval",
            seconds=self._config.tick_seconds,
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=dt.datetime.now(dt.timezone.utc),
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("reminder_scheduler_started tick_seconds=%s", self._config.tick_seconds)

    def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("reminder_scheduler_stopped pending_ticks=%s", len(self._tasks))

    async def drain(self) -> None:
        """Wait for ticks spawned by the interval job to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _spawn_tick(self) -> None:
        task = asyncio.get_running_loop().create_task(self.tick())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def tick(self, now: Optional[dt.datetime] = None) -> Optional[TickReport]:
        """Run one pass; ``None`` when skipped or when the pass could not start."""
        if self._ticking:
            logger.debug("reminder_tick_skipped reason=in_flight")
            return None
        self._ticking = True
        report: Optional[TickReport] = None
        try:
            now = ensure_aware(now, "now") if now is not None else utc_now()
            report = TickReport(started_at=to_iso(now))
            span_context = (
                self._tracer.start_as_current_span(
                    "reminders.tick", attributes={"reminders.now": report.started_at}
                )
                if self._tracer
                else nullcontext()
            )
            with span_context:
                await self._run(now, report)
        except Exception as exc:
            logger.exception("reminder_tick_failed error=%s", exc)
        finally:
            self._ticking = False
        if report is not None and (report.fired or report.nagged or report.failed):
            logger.info(
                "reminder_tick_done fired=%s nagged=%s failed=%s",
                len(report.fired),
                len(report.nagged),
                len(report.failed),
            )
        return report

    async def _run(self, now: dt.datetime, report: TickReport) -> None:
        now_iso = to_iso(now)
        for reminder in self._store.get_due(now_iso):
            try:
                await self._fire(reminder, now, now_iso)
            except DeliveryError as exc:
                logger.warning("reminder_delivery_failed id=%s error=%s", exc.reminder_id, exc)
                report.failed.append(reminder.id)
            except TickError as exc:
                logger.exception("reminder_processing_failed id=%s stage=%s", exc.reminder_id, exc.stage)
                report.failed.append(reminder.id)
            else:
                report.fired.append(reminder.id)

        # The store pre-filters; the interval check happens here.
        candidates = self._store.get_nag_candidates(self._config.max_nag_attempts)
        for reminder in candidates:
            if not nag_due(reminder, now):
                continue
            try:
                await self._nag(reminder, now_iso)
            except DeliveryError as exc:
                logger.warning("reminder_delivery_failed id=%s error=%s", exc.reminder_id, exc)
                report.failed.append(reminder.id)
            except TickError as exc:
                logger.exception("reminder_processing_failed id=%s stage=%s", exc.reminder_id, exc.stage)
                report.failed.append(reminder.id)
            else:
                report.nagged.append(reminder.id)

    async def _send(self, reminder: ReminderState, message: str) -> None:
        try:
            result = await self._deliver(message)
        except Exception as exc:
            raise DeliveryError(reminder.id, str(exc) or type(exc).__name__) from exc
        if result is False:
            raise DeliveryError(reminder.id, "transport reported failure")

    async def _fire(self, reminder: ReminderState, now: dt.datetime, now_iso: str) -> None:
        next_fire_at = None
        if reminder.schedule_type == SCHEDULE_RECURRING:
            # Computed before delivery so a fire is recorded and re-armed in one write.
            try:
                next_fire_at = to_iso(
                    compute_next_fire(reminder, self._store.get_timezone(), now, self._rng)
                )
            except Exception as exc:
                raise TickError(reminder.id, "rearm") from exc

        await self._send(reminder, build_fire_message(reminder))
        try:
            self._store.mark_fired(reminder.id, now_iso, next_fire_at)
        except Exception as exc:
            raise TickError(reminder.id, "mark_fired") from exc
        logger.info(
            "reminder_fired id=%s code=%s next_fire_at=%s",
            reminder.id,
            reminder.short_code,
            next_fire_at,
        )

    async def _nag(self, reminder: ReminderState, now_iso: str) -> None:
        await self._send(reminder, build_nag_message(reminder))
        try:
            self._store.mark_fired(reminder.id, now_iso)
        except Exception as exc:
            raise TickError(reminder.id, "mark_fired") from exc
        logger.info(
            "reminder_nagged id=%s code=%s attempt=%s",
            reminder.id,
            reminder.short_code,
            reminder.nag_count + 1,
        )
