from __future__ import annotations

import datetime as dt
import logging
import random
import uuid
from typing import Dict, FrozenSet, List, Optional

from ..storage.base import DuplicateShortCodeError, ReminderState, ReminderStore
from .config import SchedulerConfig
from .errors import InvalidScheduleError, NotFoundError
from .jitter import apply_jitter, pick_in_window
from .models import (
    DEFAULT_SHORT_CODE,
    RECURRENCES,
    SCHEDULE_ONCE,
    SCHEDULE_RANDOM,
    SCHEDULE_RECURRING,
    SCHEDULE_TYPES,
    STATUS_ACTIVE,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_PAUSED,
    ReminderIntent,
    TransitionResult,
)
from .recurrence import (
    next_occurrence,
    parse_anchor_date,
    parse_time_of_day,
    resolve_timezone,
)
from .timeutil import ensure_aware, parse_iso, to_iso, utc_now


logger = logging.getLogger("nagbot.reminders")

MAX_CREATE_ATTEMPTS = 5

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    STATUS_ACTIVE: frozenset({STATUS_PAUSED, STATUS_CONFIRMED, STATUS_CANCELLED}),
    STATUS_PAUSED: frozenset({STATUS_ACTIVE, STATUS_CONFIRMED, STATUS_CANCELLED}),
    STATUS_CONFIRMED: frozenset({STATUS_CANCELLED}),
    STATUS_CANCELLED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def _require(store: ReminderStore, code: str) -> ReminderState:
    reminder = store.get_by_short_code(code)
    if reminder is None:
        raise NotFoundError(code)
    return reminder


def _reload(store: ReminderStore, reminder: ReminderState) -> ReminderState:
    return store.get(reminder.id) or reminder


def compute_next_fire(
    reminder: ReminderState,
    timezone: str,
    now: Optional[dt.datetime] = None,
    rng: Optional[random.Random] = None,
) -> dt.datetime:
    """Next jittered fire time for a recurring reminder.

    The search starts ``fuzzy_minutes`` past ``now`` so a reminder that fired
    early through negative jitter is not re-armed onto the same base time.
    """
    if reminder.schedule_type != SCHEDULE_RECURRING:
        raise InvalidScheduleError(f"Reminder {reminder.short_code} is not recurring")
    if not reminder.time_of_day or not reminder.recurrence:
        raise InvalidScheduleError(
            f"Reminder {reminder.short_code} is missing time_of_day or recurrence"
        )
    now = ensure_aware(now, "now") if now is not None else utc_now()
    fuzzy = max(reminder.fuzzy_minutes, 0)
    base = next_occurrence(
        reminder.time_of_day,
        reminder.recurrence,
        timezone,
        reference=now + dt.timedelta(minutes=fuzzy),
        anchor=parse_anchor_date(reminder.anchor_date),
    )
    return apply_jitter(base, fuzzy, rng)


def nag_due(reminder: ReminderState, now: dt.datetime) -> bool:
    """True once ``nag_interval`` minutes have passed since the last delivery."""
    last = parse_iso(reminder.last_fired_at)
    if last is None:
        return False
    return last + dt.timedelta(minutes=reminder.nag_interval) <= now


def acknowledge(store: ReminderStore, code: str) -> TransitionResult:
    reminder = _require(store, code)
    if not can_transition(reminder.status, STATUS_CONFIRMED):
        return TransitionResult(
            reminder, changed=False, warning=f"{reminder.short_code} is already {reminder.status}."
        )
    if reminder.schedule_type == SCHEDULE_RECURRING:
        store.reset_nag_count(reminder.id)
    else:
        store.set_status(reminder.id, STATUS_CONFIRMED)
    logger.info("reminder_acknowledged id=%s code=%s", reminder.id, reminder.short_code)
    return TransitionResult(_reload(store, reminder), changed=True)


def cancel(store: ReminderStore, code: str) -> TransitionResult:
    reminder = _require(store, code)
    if not can_transition(reminder.status, STATUS_CANCELLED):
        return TransitionResult(reminder, changed=False)
    store.set_status(reminder.id, STATUS_CANCELLED)
    logger.info("reminder_cancelled id=%s code=%s", reminder.id, reminder.short_code)
    return TransitionResult(_reload(store, reminder), changed=True)


def pause(store: ReminderStore, code: str) -> TransitionResult:
    reminder = _require(store, code)
    if not can_transition(reminder.status, STATUS_PAUSED):
        return TransitionResult(
            reminder, changed=False, warning=f"{reminder.short_code} is {reminder.status}, not active."
        )
    store.set_status(reminder.id, STATUS_PAUSED)
    logger.info("reminder_paused id=%s code=%s", reminder.id, reminder.short_code)
    return TransitionResult(_reload(store, reminder), changed=True)


def resume(
    store: ReminderStore,
    code: str,
    now: Optional[dt.datetime] = None,
    rng: Optional[random.Random] = None,
) -> TransitionResult:
    reminder = _require(store, code)
    if not can_transition(reminder.status, STATUS_ACTIVE):
        return TransitionResult(
            reminder, changed=False, warning=f"{reminder.short_code} is {reminder.status}, not paused."
        )
    now = ensure_aware(now, "now") if now is not None else utc_now()
    store.set_status(reminder.id, STATUS_ACTIVE)

    warning = None
    if parse_iso(reminder.next_fire_at) < now:
        if reminder.schedule_type == SCHEDULE_RECURRING:
            next_fire = compute_next_fire(reminder, store.get_timezone(), now, rng)
            store.set_next_fire(reminder.id, to_iso(next_fire))
        else:
            warning = f"{reminder.short_code} is active again but its scheduled time is in the past."
    logger.info("reminder_resumed id=%s code=%s", reminder.id, reminder.short_code)
    return TransitionResult(_reload(store, reminder), changed=True, warning=warning)


def list_active(store: ReminderStore) -> List[ReminderState]:
    return store.list_active()


def recalculate_all_recurring(
    store: ReminderStore,
    timezone: str,
    now: Optional[dt.datetime] = None,
    rng: Optional[random.Random] = None,
) -> int:
    now = ensure_aware(now, "now") if now is not None else utc_now()
    updated = 0
    for reminder in store.list_recurring_active():
        next_fire = compute_next_fire(reminder, timezone, now, rng)
        store.set_next_fire(reminder.id, to_iso(next_fire))
        updated += 1
    return updated


def set_timezone(
    store: ReminderStore,
    timezone: str,
    now: Optional[dt.datetime] = None,
    rng: Optional[random.Random] = None,
) -> int:
    """Switch the scheduling timezone and re-arm every active recurring reminder."""
    timezone = timezone.strip() if timezone else timezone
    resolve_timezone(timezone)
    store.set_timezone(timezone)
    updated = recalculate_all_recurring(store, timezone, now, rng)
    logger.info("timezone_changed timezone=%s recalculated=%s", timezone, updated)
    return updated


def _clean_code(candidate: Optional[str]) -> str:
    code = "".join((candidate or "").split()).upper()
    return code or DEFAULT_SHORT_CODE


def allocate_short_code(store: ReminderStore, candidate: Optional[str]) -> str:
    """Return ``candidate`` or the first free ``candidate<N>`` for N = 1, 2, ..."""
    base = _clean_code(candidate)
    code = base
    suffix = 1
    while store.get_by_short_code(code) is not None:
        code = f"{base}{suffix}"
        suffix += 1
    return code


def _resolve_fuzzy(intent: ReminderIntent, config: SchedulerConfig) -> int:
    if intent.fuzzy is False:
        return 0
    if intent.fuzzy_minutes is not None:
        minutes = int(intent.fuzzy_minutes)
    elif intent.fuzzy or not config.strict_by_default:
        minutes = config.default_fuzzy_minutes
    else:
        minutes = 0
    if minutes < 0:
        raise InvalidScheduleError("fuzzy_minutes must not be negative")
    return minutes


def _required_instant(value: Optional[str], name: str) -> dt.datetime:
    instant = parse_iso(value)
    if instant is None:
        raise InvalidScheduleError(f"{name} is required")
    return instant


def create_reminder(
    store: ReminderStore,
    intent: ReminderIntent,
    config: SchedulerConfig,
    now: Optional[dt.datetime] = None,
    rng: Optional[random.Random] = None,
) -> ReminderState:
    now = ensure_aware(now, "now") if now is not None else utc_now()
    timezone = store.get_timezone()
    schedule_type = intent.schedule_type or SCHEDULE_ONCE
    if schedule_type not in SCHEDULE_TYPES:
        raise InvalidScheduleError(f"Unknown schedule_type: {schedule_type}")

    fuzzy_minutes = _resolve_fuzzy(intent, config)
    nag_interval = intent.nag_interval_minutes
    if nag_interval is None:
        nag_interval = config.default_nag_interval_minutes
    if nag_interval <= 0:
        raise InvalidScheduleError("nag_interval_minutes must be positive")

    recurrence = None
    time_of_day = None
    anchor_date = None
    window_start = None
    window_end = None
    if schedule_type == SCHEDULE_ONCE:
        next_fire = apply_jitter(_required_instant(intent.fire_at, "fire_at"), fuzzy_minutes, rng)
    elif schedule_type == SCHEDULE_RANDOM:
        start = _required_instant(intent.window_start, "window_start")
        end = _required_instant(intent.window_end, "window_end")
        window_start, window_end = to_iso(start), to_iso(end)
        next_fire = apply_jitter(pick_in_window(start, end, rng), fuzzy_minutes, rng)
    else:
        if intent.recurrence not in RECURRENCES:
            raise InvalidScheduleError(f"Unknown recurrence: {intent.recurrence}")
        hour, minute = parse_time_of_day(intent.time_of_day)
        recurrence = intent.recurrence
        time_of_day = f"{hour:02d}:{minute:02d}"
        anchor = parse_anchor_date(intent.anchor_date)
        if anchor is None:
            first = next_occurrence(time_of_day, recurrence, timezone, reference=now)
            anchor = first.astimezone(resolve_timezone(timezone)).date()
        anchor_date = anchor.isoformat()

    last_error: Optional[DuplicateShortCodeError] = None
    for _ in range(MAX_CREATE_ATTEMPTS):
        reminder = ReminderState(
            id=str(uuid.uuid4()),
            short_code=allocate_short_code(store, intent.short_code),
            message=(intent.message or "").strip() or "Reminder",
            schedule_type=schedule_type,
            next_fire_at="",
            recurrence=recurrence,
            time_of_day=time_of_day,
            anchor_date=anchor_date,
            fuzzy_minutes=fuzzy_minutes,
            window_start=window_start,
            window_end=window_end,
            nag_enabled=bool(intent.nag),
            nag_interval=int(nag_interval),
            nag_count=0,
            status=STATUS_ACTIVE,
            created_at=to_iso(now),
            updated_at=to_iso(now),
            last_fired_at=None,
        )
        if schedule_type == SCHEDULE_RECURRING:
            next_fire = compute_next_fire(reminder, timezone, now, rng)
        reminder = ReminderState(**{**reminder.__dict__, "next_fire_at": to_iso(next_fire)})
        try:
            store.create(reminder)
        except DuplicateShortCodeError as exc:
            logger.warning("short_code_conflict code=%s retrying", reminder.short_code)
            last_error = exc
            continue
        logger.info(
            "reminder_created id=%s code=%s type=%s next_fire_at=%s",
            reminder.id,
            reminder.short_code,
            reminder.schedule_type,
            reminder.next_fire_at,
        )
        return reminder
    raise DuplicateShortCodeError(reminder.short_code) from last_error
