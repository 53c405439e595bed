import pytest

from packages.core.storage.base import DuplicateShortCodeError, ReminderState
from packages.core.storage.sqlite import SQLiteReminderStore


def _reminder(reminder_id, short_code, next_fire_at, **overrides):
    values = dict(
        id=reminder_id,
        short_code=short_code,
        message=f"message {reminder_id}",
        schedule_type="once",
        next_fire_at=next_fire_at,
        recurrence=None,
        time_of_day=None,
        anchor_date=None,
        fuzzy_minutes=0,
        window_start=None,
        window_end=None,
        nag_enabled=False,
        nag_interval=5,
        nag_count=0,
        status="active",
        created_at="2026-03-01T00:00:00+00:00",
        updated_at="2026-03-01T00:00:00+00:00",
        last_fired_at=None,
    )
    values.update(overrides)
    return ReminderState(**values)


def test_store_seeds_and_updates_timezone(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "nagbot.db"), default_timezone="Europe/Paris")
    assert store.get_timezone() == "Europe/Paris"

    store.set_timezone("America/New_York")
    reopened = SQLiteReminderStore(db_path=str(tmp_path / "nagbot.db"))
    assert reopened.get_timezone() == "America/New_York"


def test_short_code_lookup_is_case_insensitive(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "nagbot.db"))
    store.create(_reminder("r1", "Pills", "2026-03-02T09:00:00+00:00"))

    found = store.get_by_short_code("PILLS")
    assert found is not None
    assert found.short_code == "Pills"
    assert store.get_by_short_code("pills ").id == "r1"
    assert store.get_by_short_code("other") is None


def test_duplicate_short_code_rejected(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "nagbot.db"))
    store.create(_reminder("r1", "REM", "2026-03-02T09:00:00+00:00"))

    with pytest.raises(DuplicateShortCodeError):
        store.create(_reminder("r2", "rem", "2026-03-02T09:00:00+00:00"))


def test_get_due_filters_status_time_and_already_fired(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "nagbot.db"))
    store.create(_reminder("due", "A", "2026-03-02T09:00:00+00:00"))
    store.create(_reminder("future", "B", "2026-03-02T11:00:00+00:00"))
    store.create(_reminder("paused", "C", "2026-03-02T08:00:00+00:00", status="paused"))
    store.create(
        _reminder(
            "fired",
            "D",
            "2026-03-02T08:00:00+00:00",
            last_fired_at="2026-03-02T08:00:30+00:00",
            nag_count=1,
        )
    )

    due = store.get_due("2026-03-02T10:00:00+00:00")
    assert [reminder.id for reminder in due] == ["due"]


def test_mark_fired_and_set_next_fire(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "nagbot.db"))
    store.create(_reminder("r1", "A", "2026-03-02T09:00:00+00:00"))

    store.mark_fired("r1", "2026-03-02T09:00:10+00:00")
    store.mark_fired("r1", "2026-03-02T09:05:10+00:00")
    fired = store.get("r1")
    assert fired.nag_count == 2
    assert fired.last_fired_at == "2026-03-02T09:05:10+00:00"

    store.set_next_fire("r1", "2026-03-03T09:00:00+00:00")
    rearmed = store.get("r1")
    assert rearmed.next_fire_at == "2026-03-03T09:00:00+00:00"
    assert rearmed.nag_count == 0


def test_mark_fired_with_rearm_is_one_write(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "nagbot.db"))
    store.create(
        _reminder("r1", "A", "2026-03-02T09:00:00+00:00", schedule_type="recurring", nag_count=2)
    )

    store.mark_fired("r1", "2026-03-02T09:00:05+00:00", "2026-03-03T09:00:00+00:00")
    fired = store.get("r1")
    assert fired.last_fired_at == "2026-03-02T09:00:05+00:00"
    assert fired.next_fire_at == "2026-03-03T09:00:00+00:00"
    assert fired.nag_count == 0
    assert store.get_due("2026-03-03T09:00:00+00:00")[0].id == "r1"

def test_nag_candidates_prefilter_on_attempt_limit(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "nagbot.db"))
    fired_at = "2026-03-02T09:00:00+00:00"
    store.create(_reminder("ready", "A", fired_at, nag_enabled=True, nag_count=1, last_fired_at=fired_at))
    store.create(
        _reminder("exhausted", "C", fired_at, nag_enabled=True, nag_count=3, last_fired_at=fired_at)
    )
    store.create(_reminder("quiet", "D", fired_at, nag_enabled=False, nag_count=1, last_fired_at=fired_at))
    store.create(_reminder("unfired", "E", fired_at, nag_enabled=True))
    store.create(
        _reminder(
            "paused", "F", fired_at, nag_enabled=True, nag_count=1, last_fired_at=fired_at, status="paused"
        )
    )

    assert [reminder.id for reminder in store.get_nag_candidates(max_attempts=3)] == ["ready"]
    assert {reminder.id for reminder in store.get_nag_candidates()} == {"ready", "exhausted"}


def test_list_active_and_recurring(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "nagbot.db"))
    store.create(_reminder("later", "A", "2026-03-05T09:00:00+00:00"))
    store.create(
        _reminder(
            "daily",
            "B",
            "2026-03-03T09:00:00+00:00",
            schedule_type="recurring",
            recurrence="daily",
            time_of_day="09:00",
        )
    )
    store.create(_reminder("done", "C", "2026-03-01T09:00:00+00:00", status="confirmed"))

    assert [reminder.id for reminder in store.list_active()] == ["daily", "later"]
    assert [reminder.id for reminder in store.list_recurring_active()] == ["daily"]

    store.set_status("daily", "paused")
    assert store.list_recurring_active() == []
