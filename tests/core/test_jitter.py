import datetime as dt
import random

from packages.core.reminders.jitter import apply_jitter, pick_in_window


BASE = dt.datetime(2026, 3, 2, 9, 0, tzinfo=dt.timezone.utc)


def test_zero_jitter_returns_base():
    assert apply_jitter(BASE, 0) == BASE
    assert apply_jitter(BASE, -5) == BASE


def test_jitter_stays_within_budget_and_varies():
    rng = random.Random(42)
    results = [apply_jitter(BASE, 10, rng) for _ in range(200)]
    low = BASE - dt.timedelta(minutes=10)
    high = BASE + dt.timedelta(minutes=10)
    assert all(low <= value <= high for value in results)
    assert len(set(results)) > 1
    assert any(value < BASE for value in results)
    assert any(value > BASE for value in results)


def test_pick_in_window_degenerate_returns_start():
    end = BASE - dt.timedelta(hours=1)
    assert pick_in_window(BASE, end) == BASE
    assert pick_in_window(BASE, BASE) == BASE


def test_pick_in_window_within_bounds():
    rng = random.Random(7)
    end = BASE + dt.timedelta(hours=2)
    results = [pick_in_window(BASE, end, rng) for _ in range(100)]
    assert all(BASE <= value <= end for value in results)
    assert len(set(results)) > 1
