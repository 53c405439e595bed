from __future__ import annotations

import datetime as dt
import random
from typing import Optional


def apply_jitter(
    base: dt.datetime, fuzzy_minutes: float, rng: Optional[random.Random] = None
) -> dt.datetime:
    """Shift ``base`` by a uniform offset in [-fuzzy_minutes, +fuzzy_minutes]."""
    if fuzzy_minutes <= 0:
        return base
    offset = (rng or random).uniform(-fuzzy_minutes, fuzzy_minutes)
    return base + dt.timedelta(minutes=offset)


def pick_in_window(
    start: dt.datetime, end: dt.datetime, rng: Optional[random.Random] = None
) -> dt.datetime:
    """Uniform instant in [start, end]; a degenerate window yields ``start``."""
    if end <= start:
        return start
    return start + (end - start) * (rng or random).random()
