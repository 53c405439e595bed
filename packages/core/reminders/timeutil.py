from __future__ import annotations

import datetime as dt
from typing import Optional

from .errors import InvalidScheduleError


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def to_iso(value: Optional[dt.datetime]) -> Optional[str]:
    """Render an aware instant as a fixed-width UTC ISO string.

    Stored instants are compared lexicographically by the store, so every
    value goes through here: UTC offset, second precision.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        raise InvalidScheduleError("naive datetime cannot be stored as an instant")
    return value.astimezone(dt.timezone.utc).replace(microsecond=0).isoformat()


def parse_iso(value: Optional[str]) -> Optional[dt.datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidScheduleError(f"Invalid ISO-8601 instant: {value}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc)


def ensure_aware(value: dt.datetime, name: str = "reference") -> dt.datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise InvalidScheduleError(f"{name} must be timezone-aware")
    return value
