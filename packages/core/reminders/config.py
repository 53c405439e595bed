from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

from .recurrence import is_valid_timezone


DEFAULT_CONFIG_PATH = os.path.join("apps", "api", "data", "nagbot.json")

_ENV_OVERRIDES = {
    "tick_seconds": "NAGBOT_TICK_SECONDS",
    "default_nag_interval_minutes": "NAGBOT_NAG_INTERVAL_MINUTES",
    "max_nag_attempts": "NAGBOT_MAX_NAG_ATTEMPTS",
    "default_fuzzy_minutes": "NAGBOT_FUZZY_MINUTES",
    "strict_by_default": "NAGBOT_STRICT_BY_DEFAULT",
    "default_timezone": "NAGBOT_TIMEZONE",
}


@dataclass(frozen=True)
class SchedulerConfig:
    tick_seconds: int = 30
    default_nag_interval_minutes: int = 2
    max_nag_attempts: int = 10
    default_fuzzy_minutes: int = 0
    strict_by_default: bool = True
    default_timezone: str = "UTC"


def _coerce(name: str, raw: Any) -> Any:
    if name == "default_timezone":
        return str(raw)
    if name == "strict_by_default":
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in {"1", "true", "yes", "on"}
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from exc


def _validate(config: SchedulerConfig) -> SchedulerConfig:
    if config.tick_seconds <= 0:
        raise ValueError("tick_seconds must be positive")
    if config.default_nag_interval_minutes <= 0:
        raise ValueError("default_nag_interval_minutes must be positive")
    if config.max_nag_attempts < 0:
        raise ValueError("max_nag_attempts must not be negative")
    if config.default_fuzzy_minutes < 0:
        raise ValueError("default_fuzzy_minutes must not be negative")
    if not is_valid_timezone(config.default_timezone):
        raise ValueError(f"Unknown default_timezone: {config.default_timezone}")
    return config


def load_scheduler_config(path: Optional[str] = None) -> SchedulerConfig:
    config_path = path or os.getenv("NAGBOT_CONFIG_PATH", DEFAULT_CONFIG_PATH)
    values: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
        known = {field.name for field in fields(SchedulerConfig)}
        values.update({key: value for key, value in payload.items() if key in known})

    for name, env_key in _ENV_OVERRIDES.items():
        raw = os.getenv(env_key)
        if raw is not None and raw.strip():
            values[name] = raw

    config = replace(
        SchedulerConfig(), **{name: _coerce(name, raw) for name, raw in values.items()}
    )
    return _validate(config)
