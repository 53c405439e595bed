import json

import pytest

from packages.core.reminders.config import SchedulerConfig, load_scheduler_config


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for key in (
        "NAGBOT_CONFIG_PATH",
        "NAGBOT_TICK_SECONDS",
        "NAGBOT_NAG_INTERVAL_MINUTES",
        "NAGBOT_MAX_NAG_ATTEMPTS",
        "NAGBOT_FUZZY_MINUTES",
        "NAGBOT_STRICT_BY_DEFAULT",
        "NAGBOT_TIMEZONE",
    ):
        monkeypatch.delenv(key, raising=False)


def test_missing_file_uses_defaults(tmp_path):
    config = load_scheduler_config(str(tmp_path / "missing.json"))
    assert config == SchedulerConfig()


def test_file_values_with_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "nagbot.json"
    path.write_text(
        json.dumps(
            {
                "tick_seconds": 60,
                "max_nag_attempts": 4,
                "default_timezone": "Europe/London",
                "unrelated": True,
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("NAGBOT_MAX_NAG_ATTEMPTS", "6")
    monkeypatch.setenv("NAGBOT_STRICT_BY_DEFAULT", "false")

    config = load_scheduler_config(str(path))
    assert config.tick_seconds == 60
    assert config.max_nag_attempts == 6
    assert config.default_timezone == "Europe/London"
    assert config.strict_by_default is False
    assert config.default_nag_interval_minutes == 2


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({"default_fuzzy_minutes": 7}), encoding="utf-8")
    monkeypatch.setenv("NAGBOT_CONFIG_PATH", str(path))

    assert load_scheduler_config().default_fuzzy_minutes == 7


@pytest.mark.parametrize(
    "env_key, value",
    [
        ("NAGBOT_TICK_SECONDS", "0"),
        ("NAGBOT_TICK_SECONDS", "soon"),
        ("NAGBOT_NAG_INTERVAL_MINUTES", "-2"),
        ("NAGBOT_FUZZY_MINUTES", "-1"),
        ("NAGBOT_TIMEZONE", "Nowhere/Special"),
    ],
)
def test_invalid_values_rejected(tmp_path, monkeypatch, env_key, value):
    monkeypatch.setenv(env_key, value)
    with pytest.raises(ValueError):
        load_scheduler_config(str(tmp_path / "missing.json"))
