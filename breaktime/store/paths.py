from __future__ import annotations

from datetime import date
from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

APP_NAME = "breaktime"


def get_config_path() -> Path:
    return Path(user_config_dir(APP_NAME)) / "config.toml"


def get_data_dir() -> Path:
    return Path(user_data_dir(APP_NAME))


def get_event_log_dir() -> Path:
    return get_data_dir() / "events"


def event_log_path(day: date) -> Path:
    return get_event_log_dir() / f"{day.isoformat()}.jsonl"
