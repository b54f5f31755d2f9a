from .config import (
    SettingsStore,
    default_config_toml,
    ensure_default_config_file,
    load_settings,
    parse_duration,
)
from .event_log import EventLog
from .paths import event_log_path, get_config_path, get_data_dir, get_event_log_dir

__all__ = [
    "SettingsStore",
    "default_config_toml",
    "ensure_default_config_file",
    "load_settings",
    "parse_duration",
    "EventLog",
    "event_log_path",
    "get_config_path",
    "get_data_dir",
    "get_event_log_dir",
]
