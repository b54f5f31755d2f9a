from __future__ import annotations

import logging
import tomllib
from dataclasses import replace
from datetime import time
from pathlib import Path

from breaktime.engine.types import (
    WEEKDAYS,
    Duration,
    NotificationClick,
    NotificationType,
    Settings,
)
from breaktime.store.paths import get_config_path

logger = logging.getLogger(__name__)


def _toml_bool(value: bool) -> str:
    return str(value).lower()


def default_config_toml(settings: Settings | None = None) -> str:
    s = settings or Settings()
    days = "".join(
        f"{name} = {_toml_bool(enabled)}\n" for name, enabled in zip(WEEKDAYS, s.working_days)
    )
    # Keep it minimal and editable.
    return (
        "# breaktime configuration\n"
        "# Location: ~/.config/breaktime/config.toml (or XDG_CONFIG_HOME)\n"
        "# Durations: \"HH:MM:SS\", \"HH:MM\" or whole seconds\n"
        "\n"
        f"breaks_enabled = {_toml_bool(s.breaks_enabled)}\n"
        f'break_frequency = "{s.break_frequency}"\n'
        f'break_length = "{s.break_length}"\n'
        f'postpone_length = "{s.postpone_length}"\n'
        "# 0 = unlimited\n"
        f"postpone_limit = {s.postpone_limit}\n"
        '# "popup" or "notification"\n'
        f'notification_type = "{s.notification_type.value}"\n'
        '# What clicking the pre-break warning does: "postpone" or "skip"\n'
        f'notification_click = "{s.notification_click.value}"\n'
        f"gong_enabled = {_toml_bool(s.gong_enabled)}\n"
        f'break_title = "{s.break_title}"\n'
        f'break_message = "{s.break_message}"\n'
        "\n"
        "[idle_reset]\n"
        f"enabled = {_toml_bool(s.idle_reset_enabled)}\n"
        f'length = "{s.idle_reset_length}"\n'
        f"notification = {_toml_bool(s.idle_reset_notification)}\n"
        "\n"
        "[working_hours]\n"
        f"enabled = {_toml_bool(s.working_hours_enabled)}\n"
        f'from = "{s.working_hours_from.strftime("%H:%M")}"\n'
        f'to = "{s.working_hours_to.strftime("%H:%M")}"\n'
        f"{days}"
        "\n"
        "[desktop]\n"
        f'gong_path = "{s.gong_path}"\n'
    )


def ensure_default_config_file(path: Path | None = None) -> Path:
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    if not config_path.exists():
        config_path.write_text(default_config_toml(), encoding="utf-8")
    return config_path


def parse_duration(value: object) -> Duration | None:
    """Parse "HH:MM:SS", "HH:MM" or whole seconds into a Duration."""

    if isinstance(value, bool):
        return None

    if isinstance(value, int):
        if value < 0:
            return None
        minutes, seconds = divmod(value, 60)
        hours, minutes = divmod(minutes, 60)
        return Duration(hours=hours, minutes=minutes, seconds=seconds)

    if not isinstance(value, str):
        return None

    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        return None

    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        return None

    if any(n < 0 for n in numbers) or any(n > 59 for n in numbers[1:]):
        return None

    if len(numbers) == 2:
        numbers.append(0)
    return Duration(hours=numbers[0], minutes=numbers[1], seconds=numbers[2])


def parse_clock(value: object) -> time | None:
    if not isinstance(value, str):
        return None
    try:
        return time.fromisoformat(value.strip())
    except ValueError:
        return None


def _settings_from_raw(raw: dict, warnings: list[str]) -> Settings:
    base = Settings()
    updates: dict = {}

    def bool_key(table: dict, key: str, field_name: str, prefix: str = "") -> None:
        if key not in table:
            return
        if isinstance(table[key], bool):
            updates[field_name] = table[key]
        else:
            warnings.append(f"{prefix}{key}: expected true/false")

    def duration_key(table: dict, key: str, field_name: str, prefix: str = "") -> None:
        if key not in table:
            return
        duration = parse_duration(table[key])
        if duration is None:
            warnings.append(f"{prefix}{key}: invalid duration {table[key]!r}")
        else:
            updates[field_name] = duration

    def str_key(table: dict, key: str, field_name: str, prefix: str = "") -> None:
        if key not in table:
            return
        if isinstance(table[key], str):
            updates[field_name] = table[key]
        else:
            warnings.append(f"{prefix}{key}: expected a string")

    bool_key(raw, "breaks_enabled", "breaks_enabled")
    duration_key(raw, "break_frequency", "break_frequency")
    duration_key(raw, "break_length", "break_length")
    duration_key(raw, "postpone_length", "postpone_length")
    bool_key(raw, "gong_enabled", "gong_enabled")
    str_key(raw, "break_title", "break_title")
    str_key(raw, "break_message", "break_message")

    limit = raw.get("postpone_limit")
    if limit is not None:
        if isinstance(limit, int) and not isinstance(limit, bool) and limit >= 0:
            updates["postpone_limit"] = limit
        else:
            warnings.append(f"postpone_limit: invalid value {limit!r}")

    notification_type = raw.get("notification_type")
    if notification_type is not None:
        try:
            updates["notification_type"] = NotificationType(str(notification_type).lower())
        except ValueError:
            warnings.append(f"notification_type: unknown value {notification_type!r}")

    notification_click = raw.get("notification_click")
    if notification_click is not None:
        try:
            updates["notification_click"] = NotificationClick(str(notification_click).lower())
        except ValueError:
            warnings.append(f"notification_click: unknown value {notification_click!r}")

    idle = raw.get("idle_reset")
    if isinstance(idle, dict):
        bool_key(idle, "enabled", "idle_reset_enabled", "idle_reset.")
        duration_key(idle, "length", "idle_reset_length", "idle_reset.")
        bool_key(idle, "notification", "idle_reset_notification", "idle_reset.")

    hours = raw.get("working_hours")
    if isinstance(hours, dict):
        bool_key(hours, "enabled", "working_hours_enabled", "working_hours.")

        for key, field_name in (("from", "working_hours_from"), ("to", "working_hours_to")):
            if key not in hours:
                continue
            parsed = parse_clock(hours[key])
            if parsed is None:
                warnings.append(f"working_hours.{key}: invalid time {hours[key]!r}")
            else:
                updates[field_name] = parsed

        days = list(base.working_days)
        for i, name in enumerate(WEEKDAYS):
            value = hours.get(name)
            if value is None:
                continue
            if isinstance(value, bool):
                days[i] = value
            else:
                warnings.append(f"working_hours.{name}: expected true/false")
        updates["working_days"] = tuple(days)

    desktop = raw.get("desktop")
    if isinstance(desktop, dict):
        str_key(desktop, "gong_path", "gong_path", "desktop.")

    return replace(base, **updates)


def load_settings(
    path: Path | None = None, *, create_if_missing: bool = True
) -> tuple[Settings, dict]:
    """Load config.toml, returning (Settings, meta).

    Meta contains useful diagnostics for debug output.
    """

    config_path = path or get_config_path()
    meta: dict = {"path": str(config_path), "loaded": False, "created": False, "warnings": []}

    if create_if_missing:
        before = config_path.exists()
        ensure_default_config_file(config_path)
        meta["created"] = not before

    if not config_path.exists():
        return Settings(), meta

    try:
        raw = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        meta["error"] = f"config_read_error: {e}"
        return Settings(), meta

    settings = _settings_from_raw(raw, meta["warnings"])
    meta["loaded"] = True
    return settings, meta


class SettingsStore:
    """File-backed settings provider.

    Calling the store returns the current snapshot. The file is re-read when
    its mtime changes; a broken edit keeps the last good snapshot.
    """

    def __init__(self, path: Path | None = None, *, create_if_missing: bool = True):
        self.path = path or get_config_path()
        self._create_if_missing = create_if_missing
        self._settings: Settings | None = None
        self._mtime_ns: int | None = None
        self.meta: dict = {}

    def __call__(self) -> Settings:
        return self.get_settings()

    def get_settings(self) -> Settings:
        mtime_ns = self._current_mtime()
        if self._settings is not None and mtime_ns == self._mtime_ns:
            return self._settings

        settings, meta = load_settings(self.path, create_if_missing=self._create_if_missing)
        self.meta = meta
        # Re-stat after a possible create so an unchanged file is not reloaded.
        self._mtime_ns = self._current_mtime()

        for warning in meta["warnings"]:
            logger.warning("config %s: %s", self.path, warning)

        if meta.get("error"):
            logger.warning("config %s: %s", self.path, meta["error"])
            if self._settings is not None:
                return self._settings

        if self._settings is not None:
            logger.info("config reloaded: %s", self.path)
        self._settings = settings
        return settings

    def _current_mtime(self) -> int | None:
        try:
            return self.path.stat().st_mtime_ns
        except OSError:
            return None
