from __future__ import annotations

import shutil
import subprocess
import sys
from datetime import date

from breaktime.store import (
    EventLog,
    event_log_path,
    get_config_path,
    get_event_log_dir,
    load_settings,
)


def _systemd_status() -> dict:
    if sys.platform != "linux":
        return {"available": False}

    systemctl = shutil.which("systemctl")
    if not systemctl:
        return {"available": False}

    enabled = subprocess.run(
        [systemctl, "--user", "is-enabled", "breaktime.service"],
        capture_output=True,
        text=True,
    ).stdout.strip()
    active = subprocess.run(
        [systemctl, "--user", "is-active", "breaktime.service"],
        capture_output=True,
        text=True,
    ).stdout.strip()

    return {
        "available": True,
        "enabled": enabled,
        "active": active,
    }


def next_break_from_events(events: list[dict]) -> str | None:
    """Replay today's journal to find the break time currently armed, if any."""

    break_at: str | None = None
    for obj in events:
        kind = obj.get("event")
        if kind == "armed":
            value = obj.get("break_at")
            break_at = value if isinstance(value, str) else None
        elif kind in ("cleared", "skipped", "break_ended", "start"):
            break_at = None
        elif kind in ("manual", "break_started"):
            ts = obj.get("ts")
            break_at = ts if isinstance(ts, str) else None
    return break_at


def main() -> int:
    today = date.today()

    settings, config_meta = load_settings(create_if_missing=False)
    sysd = _systemd_status()
    events = EventLog().read_day(today)

    print("breaktime status")

    if sysd.get("available"):
        print(f"service enabled: {sysd.get('enabled')}")
        print(f"service active: {sysd.get('active')}")
    else:
        print("service enabled: unknown (no systemctl)")
        print("service active: unknown (no systemctl)")

    print(f"config: {get_config_path()}")
    if config_meta.get("error"):
        print(f"config error: {config_meta.get('error')}")
    for warning in config_meta.get("warnings", []):
        print(f"config warning: {warning}")

    print(f"event log dir: {get_event_log_dir()}")
    print(f"today events: {event_log_path(today)}")

    print(
        "settings: "
        f"enabled={settings.breaks_enabled} "
        f"frequency={settings.break_frequency} "
        f"length={settings.break_length} "
        f"mode={settings.notification_type.value} "
        f"click={settings.notification_click.value} "
        f"idle_reset={settings.idle_reset_length if settings.idle_reset_enabled else 'off'} "
        f"working_hours={'on' if settings.working_hours_enabled else 'off'}"
    )

    if not events:
        print("last event: unavailable (no events today)")
        print("next break: unavailable")
        return 0

    last = events[-1]
    print(f"last event: {last.get('event')} at {last.get('ts')}")
    print(f"next break: {next_break_from_events(events) or 'none scheduled'}")

    counts: dict[str, int] = {}
    for obj in events:
        kind = obj.get("event")
        if kind in ("fired", "skipped", "postponed", "idle_reset"):
            counts[kind] = counts.get(kind, 0) + 1
    print(
        "today: "
        f"breaks={counts.get('fired', 0)} "
        f"skipped={counts.get('skipped', 0)} "
        f"postponed={counts.get('postponed', 0)} "
        f"idle_resets={counts.get('idle_reset', 0)}"
    )

    return 0
