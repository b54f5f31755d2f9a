import sys
import time

from breaktime.engine.durations import duration_to_seconds
from breaktime.engine.gates import check_in_working_hours
from breaktime.engine.types import TICK_SECONDS
from breaktime.providers.linux import LinuxIdleSource
from breaktime.store import SettingsStore


def main():
    """Run debug CLI - prints live idle/lock state and scheduling gates."""

    settings_store = SettingsStore()
    source = LinuxIdleSource()

    print("Starting breaktime debug mode")
    print(f"Config: {settings_store.path}")
    print("-" * 50)

    use_tty_ui = sys.stdout.isatty()

    def _render(lines: list[str]) -> None:
        if use_tty_ui:
            # Clear screen + move cursor home.
            sys.stdout.write("\x1b[2J\x1b[H")
        sys.stdout.write("\n".join(lines))
        sys.stdout.write("\n")
        sys.stdout.flush()

    try:
        while True:
            settings = settings_store()
            now = source.now()
            idle_reset_seconds = duration_to_seconds(settings.idle_reset_length)
            state = source.system_idle_state(idle_reset_seconds)

            session_id = source._session_id
            props = source._get_session_properties(session_id) if session_id else {}

            lines: list[str] = []
            lines.append("breaktime debug")
            lines.append(f"timestamp: {now.isoformat()}")
            lines.append(
                f"break_frequency: {settings.break_frequency} "
                f"({duration_to_seconds(settings.break_frequency)}s) "
                f"idle_reset: {settings.idle_reset_length} ({idle_reset_seconds}s) "
                f"enabled={settings.idle_reset_enabled}"
            )
            if settings_store.meta.get("error"):
                lines.append(f"config error: {settings_store.meta['error']}")
            lines.append("-" * 50)
            lines.append(f"session: {session_id}")
            lines.append(f"locked_hint: {props.get('LockedHint')}")
            lines.append(f"idle_hint: {props.get('IdleHint')}")
            lines.append(f"idle_seconds: {source.idle_seconds(props) if props else None}")
            lines.append(f"idle_state: {state.value}")
            lines.append(f"breaks_enabled: {settings.breaks_enabled}")
            lines.append(f"in_working_hours: {check_in_working_hours(settings, now)}")
            lines.append("-" * 50)

            if use_tty_ui:
                lines.append("Ctrl+C to exit")

            _render(lines)

            time.sleep(TICK_SECONDS)

    except KeyboardInterrupt:
        print("\nExiting debug mode...")


if __name__ == "__main__":
    main()
