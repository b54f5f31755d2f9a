import logging
from datetime import date
from functools import partial

from breaktime.engine.dispatch import Dispatcher
from breaktime.engine.scheduler import BreakScheduler
from breaktime.engine.types import Settings
from breaktime.providers.desktop import DesktopSink
from breaktime.providers.linux import LinuxIdleSource
from breaktime.providers.sleep_linux import SleepEvent, SleepEventKind, SleepWatcher
from breaktime.store import EventLog, SettingsStore, event_log_path

logger = logging.getLogger(__name__)


def _check_settings(settings: Settings) -> None:
    if settings.working_hours_enabled and settings.working_hours_from >= settings.working_hours_to:
        logger.warning(
            "working_hours.from (%s) is not before working_hours.to (%s); no breaks will fire",
            settings.working_hours_from,
            settings.working_hours_to,
        )
    if not any(settings.working_days) and settings.working_hours_enabled:
        logger.warning("working hours enabled but no working days selected")


def main() -> int:
    settings_store = SettingsStore()
    settings = settings_store()
    _check_settings(settings)

    dispatcher = Dispatcher()
    clock = LinuxIdleSource()
    sink = DesktopSink(dispatcher=dispatcher, settings=settings_store, clock=clock)
    journal = EventLog()

    scheduler = BreakScheduler(
        settings=settings_store,
        clock=clock,
        sink=sink,
        timers=dispatcher,
        journal=journal,
    )
    sink.bind(scheduler)

    def on_sleep(event: SleepEvent) -> None:
        break_at = scheduler.get_break_time()
        journal.append(
            when=event.when,
            event={
                "event": "sleep",
                "phase": event.kind.value,
                "break_at": break_at.isoformat() if break_at else None,
            },
        )
        if event.kind is SleepEventKind.RESUME:
            # Reconcile the gap now rather than on the next cadence slot.
            scheduler.tick()

    sleep_watcher = SleepWatcher(lambda event: dispatcher.post(partial(on_sleep, event)))
    sleep_available = sleep_watcher.start()

    print("Starting breaktime (Ctrl+C to stop)")
    print(f"Config: {settings_store.path}")
    if settings_store.meta.get("error"):
        print(f"Config error: {settings_store.meta['error']}")
    print(f"Event log: {event_log_path(date.today())}")
    if not sleep_available:
        message = "Sleep watcher: disabled (dbus unavailable)"
        if sleep_watcher.last_error():
            message = f"Sleep watcher: disabled ({sleep_watcher.last_error()})"
        print(message)

    journal.append(
        when=clock.now(),
        event={
            "event": "start",
            "breaks_enabled": settings.breaks_enabled,
            "break_frequency": str(settings.break_frequency),
            "notification_type": settings.notification_type.value,
            "sleep_watcher": sleep_available,
        },
    )

    scheduler.init_breaks()

    try:
        dispatcher.run_forever()
    except KeyboardInterrupt:
        print("\nStopping...")
    finally:
        scheduler.shutdown()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
