from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone

import pytest

from breaktime.engine.dispatch import Dispatcher
from breaktime.engine.scheduler import BreakScheduler
from breaktime.engine.types import Duration, IdleState, NotificationClick, Settings

# Wednesday
T0 = datetime(2026, 10, 14, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.current = now
        self.idle_state = IdleState.ACTIVE
        self.thresholds: list[int] = []

    def now(self) -> datetime:
        return self.current

    def system_idle_state(self, threshold_seconds: int) -> IdleState:
        self.thresholds.append(threshold_seconds)
        return self.idle_state


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


@dataclass
class Notification:
    title: str
    message: str | None
    on_click: object = None


@dataclass
class RecordingSink:
    notifications: list[Notification] = field(default_factory=list)
    break_windows: int = 0
    gongs: int = 0
    tray_refreshes: int = 0

    def show_notification(self, title, message, on_click=None):
        self.notifications.append(Notification(title, message, on_click))

    def show_break_windows(self):
        self.break_windows += 1

    def play_start_gong(self):
        self.gongs += 1

    def refresh_tray(self):
        self.tray_refreshes += 1

    def titles(self) -> list[str]:
        return [n.title for n in self.notifications]


class SettingsBox:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.fail = False

    def __call__(self) -> Settings:
        if self.fail:
            raise RuntimeError("settings unavailable")
        return self.settings

    def update(self, **changes) -> None:
        self.settings = replace(self.settings, **changes)


class ListJournal:
    def __init__(self):
        self.events: list[dict] = []

    def append(self, *, when: datetime, event: dict) -> None:
        self.events.append({"ts": when.isoformat(), **event})

    def kinds(self) -> list[str]:
        return [e["event"] for e in self.events]


@dataclass
class Harness:
    clock: FakeClock
    mono: FakeMonotonic
    sink: RecordingSink
    box: SettingsBox
    journal: ListJournal
    dispatcher: Dispatcher
    scheduler: BreakScheduler

    @property
    def state(self):
        return self.scheduler.state

    def advance(self, seconds: float) -> None:
        """Move wall and monotonic time together, then run whatever is due."""
        self.clock.current += timedelta(seconds=seconds)
        self.mono.value += seconds
        self.dispatcher.run_pending()

    def run_for(self, seconds: int) -> None:
        for _ in range(seconds):
            self.advance(1)


def default_test_settings() -> Settings:
    return Settings(
        break_frequency=Duration(minutes=30),
        break_length=Duration(minutes=2),
        postpone_length=Duration(minutes=3),
        idle_reset_length=Duration(minutes=5),
        idle_reset_notification=True,
        notification_click=NotificationClick.POSTPONE,
    )


def make_harness(now: datetime = T0, settings: Settings | None = None) -> Harness:
    clock = FakeClock(now)
    mono = FakeMonotonic()
    sink = RecordingSink()
    box = SettingsBox(settings or default_test_settings())
    journal = ListJournal()
    dispatcher = Dispatcher(monotonic=mono)
    scheduler = BreakScheduler(
        settings=box, clock=clock, sink=sink, timers=dispatcher, journal=journal
    )
    return Harness(clock, mono, sink, box, journal, dispatcher, scheduler)


@pytest.fixture
def harness() -> Harness:
    return make_harness()
