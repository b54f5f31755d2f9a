from dataclasses import dataclass
from datetime import datetime, time
from enum import Enum
from typing import Callable, Final, Protocol


class IdleState(Enum):
    ACTIVE = "active"
    IDLE = "idle"
    LOCKED = "locked"
    UNKNOWN = "unknown"


class NotificationType(Enum):
    NOTIFICATION = "notification"
    POPUP = "popup"


class NotificationClick(Enum):
    SKIP = "skip"
    POSTPONE = "postpone"


TICK_SECONDS: Final[float] = 1.0
POPUP_WARNING_SECONDS: Final[float] = 5.0

WEEKDAYS: Final[tuple[str, ...]] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


@dataclass(frozen=True)
class Duration:
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    def __str__(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}"


@dataclass(frozen=True)
class Settings:
    breaks_enabled: bool = True
    break_frequency: Duration = Duration(minutes=28)
    break_length: Duration = Duration(minutes=2)
    postpone_length: Duration = Duration(minutes=3)
    # 0 means unlimited
    postpone_limit: int = 0
    idle_reset_enabled: bool = True
    idle_reset_length: Duration = Duration(minutes=5)
    idle_reset_notification: bool = False
    notification_type: NotificationType = NotificationType.POPUP
    notification_click: NotificationClick = NotificationClick.POSTPONE
    gong_enabled: bool = True
    break_title: str = "Time for a break!"
    break_message: str = "Rest your eyes. Stretch your legs. Breathe. Relax."
    working_hours_enabled: bool = False
    working_hours_from: time = time(9, 0)
    working_hours_to: time = time(17, 0)
    # Monday first, matching datetime.weekday()
    working_days: tuple[bool, ...] = (True, True, True, True, True, False, False)
    gong_path: str = "/usr/share/sounds/freedesktop/stereo/complete.oga"


@dataclass
class SchedulerState:
    next_break_at: datetime | None = None
    having_break: bool = False
    postponed_count: int = 0
    idle_since: datetime | None = None
    lock_since: datetime | None = None
    last_tick_at: datetime | None = None


class IdleSource(Protocol):
    def now(self) -> datetime: ...

    def system_idle_state(self, threshold_seconds: int) -> IdleState: ...


class PresentationSink(Protocol):
    def show_notification(
        self, title: str, message: str | None, on_click: Callable[[], None] | None = None
    ) -> None: ...

    def show_break_windows(self) -> None: ...

    def play_start_gong(self) -> None: ...

    def refresh_tray(self) -> None: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Timers(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle: ...


SettingsProvider = Callable[[], Settings]


class Journal(Protocol):
    def append(self, *, when: datetime, event: dict) -> None: ...
