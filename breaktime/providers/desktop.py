from __future__ import annotations

import logging
import subprocess
from threading import Thread
from typing import TYPE_CHECKING, Callable

from ..engine.dispatch import Dispatcher, TimerHandle
from ..engine.types import IdleSource, SettingsProvider

if TYPE_CHECKING:
    from ..engine.scheduler import BreakScheduler

logger = logging.getLogger(__name__)

APP_NAME = "breaktime"


class DesktopSink:
    """Presentation sink for freedesktop sessions.

    - notifications: `notify-send` (clickable ones use `--wait --action`)
    - break "windows": a critical notification held until the break ends
    - gong: `paplay`
    - tray: no tray icon; the next break time is logged when it changes

    Click callbacks arrive on watcher threads and are posted to the dispatcher.
    """

    def __init__(self, *, dispatcher: Dispatcher, settings: SettingsProvider, clock: IdleSource):
        self._dispatcher = dispatcher
        self._settings = settings
        self._clock = clock
        self._scheduler: BreakScheduler | None = None
        self._end_timer: TimerHandle | None = None
        self._last_break_at: object = None
        self._missing: set[str] = set()

    def bind(self, scheduler: BreakScheduler) -> None:
        self._scheduler = scheduler

    def show_notification(
        self, title: str, message: str | None, on_click: Callable[[], None] | None = None
    ) -> None:
        args = ["notify-send", f"--app-name={APP_NAME}", title]
        if message:
            args.append(message)

        if on_click is None:
            self._spawn(args)
            return

        args[1:1] = ["--wait", "--action=default=OK"]
        Thread(
            target=self._wait_for_click,
            args=(args, on_click),
            name="breaktime-notify",
            daemon=True,
        ).start()

    def show_break_windows(self) -> None:
        if self._scheduler is None:
            raise RuntimeError("DesktopSink.bind() must be called before breaks start")

        settings = self._settings()
        end = self._scheduler.get_break_end_time()
        if end is None:
            return

        seconds = max(1.0, (end - self._clock.now()).total_seconds())
        self._spawn(
            [
                "notify-send",
                f"--app-name={APP_NAME}",
                "--urgency=critical",
                f"--expire-time={int(seconds * 1000)}",
                settings.break_title,
                f"{settings.break_message}\nUntil {end.strftime('%H:%M:%S')}",
            ]
        )

        if self._end_timer is not None:
            self._end_timer.cancel()
        self._end_timer = self._dispatcher.call_later(seconds, self._scheduler.end_popup_break)

    def play_start_gong(self) -> None:
        self._spawn(["paplay", self._settings().gong_path])

    def refresh_tray(self) -> None:
        if self._scheduler is None:
            return
        break_at = self._scheduler.get_break_time()
        if break_at == self._last_break_at:
            return
        self._last_break_at = break_at
        if break_at is None:
            logger.info("no break scheduled")
        else:
            logger.info("next break at %s", break_at.strftime("%H:%M:%S"))

    def _spawn(self, args: list[str]) -> None:
        try:
            subprocess.Popen(args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as e:
            self._report_missing(args[0], e)

    def _wait_for_click(self, args: list[str], on_click: Callable[[], None]) -> None:
        try:
            result = subprocess.run(args, capture_output=True, text=True)
        except OSError as e:
            self._report_missing(args[0], e)
            return

        if result.returncode != 0:
            logger.debug("notify-send exited %s: %s", result.returncode, result.stderr.strip())
            return

        # notify-send prints the invoked action key.
        if result.stdout.strip() == "default":
            self._dispatcher.post(on_click)

    def _report_missing(self, command: str, error: OSError) -> None:
        if command in self._missing:
            return
        self._missing.add(command)
        logger.warning("%s unavailable: %s", command, error)
