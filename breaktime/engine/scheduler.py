from __future__ import annotations

import logging
from datetime import datetime

from .durations import compute_break_time, duration_to_seconds, elapsed_seconds, format_hms
from .gates import check_in_working_hours
from .types import (
    POPUP_WARNING_SECONDS,
    TICK_SECONDS,
    IdleSource,
    IdleState,
    Journal,
    NotificationClick,
    NotificationType,
    PresentationSink,
    SchedulerState,
    Settings,
    SettingsProvider,
    TimerHandle,
    Timers,
)

logger = logging.getLogger(__name__)


class BreakScheduler:
    """Decides once per tick whether a break is due and drives its lifecycle.

    States:
        idle-no-break: next_break_at is None, no break presented
        armed: next_break_at is set, no break presented
        presenting: having_break is True

    All methods must be called from the dispatcher thread. Each entry point
    takes one settings snapshot and threads it through its decisions.
    """

    def __init__(
        self,
        *,
        settings: SettingsProvider,
        clock: IdleSource,
        sink: PresentationSink,
        timers: Timers,
        journal: Journal | None = None,
    ):
        self.state = SchedulerState()
        self._settings = settings
        self._clock = clock
        self._sink = sink
        self._timers = timers
        self._journal = journal

        self._ticker: TimerHandle | None = None
        self._warning: TimerHandle | None = None

    # ----- Public surface -----

    def get_break_time(self) -> datetime | None:
        return self.state.next_break_at

    def get_break_end_time(self) -> datetime | None:
        if self.state.next_break_at is None:
            return None
        return compute_break_time(self.state.next_break_at, self._settings().break_length)

    def start_break_now(self) -> None:
        now = self._clock.now()
        self.state.next_break_at = now
        self._record("manual", now)
        logger.info("break requested now")

    def init_breaks(self) -> None:
        settings = self._settings()
        if settings.breaks_enabled:
            self.create_break(settings=settings)

        if self._ticker is None:
            self._ticker = self._timers.call_every(TICK_SECONDS, self.tick)

    def shutdown(self) -> None:
        for handle in (self._ticker, self._warning):
            if handle is not None:
                handle.cancel()
        self._ticker = None
        self._warning = None

    # ----- Predicates -----

    def check_idle(self, settings: Settings, now: datetime) -> bool:
        """Report whether the user counts as idle for countdown-reset purposes.

        A lock counts as idle only once it has lasted longer than the idle reset
        length; the tick that first observes the lock never does.
        """
        idle_reset_seconds = duration_to_seconds(settings.idle_reset_length)
        idle_state = self._clock.system_idle_state(idle_reset_seconds)

        if idle_state is IdleState.LOCKED:
            if self.state.lock_since is None:
                logger.debug("lock observed, lock_since=%s", now.isoformat())
                self.state.lock_since = now
                return False

            lock_seconds = elapsed_seconds(self.state.lock_since, now)
            logger.debug("locked for %ss (threshold %ss)", lock_seconds, idle_reset_seconds)
            return settings.idle_reset_enabled and lock_seconds > idle_reset_seconds

        self.state.lock_since = None

        if not settings.idle_reset_enabled:
            return False

        return idle_state is IdleState.IDLE

    def check_should_have_break(self, settings: Settings, now: datetime) -> bool:
        in_working_hours = check_in_working_hours(settings, now)
        idle = self.check_idle(settings, now)
        return (
            not self.state.having_break
            and settings.breaks_enabled
            and in_working_hours
            and not idle
        )

    # ----- Lifecycle -----

    def create_break(
        self,
        is_postpone: bool = False,
        *,
        settings: Settings | None = None,
        now: datetime | None = None,
    ) -> None:
        settings = settings or self._settings()
        now = now or self._clock.now()
        state = self.state

        if state.idle_since is not None:
            self._idle_reset(settings, state.idle_since, now)
            state.idle_since = None
            state.postponed_count = 0

        length = settings.postpone_length if is_postpone else settings.break_frequency
        state.next_break_at = compute_break_time(now, length)

        logger.info(
            "%s armed for %s",
            "postponed break" if is_postpone else "break",
            state.next_break_at.isoformat(),
        )
        self._record(
            "armed", now, break_at=state.next_break_at.isoformat(), postpone=is_postpone
        )
        self._sink.refresh_tray()

    def check_break(self, settings: Settings, now: datetime) -> None:
        if self.state.next_break_at is not None and now > self.state.next_break_at:
            self.do_break(settings, now)

    def do_break(self, settings: Settings, now: datetime) -> None:
        self.state.having_break = True
        self._record("fired", now, mode=settings.notification_type.value)

        if settings.notification_type is NotificationType.NOTIFICATION:
            logger.info("break (notification)")
            self.state.postponed_count = 0
            self._sink.show_notification(settings.break_title, settings.break_message)
            if settings.gong_enabled:
                self._sink.play_start_gong()
            self.state.having_break = False
            self.create_break(settings=settings, now=now)
            return

        self._warn_popup_break(settings)

    def begin_popup_break(self) -> None:
        settings = self._settings()
        now = self._clock.now()

        self._warning = None
        # Restart from now so the break end time ignores the warning delay.
        self.state.next_break_at = now
        self.state.postponed_count = 0

        logger.info("break (popup) started")
        self._record("break_started", now)
        self._sink.show_break_windows()

        if settings.gong_enabled:
            self._sink.play_start_gong()

    def end_popup_break(self) -> None:
        state = self.state
        if state.next_break_at is None:
            return

        state.next_break_at = None
        state.having_break = False
        state.postponed_count = 0

        settings = self._settings()
        logger.info("break (popup) ended")
        self._record("break_ended", self._clock.now())

        if settings.gong_enabled:
            # The end gong plays distorted on some systems; reuse the start gong.
            self._sink.play_start_gong()

    # ----- Tick -----

    def tick(self) -> None:
        try:
            self._tick(self._settings(), self._clock.now())
        except Exception:
            logger.exception("tick failed")
        finally:
            self.state.last_tick_at = self._clock.now()

    def _tick(self, settings: Settings, now: datetime) -> None:
        state = self.state
        should_have_break = self.check_should_have_break(settings, now)

        seconds_since_last_tick = (
            elapsed_seconds(state.last_tick_at, now) if state.last_tick_at is not None else 0
        )
        idle_reset_seconds = duration_to_seconds(settings.idle_reset_length)
        break_seconds = duration_to_seconds(settings.break_frequency)

        logger.debug(
            "tick last_tick=%s break_at=%s since_last=%ss idle_reset=%ss break=%ss",
            state.last_tick_at.isoformat() if state.last_tick_at else None,
            state.next_break_at.isoformat() if state.next_break_at else None,
            seconds_since_last_tick,
            idle_reset_seconds,
            break_seconds,
        )

        # A long gap between ticks means the machine slept or stalled.
        if seconds_since_last_tick > break_seconds:
            # Slept through a whole break period; an idle notice would be noise.
            logger.debug("gap longer than break period")
            state.lock_since = None
        elif seconds_since_last_tick > idle_reset_seconds:
            logger.debug("gap longer than idle reset")
            if state.idle_since is None:
                # The unresponsive period itself is the idle period.
                state.lock_since = None
                state.idle_since = state.last_tick_at
            self.create_break(settings=settings, now=now)

        if not should_have_break and not state.having_break and state.next_break_at is not None:
            if self.check_idle(settings, now):
                logger.info("idle, countdown paused")
                state.idle_since = now
            state.next_break_at = None
            self._record("cleared", now, idle=state.idle_since is not None)
            self._sink.refresh_tray()
            return

        if should_have_break and state.next_break_at is None:
            self.create_break(settings=settings, now=now)
            return

        if should_have_break:
            self.check_break(settings, now)

    # ----- Internals -----

    def _warn_popup_break(self, settings: Settings) -> None:
        state = self.state
        done = False

        def begin() -> None:
            nonlocal done
            if done:
                return
            done = True
            self.begin_popup_break()

        warning = self._timers.call_later(POPUP_WARNING_SECONDS, begin)
        self._warning = warning

        allow_skip = settings.notification_click is NotificationClick.SKIP
        allow_postpone = settings.notification_click is NotificationClick.POSTPONE and (
            not settings.postpone_limit or state.postponed_count < settings.postpone_limit
        )

        def on_click() -> None:
            nonlocal done
            # Single shot, and moot once the popup has begun.
            if done or not (allow_skip or allow_postpone):
                return
            done = True
            warning.cancel()
            self._warning = None

            now = self._clock.now()
            if allow_skip:
                logger.info("break skipped")
                state.next_break_at = None
                state.having_break = False
                self._record("skipped", now)
            else:
                state.postponed_count += 1
                state.having_break = False
                logger.info("break postponed (%s)", state.postponed_count)
                self._record("postponed", now, count=state.postponed_count)
                self.create_break(True)

        body: str | None = None
        if allow_skip:
            body = "Click to skip"
        elif allow_postpone:
            body = "Click to postpone"

        self._sink.show_notification("Break about to start...", body, on_click)

    def _idle_reset(self, settings: Settings, idle_since: datetime, now: datetime) -> None:
        idle_seconds = elapsed_seconds(idle_since, now)
        logger.info("countdown reset after %ss idle", idle_seconds)
        self._record("idle_reset", now, idle_seconds=idle_seconds)

        if settings.idle_reset_enabled and settings.idle_reset_notification:
            self._sink.show_notification(
                "Break countdown reset", f"Idle for {format_hms(idle_seconds)}"
            )

    def _record(self, event: str, when: datetime, **fields) -> None:
        if self._journal is None:
            return
        self._journal.append(when=when, event={"event": event, **fields})
