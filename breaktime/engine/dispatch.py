from __future__ import annotations

import heapq
import itertools
import logging
import time
from queue import Empty, Queue
from typing import Callable

logger = logging.getLogger(__name__)

# Upper bound on a single wait so stop() and posted callbacks stay responsive.
_MAX_WAIT_SECONDS = 1.0


class TimerHandle:
    def __init__(self, callback: Callable[[], None], interval: float | None = None):
        self._callback = callback
        self._interval = interval
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def interval(self) -> float | None:
        return self._interval

    def cancel(self) -> None:
        self._cancelled = True

    def _run(self) -> None:
        self._callback()


class Dispatcher:
    """Single-threaded executor for the scheduler.

    Every scheduler entry point (ticks, deferred timers, notification clicks,
    sleep/resume signals) runs on the thread that calls `run_forever()` or
    `run_pending()`. Other threads hand work over with `post()`.
    """

    def __init__(self, *, monotonic: Callable[[], float] = time.monotonic):
        self._monotonic = monotonic
        self._heap: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._inbox: Queue[Callable[[], None] | None] = Queue()
        self._stopping = False

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback)
        self._push(self._monotonic() + max(0.0, delay), handle)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        handle = TimerHandle(callback, interval=interval)
        self._push(self._monotonic() + interval, handle)
        return handle

    def post(self, callback: Callable[[], None]) -> None:
        """Queue `callback` to run on the dispatcher thread. Thread-safe."""
        self._inbox.put(callback)

    def stop(self) -> None:
        self._stopping = True
        # Wake a blocked run_forever().
        self._inbox.put(None)

    def pending_timers(self) -> int:
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)

    def next_deadline(self) -> float | None:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0][0] if self._heap else None

    def run_pending(self) -> int:
        """Run posted callbacks and every timer that is due. Returns the count run."""
        ran = self._drain_inbox()

        now = self._monotonic()
        while self._heap and self._heap[0][0] <= now:
            deadline, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue

            self._invoke(handle._run)
            ran += 1

            if handle.interval is not None and not handle.cancelled:
                next_deadline = deadline + handle.interval
                # Fell behind (e.g. suspend): skip the backlog instead of bursting.
                if next_deadline <= now:
                    next_deadline = now + handle.interval
                self._push(next_deadline, handle)

        return ran

    def run_forever(self) -> None:
        self._stopping = False
        while not self._stopping:
            self.run_pending()
            if self._stopping:
                break

            deadline = self.next_deadline()
            timeout = _MAX_WAIT_SECONDS
            if deadline is not None:
                timeout = min(timeout, max(0.0, deadline - self._monotonic()))

            try:
                callback = self._inbox.get(timeout=timeout)
            except Empty:
                continue

            if callback is not None:
                self._invoke(callback)

    def _push(self, deadline: float, handle: TimerHandle) -> None:
        heapq.heappush(self._heap, (deadline, next(self._seq), handle))

    def _drain_inbox(self) -> int:
        ran = 0
        while True:
            try:
                callback = self._inbox.get_nowait()
            except Empty:
                break
            if callback is None:
                continue
            self._invoke(callback)
            ran += 1
        return ran

    def _invoke(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            logger.exception("dispatched callback failed")
