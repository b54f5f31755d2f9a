from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from threading import Event, Thread
from typing import Callable

logger = logging.getLogger(__name__)

LOGIN1_NAME = "org.freedesktop.login1"
LOGIN1_PATH = "/org/freedesktop/login1"
LOGIN1_MANAGER = "org.freedesktop.login1.Manager"


class SleepEventKind(Enum):
    SUSPEND = "suspend"
    RESUME = "resume"


@dataclass(frozen=True)
class SleepEvent:
    kind: SleepEventKind
    when: datetime


class SleepWatcher:
    """Listens for logind PrepareForSleep on the system bus.

    `on_event` is called from the watcher thread; callers hand it over to the
    dispatcher with `Dispatcher.post`. Without a system bus the watcher stays
    unavailable and the scheduler relies on tick gaps alone.
    """

    def __init__(self, on_event: Callable[[SleepEvent], None], *, ready_timeout: float = 2.0):
        self._on_event = on_event
        self._ready_timeout = ready_timeout
        self._thread: Thread | None = None
        self._ready = Event()
        self._available = False
        self._last_error: str | None = None

    def start(self) -> bool:
        """Start listening. Returns whether the subscription is live."""
        if self._thread is None:
            self._thread = Thread(target=self._run, name="breaktime-sleep", daemon=True)
            self._thread.start()
            self._ready.wait(timeout=self._ready_timeout)
        return self._available

    def is_available(self) -> bool:
        return self._available

    def last_error(self) -> str | None:
        return self._last_error

    def _on_prepare_for_sleep(self, sleeping: bool) -> None:
        kind = SleepEventKind.SUSPEND if sleeping else SleepEventKind.RESUME
        logger.debug("logind PrepareForSleep(%s)", sleeping)
        self._on_event(SleepEvent(kind=kind, when=datetime.now().astimezone()))

    def _fail(self, error: str) -> None:
        logger.warning("sleep watcher unavailable: %s", error)
        self._last_error = error
        self._available = False
        self._ready.set()

    def _run(self) -> None:
        try:
            asyncio.run(self._listen())
        except Exception as exc:
            self._fail(str(exc) or type(exc).__name__)

    async def _listen(self) -> None:
        from dbus_next.aio import MessageBus
        from dbus_next.constants import BusType

        bus = await MessageBus(bus_type=BusType.SYSTEM).connect()
        introspection = await bus.introspect(LOGIN1_NAME, LOGIN1_PATH)
        manager = bus.get_proxy_object(LOGIN1_NAME, LOGIN1_PATH, introspection).get_interface(
            LOGIN1_MANAGER
        )
        manager.on_prepare_for_sleep(self._on_prepare_for_sleep)  # type: ignore[attr-defined]

        self._available = True
        self._ready.set()
        # Serve signals until the process exits.
        await bus.wait_for_disconnect()
