import threading

import pytest

from breaktime.engine.dispatch import Dispatcher


class Mono:
    def __init__(self):
        self.value = 0.0

    def __call__(self):
        return self.value


def _dispatcher():
    mono = Mono()
    return Dispatcher(monotonic=mono), mono


def test_call_later_fires_once_when_due():
    dispatcher, mono = _dispatcher()
    calls = []
    dispatcher.call_later(5, lambda: calls.append("x"))

    mono.value = 4.9
    dispatcher.run_pending()
    assert calls == []

    mono.value = 5.0
    dispatcher.run_pending()
    mono.value = 20.0
    dispatcher.run_pending()
    assert calls == ["x"]


def test_cancelled_timer_never_fires():
    dispatcher, mono = _dispatcher()
    calls = []
    handle = dispatcher.call_later(5, lambda: calls.append("x"))
    handle.cancel()

    mono.value = 10.0
    dispatcher.run_pending()

    assert calls == []
    assert handle.cancelled is True
    assert dispatcher.pending_timers() == 0


def test_call_every_repeats_on_cadence():
    dispatcher, mono = _dispatcher()
    calls = []
    dispatcher.call_every(1.0, lambda: calls.append(mono.value))

    for step in range(1, 4):
        mono.value = float(step)
        dispatcher.run_pending()

    assert calls == [1.0, 2.0, 3.0]


def test_call_every_skips_backlog_after_stall():
    dispatcher, mono = _dispatcher()
    calls = []
    dispatcher.call_every(1.0, lambda: calls.append(mono.value))

    mono.value = 100.0
    dispatcher.run_pending()
    assert calls == [100.0]
    assert dispatcher.next_deadline() == 101.0


def test_call_every_rejects_non_positive_interval():
    dispatcher, _ = _dispatcher()
    with pytest.raises(ValueError):
        dispatcher.call_every(0, lambda: None)


def test_cancel_repeating_timer_from_its_callback():
    dispatcher, mono = _dispatcher()
    calls = []
    handle = None

    def once():
        calls.append(1)
        handle.cancel()

    handle = dispatcher.call_every(1.0, once)
    for step in range(1, 5):
        mono.value = float(step)
        dispatcher.run_pending()

    assert calls == [1]


def test_timers_due_together_run_in_schedule_order():
    dispatcher, mono = _dispatcher()
    calls = []
    dispatcher.call_later(2, lambda: calls.append("a"))
    dispatcher.call_later(1, lambda: calls.append("b"))
    dispatcher.call_later(2, lambda: calls.append("c"))

    mono.value = 2.0
    dispatcher.run_pending()
    assert calls == ["b", "a", "c"]


def test_posted_callbacks_run_before_timers():
    dispatcher, mono = _dispatcher()
    calls = []
    dispatcher.call_later(0, lambda: calls.append("timer"))
    dispatcher.post(lambda: calls.append("posted"))

    dispatcher.run_pending()
    assert calls == ["posted", "timer"]


def test_failing_callback_does_not_stop_others(caplog):
    dispatcher, mono = _dispatcher()
    calls = []

    def boom():
        raise RuntimeError("boom")

    dispatcher.call_later(1, boom)
    dispatcher.call_later(1, lambda: calls.append("after"))

    mono.value = 1.0
    dispatcher.run_pending()

    assert calls == ["after"]
    assert "dispatched callback failed" in caplog.text


def test_run_forever_stops_from_other_thread():
    dispatcher = Dispatcher()
    ran = threading.Event()

    def work():
        ran.set()

    dispatcher.post(work)
    stopper = threading.Timer(0.05, dispatcher.stop)
    stopper.start()
    dispatcher.run_forever()
    stopper.join()

    assert ran.is_set()


def test_run_forever_stops_from_callback():
    dispatcher = Dispatcher()
    calls = []

    def tick():
        calls.append(1)
        if len(calls) == 3:
            dispatcher.stop()

    dispatcher.call_every(0.01, tick)
    dispatcher.run_forever()

    assert calls == [1, 1, 1]
