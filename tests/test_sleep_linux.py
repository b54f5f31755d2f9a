from unittest.mock import patch

from breaktime.providers.sleep_linux import SleepEventKind, SleepWatcher


def test_prepare_for_sleep_maps_to_events():
    events = []
    watcher = SleepWatcher(events.append)

    watcher._on_prepare_for_sleep(True)
    watcher._on_prepare_for_sleep(False)

    assert [e.kind for e in events] == [SleepEventKind.SUSPEND, SleepEventKind.RESUME]
    assert all(e.when.tzinfo is not None for e in events)


def test_unavailable_bus_is_reported():
    watcher = SleepWatcher(lambda event: None, ready_timeout=5.0)

    async def broken_listen():
        raise ConnectionRefusedError("no system bus")

    with patch.object(watcher, "_listen", broken_listen):
        assert watcher.start() is False

    assert watcher.is_available() is False
    assert watcher.last_error() == "no system bus"


def test_start_is_idempotent():
    watcher = SleepWatcher(lambda event: None, ready_timeout=5.0)

    async def broken_listen():
        raise RuntimeError("down")

    with patch.object(watcher, "_listen", broken_listen):
        watcher.start()
        first = watcher._thread
        watcher.start()

    assert watcher._thread is first
