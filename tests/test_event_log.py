import json
from datetime import date, datetime, timedelta

from breaktime.store.event_log import EventLog


def test_event_log_appends_json_lines(tmp_path, monkeypatch):
    # Force log path into tmp dir by monkeypatching XDG_DATA_HOME.
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    log = EventLog()
    now = datetime.now().astimezone()
    log.append(when=now, event={"event": "armed", "break_at": now.isoformat()})
    log.append(when=now, event={"event": "fired", "mode": "popup"})

    path = tmp_path / "breaktime" / "events" / f"{now.date().isoformat()}.jsonl"
    lines = path.read_text(encoding="utf-8").splitlines()

    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["ts"] == now.isoformat()
    assert first["event"] == "armed"
    assert json.loads(lines[1])["mode"] == "popup"


def test_event_log_splits_files_per_day(tmp_path):
    log = EventLog(base_dir=tmp_path)
    day_one = datetime(2026, 10, 14, 23, 59, 59).astimezone()
    day_two = day_one + timedelta(seconds=2)

    log.append(when=day_one, event={"event": "armed"})
    log.append(when=day_two, event={"event": "fired"})

    assert [e["event"] for e in log.read_day(day_one.date())] == ["armed"]
    assert [e["event"] for e in log.read_day(day_two.date())] == ["fired"]


def test_event_log_read_skips_garbage(tmp_path):
    log = EventLog(base_dir=tmp_path)
    day = date(2026, 10, 14)
    log.path_for(day).write_text(
        '{"event": "armed"}\nnot json\n\n[1, 2]\n{"event": "skipped"}\n', encoding="utf-8"
    )

    assert [e["event"] for e in log.read_day(day)] == ["armed", "skipped"]
    assert log.last_event(day)["event"] == "skipped"
    assert log.last_event(day, "armed") == {"event": "armed"}
    assert log.last_event(day, "fired") is None


def test_event_log_missing_day_is_empty(tmp_path):
    log = EventLog(base_dir=tmp_path)
    assert log.read_day(date(2026, 1, 1)) == []


def test_event_log_write_failure_is_logged(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    log = EventLog(base_dir=blocker / "events")

    log.append(when=datetime.now().astimezone(), event={"event": "armed"})

    assert "event log write failed" in caplog.text
