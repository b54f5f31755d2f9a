from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from breaktime.store.paths import event_log_path

logger = logging.getLogger(__name__)


@dataclass
class EventLog:
    """Append-only JSONL journal of scheduler decisions, one file per day."""

    base_dir: Path | None = None

    def path_for(self, day: date) -> Path:
        if self.base_dir is not None:
            return self.base_dir / f"{day.isoformat()}.jsonl"
        return event_log_path(day)

    def append(self, *, when: datetime, event: dict) -> None:
        """Append a single JSON object as one line."""

        path = self.path_for(when.date())
        payload = {"ts": when.isoformat(), **event}
        line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            # Journal failures must not stop the scheduler.
            logger.warning("event log write failed (%s): %s", path, e)

    def read_day(self, day: date) -> list[dict]:
        path = self.path_for(day)
        if not path.exists():
            return []

        try:
            text = path.read_text(encoding="utf-8")
        except OSError:
            return []

        events: list[dict] = []
        for line in text.splitlines():
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(obj, dict):
                events.append(obj)
        return events

    def last_event(self, day: date, kind: str | None = None) -> dict | None:
        for obj in reversed(self.read_day(day)):
            if kind is None or obj.get("event") == kind:
                return obj
        return None
