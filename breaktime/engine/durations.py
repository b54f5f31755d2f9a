from datetime import datetime, timedelta

from .types import Duration


def duration_to_seconds(duration: Duration) -> int:
    """Total seconds of a configured duration, never 0.

    A zero-length duration would otherwise count as already elapsed on every
    tick, so it is clamped to one second.
    """
    total = duration.hours * 3600 + duration.minutes * 60 + duration.seconds
    return total or 1


def compute_break_time(base: datetime, duration: Duration) -> datetime:
    return (
        base
        + timedelta(hours=duration.hours)
        + timedelta(minutes=duration.minutes)
        + timedelta(seconds=duration.seconds)
    )


def elapsed_seconds(start: datetime, end: datetime) -> int:
    # Whole seconds, rounded half-up like the idle counters shown to users.
    return int((end - start).total_seconds() + 0.5)


def format_hms(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
