from datetime import datetime

from .types import Settings


def check_in_working_hours(settings: Settings, now: datetime) -> bool:
    """Decide whether breaks may be scheduled at `now`.

    Rules:
        1. Working hours disabled → True
        2. Today's weekday flag disabled → False
        3. Otherwise → from <= now <= to, where from/to are today's date at the
           configured clock times with seconds zeroed.

    Args:
        settings: Current settings snapshot.
        now: Current (tz-aware) timestamp.

    Returns:
        True when breaks are allowed.
    """
    if not settings.working_hours_enabled:
        return True

    if not settings.working_days[now.weekday()]:
        return False

    hours_from = now.replace(
        hour=settings.working_hours_from.hour,
        minute=settings.working_hours_from.minute,
        second=0,
        microsecond=0,
    )
    hours_to = now.replace(
        hour=settings.working_hours_to.hour,
        minute=settings.working_hours_to.minute,
        second=0,
        microsecond=0,
    )

    return hours_from <= now <= hours_to
