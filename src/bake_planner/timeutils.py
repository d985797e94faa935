from __future__ import annotations
import re
from datetime import date, datetime, time, timedelta

_TIME_OF_DAY = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


class ScheduleError(ValueError):
    pass


def now() -> datetime:
    return datetime.now().astimezone()


def parse_time_of_day(value: str) -> time:
    """Parse an ``HH:MM`` string (24h clock)."""
    match = _TIME_OF_DAY.match(value or "")
    if not match:
        raise ScheduleError(f"Invalid time of day '{value}'. Expected HH:MM, e.g. 08:00.")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ScheduleError(f"Invalid time of day '{value}'. Hours must be 0-23 and minutes 0-59.")
    return time(hours, minutes)


def anchor_on(day: date, time_of_day: str) -> datetime:
    """Local-timezone datetime for ``time_of_day`` on ``day``."""
    naive = datetime.combine(day, parse_time_of_day(time_of_day))
    return naive.astimezone()


def add_minutes(moment: datetime, minutes: float) -> datetime:
    return moment + timedelta(minutes=minutes)


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def round_to_step(moment: datetime, step_minutes: int = 1) -> datetime:
    """Round to the nearest multiple of ``step_minutes`` past the hour."""
    step = timedelta(minutes=step_minutes)
    floor = moment.replace(minute=0, second=0, microsecond=0)
    offset = moment - floor
    steps = round(offset / step)
    return floor + steps * step


def format_time(moment: datetime) -> str:
    return moment.strftime("%H:%M")


def format_minutes(minutes: float) -> str:
    """Format a duration as ``H:MMh`` (e.g. 90 -> ``1:30h``)."""
    mins = max(0, round(minutes))
    return f"{mins // 60}:{mins % 60:02d}h"
