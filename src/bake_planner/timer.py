from __future__ import annotations
import math
from datetime import datetime
from bake_planner.timeutils import now as _now


def seconds_left(end_time: datetime | None, now: datetime | None = None) -> int:
    """Whole seconds until ``end_time``, never negative.

    Always derived from the absolute end timestamp, so a poll after the
    process was suspended still shows the right value.
    """
    if end_time is None:
        return 0
    remaining = (end_time - (now or _now())).total_seconds()
    return max(0, math.floor(remaining))


def format_countdown(seconds: int) -> str:
    minutes, secs = divmod(max(0, seconds), 60)
    return f"{minutes}:{secs:02d}"
