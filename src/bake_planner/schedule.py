from __future__ import annotations
from datetime import date, datetime, timedelta
from bake_planner.fermentation import calculate_fermentation_times
from bake_planner.models import (
    BakerConfig,
    HourMarker,
    PlanningDirection,
    Schedule,
    ScheduledStage,
    Stage,
)
from bake_planner.stages import get_stage_definitions, total_duration
from bake_planner.timeutils import (
    ScheduleError,
    add_minutes,
    anchor_on,
    format_time,
    minutes_between,
    round_to_step,
)

__all__ = [
    "ScheduleError",
    "compute_sequential_stages",
    "hourly_markers",
    "project_schedule",
    "shift_anchor",
]


def compute_sequential_stages(stages: list[Stage], start_index: int, base_time: datetime) -> list[Stage]:
    """Copy of ``stages`` with start/end stamped from ``start_index`` onward.

    Each stage starts where the previous one ended; recomputed stages are
    marked not completed.
    """
    updated = [s.model_copy() for s in stages]
    cursor = base_time
    for i in range(start_index, len(updated)):
        stage = updated[i]
        stage.start_time = cursor
        stage.stage_end_time = add_minutes(cursor, stage.duration_minutes)
        stage.completed = False
        cursor = stage.stage_end_time
    return updated


def hourly_markers(start: datetime, end: datetime, total_minutes: float) -> list[HourMarker]:
    if total_minutes <= 0:
        return []
    current = start.replace(minute=0, second=0, microsecond=0)
    if current < start:
        current += timedelta(hours=1)

    markers = []
    while current <= end:
        position = minutes_between(start, current) / total_minutes * 100
        if 0 <= position <= 100:
            markers.append(HourMarker(label=format_time(current), at=current, position=position))
        current += timedelta(hours=1)
    return markers


def project_schedule(
    config: BakerConfig,
    anchor: str,
    direction: PlanningDirection = "forward",
    day: date | None = None,
) -> Schedule:
    """Lay the stage sequence out on the clock.

    ``anchor`` is the start time in forward mode and the ready time in
    backward mode. The bake starts on ``day`` (today by default): a backward
    plan whose start would fall on the previous day is ready the next day
    instead. Does not touch any session.
    """
    if direction not in ("forward", "backward"):
        raise ScheduleError(f"Unknown planning direction '{direction}'. Use 'forward' or 'backward'.")

    times = calculate_fermentation_times(config)
    definitions = get_stage_definitions(config, times)
    total = total_duration(definitions)

    day = day or date.today()
    anchored = anchor_on(day, anchor)
    if direction == "forward":
        start = anchored
    else:
        start = add_minutes(anchored, -total)
        if start.date() < day:
            start = add_minutes(anchor_on(day + timedelta(days=1), anchor), -total)
    start = round_to_step(start)

    scheduled: list[ScheduledStage] = []
    cursor = start
    for definition in definitions:
        end = round_to_step(add_minutes(cursor, definition.duration_minutes))
        scheduled.append(ScheduledStage(**definition.model_dump(), start=cursor, end=end))
        cursor = end

    return Schedule(
        stages=scheduled,
        session_start=start,
        session_end=cursor,
        hourly_markers=hourly_markers(start, cursor, total),
        total_minutes=total,
        bulk_minutes=times.bulk_mins,
        proof_minutes=times.proof_mins,
    )


def shift_anchor(
    schedule: Schedule,
    delta_minutes: float,
    direction: PlanningDirection,
    step_minutes: int = 5,
) -> str:
    """New anchor string for a schedule whose start moves by ``delta_minutes``.

    In backward mode the anchor is the ready time, so it is re-derived from
    the shifted start plus the total duration.
    """
    new_start = add_minutes(schedule.session_start, delta_minutes)
    if direction == "backward":
        new_end = add_minutes(new_start, schedule.total_minutes)
        return format_time(round_to_step(new_end, step_minutes))
    return format_time(round_to_step(new_start, step_minutes))
