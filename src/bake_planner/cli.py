from __future__ import annotations
import logging
import time
import click
from pydantic import ValidationError
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from bake_planner.config import Settings
from bake_planner.fermentation import calculate_batch_weights
from bake_planner.history import HistoryManager
from bake_planner.models import BakerConfig, BakerSession
from bake_planner.schedule import ScheduleError, project_schedule, shift_anchor
from bake_planner.session import ConfigError, SessionManager
from bake_planner.storage import JsonFileStore, KeyValueStore, decode, encode
from bake_planner.timer import format_countdown
from bake_planner.timeutils import format_minutes, format_time

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

DRAFT_KEY = "draftConfig"


def _settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        err_console.print(f"[red]Error:[/red] Invalid settings: {escape(str(e))}")
        raise SystemExit(1)


def _load_draft(store: KeyValueStore, settings: Settings) -> BakerConfig:
    raw = store.get(DRAFT_KEY)
    if raw is None:
        return settings.default_recipe
    try:
        return BakerConfig.model_validate(decode(raw))
    except ValueError:
        logger.warning("Ignoring unreadable draft recipe, using defaults")
        return settings.default_recipe


def _open() -> tuple[Settings, KeyValueStore, SessionManager, HistoryManager]:
    settings = _settings()
    store = JsonFileStore(base_dir=settings.data_dir)
    sessions = SessionManager(store=store, default_config=_load_draft(store, settings))
    history = HistoryManager(store=store)
    history.track(sessions)
    return settings, store, sessions, history


def _stage_table(session: BakerSession) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Stage")
    table.add_column("Duration", justify="right")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("")
    for i, stage in enumerate(session.stages):
        if stage.completed:
            mark = "[green]✓[/green]"
        elif session.status == "active" and i == session.active_stage_index:
            mark = "[cyan]▶[/cyan]"
        else:
            mark = ""
        tags = " [blue](cold)[/blue]" if stage.is_cold else ""
        table.add_row(
            str(i + 1),
            f"{stage.label}{tags}",
            format_minutes(stage.duration_minutes),
            format_time(stage.start_time) if stage.start_time else "-",
            format_time(stage.stage_end_time) if stage.stage_end_time else "-",
            mark,
        )
    return table


def _active_line(sessions: SessionManager) -> str:
    session = sessions.get_session()
    stage = session.active_stage
    if stage is None:
        return "No stage in progress."
    return (
        f"[bold]{stage.label}[/bold] "
        f"({session.active_stage_index + 1}/{len(session.stages)}), "
        f"{format_countdown(sessions.time_left())} left"
    )


@click.group()
def cli():
    """Bake Planner: fermentation schedules and live bake tracking."""
    settings = _settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


@cli.command()
@click.option("--at", "anchor", default=None, help="Start time (forward) or ready time (backward), HH:MM")
@click.option("--forward/--backward", "forward", default=None, help="Plan from a start time or back from a ready time")
@click.option("--shift", "shift", default=None, type=float, help="Move the schedule by this many minutes")
def plan(anchor: str | None, forward: bool | None, shift: float | None):
    """Project the current recipe onto the clock."""
    settings, _, sessions, _ = _open()
    anchor = anchor or settings.default_anchor
    if forward is None:
        direction = settings.planning_direction
    else:
        direction = "forward" if forward else "backward"

    try:
        schedule = project_schedule(sessions.get_config(), anchor, direction)
        if shift:
            anchor = shift_anchor(schedule, shift, direction, settings.shift_step_minutes)
            schedule = project_schedule(sessions.get_config(), anchor, direction)
    except ScheduleError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(1)

    label = "Starts at" if direction == "forward" else "Ready by"
    console.print(f"\n[bold]{label} {anchor}[/bold]  ({format_minutes(schedule.total_minutes)} total)\n")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Stage")
    table.add_column("Duration", justify="right")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Type")
    for stage in schedule.stages:
        kind = "Work" if stage.is_active else ("Cold" if stage.is_cold else "Wait")
        table.add_row(
            stage.label,
            format_minutes(stage.duration_minutes),
            format_time(stage.start),
            format_time(stage.end),
            kind,
        )
    console.print(table)
    console.print(
        f"\nBegin [bold]{format_time(schedule.session_start)}[/bold], "
        f"bread ready [bold]{format_time(schedule.session_end)}[/bold].\n"
    )


@cli.group("config")
def config_group():
    """Show or change the recipe for the next bake."""
    pass


@config_group.command("show")
def config_show():
    """Show the current recipe settings."""
    _, _, sessions, _ = _open()
    table = Table(show_header=False)
    for field, value in sessions.get_config().model_dump().items():
        table.add_row(field, str(value))
    console.print(table)


@config_group.command("set")
@click.argument("assignments", nargs=-1, required=True)
def config_set(assignments: tuple[str, ...]):
    """Update recipe settings, e.g. yeast=1.0 cold_bulk_enabled=true."""
    _, store, sessions, _ = _open()
    if sessions.status == "active":
        err_console.print("[red]Error:[/red] A bake is in progress; its recipe is locked. Run [bold]bake reset[/bold] first.")
        raise SystemExit(1)

    updates: dict[str, object] = {}
    for assignment in assignments:
        field, sep, value = assignment.partition("=")
        if not sep:
            err_console.print(f"[red]Error:[/red] Expected field=value, got '{assignment}'.")
            raise SystemExit(1)
        updates[field.strip()] = None if value.strip().lower() in ("", "none") else value.strip()

    try:
        sessions.update_config(**updates)
    except ConfigError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(1)

    store.set(DRAFT_KEY, encode(sessions.get_config().model_dump()))
    console.print(f"[green]✓[/green] Updated {', '.join(updates)}.")


@cli.command()
def recipe():
    """Show ingredient weights for the current recipe."""
    _, _, sessions, _ = _open()
    config = sessions.get_config()
    weights = calculate_batch_weights(config)
    table = Table(show_header=True, header_style="bold")
    table.add_column("Ingredient")
    table.add_column("Grams", justify="right")
    table.add_column("%", justify="right")
    table.add_row("Flour", f"{weights.flour:.0f}", "100")
    table.add_row("Water", f"{weights.water:.0f}", f"{config.hydration:g}")
    table.add_row("Salt", f"{weights.salt:.1f}", f"{config.salt:g}")
    table.add_row("Yeast", f"{weights.yeast:.1f}", f"{config.yeast:g}")
    table.add_row("[bold]Total[/bold]", f"[bold]{weights.total:.0f}[/bold]", "")
    console.print(table)


@cli.command()
def start():
    """Start tracking a bake now."""
    _, _, sessions, _ = _open()
    if sessions.status == "active":
        if not click.confirm("A bake is already in progress. Restart the clock from now?"):
            return
    sessions.start_session()
    session = sessions.get_session()
    console.print(f"\n[green]✓[/green] Bake started: [bold]{session.id}[/bold]")
    console.print(f"Bread ready around [bold]{format_time(session.target_end_time)}[/bold].\n")
    console.print(_active_line(sessions))


@cli.command("next")
def next_stage():
    """Finish the current stage and move on."""
    _, _, sessions, _ = _open()
    if sessions.status != "active":
        err_console.print("[red]Error:[/red] No bake in progress. Run: bake start")
        raise SystemExit(1)
    sessions.advance_to_next_stage()
    if sessions.status == "completed":
        console.print("[green]✓[/green] Last stage done. Enjoy your bread!")
    else:
        console.print(_active_line(sessions))


@cli.command()
@click.option("--watch", is_flag=True, help="Keep the countdown running until the stage ends")
def status(watch: bool):
    """Show progress of the bake in progress."""
    _, _, sessions, _ = _open()
    if sessions.status != "active":
        console.print("No bake in progress. Run [bold]bake plan[/bold] or [bold]bake start[/bold].")
        return
    console.print(_stage_table(sessions.get_session()))
    if not watch:
        console.print(_active_line(sessions))
        return
    try:
        with Live(_active_line(sessions), console=console, refresh_per_second=2) as live:
            while sessions.time_left() > 0:
                time.sleep(1)
                live.update(_active_line(sessions))
    except KeyboardInterrupt:
        pass
    console.print("Stage time is up. Run [bold]bake next[/bold] when you're ready.")


@cli.command()
def complete():
    """Mark the bake in progress as finished."""
    _, _, sessions, _ = _open()
    if sessions.status != "active":
        err_console.print("[red]Error:[/red] No bake in progress.")
        raise SystemExit(1)
    sessions.complete_session()
    console.print("[green]✓[/green] Bake completed.")


@cli.command()
def reset():
    """Cancel the bake in progress and go back to planning."""
    _, _, sessions, _ = _open()
    if sessions.status == "active" and not click.confirm("Abandon the bake in progress?"):
        return
    sessions.reset_session()
    console.print("[green]✓[/green] Back to planning.")


@cli.group("history")
def history_group():
    """Browse and annotate past bakes."""
    pass


@history_group.command("list")
def history_list():
    """Show past bakes, newest first."""
    _, _, _, history = _open()
    entries = history.get_history()
    if not entries:
        console.print("No bakes yet.")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Started")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Notes")
    for entry in entries:
        table.add_row(
            entry.id,
            entry.name or "-",
            entry.start_time.strftime("%Y-%m-%d %H:%M"),
            entry.status,
            format_minutes(entry.total_duration_minutes) if entry.total_duration_minutes is not None else "-",
            entry.notes or "",
        )
    console.print(table)


def _require_entry(history: HistoryManager, entry_id: str) -> None:
    if history.get(entry_id) is None:
        err_console.print(f"[red]Error:[/red] No bake '{entry_id}' in history.")
        raise SystemExit(1)


@history_group.command("name")
@click.argument("entry_id")
@click.argument("name")
def history_name(entry_id: str, name: str):
    """Rename a past bake."""
    _, _, _, history = _open()
    _require_entry(history, entry_id)
    history.update_name(entry_id, name)
    console.print(f"[green]✓[/green] Renamed {entry_id}.")


@history_group.command("notes")
@click.argument("entry_id")
@click.argument("notes")
def history_notes(entry_id: str, notes: str):
    """Replace the notes on a past bake."""
    _, _, _, history = _open()
    _require_entry(history, entry_id)
    history.update_notes(entry_id, notes)
    console.print(f"[green]✓[/green] Saved notes for {entry_id}.")


@history_group.command("delete")
@click.argument("entry_id")
def history_delete(entry_id: str):
    """Delete a past bake."""
    _, _, _, history = _open()
    _require_entry(history, entry_id)
    history.delete_entry(entry_id)
    console.print(f"[green]✓[/green] Deleted {entry_id}.")
