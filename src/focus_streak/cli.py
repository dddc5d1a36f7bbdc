"""Command-line interface for the focus streak tracker."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .config import DEFAULT_GOAL_MINUTES, TrackerSettings
from .db import clear_time_data, database_connection
from .engine import TrackerEngine
from .notifier import LoggingNotifier
from .paths import get_db_path
from .reporting import SummaryPrinter
from .server_runner import run_server

app = typer.Typer(help="Track time per site and keep a daily focus streak.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the server."),
    port: int = typer.Option(
        8766, "--port", min=1, max=65535, help="TCP port the browser extension posts to."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the state SQLite database."
    ),
    goal_minutes: int = typer.Option(
        DEFAULT_GOAL_MINUTES,
        "--goal",
        min=1,
        help="Productive minutes needed per day to extend the streak.",
    ),
    flush_seconds: float = typer.Option(
        5.0,
        "--flush-interval",
        min=1.0,
        help="Seconds between background flushes of the active site.",
    ),
    alert_minutes: float = typer.Option(
        5.0,
        "--alert-after",
        min=0.5,
        help="Minutes on a distracting site before an alert is raised.",
    ),
    productive_sites: Optional[List[str]] = typer.Option(
        None,
        "--productive",
        help="Productive site substring; repeat to replace the built-in list.",
    ),
    repeat_alerts: bool = typer.Option(
        False,
        "--repeat-alerts/--alert-once",
        help="Alert on every check past the threshold instead of once per site per day.",
    ),
    notify: bool = typer.Option(
        True,
        "--notify/--no-notify",
        help="Show desktop notifications (otherwise they are only logged).",
    ),
) -> None:
    """Run the tracking server with its background flush and midnight rollover."""
    settings = TrackerSettings.from_values(
        goal_minutes=goal_minutes,
        flush_seconds=flush_seconds,
        alert_minutes=alert_minutes,
        productive_sites=tuple(productive_sites) if productive_sites else None,
        repeat_alerts=repeat_alerts,
    )
    run_server(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=settings,
        desktop_notifications=notify,
    )


@app.command()
def summary(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the state SQLite database."
    ),
    goal_minutes: int = typer.Option(DEFAULT_GOAL_MINUTES, "--goal", min=1),
    limit: int = typer.Option(20, "--limit", min=1, help="Number of sites to list."),
) -> None:
    """Print today's sites sorted by time spent, plus the current streak."""
    engine = _open_engine(db_path, goal_minutes)
    try:
        SummaryPrinter(engine.classifier).print_summary(engine.snapshot(), limit=limit)
    finally:
        engine.close()


@app.command()
def reset(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the state SQLite database."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Clear today's tracked time. The streak is kept."""
    if not yes and not typer.confirm("Reset today's tracked data? This cannot be undone."):
        raise typer.Abort()
    with database_connection(db_path or get_db_path()) as conn:
        clear_time_data(conn)
    typer.echo("Today's tracked time was cleared.")


@app.command()
def rollover(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the state SQLite database."
    ),
    goal_minutes: int = typer.Option(DEFAULT_GOAL_MINUTES, "--goal", min=1),
) -> None:
    """Evaluate the stored day now if its date has passed."""
    engine = _open_engine(db_path, goal_minutes)
    try:
        outcome = engine.check_rollover()
    finally:
        engine.close()
    if outcome is None:
        typer.echo("Already up to date; nothing to evaluate.")
    elif outcome.first_run:
        typer.echo(f"Started tracking on {outcome.today}.")
    else:
        verdict = "goal met" if outcome.met_goal else "goal missed"
        typer.echo(
            f"{outcome.previous_date}: {outcome.productive_minutes} productive min, "
            f"{verdict}. Streak is now {outcome.streak.count}."
        )


def _open_engine(db_path: Optional[Path], goal_minutes: int) -> TrackerEngine:
    return TrackerEngine(
        db_path=db_path or get_db_path(),
        settings=TrackerSettings.from_values(goal_minutes=goal_minutes),
        notifier=LoggingNotifier(),
    )
