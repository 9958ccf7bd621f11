"""Command-line interface for the activity timer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import httpx
import typer

from .catalog import all_activities, lookup_name
from .config import DEFAULT_GRACE_SECONDS, DEFAULT_REMINDER_SECONDS, TrackerSettings
from .errors import ActivityNotFound
from .paths import get_db_path, get_log_path
from .server_runner import run_dashboard

logger = logging.getLogger(__name__)

app = typer.Typer(help="Single-activity time tracker with check-in reminders.")


@app.callback(no_args_is_help=True)
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    log_file: bool = typer.Option(
        False, "--log-file", help="Also write logs to the application data directory."
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    if log_file:
        handler = logging.FileHandler(get_log_path(), encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        logging.getLogger().addHandler(handler)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the dashboard."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the dashboard."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the totals SQLite database."
    ),
    reminder_seconds: float = typer.Option(
        DEFAULT_REMINDER_SECONDS,
        "--reminder-interval",
        min=1.0,
        help="Seconds of tracking before asking whether you are still on task.",
    ),
    grace_seconds: float = typer.Option(
        DEFAULT_GRACE_SECONDS,
        "--grace-period",
        min=1.0,
        help="Seconds to wait for a check-in answer before stopping tracking.",
    ),
    status_url: Optional[str] = typer.Option(
        None,
        "--status-url",
        help="Endpoint that receives activity-change events as JSON.",
    ),
) -> None:
    """Serve the tracker API with check-in reminders."""
    settings = TrackerSettings.from_intervals(
        reminder_seconds=reminder_seconds,
        grace_seconds=grace_seconds,
        status_url=status_url,
    )
    run_dashboard(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=settings,
    )


@app.command()
def totals(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the totals SQLite database."
    ),
    activity_name: Optional[str] = typer.Option(
        None, "--activity", "-a", help="Only show this activity (name, key or id)."
    ),
) -> None:
    """Print the committed total for every activity."""
    from .reporting import TotalsPrinter

    activity = None
    if activity_name:
        try:
            activity = lookup_name(activity_name)
        except ActivityNotFound as exc:
            raise typer.BadParameter(str(exc), param_hint="--activity") from exc
    TotalsPrinter(db_path=db_path or get_db_path()).print_totals(activity)


@app.command()
def reset(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the totals SQLite database."
    ),
    host: str = typer.Option("127.0.0.1", "--host", help="Host of a running tracker API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="Port of a running tracker API."
    ),
    offline: bool = typer.Option(
        False, "--offline", help="Write zeros to the database without contacting the API."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Reset all tracked times to zero.

    When the tracker API is running it owns the totals, so the reset is sent
    to it; writing the database directly would be undone by its next save.
    """
    from .store import TotalsStore

    if not yes:
        typer.confirm(
            "This will reset all tracked times to zero. This action cannot be undone. Continue?",
            abort=True,
        )
    if not offline:
        try:
            response = httpx.post(f"http://{host}:{port}/api/reset", timeout=2.0)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.debug("Tracker API not reachable (%s); resetting offline.", exc)
        else:
            typer.echo("All times reset by the running tracker.")
            return

    store = TotalsStore(db_path or get_db_path())
    try:
        saved = store.save_now({})
    finally:
        store.close()
    if not saved:
        typer.echo("Failed to reset totals; see the log for details.", err=True)
        raise typer.Exit(code=1)
    typer.echo("All times reset.")


@app.command()
def activities() -> None:
    """List the activities that can be tracked."""
    for activity in all_activities():
        typer.echo(f"{activity.id}  {activity.display_name:<12} {activity.color_hint}")
