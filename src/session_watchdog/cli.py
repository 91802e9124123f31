"""Command-line interface for the session watchdog."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .config import WatchdogConfigError, WatchdogSettings
from .paths import get_log_path
from .server_runner import run_server

app = typer.Typer(help="Idle session watchdog with warning countdown.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _build_settings(timeout_minutes: float, warning_minutes: float) -> WatchdogSettings:
    try:
        return WatchdogSettings.from_intervals(
            timeout_minutes=timeout_minutes, warning_minutes=warning_minutes
        )
    except WatchdogConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the service."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the service."
    ),
    timeout_minutes: float = typer.Option(
        30.0,
        "--timeout-minutes",
        min=0.1,
        envvar="SESSION_WATCHDOG_TIMEOUT_MINUTES",
        help="Minutes of inactivity before a session is signed out.",
    ),
    warning_minutes: float = typer.Option(
        5.0,
        "--warning-minutes",
        min=0.05,
        envvar="SESSION_WATCHDOG_WARNING_MINUTES",
        help="Minutes before sign-out at which the countdown warning appears.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        path_type=Path,
        help="Write service logs to this file as well.",
    ),
    default_log_file: bool = typer.Option(
        False,
        "--log-to-user-dir",
        help="Write service logs under the per-user log directory.",
    ),
) -> None:
    """Run the session watchdog service."""
    settings = _build_settings(timeout_minutes, warning_minutes)
    if log_file is None and default_log_file:
        log_file = get_log_path()
    run_server(host=host, port=port, settings=settings, log_file=log_file)


@app.command()
def simulate(
    until: float = typer.Option(
        ..., "--until", min=0.0, help="Seconds of virtual time to simulate."
    ),
    activity: List[float] = typer.Option(
        [], "--activity", min=0.0, help="Offset in seconds of a user interaction (repeatable)."
    ),
    extend: List[float] = typer.Option(
        [], "--extend", min=0.0, help="Offset in seconds of a 'stay logged in' click (repeatable)."
    ),
    timeout_minutes: float = typer.Option(
        30.0, "--timeout-minutes", min=0.1, help="Idle budget in minutes."
    ),
    warning_minutes: float = typer.Option(
        5.0, "--warning-minutes", min=0.05, help="Warning lead in minutes."
    ),
    fail_sign_out: bool = typer.Option(
        False, "--fail-sign-out", help="Make the sign-out call fail to exercise the fallback."
    ),
) -> None:
    """Replay an activity timeline on a virtual clock and print each transition."""
    from .reporting import TimelinePrinter
    from .simulation import simulate as run_simulation

    settings = _build_settings(timeout_minutes, warning_minutes)
    entries = run_simulation(
        settings,
        until=until,
        activity_at=activity,
        extend_at=extend,
        fail_sign_out=fail_sign_out,
    )
    TimelinePrinter().print_timeline(entries)
