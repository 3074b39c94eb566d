"""
feedrelay run - Submit every configured feed file and track it to completion.
"""

import asyncio
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from feedrelay.config.settings import RunSettings, load_run_settings
from feedrelay.core.controller import RunController
from feedrelay.core.report import STATUS_SUCCESS, STATUS_WARNINGS, summary_rows
from feedrelay.core.result import RunResult
from feedrelay.exceptions import ConfigurationError
from feedrelay.integration.client import HttpIntegrationClient
from feedrelay.notify import SmtpNotifier
from feedrelay.utils.logging import close_logging, get_logger, run_log_path, setup_logging

logger = get_logger("feedrelay.cli.run")

app = typer.Typer(name="run", help="Submit feed files and track them to completion", invoke_without_command=True)

console = Console()


def render_summary(result: RunResult, title: str = "Feed files") -> Table:
    """Rich table of per-job outcomes."""
    table = Table(title=title, show_header=True)
    table.add_column("Feed", style="cyan")
    table.add_column("Record type")
    table.add_column("Operation")
    table.add_column("State", style="bold")
    table.add_column("Job id", style="dim")
    table.add_column("Records", justify="right")
    table.add_column("Errors", justify="right", style="red")
    table.add_column("Warnings", justify="right", style="yellow")
    table.add_column("Duration", justify="right")
    for row in summary_rows(result):
        table.add_row(*row)
    return table


async def _execute(settings: RunSettings, log_file: Path, notify: bool):
    notifier = SmtpNotifier.from_settings(settings.notification) if notify else None
    async with HttpIntegrationClient(settings.server) as client:
        controller = RunController(settings, client, notifier=notifier, log_file=log_file)
        result = await controller.execute()
    return result, controller.report


@app.callback()
def run(
    ctx: typer.Context,
    env: str = typer.Option(None, help="Environment (dev, staging, prod)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    notify: bool = typer.Option(True, "--notify/--no-notify", help="Send the run report by email"),
) -> None:
    """
    Submit every configured feed file, poll until each finishes, then archive and clean up.

    Exits with status 1 when any feed failed or the configuration is invalid.
    """
    if ctx.invoked_subcommand is None:
        try:
            settings = load_run_settings(project_dir, env=env)
        except ConfigurationError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e

        started_at = datetime.now()
        log_file = run_log_path(settings.logging.dir, started_at)
        setup_logging(
            level="DEBUG" if verbose else settings.logging.level,
            log_file=log_file,
            console_enabled=settings.logging.console_enabled,
        )
        logger.info(f"Logging to {log_file}")

        try:
            result, report = asyncio.run(_execute(settings, log_file, notify))
        finally:
            close_logging()

        if result.jobs:
            console.print(render_summary(result))
        if report is not None:
            style = "green" if report.status == STATUS_SUCCESS else "yellow" if report.status == STATUS_WARNINGS else "red"
            console.print(f"[{style}]{report.status}[/{style}]: {result.error_total} errors, {result.warning_total} warnings")
        if result.fatal_error:
            typer.echo(f"Error: {result.fatal_error}", err=True)

        if result.fatal_error or result.error_total:
            raise typer.Exit(1)
