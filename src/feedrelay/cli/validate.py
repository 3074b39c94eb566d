"""
feedrelay validate - Check feed files and settings without submitting anything.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from feedrelay.config.settings import load_run_settings
from feedrelay.core.controller import RunController
from feedrelay.core.job import JobState
from feedrelay.exceptions import ConfigurationError

app = typer.Typer(name="validate", help="Check feed files without submitting them", invoke_without_command=True)

console = Console()


class _NoClient:
    """Validation never reaches the endpoint."""

    async def submit(self, path, record_type, operation):
        raise RuntimeError("validate does not submit feed files")

    async def poll_completed(self, job_id):
        raise RuntimeError("validate does not poll")

    poll_errors = poll_warnings = poll_summary = poll_completed


@app.callback()
def validate(
    ctx: typer.Context,
    env: str = typer.Option(None, help="Environment (dev, staging, prod)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
) -> None:
    """
    Check the integration format, every feed file's presence, record count and types.

    Nothing is submitted, archived or deleted.
    """
    if ctx.invoked_subcommand is None:
        try:
            settings = load_run_settings(project_dir, env=env)
            jobs = RunController(settings, _NoClient()).validate()
        except ConfigurationError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e

        table = Table(title=f"{settings.name} ({settings.integration_format})", show_header=True)
        table.add_column("Feed", style="cyan")
        table.add_column("Record type")
        table.add_column("Operation")
        table.add_column("Records", justify="right")
        table.add_column("Status", style="bold")
        table.add_column("Note", style="dim")

        failed = 0
        for job in jobs:
            if job.state == JobState.CONFIG_INVALID:
                failed += 1
                status = "[red]invalid[/red]"
            elif job.state == JobState.SKIPPED:
                status = "[yellow]empty[/yellow]"
            else:
                status = "[green]ready[/green]"
            records = "-" if job.expected_count is None else str(job.expected_count)
            table.add_row(job.name, job.record_type, job.operation, records, status, job.message or "")

        console.print(table)
        if failed:
            typer.echo(f"{failed} of {len(jobs)} feed files are invalid", err=True)
            raise typer.Exit(1)
        typer.echo(f"All {len(jobs)} feed files are valid")
