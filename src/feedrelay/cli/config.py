"""
feedrelay config - Environment configuration.

Display the configuration files available to a project.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.syntax import Syntax

from feedrelay.config.loader import load_config
from feedrelay.exceptions import ConfigurationError

app = typer.Typer(name="config", help="Show feedrelay configurations", invoke_without_command=True)

console = Console()


@app.callback()
def config(
    ctx: typer.Context,
    env: str = typer.Option(None, help="Specific environment to show"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
):
    """
    List available environments and configurations.
    """
    if ctx.invoked_subcommand is None:
        config_files = sorted(project_dir.glob("config*.yaml"))

        if not config_files:
            console.print("[yellow]No configuration files found[/yellow]")
            return

        if env:
            config_file = project_dir / ("config.yaml" if env == "default" else f"config.{env}.yaml")
            if not config_file.exists():
                console.print(f"[red]Configuration not found for environment: {env}[/red]")
                raise typer.Exit(1)

            console.print(f"\n[bold]Configuration: {config_file.name}[/bold]\n")
            syntax = Syntax(config_file.read_text(), "yaml", theme="monokai", line_numbers=True)
            console.print(syntax)
            return

        console.print("\n[bold]Available Environments:[/bold]\n")
        for config_file in config_files:
            env_name = "default" if config_file.name == "config.yaml" else config_file.stem.replace("config.", "")
            console.print(f"  [cyan]{env_name}[/cyan] ({config_file.name})")
            try:
                cfg = load_config(project_dir, env=env_name if env_name != "default" else None)
            except ConfigurationError as e:
                console.print(f"    [red]{e.message}[/red]")
                continue
            fmt = cfg.get("integration.format", "-")
            console.print(f"    Name: {cfg.get('name', '-')}, Format: {fmt}, Feeds: {len(cfg.get('feeds') or [])}")

        console.print("\n[dim]Use 'feedrelay config --env <name>' to view details[/dim]")
