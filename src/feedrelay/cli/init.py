"""
feedrelay init - Project initialization.

Create a new feedrelay project directory.
"""

from pathlib import Path

import typer

app = typer.Typer(name="init", help="Create a new feedrelay project", invoke_without_command=True)


CONFIG_TEMPLATE = """# feedrelay configuration
# Base configuration shared across all environments

name: {name}

integration:
  format: flatfile  # flatfile or xml
  server:
    base_url: ${{FEEDRELAY_BASE_URL}}
    username: ${{FEEDRELAY_USERNAME}}
    password: ${{FEEDRELAY_PASSWORD}}
    timeout: 120
    verify_ssl: true

polling:
  interval: 30         # seconds between status checks
  abort_threshold: 10  # consecutive checks without progress before giving up

logging:
  dir: logs
  level: INFO
  retention_days: 14

archive:
  enabled: true
  dir: archive
  retention_days: 30
  name_format: feeds_%Y%m%d.zip

notification:
  enabled: false
  recipients: []
  sender: feedrelay@localhost
  smtp_host: localhost
  smtp_port: 25

feeds:
  - path: feeds/person.txt
    record_type: person
    operation: store
"""

GITIGNORE_TEMPLATE = """# feedrelay
feeds/
logs/
archive/
__pycache__/
*.pyc
.venv/
.env
.env.*
!config.yaml
!config.*.yaml
"""


@app.callback()
def init(
    ctx: typer.Context,
    project_name: str = typer.Argument(None, help="Project name"),
):
    """
    Initialize a new feedrelay project.

    Creates config.yaml plus the feeds/, logs/ and archive/ directories.
    """
    if ctx.invoked_subcommand is None:
        if not project_name:
            project_name = "feedrelay-project"

        project_path = Path(project_name)

        if project_path.exists():
            typer.echo(f"Error: Directory {project_name} already exists", err=True)
            raise typer.Exit(1)

        project_path.mkdir()
        for directory in ("feeds", "logs", "archive"):
            (project_path / directory).mkdir()

        (project_path / "config.yaml").write_text(CONFIG_TEMPLATE.format(name=project_path.name))
        (project_path / ".gitignore").write_text(GITIGNORE_TEMPLATE)

        typer.echo(f"Created feedrelay project: {project_name}")
        typer.echo("\nNext steps:")
        typer.echo(f"  cd {project_name}")
        typer.echo("  # Put feed files under feeds/ and list them in config.yaml")
        typer.echo("  feedrelay validate")
        typer.echo("  feedrelay run")
