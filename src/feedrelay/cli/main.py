"""
Main CLI entry point.
"""

import typer

from feedrelay import __version__
from feedrelay.cli import config, init, run, validate


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"feedrelay version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="feedrelay",
    help="feedrelay - submit feed files to an integration endpoint and track them to completion",
    add_completion=True,
)

app.add_typer(init.app, name="init")
app.add_typer(run.app, name="run")
app.add_typer(validate.app, name="validate")
app.add_typer(config.app, name="config")


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        help="Show version and exit.",
    ),
):
    """
    feedrelay - submit feed files to an integration endpoint and track them to completion.

    Run 'feedrelay <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        if not version:
            typer.echo(ctx.get_help())
            raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
