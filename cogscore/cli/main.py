"""cogscore CLI - Main entry point."""

import typer

from cogscore.cli.commands import score, tree
from cogscore.cli.groups import config

app = typer.Typer(
    name="cogscore",
    help="Cognitive and cyclomatic complexity scoring",
    add_completion=False,
    no_args_is_help=True,
)

app.command()(score)
app.command()(tree)

app.add_typer(config.app, name="config")


def _version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from cogscore import __version__
        from cogscore.cli.utils.console import get_console

        get_console().print(f"[bold]cogscore[/bold] version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def _main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Cognitive and cyclomatic complexity scoring."""
    pass


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
