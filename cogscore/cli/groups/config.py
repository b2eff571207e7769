"""Config command group for the cogscore CLI."""

import json
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.table import Table

from cogscore.cli.utils.console import get_console, print_error, print_success
from cogscore.cli.utils.decorators import handle_errors
from cogscore.utils.config import CONFIG_FILENAMES, ComplexityConfig

app = typer.Typer(help="Configuration management")


def _resolve(path: str, config_path: Optional[Path]) -> ComplexityConfig:
    if config_path is not None:
        return ComplexityConfig.load(config_path)
    return ComplexityConfig.discover(Path(path).resolve())


@app.command("init")
@handle_errors
def config_init(
    path: str = typer.Option(".", "--path", "-p", help="Project directory"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a default .cogscore.yaml."""
    project_path = Path(path).resolve()
    target = project_path / CONFIG_FILENAMES[0]

    if target.exists() and not force:
        print_error(f"{target} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    ComplexityConfig().save(target)
    print_success(f"Wrote {target}")


@app.command("show")
@handle_errors
def config_show(
    path: str = typer.Option(".", "--path", "-p", help="Project directory"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the effective configuration."""
    config = _resolve(path, config_path)
    data = config.to_dict()

    if json_output:
        typer.echo(json.dumps(data, indent=2))
        return
    typer.echo(yaml.dump(data, default_flow_style=False, sort_keys=False).rstrip())


@app.command("rules")
@handle_errors
def config_rules(
    path: str = typer.Option(".", "--path", "-p", help="Project directory"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file"),
) -> None:
    """List compensation rules in evaluation order."""
    console = get_console()
    config = _resolve(path, config_path)

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("#", justify="right")
    table.add_column("Rule")
    table.add_column("Predicate")
    table.add_column("Action")
    table.add_column("Kinds")
    table.add_column("Languages")

    for index, rule in enumerate(config.rule_set, start=1):
        table.add_row(
            str(index),
            rule.name,
            rule.predicate,
            rule.action.value,
            ", ".join(sorted(kind.value for kind in rule.kinds)) or "*",
            ", ".join(rule.languages),
        )

    console.print("\n[bold cyan]Compensation Rules[/bold cyan]\n")
    console.print(table)
    console.print("\n[dim]First matching rule wins; unmatched nodes use the base classification.[/dim]\n")
